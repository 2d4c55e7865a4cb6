"""
Access rules for jobs, bids, claims and chat.

Staff means global dispatchers and admins, plus employees holding the
dispatcher role under a specific provider. Functions named ``can_*``
answer a question; callers raise PermissionDenied.
"""
from app import db
from app.models import Employee, Bid


def active_employment(user, provider_uid):
    """The caller's active Employee row under ``provider_uid``, if any."""
    if user is None or not provider_uid:
        return None
    return Employee.query.filter_by(
        provider_uid=provider_uid, user_uid=user.id, active=True
    ).first()


def acting_provider_uid(user):
    """The provider account a caller works for: itself, or its employer."""
    if user.role == "provider":
        return user.id
    if user.role == "employee":
        return user.provider_uid
    return None


def is_staff_for(user, provider_uid=None):
    if user.is_global_staff:
        return True
    employment = active_employment(user, provider_uid)
    return employment is not None and employment.role == "dispatcher"


def is_owner(user, job):
    return user.id == job.owner_uid or user.id == job.customer_uid


def works_for_job_provider(user, job):
    if not job.provider_id:
        return False
    return user.id == job.provider_id or active_employment(user, job.provider_id) is not None


def has_bid(user, job):
    provider_uid = acting_provider_uid(user)
    if not provider_uid:
        return False
    return db.session.query(
        Bid.query.filter_by(job_id=job.id, provider_uid=provider_uid).exists()
    ).scalar()


def can_view_job(user, job):
    if user.is_global_staff or is_owner(user, job) or works_for_job_provider(user, job):
        return True
    if user.id == job.created_by_uid:
        return True
    if acting_provider_uid(user) and job.status in ("open", "bidding") and not job.provider_id:
        return True
    return has_bid(user, job)


def can_edit_job(user, job):
    return user.is_global_staff or is_owner(user, job) or user.id == job.created_by_uid


def can_advance_job(user, job):
    return user.is_global_staff or works_for_job_provider(user, job)


def can_cancel_job(user, job):
    return can_edit_job(user, job) or can_advance_job(user, job)


def can_manage_claim(user, job):
    """Staff who may issue claim links for a ghost job."""
    if user.is_global_staff:
        return True
    if user.id == job.created_by_uid and user.role in ("provider", "employee", "dispatcher"):
        return True
    return bool(job.provider_id) and is_staff_for(user, job.provider_id)


def can_assign_provider(user, provider_uid):
    return user.id == provider_uid or is_staff_for(user, provider_uid)


def can_assign_employee(user, job):
    if user.is_global_staff:
        return True
    return bool(job.provider_id) and (user.id == job.provider_id or is_staff_for(user, job.provider_id))


def created_under_provider(job, provider_uid):
    """The job was entered by the provider itself or by one of its employees."""
    if job.created_by_uid == provider_uid:
        return True
    return Employee.query.filter_by(provider_uid=provider_uid, user_uid=job.created_by_uid).first() is not None


def can_dispatch_job(user, job, provider_uid):
    """
    Global staff may dispatch any job. A provider and its dispatchers may
    only self-dispatch internal jobs entered under that provider; marketplace
    jobs go to a provider through bid acceptance.
    """
    if user.is_global_staff:
        return True
    if job.origin != "internal" or not can_assign_provider(user, provider_uid):
        return False
    return created_under_provider(job, provider_uid)
