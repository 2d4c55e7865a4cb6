"""
Provider staff: techs and dispatchers working under a provider account.

Accounts live with the external identity provider, so adding an employee
binds an existing uid (or one about to sign in) to the provider. The
profile row is created here when the person has never signed in.
"""
import logging

from app import db
from app import permissions
from app.errors import NotFound, PermissionDenied, ValidationError
from app.lifecycle import TERMINAL_STATUSES, next_timestamp
from app.models import Employee, Job, JobEvent, User
from app.models.user import EMPLOYEE_ROLES, get_user
from app.utils.transactions import atomic
from app.utils.validators import normalize_phone, validate_email

logger = logging.getLogger(__name__)


def _managed_provider(provider_uid, actor):
    provider = get_user(provider_uid)
    if provider is None or not provider.is_provider:
        raise NotFound("Provider not found")
    if actor.id != provider_uid and not permissions.is_staff_for(actor, provider_uid):
        raise PermissionDenied("Only the provider or its dispatchers can manage employees")
    return provider


def list_employees(provider_uid, actor, include_inactive=False):
    _managed_provider(provider_uid, actor)
    query = Employee.query.filter_by(provider_uid=provider_uid)
    if not include_inactive:
        query = query.filter_by(active=True)
    return query.order_by(Employee.created_at.asc()).all()


def add_employee(provider_uid, actor, user_uid, role="tech", name=None, email=None, phone=None):
    """
    Add (or reactivate) an employee under a provider

    Returns:
        tuple: (Employee, created)
    """
    _managed_provider(provider_uid, actor)

    user_uid = (user_uid or "").strip()
    if not user_uid:
        raise ValidationError("user_uid is required", field="user_uid")
    if user_uid == provider_uid:
        raise ValidationError("A provider cannot employ itself", field="user_uid")
    role = role or "tech"
    if role not in EMPLOYEE_ROLES:
        raise ValidationError("role must be one of: {}".format(", ".join(EMPLOYEE_ROLES)), field="role")
    email = (email or "").strip().lower() or None
    if email and not validate_email(email):
        raise ValidationError("Invalid email address", field="email")
    formatted_phone = normalize_phone(phone)
    if phone and not formatted_phone:
        raise ValidationError("Invalid phone number", field="phone")
    name = (name or "").strip() or None

    def work():
        user = get_user(user_uid)
        if user is None:
            user = User(id=user_uid, role="employee", provider_uid=provider_uid,
                        name=name, email=email, phone=formatted_phone)
            db.session.add(user)
        else:
            if user.role != "employee":
                raise ValidationError("Account is already registered as a {}".format(user.role), field="user_uid")
            if user.provider_uid not in (None, provider_uid) and permissions.active_employment(user, user.provider_uid):
                raise ValidationError("Account works for another provider", field="user_uid")
            user.provider_uid = provider_uid
            user.name = name or user.name
            user.email = email or user.email
            user.phone = formatted_phone or user.phone
            user.touch()

        employment = Employee.query.filter_by(provider_uid=provider_uid, user_uid=user_uid).first()
        created = employment is None
        if created:
            employment = Employee(provider_uid=provider_uid, user_uid=user_uid, role=role, active=True)
            db.session.add(employment)
        else:
            employment.role = role
            employment.active = True
            employment.touch()
        db.session.flush()
        return employment, created

    employment, created = atomic(work)
    logger.info("Employee %s %s under provider %s as %s by %s",
                user_uid, "added" if created else "reactivated", provider_uid, role, actor.id)
    return employment, created


def deactivate_employee(provider_uid, actor, user_uid):
    """
    Deactivate an employee and release their open job assignments

    Returns:
        tuple: (Employee, ids of jobs the employee was taken off)
    """
    _managed_provider(provider_uid, actor)
    if user_uid == actor.id:
        raise ValidationError("You cannot deactivate yourself", field="user_uid")

    def work():
        employment = Employee.query.filter_by(provider_uid=provider_uid, user_uid=user_uid).first()
        if employment is None:
            raise NotFound("Employee not found")
        released = []
        if not employment.active:
            return employment, released

        employment.active = False
        employment.touch()
        jobs = (
            Job.query.filter(
                Job.provider_id == provider_uid,
                Job.assigned_employee_uid == user_uid,
                Job.status.notin_(TERMINAL_STATUSES),
            )
            .with_for_update()
            .all()
        )
        for job in jobs:
            now = next_timestamp(job)
            job.assigned_employee_uid = None
            job.updated_at = now
            JobEvent.record(
                job.id, "employee_assigned", actor_uid=actor.id,
                old_values={"assigned_employee_uid": user_uid},
                new_values={"assigned_employee_uid": None},
                created_at=now,
            )
            released.append(job.id)
        return employment, released

    employment, released = atomic(work)
    logger.info("Employee %s deactivated under provider %s by %s; released %d jobs",
                user_uid, provider_uid, actor.id, len(released))
    return employment, released
