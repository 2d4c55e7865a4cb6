"""
Notification dispatcher.

In-app inbox rows, SMS and Socket.IO fan-out for job workflow events.
Everything here runs after the state change it reports has committed.

IMPORTANT: The announce_* and notify functions never raise. A failure is
logged and returned as a warning dict so callers can surface it next to
their successful result without rolling anything back.
"""
import logging

from sqlalchemy import update, or_

from app import db
from app.errors import ExternalServiceUnavailable, NotFound, PermissionDenied
from app.lifecycle import next_timestamp
from app.models import Job, Notification
from app.models.user import get_user
from app import realtime, sms_service

logger = logging.getLogger(__name__)

SMS_STATUSES = ("assigned", "enroute", "on_site", "in_progress", "completed")

STATUS_TITLES = {
    "pending_customer_claim": "Your request is ready to claim",
    "open": "Your request is open for bids",
    "bidding": "Providers are bidding on your request",
    "pending_provider_confirmation": "Waiting for the provider to confirm",
    "pending_customer_confirmation": "Please confirm your provider",
    "assigned": "Provider assigned",
    "enroute": "Provider on the way",
    "on_site": "Provider has arrived",
    "in_progress": "Work in progress",
    "completed": "Job completed",
    "canceled": "Job canceled",
}


def _warning(service, message):
    return ExternalServiceUnavailable(service, message).as_warning()


def notify(recipient_uid, type, title, body=None, job_id=None):
    """Insert an inbox row and push it to the recipient's socket room.

    Returns:
        tuple: (Notification or None, list of warnings)
    """
    warnings = []
    if not recipient_uid:
        return None, warnings
    try:
        notification = Notification(
            user_id=recipient_uid,
            type=type,
            title=title,
            body=body,
            job_id=job_id,
        )
        db.session.add(notification)
        db.session.commit()
    except Exception as e:
        db.session.rollback()
        logger.exception("Failed to store %s notification for %s", type, recipient_uid)
        warnings.append(_warning("notifications", "Could not notify {}: {}".format(recipient_uid, e)))
        return None, warnings

    if not realtime.push_notification(notification):
        warnings.append(_warning("realtime", "Live update to {} failed".format(recipient_uid)))
    return notification, warnings


def _customer_phone(job):
    if job.customer_uid:
        customer = get_user(job.customer_uid)
        if customer is not None and customer.phone:
            return customer.phone
    return job.customer_phone


def send_status_sms(job):
    """Text the customer about the job's current status, at most once per status."""
    if job.status not in SMS_STATUSES:
        return []
    phone = _customer_phone(job)
    if not phone:
        return []

    try:
        # Claim the right to send for this status; a concurrent caller loses.
        result = db.session.execute(
            update(Job)
            .where(
                Job.id == job.id,
                Job.status == job.status,
                or_(Job.last_notified_status.is_(None), Job.last_notified_status != job.status),
            )
            .values(last_notified_status=job.status, updated_at=next_timestamp(job))
            .execution_options(synchronize_session=False)
        )
        db.session.commit()
    except Exception as e:
        db.session.rollback()
        logger.exception("Failed to record SMS bookkeeping for job %s", job.id)
        return [_warning("sms", "Status SMS skipped: {}".format(e))]

    if result.rowcount != 1:
        logger.debug("Status SMS for job %s (%s) already sent", job.id, job.status)
        return []

    outcome = sms_service.sms_status_update(phone, job.id, job.status)
    if outcome is not None and outcome.error is not None:
        return [outcome.error.as_warning()]
    return []


def announce_status_change(job, previous_status):
    """Inbox + live update + SMS for a committed status change."""
    warnings = []
    title = STATUS_TITLES.get(job.status, "Job updated")
    _, sent = notify(
        job.owner_uid,
        "job_canceled" if job.status == "canceled" else "status_update",
        title,
        body="Status changed from {} to {}".format(previous_status, job.status),
        job_id=job.id,
    )
    warnings.extend(sent)
    if not realtime.broadcast_job_status(job, previous_status):
        warnings.append(_warning("realtime", "Live status update failed"))
    warnings.extend(send_status_sms(job))
    return warnings


def announce_rejected_bids(job, rejected_bids, reason):
    warnings = []
    for bid in rejected_bids:
        _, sent = notify(bid.provider_uid, "bid_rejected", "Bid not selected", body=reason, job_id=job.id)
        warnings.extend(sent)
    return warnings


def announce_new_bid(job, bid):
    _, warnings = notify(
        job.owner_uid,
        "new_bid",
        "New bid received",
        body="${:.2f}, arriving in about {} min".format(bid.amount, bid.eta_minutes),
        job_id=job.id,
    )
    if not realtime.broadcast_new_bid(bid, job.owner_uid):
        warnings.append(_warning("realtime", "Live bid update failed"))
    return warnings


def announce_bid_resolution(job, accepted_bid, rejected_bids, previous_status):
    """One bid_accepted, N-1 bid_rejected, then the status change itself."""
    warnings = []
    _, sent = notify(
        accepted_bid.provider_uid,
        "bid_accepted",
        "Your bid was accepted",
        body="You have been selected for this job.",
        job_id=job.id,
    )
    warnings.extend(sent)
    warnings.extend(announce_rejected_bids(job, rejected_bids, "The customer selected another provider."))
    if not realtime.broadcast_bid_resolved(job, accepted_bid, rejected_bids):
        warnings.append(_warning("realtime", "Live bid resolution update failed"))
    warnings.extend(announce_status_change(job, previous_status))
    return warnings


def announce_provider_assigned(job, previous_status, rejected_bids=()):
    warnings = []
    _, sent = notify(
        job.provider_id,
        "provider_assigned",
        "New job assigned",
        body="Please confirm you can take this job.",
        job_id=job.id,
    )
    warnings.extend(sent)
    warnings.extend(announce_rejected_bids(job, rejected_bids, "This job was dispatched to another provider."))
    if job.status != previous_status:
        warnings.extend(announce_status_change(job, previous_status))
    return warnings


def announce_claimed(job, previous_status):
    warnings = []
    recipients = {job.created_by_uid}
    if job.provider_id:
        recipients.add(job.provider_id)
    recipients.discard(job.customer_uid)
    for uid in sorted(recipients):
        _, sent = notify(uid, "job_claimed", "Customer claimed the job", job_id=job.id)
        warnings.extend(sent)
    if job.status != previous_status:
        if not realtime.broadcast_job_status(job, previous_status):
            warnings.append(_warning("realtime", "Live status update failed"))
    return warnings


# ---------------------------------------------------------------------------
# Inbox
# ---------------------------------------------------------------------------

def list_notifications(user_uid, unread_only=False, limit=50):
    query = Notification.query.filter_by(user_id=user_uid)
    if unread_only:
        query = query.filter_by(is_read=False)
    return (
        query.order_by(Notification.created_at.desc(), Notification.id.desc())
        .limit(limit)
        .all()
    )


def unread_count(user_uid):
    return Notification.query.filter_by(user_id=user_uid, is_read=False).count()


def mark_read(notification_id, user_uid):
    notification = db.session.get(Notification, notification_id)
    if notification is None:
        raise NotFound("Notification not found")
    if notification.user_id != user_uid:
        raise PermissionDenied()
    if not notification.is_read:
        notification.mark_read()
        db.session.commit()
    return notification


def mark_all_read(user_uid):
    result = db.session.execute(
        update(Notification)
        .where(Notification.user_id == user_uid, Notification.is_read.is_(False))
        .values(is_read=True)
        .execution_options(synchronize_session=False)
    )
    db.session.commit()
    return result.rowcount
