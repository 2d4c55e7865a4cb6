"""
Job status state machine.

This is the only code that writes ``Job.status``. Statuses only move
forward in rank order, except that any non-terminal job may be canceled.
Writes are a compare-and-set on the status the caller observed, so two
concurrent transitions from the same status cannot both succeed.
"""
import logging
from dataclasses import dataclass, field
from typing import List, Optional

from sqlalchemy import select, update

from app import db
from app.errors import InvalidTransition, NotFound, PermissionDenied, ValidationError
from app.models import Job, Bid, JobEvent
from app.models.base import utcnow, as_utc
from app.utils.transactions import atomic

logger = logging.getLogger(__name__)

STATUS_ORDER = (
    "pending_dispatch",
    "pending_customer_claim",
    "open",
    "bidding",
    "pending_provider_confirmation",
    "pending_customer_confirmation",
    "assigned",
    "enroute",
    "on_site",
    "in_progress",
    "completed",
)
CANCELED = "canceled"
ALL_STATUSES = STATUS_ORDER + (CANCELED,)
TERMINAL_STATUSES = ("completed", CANCELED)

CLAIM_PENDING_STATUSES = ("pending_dispatch", "pending_customer_claim")
PRE_BID_STATUSES = CLAIM_PENDING_STATUSES + ("open",)
BIDDABLE_STATUSES = ("open", "bidding")
PROVIDER_BOUND_FROM = "pending_provider_confirmation"

STATUS_ALIASES = {
    "open_for_bids": "open",
    "accepted": "assigned",
    "en_route": "enroute",
    "en-route": "enroute",
    "onsite": "on_site",
    "on-site": "on_site",
    "arrived": "on_site",
    "inprogress": "in_progress",
    "in-progress": "in_progress",
    "cancelled": CANCELED,
}

_RANK = {status: index for index, status in enumerate(STATUS_ORDER)}


def normalize_status(value):
    """Map a status or one of its spellings to the canonical name.

    Raises:
        ValidationError: for anything that is not a known status
    """
    if not isinstance(value, str) or not value.strip():
        raise ValidationError("status is required", field="status")
    status = value.strip().lower()
    status = STATUS_ALIASES.get(status, status)
    if status not in ALL_STATUSES:
        raise ValidationError("Unknown status: {}".format(value), field="status")
    return status


def rank(status):
    """Position in the forward order; canceled has no rank."""
    return _RANK.get(status)


def is_terminal(status):
    return status in TERMINAL_STATUSES


def is_provider_bound(status):
    """Statuses that require a provider on the job."""
    return status != CANCELED and rank(status) >= _RANK[PROVIDER_BOUND_FROM]


def can_transition(current, target):
    if current == target or is_terminal(current):
        return False
    if target == CANCELED:
        return True
    current_rank, target_rank = rank(current), rank(target)
    if current_rank is None or target_rank is None:
        return False
    return target_rank > current_rank


@dataclass
class TransitionResult:
    job: Job
    previous_status: str
    rejected_bids: List[Bid] = field(default_factory=list)
    warnings: List[dict] = field(default_factory=list)


def lock_job(job_id):
    """Load a job holding its row lock for the rest of the transaction."""
    job = db.session.execute(
        select(Job).where(Job.id == job_id).with_for_update()
    ).scalar_one_or_none()
    if job is None:
        raise NotFound("Job not found")
    return job


def next_timestamp(job):
    """A timestamp that keeps the job's updated_at non-decreasing."""
    now = utcnow()
    current = as_utc(job.updated_at)
    if current is not None and current > now:
        return current
    return now


def reject_submitted_bids(job_id, now, exclude_bid_id=None):
    """Reject every still-submitted bid on a job. Returns the rejected rows."""
    query = select(Bid).where(Bid.job_id == job_id, Bid.status == "submitted")
    if exclude_bid_id is not None:
        query = query.where(Bid.id != exclude_bid_id)
    bids = list(db.session.execute(query.with_for_update()).scalars())
    if not bids:
        return []
    db.session.execute(
        update(Bid)
        .where(Bid.id.in_([bid.id for bid in bids]), Bid.status == "submitted")
        .values(status="rejected", updated_at=now)
        .execution_options(synchronize_session=False)
    )
    for bid in bids:
        db.session.refresh(bid)
    return bids


def apply_transition(job, target, actor_uid=None, values=None, action="status_changed", event_values=None):
    """Move a locked job to ``target`` inside the caller's transaction.

    ``values`` are extra columns written in the same compare-and-set
    (e.g. provider_id when a bid is accepted). The write only lands if the
    row still holds the status this job object was read with.

    Returns:
        tuple: (previous status, timestamp written, bids rejected by a cancel)
    """
    current = job.status
    values = dict(values or {})

    if not can_transition(current, target):
        raise InvalidTransition(current, target)
    provider_id = values.get("provider_id", job.provider_id)
    if is_provider_bound(target) and not provider_id:
        raise InvalidTransition(current, target, message="A provider must be assigned before moving to {}".format(target))

    now = next_timestamp(job)
    values.update(status=target, updated_at=now)
    if target == "completed":
        values["completed_at"] = now
    elif target == CANCELED:
        values["canceled_at"] = now

    criteria = [Job.id == job.id, Job.status == current]
    if "provider_id" in values and job.provider_id is None:
        criteria.append(Job.provider_id.is_(None))

    result = db.session.execute(
        update(Job).where(*criteria).values(**values).execution_options(synchronize_session=False)
    )
    if result.rowcount != 1:
        db.session.expire(job)
        found = db.session.execute(select(Job.status).where(Job.id == job.id)).scalar_one_or_none()
        logger.info("Lost status race on job %s: expected %s, found %s", job.id, current, found)
        raise InvalidTransition(found, target)

    rejected = []
    if target == CANCELED:
        rejected = reject_submitted_bids(job.id, now)

    new_values = {"status": target}
    new_values.update(event_values or {})
    JobEvent.record(
        job.id,
        action,
        actor_uid=actor_uid,
        old_values={"status": current},
        new_values=new_values,
        created_at=now,
    )
    db.session.refresh(job)
    return current, now, rejected


def transition(job_id, target, actor, expected_status=None):
    """Validate and apply a status change requested by ``actor``.

    Args:
        job_id: job to move
        target: requested status, any accepted spelling
        actor: the caller's User
        expected_status: optional status the caller believes the job is in

    Returns:
        TransitionResult
    """
    from app import permissions
    from app.notifications import announce_status_change, announce_rejected_bids

    target = normalize_status(target)
    expected = normalize_status(expected_status) if expected_status else None

    def work():
        job = lock_job(job_id)
        if target == CANCELED:
            if not permissions.can_cancel_job(actor, job):
                raise PermissionDenied("You cannot cancel this job")
        elif not permissions.can_advance_job(actor, job):
            raise PermissionDenied("Only the assigned provider or staff can update this job")
        if expected is not None and job.status != expected:
            raise InvalidTransition(job.status, target)
        previous, _, rejected = apply_transition(job, target, actor_uid=actor.id)
        return TransitionResult(job=job, previous_status=previous, rejected_bids=rejected)

    result = atomic(work)
    logger.info("Job %s moved %s -> %s by %s", job_id, result.previous_status, target, actor.id)

    result.warnings.extend(announce_status_change(result.job, result.previous_status))
    if result.rejected_bids:
        result.warnings.extend(
            announce_rejected_bids(result.job, result.rejected_bids, "The job was canceled.")
        )
    return result
