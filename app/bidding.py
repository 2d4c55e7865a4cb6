"""
Bid store and bid resolution.

accept_bid runs as one transaction holding the job row lock: the chosen bid
is accepted, every other submitted bid is rejected and the job is bound to
the provider, or none of it happens. Each write is a compare-and-set on the
state that was read, so a concurrent acceptance loses cleanly.
"""
import logging
from dataclasses import dataclass, field
from typing import List

from flask import current_app
from sqlalchemy import select, update

from app import db
from app import permissions
from app.errors import (
    BidAlreadyResolved,
    BidNotFound,
    InvalidTransition,
    JobNotBiddable,
    NotFound,
    PermissionDenied,
    ValidationError,
)
from app.job_store import get_job
from app.lifecycle import BIDDABLE_STATUSES, apply_transition, lock_job, next_timestamp, reject_submitted_bids
from app.models import Bid
from app.utils.transactions import atomic
from app.utils.validators import parse_positive_number

logger = logging.getLogger(__name__)

MAX_BID_MESSAGE_LENGTH = 1000


@dataclass
class BidSubmission:
    bid: Bid
    created: bool
    previous_status: str = None
    warnings: List[dict] = field(default_factory=list)


@dataclass
class BidResolution:
    job: object
    accepted_bid: Bid
    rejected_bids: List[Bid] = field(default_factory=list)
    replayed: bool = False
    warnings: List[dict] = field(default_factory=list)

    def to_dict(self):
        return {
            "job": self.job.to_dict(),
            "accepted_bid": self.accepted_bid.to_dict(),
            "rejected_bid_ids": [bid.id for bid in self.rejected_bids],
            "replayed": self.replayed,
            "warnings": self.warnings,
        }


def _ensure_biddable(job):
    if job.status not in BIDDABLE_STATUSES or job.provider_id:
        raise JobNotBiddable(status=job.status)


def submit_bid(job_id, actor, amount, eta_minutes, message=None):
    """
    Create or update the acting provider's bid on a job

    The first bid on an open job moves it to bidding.

    Returns:
        BidSubmission
    """
    from app.notifications import announce_new_bid, announce_status_change

    provider_uid = permissions.acting_provider_uid(actor)
    if not provider_uid or (actor.role == "employee" and not permissions.is_staff_for(actor, provider_uid)):
        raise PermissionDenied("Only providers can bid on jobs")
    amount = parse_positive_number(amount, "amount")
    eta_minutes = parse_positive_number(eta_minutes, "eta_minutes", integer=True)
    if message is not None:
        message = str(message).strip() or None
        if message and len(message) > MAX_BID_MESSAGE_LENGTH:
            raise ValidationError("message is too long", field="message")

    def work():
        job = lock_job(job_id)
        _ensure_biddable(job)
        if provider_uid in (job.customer_uid, job.created_by_uid):
            raise PermissionDenied("You cannot bid on your own job")

        now = next_timestamp(job)
        bid = Bid.query.filter_by(job_id=job.id, provider_uid=provider_uid).first()
        created = bid is None
        if created:
            bid = Bid(job_id=job.id, provider_uid=provider_uid, status="submitted", created_at=now)
            db.session.add(bid)
        elif bid.status != "submitted":
            raise BidAlreadyResolved(bid_id=bid.id, status=bid.status)
        bid.amount = amount
        bid.eta_minutes = eta_minutes
        bid.message = message
        bid.updated_at = now
        db.session.flush()

        previous = None
        if job.status == "open":
            previous, _, _ = apply_transition(job, "bidding", actor_uid=actor.id)
        return BidSubmission(bid=bid, created=created, previous_status=previous)

    result = atomic(work)
    logger.info("Bid %s %s on job %s by %s", result.bid.id, "placed" if result.created else "updated",
                job_id, provider_uid)

    job = get_job(job_id)
    result.warnings.extend(announce_new_bid(job, result.bid))
    if result.previous_status is not None:
        result.warnings.extend(announce_status_change(job, result.previous_status))
    return result


def _rejected_bids(job_id):
    return Bid.query.filter_by(job_id=job_id, status="rejected").order_by(Bid.created_at.asc()).all()


def accept_bid(job_id, bid_id, actor):
    """
    Accept one bid and reject the rest

    Replaying an acceptance that already happened returns the same
    resolution with ``replayed=True`` and notifies nobody.

    Raises:
        JobNotBiddable: the job is past bidding or already has a provider
        BidNotFound: the bid does not exist under this job
        BidAlreadyResolved: the bid was already accepted or rejected
    """
    from app.notifications import announce_bid_resolution

    target = (
        "pending_provider_confirmation"
        if current_app.config.get("BID_REQUIRES_PROVIDER_CONFIRMATION")
        else "assigned"
    )

    def work():
        job = lock_job(job_id)
        if not permissions.can_view_job(actor, job):
            raise NotFound("Job not found")
        if not permissions.can_edit_job(actor, job):
            raise PermissionDenied("Only the job owner can accept a bid")

        bid = db.session.execute(
            select(Bid).where(Bid.id == bid_id).with_for_update()
        ).scalar_one_or_none()

        if job.assigned_bid_id == bid_id and bid is not None and bid.status == "accepted":
            return BidResolution(job=job, accepted_bid=bid, rejected_bids=_rejected_bids(job.id), replayed=True), None

        _ensure_biddable(job)
        if bid is None or bid.job_id != job.id:
            raise BidNotFound()
        if bid.status != "submitted":
            raise BidAlreadyResolved(bid_id=bid.id, status=bid.status)

        now = next_timestamp(job)
        accepted = db.session.execute(
            update(Bid)
            .where(Bid.id == bid.id, Bid.status == "submitted")
            .values(status="accepted", updated_at=now)
            .execution_options(synchronize_session=False)
        )
        if accepted.rowcount != 1:
            raise BidAlreadyResolved(bid_id=bid.id)

        rejected = reject_submitted_bids(job.id, now, exclude_bid_id=bid.id)

        try:
            previous, _, _ = apply_transition(
                job,
                target,
                actor_uid=actor.id,
                values={"provider_id": bid.provider_uid, "assigned_bid_id": bid.id},
                action="bid_accepted",
                event_values={"provider_id": bid.provider_uid, "assigned_bid_id": bid.id},
            )
        except InvalidTransition as e:
            logger.info("Lost acceptance race on job %s (found %s)", job_id, e.current)
            raise JobNotBiddable(status=e.current)

        db.session.refresh(bid)
        return BidResolution(job=job, accepted_bid=bid, rejected_bids=rejected), previous

    resolution, previous = atomic(work)
    if resolution.replayed:
        logger.info("Replayed acceptance of bid %s on job %s", bid_id, job_id)
        return resolution

    logger.info("Bid %s accepted on job %s; %d rejected", bid_id, job_id, len(resolution.rejected_bids))
    resolution.warnings.extend(
        announce_bid_resolution(resolution.job, resolution.accepted_bid, resolution.rejected_bids, previous)
    )
    return resolution


def list_bids(job_id, actor):
    """Everyone's bids for the owner and staff; a provider only sees its own."""
    job = get_job(job_id, actor)
    query = Bid.query.filter_by(job_id=job.id)
    if not (permissions.can_edit_job(actor, job) or permissions.can_manage_claim(actor, job)):
        provider_uid = permissions.acting_provider_uid(actor)
        if not provider_uid:
            raise PermissionDenied()
        query = query.filter_by(provider_uid=provider_uid)
    return query.order_by(Bid.amount.asc(), Bid.created_at.asc()).all()


def list_provider_bids(actor, status=None):
    provider_uid = permissions.acting_provider_uid(actor)
    if not provider_uid:
        raise PermissionDenied("Only providers have bids")
    query = Bid.query.filter_by(provider_uid=provider_uid)
    if status:
        query = query.filter_by(status=status)
    return query.order_by(Bid.updated_at.desc()).all()
