"""
Claim protocol for ghost jobs.

Staff create jobs for customers who are not signed in. A one-time link
binds such a job to whichever account opens it first. Only the SHA-256 of
the token is stored.
"""
import hashlib
import hmac
import logging
import secrets
from dataclasses import dataclass, field
from datetime import datetime, timedelta
from typing import List
from urllib.parse import urlencode

from flask import current_app
from sqlalchemy import update

from app import db
from app import permissions
from app.errors import AlreadyClaimed, PermissionDenied, TokenExpired, TokenInvalid, ValidationError
from app.job_store import get_job
from app.lifecycle import CLAIM_PENDING_STATUSES, apply_transition, lock_job, next_timestamp
from app.models import Job, JobEvent
from app.models.base import as_utc, utcnow
from app.utils.transactions import atomic

logger = logging.getLogger(__name__)


@dataclass
class ClaimToken:
    job_id: str
    token: str
    expires_at: datetime
    claim_url: str
    warnings: List[dict] = field(default_factory=list)

    def to_dict(self):
        return {
            "job_id": self.job_id,
            "token": self.token,
            "expires_at": self.expires_at.isoformat(),
            "claim_url": self.claim_url,
            "warnings": self.warnings,
        }


@dataclass
class ClaimResult:
    job: Job
    previous_status: str
    warnings: List[dict] = field(default_factory=list)


def hash_token(token):
    return hashlib.sha256(token.encode("utf-8")).hexdigest()


def build_claim_url(job_id, token):
    base = current_app.config["APP_BASE_URL"].rstrip("/")
    return "{}/claim?{}".format(base, urlencode({"jobId": job_id, "token": token}))


def create_claim_token(job_id, actor, ttl_minutes=None, send_sms=False):
    """
    Issue a fresh claim link for a ghost job

    Any earlier token for the job stops working.

    Returns:
        ClaimToken: carries the raw token, which is not stored anywhere
    """
    from app import sms_service
    from app.notifications import announce_status_change

    if ttl_minutes is None:
        ttl_minutes = current_app.config["CLAIM_TOKEN_TTL_MINUTES"]
    try:
        ttl_minutes = int(ttl_minutes)
    except (TypeError, ValueError):
        raise ValidationError("ttl_minutes must be a whole number", field="ttl_minutes")
    if ttl_minutes <= 0:
        raise ValidationError("ttl_minutes must be greater than zero", field="ttl_minutes")

    token = secrets.token_urlsafe(32)

    def work():
        job = lock_job(job_id)
        if not permissions.can_manage_claim(actor, job):
            raise PermissionDenied("Only staff can issue claim links")
        if job.customer_uid is not None:
            raise AlreadyClaimed()

        now = next_timestamp(job)
        expires_at = now + timedelta(minutes=ttl_minutes)
        job.claim_token_hash = hash_token(token)
        job.claim_expires_at = expires_at
        job.updated_at = now
        JobEvent.record(
            job.id, "claim_token_issued", actor_uid=actor.id,
            new_values={"claim_expires_at": expires_at.isoformat()}, created_at=now,
        )
        db.session.flush()

        previous = None
        if job.status == "pending_dispatch":
            previous, _, _ = apply_transition(job, "pending_customer_claim", actor_uid=actor.id)
        return expires_at, previous

    expires_at, previous = atomic(work)
    job = get_job(job_id)
    result = ClaimToken(job_id=job.id, token=token, expires_at=expires_at, claim_url=build_claim_url(job.id, token))
    logger.info("Claim token issued for job %s by %s, expires %s", job.id, actor.id, expires_at.isoformat())

    if previous is not None:
        result.warnings.extend(announce_status_change(job, previous))
    if send_sms:
        if not job.customer_phone:
            raise ValidationError("Job has no customer phone to text", field="customer_phone")
        outcome = sms_service.sms_claim_link(job.customer_phone, result.claim_url)
        if outcome.error is not None:
            result.warnings.append(outcome.error.as_warning())
    return result


def claim_job(job_id, token, uid):
    """
    Bind a ghost job to the account ``uid``

    Raises:
        AlreadyClaimed: the job already has a customer, including ``uid`` itself
        TokenInvalid: no live token or the token does not match
        TokenExpired: the token matched but its window has passed
    """
    from app.notifications import announce_claimed

    if not token or not isinstance(token, str):
        raise TokenInvalid()
    presented = hash_token(token)

    def work():
        job = lock_job(job_id)
        if job.customer_uid is not None:
            raise AlreadyClaimed()
        if not job.claim_token_hash or not hmac.compare_digest(job.claim_token_hash, presented):
            raise TokenInvalid()
        expires_at = as_utc(job.claim_expires_at)
        if expires_at is None or expires_at <= utcnow():
            raise TokenExpired()

        now = next_timestamp(job)
        claimed = db.session.execute(
            update(Job)
            .where(Job.id == job.id, Job.customer_uid.is_(None), Job.claim_token_hash == presented)
            .values(
                customer_uid=uid,
                claim_status="claimed",
                claimed_at=now,
                claim_token_hash=None,
                claim_expires_at=None,
                updated_at=now,
            )
            .execution_options(synchronize_session=False)
        )
        if claimed.rowcount != 1:
            raise AlreadyClaimed()
        JobEvent.record(job.id, "claimed", actor_uid=uid, new_values={"customer_uid": uid}, created_at=now)
        db.session.refresh(job)

        previous = job.status
        if job.status in CLAIM_PENDING_STATUSES:
            previous, _, _ = apply_transition(job, "open", actor_uid=uid)
        return ClaimResult(job=job, previous_status=previous)

    result = atomic(work)
    logger.info("Job %s claimed by %s", job_id, uid)
    result.warnings.extend(announce_claimed(result.job, result.previous_status))
    return result
