"""
Job store: create, update and read jobs.

Status, provider and claim columns are not writable here; they change only
through the state machine, bid acceptance, dispatch and the claim protocol.
"""
import logging
from dataclasses import dataclass, field
from typing import List

from sqlalchemy import or_

from app import db
from app import permissions
from app.errors import ExternalServiceUnavailable, NotFound, PermissionDenied, ValidationError
from app.lifecycle import PRE_BID_STATUSES, lock_job, next_timestamp
from app.models import Job, JobEvent
from app.models.base import utcnow, isoformat
from app.models.job import ISSUE_TYPES, PRIORITIES
from app.models.user import get_user
from app.utils.transactions import atomic
from app.utils.validators import normalize_phone, validate_email, parse_coordinate, parse_datetime

logger = logging.getLogger(__name__)

DESCRIPTIVE_FIELDS = (
    "issue_type",
    "notes",
    "priority",
    "is_emergency",
    "scheduled_at",
    "pickup_address_text",
    "pickup_lat",
    "pickup_lng",
    "dropoff_address_text",
    "dropoff_lat",
    "dropoff_lng",
    "customer_name",
    "customer_phone",
    "customer_email",
)

PROTECTED_FIELDS = (
    "id",
    "status",
    "provider_id",
    "assigned_bid_id",
    "assigned_employee_uid",
    "assigned_dispatcher_uid",
    "customer_uid",
    "created_by_uid",
    "origin",
    "claim_status",
    "claim_token_hash",
    "claim_expires_at",
    "claimed_at",
    "last_notified_status",
    "completed_at",
    "canceled_at",
    "distance_meters",
    "duration_seconds",
    "created_at",
    "updated_at",
)

STAFF_CREATOR_ROLES = ("provider", "employee", "dispatcher", "admin")


@dataclass
class JobResult:
    job: Job
    warnings: List[dict] = field(default_factory=list)


def _clean_fields(fields):
    """Validate and coerce descriptive fields from a request body."""
    cleaned = {}
    for key, value in fields.items():
        if key == "issue_type":
            if value not in ISSUE_TYPES:
                raise ValidationError(
                    "issue_type must be one of: {}".format(", ".join(ISSUE_TYPES)), field="issue_type"
                )
        elif key == "priority":
            if value not in PRIORITIES:
                raise ValidationError("priority must be normal or urgent", field="priority")
        elif key == "is_emergency":
            value = bool(value)
        elif key == "scheduled_at":
            value = parse_datetime(value, key)
        elif key in ("pickup_lat", "dropoff_lat"):
            value = parse_coordinate(value, key, 90)
        elif key in ("pickup_lng", "dropoff_lng"):
            value = parse_coordinate(value, key, 180)
        elif key == "customer_phone":
            if value:
                normalized = normalize_phone(value)
                if not normalized:
                    raise ValidationError("customer_phone is not a valid phone number", field=key)
                value = normalized
            else:
                value = None
        elif key == "customer_email":
            if value and not validate_email(value):
                raise ValidationError("customer_email is not a valid email", field=key)
            value = value or None
        elif isinstance(value, str):
            value = value.strip() or None
        cleaned[key] = value
    return cleaned


def _reject_unknown(fields):
    protected = sorted(set(fields) & set(PROTECTED_FIELDS))
    if protected:
        raise ValidationError(
            "These fields cannot be changed here: {}".format(", ".join(protected)), fields=protected
        )
    unknown = sorted(set(fields) - set(DESCRIPTIVE_FIELDS))
    if unknown:
        raise ValidationError("Unknown fields: {}".format(", ".join(unknown)), fields=unknown)


def _mileage_for(values, warnings):
    """Route mileage when both ends have coordinates; (None, None) otherwise."""
    points = (values.get("pickup_lat"), values.get("pickup_lng"),
              values.get("dropoff_lat"), values.get("dropoff_lng"))
    if any(p is None for p in points):
        return None, None
    from app import geocoding
    try:
        return geocoding.route_mileage(points[:2], points[2:])
    except ExternalServiceUnavailable as e:
        warnings.append(e.as_warning())
        return None, None


def _snapshot(job, keys):
    return {key: isoformat(getattr(job, key)) if key == "scheduled_at" else getattr(job, key) for key in keys}


def create_job(draft, actor):
    """
    Create a job for ``actor``

    Customers create marketplace jobs for themselves which open for bids
    immediately. Staff and providers create internal jobs that start in
    pending_dispatch, optionally for an existing customer account.

    Returns:
        JobResult
    """
    draft = dict(draft or {})
    customer_uid = draft.pop("customer_uid", None)
    _reject_unknown(draft)
    if not draft.get("issue_type"):
        raise ValidationError("issue_type is required", field="issue_type")
    values = _clean_fields(draft)

    if actor.role == "customer":
        origin, status, customer_uid = "marketplace", "open", actor.id
    elif actor.role in STAFF_CREATOR_ROLES:
        origin, status = "internal", "pending_dispatch"
        if customer_uid:
            customer = get_user(customer_uid)
            if customer is None or customer.role != "customer":
                raise ValidationError("customer_uid does not match a customer account", field="customer_uid")
    else:
        raise PermissionDenied("Your account cannot create jobs")

    warnings = []
    distance, duration = _mileage_for(values, warnings)

    def work():
        now = utcnow()
        job = Job(
            created_by_uid=actor.id,
            customer_uid=customer_uid,
            origin=origin,
            status=status,
            claim_status="claimed" if customer_uid else "unclaimed",
            claimed_at=now if customer_uid else None,
            distance_meters=distance,
            duration_seconds=duration,
            created_at=now,
            updated_at=now,
            **values
        )
        db.session.add(job)
        db.session.flush()
        JobEvent.record(
            job.id, "created", actor_uid=actor.id,
            new_values={"status": status, "origin": origin, "issue_type": job.issue_type},
            created_at=now,
        )
        return job

    job = atomic(work)
    logger.info("Job %s created by %s (%s, %s)", job.id, actor.id, origin, status)
    return JobResult(job=job, warnings=warnings)


def update_job(job_id, fields, actor):
    """
    Change descriptive fields of a pre-bid job

    Returns:
        JobResult
    """
    fields = dict(fields or {})
    _reject_unknown(fields)
    if not fields:
        raise ValidationError("No fields to update")
    values = _clean_fields(fields)
    if "issue_type" in values and values["issue_type"] is None:
        raise ValidationError("issue_type is required", field="issue_type")

    job = get_job(job_id, actor)
    if not permissions.can_edit_job(actor, job):
        raise PermissionDenied("Only the job owner or staff can edit this job")

    warnings = []
    coordinate_keys = ("pickup_lat", "pickup_lng", "dropoff_lat", "dropoff_lng")
    recompute = any(key in values for key in coordinate_keys)
    if recompute:
        merged = {key: values.get(key, getattr(job, key)) for key in coordinate_keys}
        distance, duration = _mileage_for(merged, warnings)

    def work():
        locked = lock_job(job_id)
        if locked.status not in PRE_BID_STATUSES:
            raise PermissionDenied("Job can no longer be edited once bidding has started")
        old_values = _snapshot(locked, values.keys())
        for key, value in values.items():
            setattr(locked, key, value)
        if recompute:
            locked.distance_meters = distance
            locked.duration_seconds = duration
        now = next_timestamp(locked)
        locked.updated_at = now
        JobEvent.record(
            locked.id, "updated", actor_uid=actor.id,
            old_values=old_values, new_values=_snapshot(locked, values.keys()),
            created_at=now,
        )
        return locked

    job = atomic(work)
    return JobResult(job=job, warnings=warnings)


def get_job(job_id, actor=None):
    """Current snapshot of a job; NotFound also hides jobs the actor cannot see."""
    job = db.session.get(Job, job_id) if job_id else None
    if job is None:
        raise NotFound("Job not found")
    if actor is not None and not permissions.can_view_job(actor, job):
        raise NotFound("Job not found")
    return job


def list_jobs(actor, status=None, limit=50):
    """Jobs the actor is involved in, newest first."""
    query = Job.query
    if not actor.is_global_staff:
        provider_uid = permissions.acting_provider_uid(actor)
        clauses = [Job.customer_uid == actor.id, Job.created_by_uid == actor.id]
        if provider_uid:
            clauses.append(Job.provider_id == provider_uid)
        if actor.role == "employee":
            clauses.append(Job.assigned_employee_uid == actor.id)
        query = query.filter(or_(*clauses))
    if status:
        query = query.filter(Job.status == status)
    return query.order_by(Job.created_at.desc()).limit(limit).all()


def list_available_jobs(limit=50):
    """Marketplace jobs still open to bids, newest first."""
    return (
        Job.query.filter(Job.status.in_(("open", "bidding")), Job.provider_id.is_(None))
        .order_by(Job.is_emergency.desc(), Job.created_at.desc())
        .limit(limit)
        .all()
    )


def list_events(job_id, actor):
    job = get_job(job_id, actor)
    return (
        JobEvent.query.filter_by(job_id=job.id)
        .order_by(JobEvent.created_at.asc(), JobEvent.id.asc())
        .all()
    )
