"""
Dispatch: staff bind providers to internal jobs, providers bind employees.
"""
import logging
from dataclasses import dataclass, field
from typing import List

from app import permissions
from app.errors import InvalidTransition, NotFound, PermissionDenied, ValidationError
from app.lifecycle import PRE_BID_STATUSES, apply_transition, lock_job, next_timestamp, reject_submitted_bids, transition
from app.models import Employee, Job, JobEvent
from app.models.user import get_user
from app.utils.transactions import atomic

logger = logging.getLogger(__name__)

ASSIGNABLE_STATUSES = PRE_BID_STATUSES + ("bidding",)


@dataclass
class DispatchResult:
    job: Job
    previous_status: str = None
    warnings: List[dict] = field(default_factory=list)


def assign_provider(job_id, provider_uid, actor):
    """
    Bind a provider to a job that has none, or hand a job awaiting
    confirmation to a different provider.

    Global staff may dispatch any job. Providers and their dispatchers only
    dispatch internal jobs entered under their own account.

    The job moves to pending_provider_confirmation and any submitted bids
    are rejected in the same transaction.
    """
    from app.notifications import announce_provider_assigned

    provider = get_user(provider_uid)
    if provider is None or provider.role != "provider":
        raise ValidationError("provider_uid does not match a provider account", field="provider_uid")
    if not permissions.can_assign_provider(actor, provider_uid):
        raise PermissionDenied("You cannot dispatch jobs to this provider")

    def work():
        job = lock_job(job_id)
        if not permissions.can_view_job(actor, job) and not actor.is_global_staff:
            raise NotFound("Job not found")
        if not permissions.can_dispatch_job(actor, job, provider_uid):
            raise PermissionDenied("You cannot dispatch this job")
        now = next_timestamp(job)

        if job.status == "pending_provider_confirmation":
            if job.provider_id == provider_uid:
                raise InvalidTransition(job.status, job.status, message="Provider is already assigned")
            previous = job.provider_id
            job.provider_id = provider_uid
            job.assigned_employee_uid = None
            job.assigned_dispatcher_uid = actor.id
            job.updated_at = now
            JobEvent.record(
                job.id, "provider_assigned", actor_uid=actor.id,
                old_values={"provider_id": previous}, new_values={"provider_id": provider_uid},
                created_at=now,
            )
            return DispatchResult(job=job, previous_status=job.status), []

        if job.status not in ASSIGNABLE_STATUSES or job.provider_id:
            raise InvalidTransition(job.status, "pending_provider_confirmation")

        rejected = reject_submitted_bids(job.id, now)
        previous, _, _ = apply_transition(
            job,
            "pending_provider_confirmation",
            actor_uid=actor.id,
            values={"provider_id": provider_uid, "assigned_dispatcher_uid": actor.id},
            action="provider_assigned",
            event_values={"provider_id": provider_uid},
        )
        return DispatchResult(job=job, previous_status=previous), rejected

    result, rejected = atomic(work)
    logger.info("Job %s dispatched to provider %s by %s", job_id, provider_uid, actor.id)
    result.warnings.extend(announce_provider_assigned(result.job, result.previous_status, rejected))
    return result


def confirm_assignment(job_id, actor):
    """The assigned provider (or its staff) accepts a dispatched job."""
    result = transition(job_id, "assigned", actor, expected_status="pending_provider_confirmation")
    return DispatchResult(job=result.job, previous_status=result.previous_status, warnings=result.warnings)


def assign_employee(job_id, employee_uid, actor):
    """Hand a provider-bound job to one of the provider's active employees."""
    from app.notifications import notify

    def work():
        job = lock_job(job_id)
        if not permissions.can_view_job(actor, job):
            raise NotFound("Job not found")
        if not job.provider_id or job.status in ("completed", "canceled"):
            raise InvalidTransition(job.status, job.status, message="Job is not assigned to a provider")
        if not permissions.can_assign_employee(actor, job):
            raise PermissionDenied("Only the provider or its dispatchers can assign employees")

        employment = Employee.query.filter_by(
            provider_uid=job.provider_id, user_uid=employee_uid, active=True
        ).first()
        if employment is None:
            raise ValidationError("Employee does not work for this provider", field="employee_uid")

        now = next_timestamp(job)
        previous = job.assigned_employee_uid
        job.assigned_employee_uid = employee_uid
        job.updated_at = now
        JobEvent.record(
            job.id, "employee_assigned", actor_uid=actor.id,
            old_values={"assigned_employee_uid": previous},
            new_values={"assigned_employee_uid": employee_uid},
            created_at=now,
        )
        return DispatchResult(job=job, previous_status=job.status)

    result = atomic(work)
    logger.info("Job %s assigned to employee %s by %s", job_id, employee_uid, actor.id)
    _, warnings = notify(employee_uid, "provider_assigned", "You have a new job", job_id=result.job.id)
    result.warnings.extend(warnings)
    return result
