"""
Job chat.

Two kinds of thread per job:
- pre_bid: the job owner and one provider that has bid on the job,
  keyed by that provider's uid
- job: the owner, the assigned provider and its employees
"""
import logging
from dataclasses import dataclass, field
from typing import List

from sqlalchemy import and_, or_

from app import db
from app import permissions
from app.errors import ExternalServiceUnavailable, PermissionDenied, ValidationError
from app.job_store import get_job
from app.models import ChatMessage
from app.models.base import utcnow
from app.models.chat_message import MAX_MESSAGE_LENGTH, THREADS

logger = logging.getLogger(__name__)


@dataclass
class ThreadContext:
    job: object
    thread: str
    provider_uid: str
    sender_role: str


@dataclass
class SentMessage:
    message: ChatMessage
    warnings: List[dict] = field(default_factory=list)


def _owner_side(actor, job):
    return permissions.is_owner(actor, job) or actor.id == job.created_by_uid or actor.is_global_staff


def _resolve_thread(job_id, thread, actor, provider_uid=None):
    if thread not in THREADS:
        raise ValidationError("thread must be pre_bid or job", field="thread")
    job = get_job(job_id, actor)

    if thread == "job":
        if not job.provider_id:
            raise PermissionDenied("Chat opens once a provider is assigned")
        if permissions.works_for_job_provider(actor, job):
            role = "provider"
        elif _owner_side(actor, job):
            role = "customer" if permissions.is_owner(actor, job) else "staff"
        else:
            raise PermissionDenied()
        return ThreadContext(job, thread, job.provider_id, role)

    acting_provider = permissions.acting_provider_uid(actor)
    if acting_provider and not _owner_side(actor, job):
        provider_uid, role = acting_provider, "provider"
    elif _owner_side(actor, job):
        if not provider_uid:
            raise ValidationError("provider_uid is required", field="provider_uid")
        role = "customer" if permissions.is_owner(actor, job) else "staff"
    else:
        raise PermissionDenied()

    if not job.bids.filter_by(provider_uid=provider_uid).count():
        raise PermissionDenied("Place a bid to unlock chat")
    return ThreadContext(job, thread, provider_uid, role)


def _recipients(ctx, sender_uid):
    job = ctx.job
    if ctx.sender_role == "provider":
        uids = {job.owner_uid}
    else:
        uids = {ctx.provider_uid}
        if ctx.thread == "job" and job.assigned_employee_uid:
            uids.add(job.assigned_employee_uid)
    uids.discard(sender_uid)
    uids.discard(None)
    return sorted(uids)


def send_message(job_id, thread, actor, body, provider_uid=None):
    from app import realtime
    from app.notifications import notify

    ctx = _resolve_thread(job_id, thread, actor, provider_uid)
    body = (body or "").strip()
    if not body:
        raise ValidationError("Message cannot be empty", field="body")
    if len(body) > MAX_MESSAGE_LENGTH:
        raise ValidationError("Message is too long", field="body")

    message = ChatMessage(
        job_id=ctx.job.id,
        thread=ctx.thread,
        provider_uid=ctx.provider_uid,
        sender_uid=actor.id,
        sender_role=ctx.sender_role,
        body=body,
    )
    db.session.add(message)
    db.session.commit()

    result = SentMessage(message=message)
    recipients = _recipients(ctx, actor.id)
    preview = body if len(body) <= 80 else body[:77] + "..."
    for uid in recipients:
        _, warnings = notify(uid, "chat_message", "New message", body=preview, job_id=ctx.job.id)
        result.warnings.extend(warnings)
    if not realtime.broadcast_chat_message(message, recipients):
        result.warnings.append(ExternalServiceUnavailable("realtime", "Live chat update failed").as_warning())
    return result


def list_messages(job_id, thread, actor, provider_uid=None, before=None, limit=50):
    """Messages oldest first; ``before`` pages back from a message id.

    Messages from the other side are marked read.
    """
    ctx = _resolve_thread(job_id, thread, actor, provider_uid)
    query = ChatMessage.query.filter_by(job_id=ctx.job.id, thread=ctx.thread)
    if ctx.thread == "pre_bid":
        query = query.filter_by(provider_uid=ctx.provider_uid)
    if before:
        anchor = db.session.get(ChatMessage, before)
        if anchor is None or anchor.job_id != ctx.job.id:
            raise ValidationError("Unknown cursor", field="before")
        query = query.filter(
            or_(
                ChatMessage.created_at < anchor.created_at,
                and_(ChatMessage.created_at == anchor.created_at, ChatMessage.id < anchor.id),
            )
        )
    page = query.order_by(ChatMessage.created_at.desc(), ChatMessage.id.desc()).limit(limit).all()
    page.reverse()

    unread = [m for m in page if m.read_at is None and
              (m.sender_role == "provider") != (ctx.sender_role == "provider")]
    if unread:
        now = utcnow()
        for m in unread:
            m.read_at = now
        db.session.commit()
    return page
