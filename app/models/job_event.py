"""Job event model"""
from sqlalchemy import Column, String, JSON, DateTime, ForeignKey, Index

from app import db
from .base import generate_uuid, utcnow, isoformat

JOB_EVENT_ACTIONS = (
    "created",
    "updated",
    "status_changed",
    "bid_accepted",
    "provider_assigned",
    "employee_assigned",
    "claim_token_issued",
    "claimed",
    "rated",
)


class JobEvent(db.Model):
    """
    Job event model - append-only audit trail for a job
    """
    __tablename__ = "job_events"

    id = Column(String(36), primary_key=True, default=generate_uuid)
    job_id = Column(String(36), ForeignKey("jobs.id", ondelete="CASCADE"), nullable=False)
    actor_uid = Column(String(128), nullable=True)
    action = Column(String(50), nullable=False)

    # Change tracking
    old_values = Column(JSON, nullable=True)
    new_values = Column(JSON, nullable=True)

    created_at = Column(DateTime(timezone=True), default=utcnow, nullable=False)

    __table_args__ = (
        Index("ix_job_events_job_created", "job_id", "created_at"),
    )

    def __repr__(self):
        return "<JobEvent {}.{}>".format(self.job_id, self.action)

    @classmethod
    def record(cls, job_id, action, actor_uid=None, old_values=None, new_values=None, created_at=None):
        """
        Add an event to the current session

        Args:
            job_id: id of the job
            action: action performed (e.g. 'created', 'status_changed')
            actor_uid: uid of whoever performed the action
            old_values: previous state (dict)
            new_values: new state (dict)
            created_at: timestamp shared with the job mutation, if any

        Returns:
            JobEvent: the pending row
        """
        event = cls(
            job_id=job_id,
            actor_uid=actor_uid,
            action=action,
            old_values=old_values,
            new_values=new_values,
            created_at=created_at or utcnow(),
        )
        db.session.add(event)
        return event

    def to_dict(self):
        return {
            "id": self.id,
            "job_id": self.job_id,
            "actor_uid": self.actor_uid,
            "action": self.action,
            "old_values": self.old_values,
            "new_values": self.new_values,
            "created_at": isoformat(self.created_at),
        }
