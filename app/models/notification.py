"""Notification model"""
from sqlalchemy import Column, String, Boolean, Text, DateTime, ForeignKey, Index

from app import db
from .base import generate_uuid, utcnow, isoformat

NOTIFICATION_TYPES = (
    "new_bid",
    "bid_accepted",
    "bid_rejected",
    "status_update",
    "provider_assigned",
    "job_claimed",
    "job_canceled",
    "chat_message",
    "job_rated",
)


class Notification(db.Model):
    """
    Notification model - in-app inbox entry for one recipient.
    Only ``is_read`` ever changes after creation.
    """
    __tablename__ = "notifications"

    id = Column(String(36), primary_key=True, default=generate_uuid)
    user_id = Column(String(128), ForeignKey("users.id", ondelete="CASCADE"), nullable=False)
    type = Column(String(50), nullable=False)
    title = Column(String(255), nullable=False)
    body = Column(Text, nullable=True)
    job_id = Column(String(36), ForeignKey("jobs.id", ondelete="SET NULL"), nullable=True)
    is_read = Column(Boolean, nullable=False, default=False)
    created_at = Column(DateTime(timezone=True), default=utcnow, nullable=False)

    __table_args__ = (
        Index("ix_notifications_user_created", "user_id", "created_at"),
        Index("ix_notifications_user_unread", "user_id", "is_read"),
    )

    def __repr__(self):
        return "<Notification {} - user={}>".format(self.type, self.user_id)

    def mark_read(self):
        self.is_read = True

    def to_dict(self):
        return {
            "id": self.id,
            "user_id": self.user_id,
            "type": self.type,
            "title": self.title,
            "body": self.body,
            "job_id": self.job_id,
            "is_read": self.is_read,
            "created_at": isoformat(self.created_at),
        }
