"""Chat message model"""
from sqlalchemy import Column, String, Text, DateTime, ForeignKey, Index

from app import db
from .base import generate_uuid, utcnow, isoformat

THREADS = ("pre_bid", "job")
SENDER_ROLES = ("customer", "provider", "staff")
MAX_MESSAGE_LENGTH = 2000


class ChatMessage(db.Model):
    """
    A message in a job's chat. Pre-bid threads are keyed by the
    bidding provider; the job thread leaves ``provider_uid`` as the
    assigned provider at send time.
    """
    __tablename__ = "chat_messages"

    id = Column(String(36), primary_key=True, default=generate_uuid)
    job_id = Column(String(36), ForeignKey("jobs.id", ondelete="CASCADE"), nullable=False)
    thread = Column(String(20), nullable=False)
    provider_uid = Column(String(128), nullable=True)
    sender_uid = Column(String(128), ForeignKey("users.id"), nullable=False)
    sender_role = Column(String(20), nullable=False)
    body = Column(Text, nullable=False)
    read_at = Column(DateTime(timezone=True), nullable=True)
    created_at = Column(DateTime(timezone=True), default=utcnow, nullable=False)

    __table_args__ = (
        Index("ix_chat_messages_thread", "job_id", "thread", "provider_uid", "created_at"),
    )

    def __repr__(self):
        return "<ChatMessage {} {}>".format(self.job_id, self.thread)

    def to_dict(self):
        return {
            "id": self.id,
            "job_id": self.job_id,
            "thread": self.thread,
            "provider_uid": self.provider_uid,
            "sender_uid": self.sender_uid,
            "sender_role": self.sender_role,
            "body": self.body,
            "read_at": isoformat(self.read_at),
            "created_at": isoformat(self.created_at),
        }
