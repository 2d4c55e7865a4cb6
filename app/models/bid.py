"""Bid model"""
from sqlalchemy import Column, String, Float, Integer, Text, ForeignKey, UniqueConstraint, Index
from sqlalchemy.orm import relationship

from .base import BaseModel, isoformat

BID_STATUSES = ("submitted", "accepted", "rejected")


class Bid(BaseModel):
    """
    A provider's priced, timed offer against a job.
    One row per (job, provider); resubmitting updates it in place.
    """
    __tablename__ = "bids"

    job_id = Column(String(36), ForeignKey("jobs.id", ondelete="CASCADE"), nullable=False)
    provider_uid = Column(String(128), ForeignKey("users.id"), nullable=False, index=True)

    amount = Column(Float, nullable=False)
    eta_minutes = Column(Integer, nullable=False)
    message = Column(Text, nullable=True)
    status = Column(String(20), nullable=False, default="submitted")

    job = relationship("Job", back_populates="bids")

    __table_args__ = (
        UniqueConstraint("job_id", "provider_uid", name="uq_bid_per_provider"),
        Index("ix_bids_job_status", "job_id", "status"),
    )

    def __repr__(self):
        return "<Bid {} job={} provider={} {}>".format(self.id, self.job_id, self.provider_uid, self.status)

    def to_dict(self):
        return {
            "id": self.id,
            "job_id": self.job_id,
            "provider_uid": self.provider_uid,
            "amount": self.amount,
            "eta_minutes": self.eta_minutes,
            "message": self.message,
            "status": self.status,
            "created_at": isoformat(self.created_at),
            "updated_at": isoformat(self.updated_at),
        }
