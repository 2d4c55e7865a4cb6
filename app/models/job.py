"""Job model"""
from sqlalchemy import Column, String, Float, Boolean, Integer, Text, DateTime, ForeignKey, Index
from sqlalchemy.orm import relationship

from .base import BaseModel, isoformat

ISSUE_TYPES = ("towing", "tire", "battery", "lockout", "repair", "fuel", "other")
PRIORITIES = ("normal", "urgent")
ORIGINS = ("marketplace", "internal")


class Job(BaseModel):
    """
    Job model - a roadside request, the root aggregate of the workflow.

    ``customer_uid`` is null for ghost jobs created by staff on behalf of a
    customer who has not signed in yet; the claim fields track the one-time
    token that binds such a job to an account.
    """
    __tablename__ = "jobs"

    # Ownership
    created_by_uid = Column(String(128), ForeignKey("users.id"), nullable=False, index=True)
    customer_uid = Column(String(128), ForeignKey("users.id"), nullable=True, index=True)
    origin = Column(String(20), nullable=False, default="marketplace")

    # Assignment
    provider_id = Column(String(128), ForeignKey("users.id"), nullable=True, index=True)
    assigned_employee_uid = Column(String(128), ForeignKey("users.id"), nullable=True)
    assigned_bid_id = Column(String(36), nullable=True)
    assigned_dispatcher_uid = Column(String(128), nullable=True)

    # Contact details for ghost jobs
    customer_name = Column(String(255), nullable=True)
    customer_phone = Column(String(20), nullable=True)
    customer_email = Column(String(255), nullable=True)

    # Lifecycle
    status = Column(String(40), nullable=False, default="open")
    last_notified_status = Column(String(40), nullable=True)
    completed_at = Column(DateTime(timezone=True), nullable=True)
    canceled_at = Column(DateTime(timezone=True), nullable=True)

    # Job details
    issue_type = Column(String(20), nullable=False, default="other")
    notes = Column(Text, nullable=True)
    priority = Column(String(20), nullable=False, default="normal")
    is_emergency = Column(Boolean, nullable=False, default=False)
    scheduled_at = Column(DateTime(timezone=True), nullable=True)

    # Pickup / dropoff
    pickup_address_text = Column(Text, nullable=True)
    pickup_lat = Column(Float, nullable=True)
    pickup_lng = Column(Float, nullable=True)
    dropoff_address_text = Column(Text, nullable=True)
    dropoff_lat = Column(Float, nullable=True)
    dropoff_lng = Column(Float, nullable=True)

    # Route mileage (towing); null when unavailable
    distance_meters = Column(Integer, nullable=True)
    duration_seconds = Column(Integer, nullable=True)

    # Claim
    claim_status = Column(String(20), nullable=False, default="unclaimed")
    claim_token_hash = Column(String(64), nullable=True)
    claim_expires_at = Column(DateTime(timezone=True), nullable=True)
    claimed_at = Column(DateTime(timezone=True), nullable=True)

    bids = relationship("Bid", back_populates="job", lazy="dynamic", order_by="Bid.created_at")

    __table_args__ = (
        Index("ix_jobs_status", "status"),
        Index("ix_jobs_provider_status", "provider_id", "status"),
    )

    def __repr__(self):
        return "<Job {} - {}>".format(self.id, self.status)

    @property
    def is_ghost(self):
        return self.customer_uid is None

    @property
    def owner_uid(self):
        """Who hears about this job: the customer, or the creator of a ghost job."""
        return self.customer_uid or self.created_by_uid

    def to_dict(self):
        return {
            "id": self.id,
            "created_by_uid": self.created_by_uid,
            "customer_uid": self.customer_uid,
            "origin": self.origin,
            "provider_id": self.provider_id,
            "assigned_employee_uid": self.assigned_employee_uid,
            "assigned_bid_id": self.assigned_bid_id,
            "assigned_dispatcher_uid": self.assigned_dispatcher_uid,
            "customer_name": self.customer_name,
            "customer_phone": self.customer_phone,
            "customer_email": self.customer_email,
            "status": self.status,
            "issue_type": self.issue_type,
            "notes": self.notes,
            "priority": self.priority,
            "is_emergency": bool(self.is_emergency),
            "scheduled_at": isoformat(self.scheduled_at),
            "pickup_address_text": self.pickup_address_text,
            "pickup_lat": self.pickup_lat,
            "pickup_lng": self.pickup_lng,
            "dropoff_address_text": self.dropoff_address_text,
            "dropoff_lat": self.dropoff_lat,
            "dropoff_lng": self.dropoff_lng,
            "distance_meters": self.distance_meters,
            "duration_seconds": self.duration_seconds,
            "claim_status": self.claim_status,
            "claim_expires_at": isoformat(self.claim_expires_at),
            "claimed_at": isoformat(self.claimed_at),
            "completed_at": isoformat(self.completed_at),
            "canceled_at": isoformat(self.canceled_at),
            "created_at": isoformat(self.created_at),
            "updated_at": isoformat(self.updated_at),
        }
