"""Rating model"""
from sqlalchemy import Column, String, Integer, Text, ForeignKey, CheckConstraint, Index

from .base import BaseModel, isoformat

# Scored 1-5 each; ``overall`` is the headline figure
RATING_DIMENSIONS = ("overall", "satisfaction", "eta", "price", "performance")


class Rating(BaseModel):
    """
    A customer's review of the provider that completed a job.
    At most one per job.
    """
    __tablename__ = "ratings"

    job_id = Column(String(36), ForeignKey("jobs.id", ondelete="CASCADE"), nullable=False, unique=True)
    provider_uid = Column(String(128), ForeignKey("users.id", ondelete="CASCADE"), nullable=False)
    rated_by_uid = Column(String(128), ForeignKey("users.id", ondelete="CASCADE"), nullable=False)

    overall = Column(Integer, nullable=False)
    satisfaction = Column(Integer, nullable=False)
    eta = Column(Integer, nullable=False)
    price = Column(Integer, nullable=False)
    performance = Column(Integer, nullable=False)
    comment = Column(Text, nullable=True)

    __table_args__ = (
        CheckConstraint("overall >= 1 AND overall <= 5", name="ck_rating_overall"),
        Index("ix_ratings_provider_created", "provider_uid", "created_at"),
    )

    def __repr__(self):
        return "<Rating {} job={} provider={}>".format(self.overall, self.job_id, self.provider_uid)

    def to_dict(self):
        return {
            "id": self.id,
            "job_id": self.job_id,
            "provider_uid": self.provider_uid,
            "rated_by_uid": self.rated_by_uid,
            "overall": self.overall,
            "satisfaction": self.satisfaction,
            "eta": self.eta,
            "price": self.price,
            "performance": self.performance,
            "comment": self.comment,
            "created_at": isoformat(self.created_at),
        }
