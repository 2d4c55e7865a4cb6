"""User and Employee models"""
from sqlalchemy import Column, String, Boolean, Float, Integer, ForeignKey, UniqueConstraint, Index
from sqlalchemy.orm import relationship

from app import db
from .base import BaseModel, isoformat

ROLES = ("customer", "provider", "employee", "dispatcher", "admin")
SELF_SERVICE_ROLES = ("customer", "provider")
EMPLOYEE_ROLES = ("dispatcher", "tech")


class User(BaseModel):
    """
    Profile for an account authenticated by the external identity provider.
    The primary key is the provider-issued uid.
    """
    __tablename__ = "users"

    id = Column(String(128), primary_key=True)
    role = Column(String(20), nullable=False, default="customer")
    name = Column(String(255), nullable=True)
    email = Column(String(255), nullable=True, index=True)
    phone = Column(String(20), nullable=True, index=True)
    business_name = Column(String(255), nullable=True)

    # Provider review aggregates, maintained with each new rating
    rating_count = Column(Integer, nullable=False, default=0)
    rating_overall_avg = Column(Float, nullable=True)
    rating_satisfaction_avg = Column(Float, nullable=True)
    rating_eta_avg = Column(Float, nullable=True)
    rating_price_avg = Column(Float, nullable=True)
    rating_performance_avg = Column(Float, nullable=True)

    # Employees work for exactly one provider account
    provider_uid = Column(String(128), ForeignKey("users.id", ondelete="SET NULL"), nullable=True, index=True)

    employer = relationship("User", remote_side="User.id", foreign_keys=[provider_uid])

    def __repr__(self):
        return "<User {} ({})>".format(self.id, self.role)

    @property
    def is_global_staff(self):
        return self.role in ("dispatcher", "admin")

    @property
    def is_provider(self):
        return self.role == "provider"

    def rating_summary(self):
        return {
            "count": self.rating_count or 0,
            "overall": self.rating_overall_avg,
            "satisfaction": self.rating_satisfaction_avg,
            "eta": self.rating_eta_avg,
            "price": self.rating_price_avg,
            "performance": self.rating_performance_avg,
        }

    def to_dict(self, include_private=False):
        data = {
            "id": self.id,
            "role": self.role,
            "name": self.name,
            "business_name": self.business_name,
            "provider_uid": self.provider_uid,
            "created_at": isoformat(self.created_at),
            "updated_at": isoformat(self.updated_at),
        }
        if self.is_provider:
            data["rating"] = self.rating_summary()
        if include_private:
            data["email"] = self.email
            data["phone"] = self.phone
        return data


class Employee(BaseModel):
    """
    Staff scoped under a provider account (dispatchers and techs).
    """
    __tablename__ = "employees"

    provider_uid = Column(String(128), ForeignKey("users.id", ondelete="CASCADE"), nullable=False)
    user_uid = Column(String(128), ForeignKey("users.id", ondelete="CASCADE"), nullable=False)
    role = Column(String(20), nullable=False, default="tech")  # dispatcher, tech
    active = Column(Boolean, nullable=False, default=True)

    user = relationship("User", foreign_keys=[user_uid])

    __table_args__ = (
        UniqueConstraint("provider_uid", "user_uid", name="uq_employee_per_provider"),
        Index("ix_employees_provider_role", "provider_uid", "role"),
    )

    def __repr__(self):
        return "<Employee {} of {} ({})>".format(self.user_uid, self.provider_uid, self.role)

    def to_dict(self):
        return {
            "id": self.id,
            "provider_uid": self.provider_uid,
            "user_uid": self.user_uid,
            "role": self.role,
            "active": self.active,
            "name": self.user.name if self.user else None,
            "created_at": isoformat(self.created_at),
        }


def get_user(uid):
    return db.session.get(User, uid) if uid else None
