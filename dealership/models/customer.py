from sqlalchemy import Column, Integer, String, DateTime, Boolean, ForeignKey
from sqlalchemy.orm import relationship
from dealership.core.db import Base
from dealership.core.timeutils import utcnow


class Customer(Base):
    """Verified identity; the profile is created after verification."""
    __tablename__ = "customers"
    id = Column(Integer, primary_key=True, index=True)
    firebase_uid = Column(String, unique=True, nullable=False, index=True)
    phone_number = Column(String(10), unique=True, nullable=False, index=True)
    is_verified = Column(Boolean, nullable=False, default=False)
    created_at = Column(DateTime, default=utcnow)
    updated_at = Column(DateTime, default=utcnow, onupdate=utcnow)

    profile = relationship(
        "CustomerProfile",
        back_populates="customer",
        uselist=False,
        lazy="selectin",
        cascade="all, delete-orphan",
    )

    @property
    def full_name(self) -> str:
        if self.profile is None:
            return self.phone_number
        return f"{self.profile.first_name} {self.profile.last_name}"


class CustomerProfile(Base):
    __tablename__ = "customer_profiles"
    id = Column(Integer, primary_key=True, index=True)
    customer_id = Column(Integer, ForeignKey("customers.id", ondelete="CASCADE"), unique=True, nullable=False)
    first_name = Column(String(30), nullable=False)
    middle_name = Column(String(30), nullable=True)
    last_name = Column(String(30), nullable=False)
    email = Column(String, nullable=True)
    village = Column(String, nullable=False)
    post_office = Column(String, nullable=False)
    police_station = Column(String, nullable=False)
    district = Column(String, nullable=False)
    state = Column(String, nullable=False)
    blood_group = Column(String(3), nullable=True)
    family_number_1 = Column(String(10), nullable=True)
    family_number_2 = Column(String(10), nullable=True)
    profile_completed = Column(Boolean, nullable=False, default=True)
    created_at = Column(DateTime, default=utcnow)
    updated_at = Column(DateTime, default=utcnow, onupdate=utcnow)

    customer = relationship("Customer", back_populates="profile")
