from sqlalchemy import Column, Integer, String, Float, Date, DateTime, Boolean, ForeignKey, JSON
from dealership.core.db import Base
from dealership.core.timeutils import utcnow, today


class ServicePackage(Base):
    """Scheduled service (free or paid) offered at a branch."""
    __tablename__ = "service_packages"
    id = Column(Integer, primary_key=True, index=True)
    name = Column(String, nullable=False)
    kilometers = Column(Integer, nullable=False)
    months = Column(Integer, nullable=False)
    is_free = Column(Boolean, nullable=False, default=False)
    cost = Column(Float, nullable=False, default=0)
    items = Column(JSON, nullable=False, default=list)
    labor_charges = Column(Float, nullable=False, default=0)
    parts_replaced = Column(JSON, nullable=False, default=list)
    estimated_time = Column(Integer, nullable=False, default=60)  # minutes
    valid_from = Column(Date, nullable=False, default=today)
    valid_until = Column(Date, nullable=False)
    branch_id = Column(Integer, ForeignKey("branches.id"), nullable=False, index=True)
    is_active = Column(Boolean, nullable=False, default=True)
    created_at = Column(DateTime, default=utcnow)
    updated_at = Column(DateTime, default=utcnow, onupdate=utcnow)
