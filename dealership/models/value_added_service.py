from sqlalchemy import Column, Integer, String, Float, Date, DateTime, Boolean, JSON
from dealership.core.db import Base
from dealership.core.timeutils import utcnow, today


class ValueAddedService(Base):
    __tablename__ = "value_added_services"
    id = Column(Integer, primary_key=True, index=True)
    service_name = Column(String(100), nullable=False)
    service_type = Column(String, nullable=False, index=True)
    description = Column(String, nullable=False)
    coverage_years = Column(Integer, nullable=False)
    max_enrollment_period = Column(Integer, nullable=False, default=12)  # months after purchase

    max_engine_capacity = Column(Integer, nullable=False, default=2000)
    eligible_categories = Column(JSON, nullable=False, default=list)

    base_price = Column(Float, nullable=False)
    price_per_year = Column(Float, nullable=False, default=0)
    engine_capacity_multiplier = Column(Float, nullable=False, default=1)

    benefits = Column(JSON, nullable=False, default=list)
    coverage = Column(JSON, nullable=False, default=dict)  # {parts, labor, roadside, ...}
    terms = Column(JSON, nullable=False, default=list)
    exclusions = Column(JSON, nullable=False, default=list)
    badges = Column(JSON, nullable=False, default=list)  # [{name, description, icon, color, isActive}]

    applicable_branches = Column(JSON, nullable=False, default=list)
    valid_from = Column(Date, nullable=False, default=today)
    valid_until = Column(Date, nullable=False)
    is_active = Column(Boolean, nullable=False, default=True)
    created_at = Column(DateTime, default=utcnow)
    updated_at = Column(DateTime, default=utcnow, onupdate=utcnow)

    def is_currently_valid(self, on=None) -> bool:
        on = on or today()
        return self.is_active and self.valid_from <= on <= self.valid_until
