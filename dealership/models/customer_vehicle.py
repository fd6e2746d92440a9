from sqlalchemy import Column, Integer, String, Float, Date, DateTime, Boolean, ForeignKey
from sqlalchemy.orm import relationship
from dealership.core.db import Base
from dealership.core.timeutils import utcnow


class CustomerVehicle(Base):
    """Ownership record linking a sold stock item to a customer."""
    __tablename__ = "customer_vehicles"
    id = Column(Integer, primary_key=True, index=True)
    stock_item_id = Column(Integer, ForeignKey("stock_items.id"), nullable=True, index=True)
    customer_id = Column(Integer, ForeignKey("customers.id"), nullable=False, index=True)

    model_name = Column(String, nullable=False)
    category = Column(String, nullable=True)
    engine_capacity = Column(Integer, nullable=True)
    fuel_norms = Column(String, nullable=True)
    color = Column(String, nullable=True)
    engine_number = Column(String, nullable=False, index=True)
    chassis_number = Column(String, nullable=False, index=True)
    fitness_upto = Column(Integer, nullable=True)
    unique_book_record = Column(String, nullable=True)

    registration_date = Column(Date, nullable=True)
    purchase_date = Column(Date, nullable=True)
    number_plate = Column(String(10), unique=True, nullable=True)
    registered_owner_name = Column(String(100), nullable=True)
    insurance = Column(Boolean, nullable=False, default=False)
    is_paid = Column(Boolean, nullable=False, default=False)
    is_finance = Column(Boolean, nullable=False, default=False)

    rto_code = Column(String(4), nullable=True)
    rto_name = Column(String, nullable=True)
    rto_state = Column(String, nullable=True)

    last_service_date = Column(Date, nullable=True)
    next_service_due = Column(Date, nullable=True)
    service_type = Column(String, nullable=False, default="Regular")
    kilometers = Column(Integer, nullable=False, default=0)
    service_history = Column(Integer, nullable=False, default=0)

    is_active = Column(Boolean, nullable=False, default=True)
    created_at = Column(DateTime, default=utcnow)
    updated_at = Column(DateTime, default=utcnow, onupdate=utcnow)

    enrollments = relationship(
        "VehicleServiceEnrollment",
        back_populates="vehicle",
        lazy="selectin",
        cascade="all, delete-orphan",
        order_by="VehicleServiceEnrollment.id",
    )

    def active_enrollment_for(self, service_id: int):
        for enrollment in self.enrollments:
            if enrollment.service_id == service_id and enrollment.is_active:
                return enrollment
        return None


class VehicleServiceEnrollment(Base):
    """A value-added service activated on a customer vehicle."""
    __tablename__ = "vehicle_service_enrollments"
    id = Column(Integer, primary_key=True, index=True)
    vehicle_id = Column(Integer, ForeignKey("customer_vehicles.id", ondelete="CASCADE"), nullable=False, index=True)
    service_id = Column(Integer, ForeignKey("value_added_services.id"), nullable=False, index=True)
    activated_date = Column(Date, nullable=False)
    expiry_date = Column(Date, nullable=False)
    purchase_price = Column(Float, nullable=False)
    coverage_years = Column(Integer, nullable=False)
    is_active = Column(Boolean, nullable=False, default=True)
    activated_by = Column(String, nullable=True)
    deactivated_at = Column(DateTime, nullable=True)
    deactivation_reason = Column(String, nullable=True)

    vehicle = relationship("CustomerVehicle", back_populates="enrollments")
