from sqlalchemy import Column, Integer, String, Float, Date, DateTime, Boolean, ForeignKey
from dealership.core.db import Base
from dealership.core.timeutils import utcnow


class ServiceBooking(Base):
    __tablename__ = "service_bookings"
    id = Column(Integer, primary_key=True, index=True)
    booking_id = Column(String, unique=True, nullable=False, index=True)  # SB-YYYYMMDD-NNNN
    customer_id = Column(Integer, ForeignKey("customers.id"), nullable=True, index=True)
    vehicle_id = Column(Integer, ForeignKey("customer_vehicles.id"), nullable=True)

    # Denormalized so anonymous bookings need no customer record
    model_name = Column(String, nullable=False)
    registration_number = Column(String, nullable=True)
    vehicle_age = Column(String, nullable=False)
    mileage = Column(String, nullable=False)
    first_name = Column(String, nullable=False)
    last_name = Column(String, nullable=False)
    email = Column(String, nullable=False)
    phone = Column(String, nullable=False)

    service_type = Column(String, nullable=False)
    additional_services = Column(String, nullable=True)
    branch_id = Column(Integer, ForeignKey("branches.id"), nullable=False, index=True)
    appointment_date = Column(Date, nullable=False, index=True)
    appointment_time = Column(String(5), nullable=False)
    special_requests = Column(String, nullable=True)
    terms_accepted = Column(Boolean, nullable=False, default=False)

    status = Column(String, nullable=False, default="pending", index=True)
    confirmed_at = Column(DateTime, nullable=True)
    completed_at = Column(DateTime, nullable=True)
    estimated_cost = Column(Float, nullable=True)
    actual_cost = Column(Float, nullable=True)
    service_notes = Column(String, nullable=True)
    internal_notes = Column(String, nullable=True)

    created_at = Column(DateTime, default=utcnow)
    updated_at = Column(DateTime, default=utcnow, onupdate=utcnow)
