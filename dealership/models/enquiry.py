from sqlalchemy import Column, Integer, String, DateTime, ForeignKey
from dealership.core.db import Base
from dealership.core.timeutils import utcnow


class Enquiry(Base):
    __tablename__ = "enquiries"
    id = Column(Integer, primary_key=True, index=True)
    name = Column(String(100), nullable=False)
    phone_number = Column(String(10), nullable=False, index=True)
    village = Column(String, nullable=True)
    district = Column(String, nullable=False)
    state = Column(String, nullable=False)
    pin_code = Column(String(6), nullable=True)
    bike_model = Column(String, nullable=True)
    message = Column(String, nullable=True)
    branch_id = Column(Integer, ForeignKey("branches.id"), nullable=True)
    status = Column(String, nullable=False, default="new", index=True)
    created_at = Column(DateTime, default=utcnow, index=True)
    updated_at = Column(DateTime, default=utcnow, onupdate=utcnow)
