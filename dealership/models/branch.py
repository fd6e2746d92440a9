from sqlalchemy import Column, Integer, String, DateTime
from dealership.core.db import Base
from dealership.core.timeutils import utcnow

DEFAULT_HOURS = {
    "weekdays": "9:00 AM - 7:00 PM",
    "saturday": "10:00 AM - 5:00 PM",
    "sunday": "Closed",
}


class Branch(Base):
    __tablename__ = "branches"
    id = Column(Integer, primary_key=True, index=True)
    slug = Column(String(24), unique=True, nullable=False, index=True)
    branch_name = Column(String, nullable=False)
    address = Column(String, nullable=False)
    phone = Column(String, nullable=False)
    email = Column(String, nullable=False)
    weekday_hours = Column(String, nullable=False, default=DEFAULT_HOURS["weekdays"])
    saturday_hours = Column(String, nullable=False, default=DEFAULT_HOURS["saturday"])
    sunday_hours = Column(String, nullable=False, default=DEFAULT_HOURS["sunday"])
    map_url = Column(String, nullable=True)
    created_at = Column(DateTime, default=utcnow)
    updated_at = Column(DateTime, default=utcnow, onupdate=utcnow)
