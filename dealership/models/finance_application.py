from sqlalchemy import Column, Integer, String, Float, Date, DateTime, Boolean, ForeignKey
from dealership.core.db import Base
from dealership.core.timeutils import utcnow


class FinanceApplication(Base):
    """GetApproved pre-approval request."""
    __tablename__ = "finance_applications"
    id = Column(Integer, primary_key=True, index=True)
    application_id = Column(String, unique=True, nullable=False, index=True)  # GA-...
    first_name = Column(String(50), nullable=False)
    last_name = Column(String(50), nullable=False)
    email = Column(String, unique=True, nullable=False, index=True)
    phone = Column(String, nullable=False)
    employment_type = Column(String, nullable=False)
    monthly_income = Column(Float, nullable=False)
    credit_score_range = Column(String, nullable=False)

    bike_model = Column(String, nullable=True)
    bike_price = Column(Float, nullable=True)
    down_payment = Column(Float, nullable=True)
    tenure_months = Column(Integer, nullable=True)
    interest_rate = Column(Float, nullable=True)

    status = Column(String, nullable=False, default="pending", index=True)
    reviewed_by = Column(String, nullable=True)
    reviewed_at = Column(DateTime, nullable=True)
    review_notes = Column(String(1000), nullable=True)
    pre_approval_amount = Column(Float, nullable=True)
    pre_approval_valid_until = Column(Date, nullable=True)

    branch_id = Column(Integer, ForeignKey("branches.id"), nullable=True, index=True)
    terms_accepted = Column(Boolean, nullable=False)
    privacy_policy_accepted = Column(Boolean, nullable=False)
    created_at = Column(DateTime, default=utcnow, index=True)
    updated_at = Column(DateTime, default=utcnow, onupdate=utcnow)
