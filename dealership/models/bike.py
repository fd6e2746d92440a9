from sqlalchemy import Column, Integer, String, Float, DateTime, Boolean, ForeignKey, JSON, UniqueConstraint
from sqlalchemy.orm import relationship
from dealership.core.db import Base
from dealership.core.timeutils import utcnow


class Bike(Base):
    __tablename__ = "bikes"
    __table_args__ = (UniqueConstraint("model_name", "year", name="uq_bike_model_year"),)

    id = Column(Integer, primary_key=True, index=True)
    model_name = Column(String, nullable=False, index=True)
    main_category = Column(String, nullable=False, default="bike")  # 'bike' | 'scooter'
    category = Column(String, nullable=False, index=True)
    year = Column(Integer, nullable=False)
    variants = Column(JSON, nullable=False, default=list)  # [{name, features, priceAdjustment, isAvailable}]
    ex_showroom = Column(Float, nullable=False)
    rto = Column(Float, nullable=False, default=0)
    insurance = Column(Float, nullable=False, default=0)
    on_road_price = Column(Float, nullable=False, index=True)
    engine_size = Column(String, nullable=False)
    power = Column(Float, nullable=False)
    transmission = Column(String, nullable=False)
    fuel_norms = Column(String, nullable=False, default="BS6")
    is_e20_efficiency = Column(Boolean, nullable=False, default=False)
    features = Column(JSON, nullable=False, default=list)
    colors = Column(JSON, nullable=False, default=list)
    key_specifications = Column(JSON, nullable=False, default=dict)
    stock_available = Column(Integer, nullable=False, default=0)
    is_new_model = Column(Boolean, nullable=False, default=False)
    is_active = Column(Boolean, nullable=False, default=True)
    created_at = Column(DateTime, default=utcnow)
    updated_at = Column(DateTime, default=utcnow, onupdate=utcnow)

    images = relationship(
        "BikeImage",
        back_populates="bike",
        lazy="selectin",
        cascade="all, delete-orphan",
        order_by="BikeImage.id",
    )

    def recalculate_on_road_price(self):
        self.on_road_price = (self.ex_showroom or 0) + (self.rto or 0) + (self.insurance or 0)


class BikeImage(Base):
    __tablename__ = "bike_images"
    id = Column(Integer, primary_key=True, index=True)
    bike_id = Column(Integer, ForeignKey("bikes.id", ondelete="CASCADE"), nullable=False, index=True)
    storage_key = Column(String, nullable=False)
    url = Column(String, nullable=False)
    alt = Column(String, nullable=True)
    is_primary = Column(Boolean, nullable=False, default=False)
    created_at = Column(DateTime, default=utcnow)

    bike = relationship("Bike", back_populates="images")
