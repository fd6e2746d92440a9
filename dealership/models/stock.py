from sqlalchemy import Column, Integer, String, Float, DateTime, Boolean, ForeignKey, JSON, UniqueConstraint
from sqlalchemy.orm import relationship
from dealership.core.db import Base
from dealership.core.timeutils import utcnow


class StockItem(Base):
    """One physical unit, entered manually or imported from CSV."""
    __tablename__ = "stock_items"

    id = Column(Integer, primary_key=True, index=True)
    stock_id = Column(String, unique=True, nullable=False, index=True)  # STK-... | CSV-...
    source = Column(String, nullable=False, default="manual")  # 'manual' | 'csv'

    # Bike info
    bike_id = Column(Integer, ForeignKey("bikes.id"), nullable=True)
    model_name = Column(String, nullable=False, index=True)
    category = Column(String, nullable=True)
    engine_cc = Column(Integer, nullable=True)
    fuel_type = Column(String, nullable=True)
    color = Column(String, nullable=False)
    variant = Column(String, nullable=True)
    year_of_manufacture = Column(Integer, nullable=True)

    # Engine details
    engine_number = Column(String, unique=True, nullable=False, index=True)
    chassis_number = Column(String, unique=True, nullable=False, index=True)
    engine_type = Column(String, nullable=True)
    max_power = Column(String, nullable=True)
    max_torque = Column(String, nullable=True)
    displacement = Column(Float, nullable=True)
    fitness_upto = Column(Integer, nullable=True)
    unique_book_record = Column(String, nullable=True)

    # Stock status
    status = Column(String, nullable=False, default="Available", index=True)
    location = Column(String, nullable=False, default="Warehouse")
    branch_id = Column(Integer, ForeignKey("branches.id"), nullable=False, index=True)
    updated_by = Column(String, nullable=True)

    # Price info
    ex_showroom_price = Column(Float, nullable=True)
    road_tax = Column(Float, nullable=False, default=0)
    insurance_price = Column(Float, nullable=False, default=0)
    additional_charges = Column(Float, nullable=False, default=0)
    discount = Column(Float, nullable=False, default=0)
    on_road_price = Column(Float, nullable=True)
    final_price = Column(Float, nullable=True)

    # Current sale; previous sales live in sales_history
    sold_to = Column(Integer, ForeignKey("customers.id"), nullable=True)
    sold_date = Column(DateTime, nullable=True)
    sale_price = Column(Float, nullable=True)
    sales_person = Column(String, nullable=True)
    invoice_number = Column(String, nullable=True)
    payment_status = Column(String, nullable=True)
    customer_vehicle_id = Column(Integer, nullable=True)
    sales_history = Column(JSON, nullable=False, default=list)

    # CSV provenance
    csv_batch_id = Column(String, nullable=True, index=True)
    csv_file_name = Column(String, nullable=True)
    csv_import_date = Column(DateTime, nullable=True)
    detected_columns = Column(JSON, nullable=True)
    schema_version = Column(Integer, nullable=True)
    csv_data = Column(JSON, nullable=True)

    is_active = Column(Boolean, nullable=False, default=True)
    created_at = Column(DateTime, default=utcnow)
    updated_at = Column(DateTime, default=utcnow, onupdate=utcnow)

    extra_fields = relationship(
        "StockExtraField",
        back_populates="stock_item",
        lazy="selectin",
        cascade="all, delete-orphan",
        order_by="StockExtraField.id",
    )

    def recalculate_prices(self):
        if self.ex_showroom_price is None:
            self.on_road_price = None
            self.final_price = None
            return
        self.on_road_price = (
            self.ex_showroom_price
            + (self.road_tax or 0)
            + (self.insurance_price or 0)
            + (self.additional_charges or 0)
        )
        self.final_price = self.on_road_price - (self.discount or 0)

    def current_sale(self):
        if self.sold_to is None:
            return None
        return {
            "soldTo": self.sold_to,
            "soldDate": self.sold_date.isoformat() if self.sold_date else None,
            "salePrice": self.sale_price,
            "salesPerson": self.sales_person,
            "invoiceNumber": self.invoice_number,
            "paymentStatus": self.payment_status,
            "customerVehicleId": self.customer_vehicle_id,
        }


class StockExtraField(Base):
    """CSV column that has no place in the core stock record."""
    __tablename__ = "stock_extra_fields"
    __table_args__ = (UniqueConstraint("stock_item_id", "name", name="uq_stock_extra_field"),)

    id = Column(Integer, primary_key=True, index=True)
    stock_item_id = Column(Integer, ForeignKey("stock_items.id", ondelete="CASCADE"), nullable=False, index=True)
    name = Column(String, nullable=False)
    value = Column(String, nullable=True)

    stock_item = relationship("StockItem", back_populates="extra_fields")
