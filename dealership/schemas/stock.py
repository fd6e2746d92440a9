from datetime import date, datetime
from typing import Dict, List, Optional

from pydantic import Field, field_validator

from dealership.models.enums import FuelType, PaymentStatus, StockLocation, StockStatus
from dealership.schemas.base import CamelModel, OrmModel, NUMBER_PLATE_PATTERN


class EngineDetails(CamelModel):
    engine_number: str = Field(..., min_length=1)
    chassis_number: str = Field(..., min_length=1)
    engine_type: Optional[str] = None
    max_power: Optional[str] = None
    max_torque: Optional[str] = None
    displacement: Optional[float] = Field(None, ge=0)
    fitness_upto: Optional[int] = None
    unique_book_record: Optional[str] = None

    @field_validator("engine_number", "chassis_number")
    def upper_serial(cls, v):
        return v.strip().upper()

    @field_validator("fitness_upto")
    def fitness_window(cls, v):
        if v is None:
            return v
        year = datetime.now().year
        if v < year or v > year + 20:
            raise ValueError(f"fitnessUpto must be between {year} and {year + 20}")
        return v


class StockPriceInfo(CamelModel):
    ex_showroom_price: float = Field(..., ge=0)
    road_tax: float = Field(0, ge=0)
    insurance: float = Field(0, ge=0)
    additional_charges: float = Field(0, ge=0)
    discount: float = Field(0, ge=0)


class StockCreate(CamelModel):
    bike_model_id: int
    color: str = Field(..., min_length=1)
    variant: Optional[str] = None
    year_of_manufacture: int
    fuel_type: FuelType = FuelType.PETROL
    engine_details: EngineDetails
    status: StockStatus = StockStatus.AVAILABLE
    location: StockLocation = StockLocation.WAREHOUSE
    branch_id: int
    price_info: Optional[StockPriceInfo] = None

    @field_validator("year_of_manufacture")
    def manufacture_year(cls, v):
        latest = datetime.now().year + 1
        if v < 2000 or v > latest:
            raise ValueError(f"yearOfManufacture must be between 2000 and {latest}")
        return v


class StockUpdate(CamelModel):
    color: Optional[str] = None
    variant: Optional[str] = None
    location: Optional[str] = None
    branch_id: Optional[int] = None
    price_info: Optional[StockPriceInfo] = None
    engine_details: Optional[EngineDetails] = None


class StockStatusUpdate(CamelModel):
    status: StockStatus
    location: Optional[str] = None


class AssignStockRequest(CamelModel):
    customer_id: Optional[int] = None
    sale_price: Optional[float] = Field(None, ge=0)
    invoice_number: Optional[str] = None
    payment_status: PaymentStatus = PaymentStatus.PENDING
    sales_person: Optional[str] = None
    number_plate: Optional[str] = Field(None, pattern=NUMBER_PLATE_PATTERN)
    registration_date: Optional[date] = None
    purchase_date: Optional[date] = None
    registered_owner_name: Optional[str] = Field(None, max_length=100)
    insurance: bool = False
    is_paid: bool = False
    is_finance: bool = False

    @field_validator("number_plate", mode="before")
    def upper_plate(cls, v):
        return v.strip().upper() if isinstance(v, str) and v.strip() else None

    @field_validator("registration_date", "purchase_date")
    def not_in_future(cls, v):
        if v is not None and v > date.today():
            raise ValueError("date cannot be in the future")
        return v


class UnassignStockRequest(CamelModel):
    reason: Optional[str] = None


class SalesInfoOut(CamelModel):
    sold_to: Optional[int] = None
    sold_date: Optional[datetime] = None
    sale_price: Optional[float] = None
    sales_person: Optional[str] = None
    invoice_number: Optional[str] = None
    payment_status: Optional[str] = None
    customer_vehicle_id: Optional[int] = None


class StockOut(OrmModel):
    id: int
    stock_id: str
    source: str
    bike_id: Optional[int] = None
    model_name: str
    category: Optional[str] = None
    engine_cc: Optional[int] = None
    fuel_type: Optional[str] = None
    color: str
    variant: Optional[str] = None
    year_of_manufacture: Optional[int] = None
    engine_number: str
    chassis_number: str
    engine_type: Optional[str] = None
    max_power: Optional[str] = None
    max_torque: Optional[str] = None
    displacement: Optional[float] = None
    fitness_upto: Optional[int] = None
    status: str
    location: str
    branch_id: int
    updated_by: Optional[str] = None
    ex_showroom_price: Optional[float] = None
    road_tax: float = 0
    insurance_price: float = 0
    additional_charges: float = 0
    discount: float = 0
    on_road_price: Optional[float] = None
    final_price: Optional[float] = None
    sales_info: Optional[SalesInfoOut] = None
    sales_history: List[dict] = Field(default_factory=list)
    csv_batch_id: Optional[str] = None
    csv_file_name: Optional[str] = None
    csv_import_date: Optional[datetime] = None
    detected_columns: Optional[List[str]] = None
    csv_data: Optional[Dict[str, Optional[str]]] = None
    extra_fields: Dict[str, Optional[str]] = Field(default_factory=dict)
    is_active: bool
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    @classmethod
    def from_model(cls, item) -> "StockOut":
        data = {column: getattr(item, column) for column in cls.model_fields
                if column not in ("sales_info", "extra_fields", "sales_history") and hasattr(item, column)}
        data["sales_history"] = item.sales_history or []
        data["extra_fields"] = {field.name: field.value for field in item.extra_fields}
        if item.sold_to is not None:
            data["sales_info"] = SalesInfoOut(
                sold_to=item.sold_to,
                sold_date=item.sold_date,
                sale_price=item.sale_price,
                sales_person=item.sales_person,
                invoice_number=item.invoice_number,
                payment_status=item.payment_status,
                customer_vehicle_id=item.customer_vehicle_id,
            )
        return cls(**data)


class CsvRowError(CamelModel):
    row: int
    data: Dict[str, Optional[str]]
    error: str


class CsvImportResult(CamelModel):
    success: bool = True
    total_rows: int = 0
    success_count: int = 0
    failure_count: int = 0
    batch_id: str
    detected_columns: List[str] = Field(default_factory=list)
    errors: List[CsvRowError] = Field(default_factory=list)
    created: List[str] = Field(default_factory=list)
