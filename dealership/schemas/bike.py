from datetime import datetime
from typing import Dict, List, Optional

from pydantic import Field, field_validator

from dealership.models.enums import BikeCategory, FuelNorms, MainCategory
from dealership.schemas.base import CamelModel, OrmModel


def _check_year(v):
    if v is None:
        return v
    latest = datetime.now().year + 2
    if v < 2000 or v > latest:
        raise ValueError(f"year must be between 2000 and {latest}")
    return v


class BikeVariant(CamelModel):
    name: str = Field(..., min_length=1)
    features: List[str] = Field(default_factory=list)
    price_adjustment: float = 0
    is_available: bool = True


class PriceBreakdown(CamelModel):
    ex_showroom: float = Field(..., ge=0)
    rto: float = Field(0, ge=0)
    insurance: float = Field(0, ge=0)


class PriceBreakdownOut(PriceBreakdown):
    on_road: float


class BikeCreate(CamelModel):
    model_name: str = Field(..., min_length=1)
    main_category: MainCategory = MainCategory.BIKE
    category: BikeCategory
    year: int
    variants: List[BikeVariant] = Field(..., min_length=1)
    price_breakdown: PriceBreakdown
    engine_size: str = Field(..., min_length=1)
    power: float = Field(..., ge=0)
    transmission: str = Field(..., min_length=1)
    fuel_norms: FuelNorms = FuelNorms.BS6
    is_e20_efficiency: bool = False
    features: List[str] = Field(default_factory=list)
    colors: List[str] = Field(..., min_length=1)
    key_specifications: Dict[str, str] = Field(default_factory=dict)
    stock_available: int = Field(0, ge=0)
    is_new_model: bool = False
    is_active: bool = True

    @field_validator("year")
    def check_year(cls, v):
        return _check_year(v)


class BikeUpdate(CamelModel):
    model_name: Optional[str] = Field(None, min_length=1)
    main_category: Optional[MainCategory] = None
    category: Optional[BikeCategory] = None
    year: Optional[int] = None
    variants: Optional[List[BikeVariant]] = Field(None, min_length=1)
    price_breakdown: Optional[PriceBreakdown] = None
    engine_size: Optional[str] = None
    power: Optional[float] = Field(None, ge=0)
    transmission: Optional[str] = None
    fuel_norms: Optional[FuelNorms] = None
    is_e20_efficiency: Optional[bool] = None
    features: Optional[List[str]] = None
    colors: Optional[List[str]] = Field(None, min_length=1)
    key_specifications: Optional[Dict[str, str]] = None
    stock_available: Optional[int] = Field(None, ge=0)
    is_new_model: Optional[bool] = None
    is_active: Optional[bool] = None

    @field_validator("year")
    def check_year(cls, v):
        return _check_year(v)


class BikeImageOut(OrmModel):
    id: int
    bike_id: int
    url: str
    alt: Optional[str] = None
    is_primary: bool


class BikeOut(OrmModel):
    id: int
    model_name: str
    main_category: str
    category: str
    year: int
    variants: List[dict]
    price_breakdown: PriceBreakdownOut
    engine_size: str
    power: float
    transmission: str
    fuel_norms: str
    is_e20_efficiency: bool
    features: List[str]
    colors: List[str]
    key_specifications: Dict[str, str]
    stock_available: int
    is_new_model: bool
    is_active: bool
    images: List[BikeImageOut] = Field(default_factory=list)
    created_at: Optional[datetime] = None

    @classmethod
    def from_model(cls, bike) -> "BikeOut":
        return cls(
            id=bike.id,
            model_name=bike.model_name,
            main_category=bike.main_category,
            category=bike.category,
            year=bike.year,
            variants=bike.variants or [],
            price_breakdown=PriceBreakdownOut(
                ex_showroom=bike.ex_showroom,
                rto=bike.rto,
                insurance=bike.insurance,
                on_road=bike.on_road_price,
            ),
            engine_size=bike.engine_size,
            power=bike.power,
            transmission=bike.transmission,
            fuel_norms=bike.fuel_norms,
            is_e20_efficiency=bike.is_e20_efficiency,
            features=bike.features or [],
            colors=bike.colors or [],
            key_specifications=bike.key_specifications or {},
            stock_available=bike.stock_available,
            is_new_model=bike.is_new_model,
            is_active=bike.is_active,
            images=[BikeImageOut.model_validate(image) for image in bike.images],
            created_at=bike.created_at,
        )
