import logging
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy import or_, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from dealership.auth.dependencies import any_admin
from dealership.auth.rbac import AdminPrincipal
from dealership.core.db import get_db
from dealership.models.bike import Bike
from dealership.models.enums import BikeCategory, MainCategory
from dealership.schemas.bike import BikeCreate, BikeOut, BikeUpdate
from dealership.services.pagination import paginate
from dealership.services.storage import ObjectStorage, get_object_storage

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/bikes", tags=["bikes"])

SORT_COLUMNS = {
    "createdAt": Bike.created_at,
    "price": Bike.on_road_price,
    "onRoadPrice": Bike.on_road_price,
    "year": Bike.year,
    "modelName": Bike.model_name,
    "power": Bike.power,
}


def active_bikes():
    return select(Bike).where(Bike.is_active.is_(True))


async def get_bike_or_404(db: AsyncSession, bike_id: int) -> Bike:
    bike = (await db.execute(select(Bike).where(Bike.id == bike_id))).scalar_one_or_none()
    if not bike:
        raise HTTPException(status_code=404, detail="Bike not found")
    return bike


@router.get("/get")
async def list_bikes(
    category: Optional[BikeCategory] = None,
    main_category: Optional[MainCategory] = Query(None, alias="mainCategory"),
    year: Optional[int] = None,
    min_price: Optional[float] = Query(None, alias="minPrice", ge=0),
    max_price: Optional[float] = Query(None, alias="maxPrice", ge=0),
    in_stock: Optional[bool] = Query(None, alias="inStock"),
    fuel_norms: Optional[str] = Query(None, alias="fuelNorms"),
    is_e20_efficiency: Optional[bool] = Query(None, alias="isE20Efficiency"),
    sort_by: str = Query("createdAt", alias="sortBy"),
    sort_order: str = Query("desc", alias="sortOrder", pattern="^(asc|desc)$"),
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1),
    db: AsyncSession = Depends(get_db),
):
    stmt = active_bikes()
    if category:
        stmt = stmt.where(Bike.category == category.value)
    if main_category:
        stmt = stmt.where(Bike.main_category == main_category.value)
    if year:
        stmt = stmt.where(Bike.year == year)
    if min_price is not None:
        stmt = stmt.where(Bike.on_road_price >= min_price)
    if max_price is not None:
        stmt = stmt.where(Bike.on_road_price <= max_price)
    if in_stock is True:
        stmt = stmt.where(Bike.stock_available > 0)
    elif in_stock is False:
        stmt = stmt.where(Bike.stock_available == 0)
    if fuel_norms:
        stmt = stmt.where(Bike.fuel_norms == fuel_norms)
    if is_e20_efficiency is not None:
        stmt = stmt.where(Bike.is_e20_efficiency.is_(is_e20_efficiency))

    column = SORT_COLUMNS.get(sort_by, Bike.created_at)
    stmt = stmt.order_by(column.asc() if sort_order == "asc" else column.desc(), Bike.id)

    result = await paginate(db, stmt, page, limit)
    return result.envelope([BikeOut.from_model(b) for b in result.items])


@router.get("/search")
async def search_bikes(
    q: str = Query(..., min_length=1),
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1),
    db: AsyncSession = Depends(get_db),
):
    pattern = f"%{q.strip()}%"
    stmt = active_bikes().where(
        or_(
            Bike.model_name.ilike(pattern),
            Bike.category.ilike(pattern),
            Bike.engine_size.ilike(pattern),
            Bike.transmission.ilike(pattern),
        )
    ).order_by(Bike.model_name, Bike.id)
    result = await paginate(db, stmt, page, limit)
    return result.envelope([BikeOut.from_model(b) for b in result.items])


@router.get("/category/{category}")
async def bikes_by_category(
    category: BikeCategory,
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1),
    db: AsyncSession = Depends(get_db),
):
    stmt = active_bikes().where(Bike.category == category.value).order_by(Bike.created_at.desc(), Bike.id)
    result = await paginate(db, stmt, page, limit)
    return result.envelope([BikeOut.from_model(b) for b in result.items])


@router.get("/main-category/{main_category}")
async def bikes_by_main_category(
    main_category: MainCategory,
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1),
    db: AsyncSession = Depends(get_db),
):
    stmt = active_bikes().where(Bike.main_category == main_category.value).order_by(Bike.created_at.desc(), Bike.id)
    result = await paginate(db, stmt, page, limit)
    return result.envelope([BikeOut.from_model(b) for b in result.items])


@router.get("/e20-efficient")
async def e20_efficient_bikes(db: AsyncSession = Depends(get_db)):
    bikes = (await db.execute(
        active_bikes().where(Bike.is_e20_efficiency.is_(True)).order_by(Bike.model_name)
    )).scalars().all()
    return {"success": True, "count": len(bikes), "data": [BikeOut.from_model(b) for b in bikes]}


@router.get("/{bike_id}")
async def get_bike(bike_id: int, db: AsyncSession = Depends(get_db)):
    bike = await get_bike_or_404(db, bike_id)
    return {"success": True, "data": BikeOut.from_model(bike)}


@router.post("/create", status_code=201)
async def create_bike(
    payload: BikeCreate,
    principal: AdminPrincipal = Depends(any_admin),
    db: AsyncSession = Depends(get_db),
):
    duplicate = (await db.execute(
        select(Bike.id).where(Bike.model_name == payload.model_name, Bike.year == payload.year)
    )).first()
    if duplicate:
        raise HTTPException(status_code=409, detail="Bike with this model name and year already exists")

    data = payload.model_dump(exclude={"price_breakdown", "variants", "main_category", "category", "fuel_norms"})
    bike = Bike(
        **data,
        main_category=payload.main_category.value,
        category=payload.category.value,
        fuel_norms=payload.fuel_norms.value,
        variants=[v.model_dump(by_alias=True) for v in payload.variants],
        ex_showroom=payload.price_breakdown.ex_showroom,
        rto=payload.price_breakdown.rto,
        insurance=payload.price_breakdown.insurance,
        images=[],
    )
    bike.recalculate_on_road_price()
    db.add(bike)
    try:
        await db.commit()
    except IntegrityError:
        await db.rollback()
        raise HTTPException(status_code=409, detail="Bike with this model name and year already exists")

    logger.info("Bike created", extra={"bike_id": bike.id, "created_by": principal.label})
    return {"success": True, "data": BikeOut.from_model(bike)}


@router.patch("/{bike_id}")
async def update_bike(
    bike_id: int,
    payload: BikeUpdate,
    principal: AdminPrincipal = Depends(any_admin),
    db: AsyncSession = Depends(get_db),
):
    bike = await get_bike_or_404(db, bike_id)
    changes = payload.model_dump(exclude_unset=True, exclude={"price_breakdown", "variants"})
    for field, value in changes.items():
        setattr(bike, field, getattr(value, "value", value))

    if payload.variants is not None:
        bike.variants = [v.model_dump(by_alias=True) for v in payload.variants]
    if payload.price_breakdown is not None:
        bike.ex_showroom = payload.price_breakdown.ex_showroom
        bike.rto = payload.price_breakdown.rto
        bike.insurance = payload.price_breakdown.insurance
    bike.recalculate_on_road_price()

    try:
        await db.commit()
    except IntegrityError:
        await db.rollback()
        raise HTTPException(status_code=409, detail="Bike with this model name and year already exists")
    return {"success": True, "data": BikeOut.from_model(bike)}


@router.delete("/{bike_id}")
async def delete_bike(
    bike_id: int,
    principal: AdminPrincipal = Depends(any_admin),
    db: AsyncSession = Depends(get_db),
    storage: ObjectStorage = Depends(get_object_storage),
):
    """Delete a bike and its image rows in one transaction, then clear the stored files."""
    bike = await get_bike_or_404(db, bike_id)
    storage_keys = [image.storage_key for image in bike.images]
    try:
        await db.delete(bike)
        await db.commit()
    except Exception:
        await db.rollback()
        raise

    for key in storage_keys:
        try:
            await storage.delete(key)
        except Exception:
            logger.warning("Failed to delete stored image", extra={"key": key}, exc_info=True)

    logger.info("Bike deleted", extra={"bike_id": bike_id, "images": len(storage_keys)})
    return {"success": True, "message": "Bike deleted successfully"}
