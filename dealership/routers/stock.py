import logging
import re
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy import func, or_, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from dealership.auth.dependencies import any_admin
from dealership.auth.rbac import AdminPrincipal, ensure_branch_access, scoped_branch_filter
from dealership.core.db import get_db
from dealership.models.bike import Bike
from dealership.models.enums import FuelType, StockSource, StockStatus
from dealership.models.stock import StockItem
from dealership.schemas.customer_vehicle import VehicleOut
from dealership.schemas.stock import AssignStockRequest, StockCreate, StockOut, StockUpdate
from dealership.services.ids import stock_id
from dealership.services.lookups import get_branch_or_404, get_stock_or_404
from dealership.services.pagination import paginate
from dealership.services.stock_assignment import StockAssignmentService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/stock-concept", tags=["stock"])


def engine_cc_from(engine_size: Optional[str]) -> Optional[int]:
    """'109.51cc' -> 109"""
    match = re.search(r"\d+(\.\d+)?", engine_size or "")
    return int(float(match.group())) if match else None


async def ensure_serials_free(db: AsyncSession, engine_number: str, chassis_number: str, exclude_id: Optional[int] = None):
    stmt = select(StockItem.id).where(
        or_(StockItem.engine_number == engine_number, StockItem.chassis_number == chassis_number)
    )
    if exclude_id is not None:
        stmt = stmt.where(StockItem.id != exclude_id)
    if (await db.execute(stmt.limit(1))).first() is not None:
        raise HTTPException(status_code=409, detail="Stock with this engine or chassis number already exists")


@router.post("/", status_code=201)
async def create_stock(
    payload: StockCreate,
    principal: AdminPrincipal = Depends(any_admin),
    db: AsyncSession = Depends(get_db),
):
    branch = await get_branch_or_404(db, payload.branch_id)
    ensure_branch_access(principal, branch.id)

    bike = (await db.execute(select(Bike).where(Bike.id == payload.bike_model_id))).scalar_one_or_none()
    if not bike:
        raise HTTPException(status_code=404, detail="Bike model not found")

    engine = payload.engine_details
    await ensure_serials_free(db, engine.engine_number, engine.chassis_number)

    manual_count = (await db.execute(
        select(func.count()).select_from(StockItem).where(StockItem.source == StockSource.MANUAL.value)
    )).scalar_one()

    prices = payload.price_info
    item = StockItem(
        stock_id=stock_id(manual_count),
        source=StockSource.MANUAL.value,
        bike_id=bike.id,
        model_name=bike.model_name,
        category=bike.category,
        engine_cc=int(engine.displacement) if engine.displacement else engine_cc_from(bike.engine_size),
        fuel_type=payload.fuel_type.value,
        color=payload.color,
        variant=payload.variant,
        year_of_manufacture=payload.year_of_manufacture,
        engine_number=engine.engine_number,
        chassis_number=engine.chassis_number,
        engine_type=engine.engine_type,
        max_power=engine.max_power,
        max_torque=engine.max_torque,
        displacement=engine.displacement,
        fitness_upto=engine.fitness_upto,
        unique_book_record=engine.unique_book_record,
        status=payload.status.value,
        location=payload.location.value,
        branch_id=branch.id,
        updated_by=principal.label,
        ex_showroom_price=prices.ex_showroom_price if prices else bike.ex_showroom,
        road_tax=prices.road_tax if prices else 0,
        insurance_price=prices.insurance if prices else 0,
        additional_charges=prices.additional_charges if prices else 0,
        discount=prices.discount if prices else 0,
        sales_history=[],
        extra_fields=[],
    )
    item.recalculate_prices()
    db.add(item)
    try:
        await db.commit()
    except IntegrityError:
        await db.rollback()
        raise HTTPException(status_code=409, detail="Stock with this engine or chassis number already exists")

    logger.info("Stock item created", extra={"stock_id": item.stock_id, "branch_id": branch.id})
    return {"success": True, "data": StockOut.from_model(item)}


@router.get("/")
async def list_stock(
    status: Optional[StockStatus] = None,
    location: Optional[str] = None,
    branch_id: Optional[int] = Query(None, alias="branchId"),
    category: Optional[str] = None,
    fuel_type: Optional[FuelType] = Query(None, alias="fuelType"),
    search: Optional[str] = None,
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1),
    principal: AdminPrincipal = Depends(any_admin),
    db: AsyncSession = Depends(get_db),
):
    stmt = select(StockItem).where(
        StockItem.is_active.is_(True), StockItem.source == StockSource.MANUAL.value
    )
    branch_filter = scoped_branch_filter(principal, branch_id)
    if branch_filter is not None:
        stmt = stmt.where(StockItem.branch_id == branch_filter)
    if status:
        stmt = stmt.where(StockItem.status == status.value)
    if location:
        stmt = stmt.where(StockItem.location == location)
    if category:
        stmt = stmt.where(StockItem.category == category)
    if fuel_type:
        stmt = stmt.where(StockItem.fuel_type == fuel_type.value)
    if search:
        pattern = f"%{search.strip()}%"
        stmt = stmt.where(or_(
            StockItem.stock_id.ilike(pattern),
            StockItem.model_name.ilike(pattern),
            StockItem.engine_number.ilike(pattern),
            StockItem.chassis_number.ilike(pattern),
            StockItem.color.ilike(pattern),
        ))
    stmt = stmt.order_by(StockItem.created_at.desc(), StockItem.id.desc())

    result = await paginate(db, stmt, page, limit)
    return result.envelope([StockOut.from_model(item) for item in result.items])


@router.get("/{stock_ref}")
async def get_stock(
    stock_ref: str,
    principal: AdminPrincipal = Depends(any_admin),
    db: AsyncSession = Depends(get_db),
):
    item = await get_stock_or_404(db, stock_ref, source=StockSource.MANUAL.value)
    ensure_branch_access(principal, item.branch_id)
    return {"success": True, "data": StockOut.from_model(item)}


@router.put("/{stock_ref}")
async def update_stock(
    stock_ref: str,
    payload: StockUpdate,
    principal: AdminPrincipal = Depends(any_admin),
    db: AsyncSession = Depends(get_db),
):
    item = await get_stock_or_404(db, stock_ref, source=StockSource.MANUAL.value)
    ensure_branch_access(principal, item.branch_id)

    if payload.branch_id is not None and payload.branch_id != item.branch_id:
        branch = await get_branch_or_404(db, payload.branch_id)
        ensure_branch_access(principal, branch.id)
        item.branch_id = branch.id

    for field in ("color", "variant", "location"):
        value = getattr(payload, field)
        if value is not None:
            setattr(item, field, value)

    engine = payload.engine_details
    if engine is not None:
        await ensure_serials_free(db, engine.engine_number, engine.chassis_number, exclude_id=item.id)
        for field, value in engine.model_dump().items():
            setattr(item, field, value)

    prices = payload.price_info
    if prices is not None:
        item.ex_showroom_price = prices.ex_showroom_price
        item.road_tax = prices.road_tax
        item.insurance_price = prices.insurance
        item.additional_charges = prices.additional_charges
        item.discount = prices.discount
        item.recalculate_prices()

    item.updated_by = principal.label
    try:
        await db.commit()
    except IntegrityError:
        await db.rollback()
        raise HTTPException(status_code=409, detail="Stock with this engine or chassis number already exists")
    return {"success": True, "data": StockOut.from_model(item)}


@router.delete("/{stock_ref}")
async def delete_stock(
    stock_ref: str,
    principal: AdminPrincipal = Depends(any_admin),
    db: AsyncSession = Depends(get_db),
):
    item = await get_stock_or_404(db, stock_ref, source=StockSource.MANUAL.value)
    ensure_branch_access(principal, item.branch_id)
    item.is_active = False
    item.updated_by = principal.label
    await db.commit()
    logger.info("Stock item deactivated", extra={"stock_id": item.stock_id})
    return {"success": True, "message": "Stock item deleted successfully"}


@router.post("/{stock_ref}/assign")
async def assign_stock(
    stock_ref: str,
    payload: AssignStockRequest,
    principal: AdminPrincipal = Depends(any_admin),
    db: AsyncSession = Depends(get_db),
):
    item = await get_stock_or_404(db, stock_ref, source=StockSource.MANUAL.value)
    ensure_branch_access(principal, item.branch_id)

    vehicle = await StockAssignmentService(db).assign(item, payload, actor=principal.label)
    return {
        "success": True,
        "message": "Stock assigned to customer successfully",
        "data": {"stock": StockOut.from_model(item), "vehicle": VehicleOut.from_model(vehicle)},
    }
