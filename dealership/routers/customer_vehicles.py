import logging
from datetime import timedelta
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy import func, or_, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from dealership.auth.dependencies import Caller, any_admin, get_current_customer, protect_admin_or_customer
from dealership.auth.rbac import AdminPrincipal, can_access_branch, scoped_branch_filter
from dealership.core.db import get_db
from dealership.core.timeutils import today
from dealership.models.customer import Customer
from dealership.models.customer_vehicle import CustomerVehicle
from dealership.models.enums import VehicleServiceType
from dealership.models.stock import StockItem
from dealership.schemas.customer_vehicle import (
    ServiceStatusUpdate,
    TransferRequest,
    VehicleCreate,
    VehicleOut,
    VehicleUpdate,
)
from dealership.services.lookups import count_rows, get_customer_or_404
from dealership.services.pagination import paginate
from dealership.services.stock_assignment import StockAssignmentService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/customer-vehicles", tags=["customer-vehicles"])


def branch_scoped(stmt, branch_id: Optional[int]):
    """Limit a vehicle query to vehicles sold from one branch's stock."""
    if branch_id is None:
        return stmt
    return stmt.join(StockItem, StockItem.id == CustomerVehicle.stock_item_id).where(
        StockItem.branch_id == branch_id
    )


async def get_vehicle_or_404(db: AsyncSession, vehicle_id: int) -> CustomerVehicle:
    vehicle = (await db.execute(
        select(CustomerVehicle).where(CustomerVehicle.id == vehicle_id)
    )).scalar_one_or_none()
    if not vehicle:
        raise HTTPException(status_code=404, detail="Vehicle not found")
    return vehicle


async def ensure_vehicle_branch_access(db: AsyncSession, principal: AdminPrincipal, vehicle: CustomerVehicle):
    if principal.is_super_admin:
        return
    branch_id = None
    if vehicle.stock_item_id is not None:
        branch_id = (await db.execute(
            select(StockItem.branch_id).where(StockItem.id == vehicle.stock_item_id)
        )).scalar_one_or_none()
    if not can_access_branch(principal, branch_id):
        raise HTTPException(status_code=403, detail="Not authorized to access this branch")


async def ensure_plate_free(db: AsyncSession, number_plate: Optional[str], exclude_id: Optional[int] = None):
    if not number_plate:
        return
    stmt = select(CustomerVehicle.id).where(CustomerVehicle.number_plate == number_plate)
    if exclude_id is not None:
        stmt = stmt.where(CustomerVehicle.id != exclude_id)
    if (await db.execute(stmt)).first() is not None:
        raise HTTPException(status_code=409, detail="Number plate already registered")


@router.get("/my-vehicles")
async def my_vehicles(
    customer: Customer = Depends(get_current_customer),
    db: AsyncSession = Depends(get_db),
):
    vehicles = (await db.execute(
        select(CustomerVehicle)
        .where(CustomerVehicle.customer_id == customer.id, CustomerVehicle.is_active.is_(True))
        .order_by(CustomerVehicle.created_at.desc())
    )).scalars().all()
    return {"success": True, "count": len(vehicles), "data": [VehicleOut.from_model(v) for v in vehicles]}


@router.get("/")
async def list_vehicles(
    customer_id: Optional[int] = Query(None, alias="customerId"),
    service_type: Optional[VehicleServiceType] = Query(None, alias="serviceType"),
    is_active: Optional[bool] = Query(True, alias="isActive"),
    branch_id: Optional[int] = Query(None, alias="branchId"),
    search: Optional[str] = None,
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1),
    principal: AdminPrincipal = Depends(any_admin),
    db: AsyncSession = Depends(get_db),
):
    stmt = branch_scoped(select(CustomerVehicle), scoped_branch_filter(principal, branch_id))
    if customer_id is not None:
        stmt = stmt.where(CustomerVehicle.customer_id == customer_id)
    if service_type:
        stmt = stmt.where(CustomerVehicle.service_type == service_type.value)
    if is_active is not None:
        stmt = stmt.where(CustomerVehicle.is_active.is_(is_active))
    if search:
        pattern = f"%{search.strip()}%"
        stmt = stmt.where(or_(
            CustomerVehicle.model_name.ilike(pattern),
            CustomerVehicle.number_plate.ilike(pattern),
            CustomerVehicle.engine_number.ilike(pattern),
            CustomerVehicle.chassis_number.ilike(pattern),
            CustomerVehicle.registered_owner_name.ilike(pattern),
        ))
    stmt = stmt.order_by(CustomerVehicle.created_at.desc(), CustomerVehicle.id.desc())
    result = await paginate(db, stmt, page, limit)
    return result.envelope([VehicleOut.from_model(v) for v in result.items])


@router.post("/", status_code=201)
async def create_vehicle(
    payload: VehicleCreate,
    principal: AdminPrincipal = Depends(any_admin),
    db: AsyncSession = Depends(get_db),
):
    """Register a vehicle that was not sold through the stock workflow, or link one to a stock item."""
    customer = await get_customer_or_404(db, payload.customer_id)
    await ensure_plate_free(db, payload.number_plate)

    if payload.stock_item_id is not None:
        stock = (await db.execute(
            select(StockItem).where(StockItem.id == payload.stock_item_id)
        )).scalar_one_or_none()
        if not stock:
            raise HTTPException(status_code=404, detail="Stock item not found")
        if not can_access_branch(principal, stock.branch_id):
            raise HTTPException(status_code=403, detail="Not authorized to access this branch")
        owned = (await db.execute(
            select(CustomerVehicle.id).where(
                CustomerVehicle.stock_item_id == stock.id, CustomerVehicle.is_active.is_(True)
            )
        )).first()
        if owned:
            raise HTTPException(status_code=409, detail="Stock item already has an active owner")

    data = payload.model_dump(exclude={"rto_info"})
    rto = payload.rto_info
    vehicle = CustomerVehicle(
        **data,
        rto_code=rto.rto_code if rto else (payload.number_plate[:4] if payload.number_plate else None),
        rto_name=rto.rto_name if rto else None,
        rto_state=rto.state if rto else ("AS" if payload.number_plate else None),
        enrollments=[],
    )
    if not vehicle.registered_owner_name:
        vehicle.registered_owner_name = customer.full_name
    db.add(vehicle)
    try:
        await db.commit()
    except IntegrityError:
        await db.rollback()
        raise HTTPException(status_code=409, detail="Number plate already registered")

    logger.info("Customer vehicle created", extra={"vehicle_id": vehicle.id, "customer_id": customer.id})
    return {"success": True, "data": VehicleOut.from_model(vehicle)}


@router.get("/admin/service-due")
async def service_due_vehicles(
    days: int = Query(30, ge=0, le=365),
    principal: AdminPrincipal = Depends(any_admin),
    db: AsyncSession = Depends(get_db),
):
    horizon = today() + timedelta(days=days)
    stmt = branch_scoped(select(CustomerVehicle), scoped_branch_filter(principal, None)).where(
        CustomerVehicle.is_active.is_(True),
        or_(
            CustomerVehicle.next_service_due <= horizon,
            CustomerVehicle.service_type.in_([VehicleServiceType.DUE.value, VehicleServiceType.OVERDUE.value]),
        ),
    ).order_by(CustomerVehicle.next_service_due)
    vehicles = (await db.execute(stmt)).scalars().all()
    return {"success": True, "count": len(vehicles), "data": [VehicleOut.from_model(v) for v in vehicles]}


@router.get("/admin/stats")
async def vehicle_stats(
    principal: AdminPrincipal = Depends(any_admin),
    db: AsyncSession = Depends(get_db),
):
    base = branch_scoped(select(CustomerVehicle), scoped_branch_filter(principal, None))
    active = base.where(CustomerVehicle.is_active.is_(True))

    by_service_type = {
        row.service_type: row.count
        for row in (await db.execute(
            active.with_only_columns(CustomerVehicle.service_type, func.count(CustomerVehicle.id).label("count"))
            .group_by(CustomerVehicle.service_type)
        )).all()
    }
    return {
        "success": True,
        "data": {
            "totalVehicles": await count_rows(db, base),
            "activeVehicles": await count_rows(db, active),
            "financedVehicles": await count_rows(db, active.where(CustomerVehicle.is_finance.is_(True))),
            "insuredVehicles": await count_rows(db, active.where(CustomerVehicle.insurance.is_(True))),
            "byServiceType": by_service_type,
        },
    }


@router.get("/{vehicle_id}")
async def get_vehicle(
    vehicle_id: int,
    caller: Caller = Depends(protect_admin_or_customer),
    db: AsyncSession = Depends(get_db),
):
    vehicle = await get_vehicle_or_404(db, vehicle_id)
    if caller.customer is not None:
        if vehicle.customer_id != caller.customer.id:
            raise HTTPException(status_code=403, detail="Not authorized to access this vehicle")
    else:
        await ensure_vehicle_branch_access(db, caller.admin, vehicle)
    return {"success": True, "data": VehicleOut.from_model(vehicle)}


@router.put("/{vehicle_id}")
async def update_vehicle(
    vehicle_id: int,
    payload: VehicleUpdate,
    principal: AdminPrincipal = Depends(any_admin),
    db: AsyncSession = Depends(get_db),
):
    vehicle = await get_vehicle_or_404(db, vehicle_id)
    await ensure_vehicle_branch_access(db, principal, vehicle)

    changes = payload.model_dump(exclude_unset=True, exclude={"rto_info"})
    if changes.get("number_plate"):
        await ensure_plate_free(db, changes["number_plate"], exclude_id=vehicle.id)
    for field, value in changes.items():
        setattr(vehicle, field, value)
    if payload.rto_info is not None:
        vehicle.rto_code = payload.rto_info.rto_code
        vehicle.rto_name = payload.rto_info.rto_name
        vehicle.rto_state = payload.rto_info.state

    try:
        await db.commit()
    except IntegrityError:
        await db.rollback()
        raise HTTPException(status_code=409, detail="Number plate already registered")
    return {"success": True, "data": VehicleOut.from_model(vehicle)}


@router.delete("/{vehicle_id}")
async def delete_vehicle(
    vehicle_id: int,
    principal: AdminPrincipal = Depends(any_admin),
    db: AsyncSession = Depends(get_db),
):
    vehicle = await get_vehicle_or_404(db, vehicle_id)
    await ensure_vehicle_branch_access(db, principal, vehicle)
    vehicle.is_active = False
    await db.commit()
    logger.info("Customer vehicle deactivated", extra={"vehicle_id": vehicle_id})
    return {"success": True, "message": "Vehicle deleted successfully"}


@router.put("/{vehicle_id}/service-status")
async def update_service_status(
    vehicle_id: int,
    payload: ServiceStatusUpdate,
    principal: AdminPrincipal = Depends(any_admin),
    db: AsyncSession = Depends(get_db),
):
    vehicle = await get_vehicle_or_404(db, vehicle_id)
    await ensure_vehicle_branch_access(db, principal, vehicle)

    if payload.last_service_date is not None and payload.last_service_date != vehicle.last_service_date:
        vehicle.last_service_date = payload.last_service_date
        vehicle.service_history = (vehicle.service_history or 0) + 1
    if payload.next_service_due is not None:
        vehicle.next_service_due = payload.next_service_due
    if payload.service_type is not None:
        vehicle.service_type = payload.service_type.value
    if payload.kilometers is not None:
        vehicle.kilometers = payload.kilometers
    await db.commit()
    return {"success": True, "data": VehicleOut.from_model(vehicle)}


@router.put("/{vehicle_id}/transfer")
async def transfer_vehicle(
    vehicle_id: int,
    payload: TransferRequest,
    principal: AdminPrincipal = Depends(any_admin),
    db: AsyncSession = Depends(get_db),
):
    existing = (await db.execute(
        select(CustomerVehicle).where(CustomerVehicle.id == vehicle_id)
    )).scalar_one_or_none()
    if existing is not None:
        await ensure_vehicle_branch_access(db, principal, existing)

    vehicle = await StockAssignmentService(db).transfer(
        vehicle_id, payload.new_customer_id, payload.new_owner_name, actor=principal.label
    )
    return {
        "success": True,
        "message": "Vehicle ownership transferred successfully",
        "data": VehicleOut.from_model(vehicle),
    }
