import logging
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy import delete, select
from sqlalchemy.ext.asyncio import AsyncSession

from dealership.auth.dependencies import any_admin, get_current_customer, super_admin_only
from dealership.auth.rbac import AdminPrincipal
from dealership.core.db import get_db
from dealership.core.timeutils import today
from dealership.models.customer import Customer
from dealership.models.customer_vehicle import CustomerVehicle, VehicleServiceEnrollment
from dealership.models.enums import VasServiceType
from dealership.models.value_added_service import ValueAddedService
from dealership.schemas.customer import CustomerOut
from dealership.schemas.customer_vehicle import EnrollmentOut, VehicleOut
from dealership.schemas.value_added_service import (
    ActivateServiceRequest,
    DeactivateServiceRequest,
    PriceRequest,
    VasCreate,
    VasOut,
    VasUpdate,
)
from dealership.services.pagination import paginate
from dealership.services.vas_service import VasEnrollmentService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/value-added-services", tags=["value-added-services"])


def _apply_nested(service: ValueAddedService, changes: dict) -> dict:
    """Flatten eligibility, price structure and badges onto the service columns."""
    eligibility = changes.pop("vehicle_eligibility", None)
    if eligibility is not None:
        service.max_engine_capacity = eligibility["max_engine_capacity"]
        service.eligible_categories = eligibility["categories"]
    prices = changes.pop("price_structure", None)
    if prices is not None:
        service.base_price = prices["base_price"]
        service.price_per_year = prices["price_per_year"]
        service.engine_capacity_multiplier = prices["engine_capacity_multiplier"]
    if changes.get("service_type") is not None:
        changes["service_type"] = changes["service_type"].value
    return changes


def _vehicle_summary(vehicle: CustomerVehicle) -> dict:
    return {
        "id": vehicle.id,
        "modelName": vehicle.model_name,
        "numberPlate": vehicle.number_plate,
        "engineCapacity": vehicle.engine_capacity,
        "category": vehicle.category,
    }


# ===== ADMIN ROUTES =====

@router.post("/admin", status_code=201)
async def create_service(
    payload: VasCreate,
    principal: AdminPrincipal = Depends(any_admin),
    db: AsyncSession = Depends(get_db),
):
    service = ValueAddedService(valid_from=payload.valid_from or today())
    columns = _apply_nested(service, payload.model_dump(exclude={"badges", "valid_from"}))
    for field, value in columns.items():
        setattr(service, field, value)
    service.badges = [badge.model_dump(by_alias=True) for badge in payload.badges]
    if service.valid_until <= service.valid_from:
        raise HTTPException(status_code=400, detail="validUntil must be after validFrom")

    db.add(service)
    await db.commit()
    logger.info("Value added service created", extra={"service_id": service.id, "actor": principal.label})
    return {"success": True, "data": VasOut.from_model(service)}


@router.get("/admin")
async def list_services(
    service_type: Optional[VasServiceType] = Query(None, alias="serviceType"),
    is_active: Optional[bool] = Query(None, alias="isActive"),
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1),
    principal: AdminPrincipal = Depends(any_admin),
    db: AsyncSession = Depends(get_db),
):
    stmt = select(ValueAddedService)
    if service_type:
        stmt = stmt.where(ValueAddedService.service_type == service_type.value)
    if is_active is not None:
        stmt = stmt.where(ValueAddedService.is_active.is_(is_active))
    stmt = stmt.order_by(ValueAddedService.created_at.desc(), ValueAddedService.id.desc())
    result = await paginate(db, stmt, page, limit)
    return result.envelope([VasOut.from_model(s) for s in result.items])


@router.get("/admin/customers")
async def customers_with_active_services(
    principal: AdminPrincipal = Depends(any_admin),
    db: AsyncSession = Depends(get_db),
):
    rows = (await db.execute(
        select(Customer, CustomerVehicle, VehicleServiceEnrollment, ValueAddedService)
        .join(CustomerVehicle, CustomerVehicle.customer_id == Customer.id)
        .join(VehicleServiceEnrollment, VehicleServiceEnrollment.vehicle_id == CustomerVehicle.id)
        .join(ValueAddedService, ValueAddedService.id == VehicleServiceEnrollment.service_id)
        .where(VehicleServiceEnrollment.is_active.is_(True), CustomerVehicle.is_active.is_(True))
        .order_by(Customer.id, CustomerVehicle.id, VehicleServiceEnrollment.id)
    )).all()

    customers = {}
    for customer, vehicle, enrollment, service in rows:
        entry = customers.setdefault(customer.id, {"customer": CustomerOut.model_validate(customer), "services": []})
        entry["services"].append({
            "vehicle": _vehicle_summary(vehicle),
            "serviceId": service.id,
            "serviceName": service.service_name,
            "serviceType": service.service_type,
            "enrollment": EnrollmentOut.model_validate(enrollment),
        })
    return {"success": True, "count": len(customers), "data": list(customers.values())}


@router.post("/admin/activate", status_code=201)
async def activate_service(
    payload: ActivateServiceRequest,
    principal: AdminPrincipal = Depends(any_admin),
    db: AsyncSession = Depends(get_db),
):
    enrollment = await VasEnrollmentService(db).activate(payload, actor=principal.label)
    return {
        "success": True,
        "message": "Service activated successfully",
        "data": EnrollmentOut.model_validate(enrollment),
    }


@router.post("/admin/deactivate")
async def deactivate_service(
    payload: DeactivateServiceRequest,
    principal: AdminPrincipal = Depends(any_admin),
    db: AsyncSession = Depends(get_db),
):
    enrollment = await VasEnrollmentService(db).deactivate(payload, actor=principal.label)
    return {
        "success": True,
        "message": "Service deactivated successfully",
        "data": EnrollmentOut.model_validate(enrollment),
    }


@router.get("/admin/{service_id}")
async def get_service(
    service_id: int,
    principal: AdminPrincipal = Depends(any_admin),
    db: AsyncSession = Depends(get_db),
):
    service = await VasEnrollmentService(db).get_service(service_id)
    return {"success": True, "data": VasOut.from_model(service)}


@router.patch("/admin/{service_id}")
async def update_service(
    service_id: int,
    payload: VasUpdate,
    principal: AdminPrincipal = Depends(any_admin),
    db: AsyncSession = Depends(get_db),
):
    service = await VasEnrollmentService(db).get_service(service_id)
    changes = _apply_nested(service, payload.model_dump(exclude_unset=True, exclude={"badges"}))
    for field, value in changes.items():
        setattr(service, field, value)
    if payload.badges is not None:
        service.badges = [badge.model_dump(by_alias=True) for badge in payload.badges]
    if service.valid_until <= service.valid_from:
        await db.rollback()
        raise HTTPException(status_code=400, detail="validUntil must be after validFrom")

    await db.commit()
    return {"success": True, "data": VasOut.from_model(service)}


@router.delete("/admin/{service_id}")
async def delete_service(
    service_id: int,
    principal: AdminPrincipal = Depends(super_admin_only),
    db: AsyncSession = Depends(get_db),
):
    service = await VasEnrollmentService(db).get_service(service_id)
    in_use = (await db.execute(
        select(VehicleServiceEnrollment.id).where(
            VehicleServiceEnrollment.service_id == service.id,
            VehicleServiceEnrollment.is_active.is_(True),
        ).limit(1)
    )).first()
    if in_use:
        raise HTTPException(status_code=400, detail="Cannot delete a service that is active on customer vehicles")

    # inactive enrollments still reference this row
    await db.execute(delete(VehicleServiceEnrollment).where(VehicleServiceEnrollment.service_id == service.id))
    await db.delete(service)
    await db.commit()
    logger.info("Value added service deleted", extra={"service_id": service_id})
    return {"success": True, "message": "Value added service deleted successfully"}


@router.patch("/admin/{service_id}/badges/{badge_index}/toggle")
async def toggle_badge(
    service_id: int,
    badge_index: int,
    principal: AdminPrincipal = Depends(any_admin),
    db: AsyncSession = Depends(get_db),
):
    service = await VasEnrollmentService(db).get_service(service_id)
    badges = [dict(badge) for badge in service.badges or []]
    if badge_index < 0 or badge_index >= len(badges):
        raise HTTPException(status_code=404, detail="Badge not found")

    badges[badge_index]["isActive"] = not badges[badge_index].get("isActive", True)
    service.badges = badges
    await db.commit()
    return {"success": True, "data": VasOut.from_model(service)}


# ===== CUSTOMER ROUTES =====

@router.get("/eligible")
async def eligible_services(
    vehicle_id: Optional[int] = Query(None, alias="vehicleId"),
    customer: Customer = Depends(get_current_customer),
    db: AsyncSession = Depends(get_db),
):
    offers = await VasEnrollmentService(db).eligible_for_customer(customer.id, vehicle_id)
    return {
        "success": True,
        "count": len(offers),
        "data": [
            {
                "vehicle": VehicleOut.from_model(offer["vehicle"]),
                "services": [
                    {
                        "service": VasOut.from_model(item["service"]),
                        "price": item["price"],
                        "isActive": item["isActive"],
                    }
                    for item in offer["services"]
                ],
            }
            for offer in offers
        ],
    }


@router.get("/my-services")
async def my_services(
    customer: Customer = Depends(get_current_customer),
    db: AsyncSession = Depends(get_db),
):
    rows = (await db.execute(
        select(CustomerVehicle, VehicleServiceEnrollment, ValueAddedService)
        .join(VehicleServiceEnrollment, VehicleServiceEnrollment.vehicle_id == CustomerVehicle.id)
        .join(ValueAddedService, ValueAddedService.id == VehicleServiceEnrollment.service_id)
        .where(
            CustomerVehicle.customer_id == customer.id,
            CustomerVehicle.is_active.is_(True),
            VehicleServiceEnrollment.is_active.is_(True),
        )
        .order_by(VehicleServiceEnrollment.expiry_date)
    )).all()
    on = today()
    return {
        "success": True,
        "count": len(rows),
        "data": [
            {
                "vehicle": _vehicle_summary(vehicle),
                "service": VasOut.from_model(service),
                "enrollment": EnrollmentOut.model_validate(enrollment),
                "isExpired": enrollment.expiry_date < on,
            }
            for vehicle, enrollment, service in rows
        ],
    }


@router.post("/calculate-price")
async def calculate_price(
    payload: PriceRequest,
    customer: Customer = Depends(get_current_customer),
    db: AsyncSession = Depends(get_db),
):
    vas = VasEnrollmentService(db)
    engine_capacity = payload.engine_capacity
    if payload.vehicle_id is not None:
        vehicle = await vas.get_customer_vehicle(customer.id, payload.vehicle_id)
        engine_capacity = vehicle.engine_capacity
    if engine_capacity is None:
        raise HTTPException(status_code=400, detail="Engine capacity or vehicle ID is required")

    quote = await vas.price_quote(payload.service_id, engine_capacity, payload.selected_years)
    return {"success": True, "data": quote}


# ===== PUBLIC ROUTES =====

@router.get("/types/{service_type}")
async def services_by_type(service_type: VasServiceType, db: AsyncSession = Depends(get_db)):
    services = await VasEnrollmentService(db).currently_valid_services(service_type.value)
    return {"success": True, "count": len(services), "data": [VasOut.from_model(s) for s in services]}
