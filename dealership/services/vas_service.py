import logging
from datetime import date
from typing import List, Optional

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from dealership.core.timeutils import today, utcnow
from dealership.models.customer_vehicle import CustomerVehicle, VehicleServiceEnrollment
from dealership.models.value_added_service import ValueAddedService
from dealership.schemas.value_added_service import ActivateServiceRequest, DeactivateServiceRequest
from dealership.services.exceptions import InvalidRequestError, InvalidStateError, NotFoundError
from dealership.services.vas_pricing import calculate_price, is_eligible, price_breakdown

logger = logging.getLogger(__name__)


def add_years(start: date, years: int) -> date:
    try:
        return start.replace(year=start.year + years)
    except ValueError:
        # 29 February in a non-leap target year
        return start.replace(year=start.year + years, day=28)


def service_price_for(service: ValueAddedService, engine_capacity: Optional[int], years: Optional[int] = None) -> int:
    return calculate_price(
        service.base_price,
        service.price_per_year,
        years or service.coverage_years,
        engine_capacity,
        service.engine_capacity_multiplier,
    )


def vehicle_is_eligible(service: ValueAddedService, vehicle: CustomerVehicle) -> bool:
    return is_eligible(
        vehicle.engine_capacity,
        vehicle.category,
        service.max_engine_capacity,
        service.eligible_categories or [],
    )


class VasEnrollmentService:
    """Activation, deactivation and pricing of value-added services on customer vehicles."""

    def __init__(self, db: AsyncSession):
        self.db = db

    async def get_service(self, service_id: int) -> ValueAddedService:
        service = (await self.db.execute(
            select(ValueAddedService).where(ValueAddedService.id == service_id)
        )).scalar_one_or_none()
        if service is None:
            raise NotFoundError("Value added service not found")
        return service

    async def get_customer_vehicle(self, customer_id: int, vehicle_id: int) -> CustomerVehicle:
        vehicle = (await self.db.execute(
            select(CustomerVehicle).where(
                CustomerVehicle.id == vehicle_id,
                CustomerVehicle.customer_id == customer_id,
                CustomerVehicle.is_active.is_(True),
            )
        )).scalar_one_or_none()
        if vehicle is None:
            raise NotFoundError("Vehicle not found for this customer")
        return vehicle

    async def activate(self, request: ActivateServiceRequest, actor: str) -> VehicleServiceEnrollment:
        """
        Activates a service on a customer's vehicle.

        New validity dates, when given, replace the service's window before the
        availability check. Expiry is coverageYears from today, capped at the
        end of the service's validity window.

        Raises:
            NotFoundError: service or vehicle missing
            InvalidStateError: service not currently offered, or already active on the vehicle
            InvalidRequestError: vehicle outside the service's eligibility rules
        """
        service = await self.get_service(request.service_id)

        if request.valid_from or request.valid_until:
            new_from = request.valid_from or service.valid_from
            new_until = request.valid_until or service.valid_until
            if new_until <= new_from:
                raise InvalidRequestError("validUntil must be after validFrom")
            service.valid_from, service.valid_until = new_from, new_until

        if not service.is_currently_valid():
            raise InvalidStateError("Service is not currently available")

        vehicle = await self.get_customer_vehicle(request.customer_id, request.vehicle_id)
        if vehicle.active_enrollment_for(service.id) is not None:
            raise InvalidStateError("Service is already active for this vehicle")
        if not vehicle_is_eligible(service, vehicle):
            raise InvalidRequestError("Vehicle is not eligible for this service")

        activated = today()
        expiry = min(add_years(activated, service.coverage_years), service.valid_until)
        enrollment = VehicleServiceEnrollment(
            service_id=service.id,
            activated_date=activated,
            expiry_date=expiry,
            purchase_price=service.base_price,
            coverage_years=service.coverage_years,
            is_active=True,
            activated_by=actor,
        )
        vehicle.enrollments.append(enrollment)
        await self.db.commit()

        logger.info(
            "Value added service activated",
            extra={"service_id": service.id, "vehicle_id": vehicle.id, "actor": actor},
        )
        return enrollment

    async def deactivate(self, request: DeactivateServiceRequest, actor: str) -> VehicleServiceEnrollment:
        vehicle = (await self.db.execute(
            select(CustomerVehicle).where(CustomerVehicle.id == request.vehicle_id)
        )).scalar_one_or_none()
        enrollment = vehicle.active_enrollment_for(request.service_id) if vehicle else None
        if enrollment is None:
            raise NotFoundError("Active service not found on this vehicle")

        enrollment.is_active = False
        enrollment.deactivated_at = utcnow()
        enrollment.deactivation_reason = request.reason
        await self.db.commit()

        logger.info(
            "Value added service deactivated",
            extra={"service_id": request.service_id, "vehicle_id": request.vehicle_id, "actor": actor},
        )
        return enrollment

    async def currently_valid_services(self, service_type: Optional[str] = None) -> List[ValueAddedService]:
        on = today()
        stmt = select(ValueAddedService).where(
            ValueAddedService.is_active.is_(True),
            ValueAddedService.valid_from <= on,
            ValueAddedService.valid_until >= on,
        )
        if service_type:
            stmt = stmt.where(ValueAddedService.service_type == service_type)
        return list((await self.db.execute(stmt.order_by(ValueAddedService.base_price))).scalars().all())

    async def eligible_for_customer(self, customer_id: int, vehicle_id: Optional[int] = None) -> List[dict]:
        """Per vehicle: the currently offered services it qualifies for, priced for that vehicle."""
        stmt = select(CustomerVehicle).where(
            CustomerVehicle.customer_id == customer_id,
            CustomerVehicle.is_active.is_(True),
        )
        if vehicle_id is not None:
            stmt = stmt.where(CustomerVehicle.id == vehicle_id)
        vehicles = (await self.db.execute(stmt)).scalars().all()
        if vehicle_id is not None and not vehicles:
            raise NotFoundError("Vehicle not found for this customer")

        services = await self.currently_valid_services()
        results = []
        for vehicle in vehicles:
            offers = []
            for service in services:
                if not vehicle_is_eligible(service, vehicle):
                    continue
                offers.append({
                    "service": service,
                    "price": service_price_for(service, vehicle.engine_capacity),
                    "isActive": vehicle.active_enrollment_for(service.id) is not None,
                })
            results.append({"vehicle": vehicle, "services": offers})
        return results

    async def price_quote(self, service_id: int, engine_capacity: Optional[int], years: Optional[int]) -> dict:
        service = await self.get_service(service_id)
        selected_years = years or service.coverage_years
        breakdown = price_breakdown(
            service.base_price,
            service.price_per_year,
            selected_years,
            engine_capacity,
            service.engine_capacity_multiplier,
        )
        breakdown.update({
            "serviceId": service.id,
            "serviceName": service.service_name,
            "selectedYears": selected_years,
            "engineCapacity": engine_capacity,
        })
        return breakdown
