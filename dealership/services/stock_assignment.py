import logging
from typing import Optional

from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession

from dealership.core.prometheus_metrics import prometheus_collector
from dealership.core.timeutils import utcnow
from dealership.models.customer import Customer
from dealership.models.customer_vehicle import CustomerVehicle
from dealership.models.enums import DEFAULT_CSV_LOCATION, StockLocation, StockSource, StockStatus, TransferType
from dealership.models.stock import StockItem
from dealership.schemas.stock import AssignStockRequest
from dealership.services.exceptions import (
    ConflictError,
    InvalidRequestError,
    InvalidStateError,
    NotFoundError,
    StockNotAvailableError,
)
from dealership.services.lookups import get_customer_or_404

logger = logging.getLogger(__name__)

DEFAULT_RTO_STATE = "AS"


def archive_current_sale(stock: StockItem, transfer_type: str, **extra) -> None:
    """Append the current sale to the sales history. No-op when there is none."""
    sale = stock.current_sale()
    if sale is None:
        return
    entry = dict(sale, transferType=transfer_type, archivedAt=utcnow().isoformat())
    entry.update(extra)
    # reassign so the JSON column is flagged dirty
    stock.sales_history = list(stock.sales_history or []) + [entry]


def clear_current_sale(stock: StockItem) -> None:
    stock.sold_to = None
    stock.sold_date = None
    stock.sale_price = None
    stock.sales_person = None
    stock.invoice_number = None
    stock.payment_status = None
    stock.customer_vehicle_id = None


def warehouse_location(stock: StockItem) -> str:
    if stock.source == StockSource.CSV.value:
        return DEFAULT_CSV_LOCATION
    return StockLocation.WAREHOUSE.value


class StockAssignmentService:
    """
    Moves stock units between the dealership and customers.

    Every operation runs in a single database transaction: the stock row, the
    sales history and the customer vehicle record are committed together or
    not at all. Selling uses a conditional UPDATE on the Available status so two
    concurrent sales of the same unit cannot both succeed.
    """

    def __init__(self, db: AsyncSession):
        self.db = db

    async def assign(self, stock: StockItem, request: AssignStockRequest, actor: str) -> CustomerVehicle:
        """
        Sells an available stock item to a customer.

        Args:
            stock: the stock item being sold
            request: buyer, price, invoice and registration details
            actor: label of the admin performing the sale

        Returns:
            CustomerVehicle: the ownership record created for the buyer

        Raises:
            InvalidRequestError: customer, sale price or invoice number missing
            StockNotAvailableError: stock is not Available, or was sold concurrently
            NotFoundError: customer does not exist
            ConflictError: number plate already registered
        """
        if request.customer_id is None or request.sale_price is None or not request.invoice_number:
            raise InvalidRequestError("Customer ID, sale price and invoice number are required")

        source, stock_label = stock.source, stock.stock_id

        if stock.status != StockStatus.AVAILABLE.value:
            prometheus_collector.record_assignment(success=False, source=source)
            raise StockNotAvailableError()

        customer = await get_customer_or_404(self.db, request.customer_id)
        await self._ensure_plate_free(request.number_plate)

        try:
            vehicle = await self._sell(stock, customer, request, actor)
            await self.db.commit()
        except StockNotAvailableError:
            await self.db.rollback()
            prometheus_collector.record_assignment(success=False, source=source)
            raise
        except Exception:
            await self.db.rollback()
            logger.exception("Stock assignment failed", extra={"stock_id": stock_label})
            raise

        prometheus_collector.record_assignment(success=True, source=source)
        logger.info(
            "Stock assigned to customer",
            extra={
                "stock_id": stock_label,
                "customer_id": customer.id,
                "vehicle_id": vehicle.id,
                "invoice_number": request.invoice_number,
                "actor": actor,
            },
        )
        return vehicle

    async def _sell(self, stock: StockItem, customer: Customer, request: AssignStockRequest, actor: str) -> CustomerVehicle:
        now = utcnow()
        claimed = await self.db.execute(
            update(StockItem)
            .where(StockItem.id == stock.id, StockItem.status == StockStatus.AVAILABLE.value)
            .values(status=StockStatus.SOLD.value, updated_at=now)
            .execution_options(synchronize_session=False)
        )
        if claimed.rowcount != 1:
            raise StockNotAvailableError()

        archive_current_sale(stock, TransferType.OWNERSHIP_TRANSFER.value)

        plate = request.number_plate
        vehicle = CustomerVehicle(
            stock_item_id=stock.id,
            customer_id=customer.id,
            model_name=stock.model_name,
            category=stock.category,
            engine_capacity=stock.engine_cc,
            color=stock.color,
            engine_number=stock.engine_number,
            chassis_number=stock.chassis_number,
            fitness_upto=stock.fitness_upto,
            unique_book_record=stock.unique_book_record,
            registration_date=request.registration_date,
            purchase_date=request.purchase_date or now.date(),
            number_plate=plate,
            registered_owner_name=request.registered_owner_name or customer.full_name,
            insurance=request.insurance,
            is_paid=request.is_paid,
            is_finance=request.is_finance,
            rto_code=plate[:4] if plate else None,
            rto_state=DEFAULT_RTO_STATE if plate else None,
            enrollments=[],
        )
        self.db.add(vehicle)
        await self.db.flush()

        stock.status = StockStatus.SOLD.value
        stock.location = StockLocation.CUSTOMER.value
        stock.updated_by = actor
        stock.sold_to = customer.id
        stock.sold_date = now
        stock.sale_price = request.sale_price
        stock.sales_person = request.sales_person or actor
        stock.invoice_number = request.invoice_number
        stock.payment_status = request.payment_status.value
        stock.customer_vehicle_id = vehicle.id
        await self.db.flush()
        return vehicle

    async def _ensure_plate_free(self, number_plate: Optional[str]) -> None:
        if not number_plate:
            return
        taken = (await self.db.execute(
            select(CustomerVehicle.id).where(CustomerVehicle.number_plate == number_plate)
        )).first()
        if taken is not None:
            raise ConflictError("Number plate already registered")

    async def transfer(
        self,
        vehicle_id: int,
        new_customer_id: int,
        new_owner_name: Optional[str],
        actor: str,
    ) -> CustomerVehicle:
        """Hand a customer vehicle to another customer, recording the change on the stock item."""
        new_customer = await get_customer_or_404(self.db, new_customer_id, "New customer not found")
        vehicle = (await self.db.execute(
            select(CustomerVehicle).where(CustomerVehicle.id == vehicle_id)
        )).scalar_one_or_none()
        if vehicle is None:
            raise NotFoundError("Vehicle not found")

        previous_customer_id = vehicle.customer_id
        try:
            vehicle.customer_id = new_customer.id
            vehicle.registered_owner_name = new_owner_name or new_customer.full_name

            if vehicle.stock_item_id is not None:
                stock = (await self.db.execute(
                    select(StockItem).where(StockItem.id == vehicle.stock_item_id)
                )).scalar_one_or_none()
                if stock is not None and stock.sold_to is not None:
                    archive_current_sale(stock, TransferType.OWNERSHIP_TRANSFER.value)
                    stock.sold_to = new_customer.id
                    stock.sold_date = utcnow()
                    stock.updated_by = actor
            await self.db.commit()
        except Exception:
            await self.db.rollback()
            logger.exception("Vehicle transfer failed", extra={"vehicle_id": vehicle_id})
            raise

        logger.info(
            "Vehicle ownership transferred",
            extra={
                "vehicle_id": vehicle.id,
                "from_customer_id": previous_customer_id,
                "to_customer_id": new_customer.id,
                "actor": actor,
            },
        )
        return vehicle

    async def unassign(self, stock: StockItem, reason: Optional[str], actor: str) -> StockItem:
        """Return a sold unit to stock and deactivate its customer vehicle."""
        if stock.status != StockStatus.SOLD.value:
            raise InvalidStateError("Stock item is not assigned to a customer")

        stock_label = stock.stock_id

        try:
            vehicles = (await self.db.execute(
                select(CustomerVehicle).where(
                    CustomerVehicle.stock_item_id == stock.id,
                    CustomerVehicle.is_active.is_(True),
                )
            )).scalars().all()
            for vehicle in vehicles:
                vehicle.is_active = False

            archive_current_sale(stock, TransferType.RETURNED.value, reason=reason)
            clear_current_sale(stock)
            stock.status = StockStatus.AVAILABLE.value
            stock.location = warehouse_location(stock)
            stock.updated_by = actor
            await self.db.commit()
        except Exception:
            await self.db.rollback()
            logger.exception("Stock unassign failed", extra={"stock_id": stock_label})
            raise

        logger.info("Stock returned to inventory", extra={"stock_id": stock.stock_id, "actor": actor})
        return stock
