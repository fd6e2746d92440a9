from typing import Optional, Union

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from dealership.models.branch import Branch
from dealership.models.customer import Customer
from dealership.models.stock import StockItem
from dealership.services.exceptions import NotFoundError
from dealership.services.ids import branch_slug_base


def _as_int(ref: Union[str, int]) -> Optional[int]:
    if isinstance(ref, int):
        return ref
    return int(ref) if ref.isdigit() else None


async def find_branch(db: AsyncSession, ref: Union[str, int]) -> Optional[Branch]:
    """Branch by numeric id or slug."""
    pk = _as_int(ref)
    if pk is not None:
        branch = (await db.execute(select(Branch).where(Branch.id == pk))).scalar_one_or_none()
        if branch is not None:
            return branch
    return (await db.execute(select(Branch).where(Branch.slug == str(ref).lower()))).scalar_one_or_none()


async def get_branch_or_404(db: AsyncSession, ref: Union[str, int]) -> Branch:
    branch = await find_branch(db, ref)
    if branch is None:
        raise NotFoundError("Branch not found")
    return branch


async def unique_branch_slug(db: AsyncSession, branch_name: str, exclude_id: Optional[int] = None) -> str:
    base = branch_slug_base(branch_name)
    candidate = base
    counter = 1
    while True:
        stmt = select(Branch.id).where(Branch.slug == candidate)
        if exclude_id is not None:
            stmt = stmt.where(Branch.id != exclude_id)
        if (await db.execute(stmt)).first() is None:
            return candidate
        candidate = f"{base}{counter}"
        counter += 1


async def get_customer_or_404(db: AsyncSession, customer_id: int, message: str = "Customer not found") -> Customer:
    customer = (await db.execute(select(Customer).where(Customer.id == customer_id))).scalar_one_or_none()
    if customer is None:
        raise NotFoundError(message)
    return customer


async def get_stock_or_404(db: AsyncSession, ref: Union[str, int], source: Optional[str] = None) -> StockItem:
    """Active stock item by numeric id or stockId, optionally restricted to one source."""
    pk = _as_int(ref)
    condition = StockItem.id == pk if pk is not None else StockItem.stock_id == str(ref).upper()
    stmt = select(StockItem).where(condition, StockItem.is_active.is_(True))
    if source is not None:
        stmt = stmt.where(StockItem.source == source)
    stock = (await db.execute(stmt)).scalar_one_or_none()
    if stock is None:
        raise NotFoundError("Stock item not found")
    return stock


async def count_rows(db: AsyncSession, stmt) -> int:
    return (await db.execute(select(func.count()).select_from(stmt.subquery()))).scalar_one()
