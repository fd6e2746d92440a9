import math
from dataclasses import dataclass

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

MAX_PAGE_SIZE = 100


@dataclass
class Page:
    items: list
    total: int
    page: int
    limit: int

    @property
    def pages(self) -> int:
        return math.ceil(self.total / self.limit) if self.limit else 0

    def envelope(self, data) -> dict:
        """Standard list response: success flag, counters and the serialized items."""
        return {
            "success": True,
            "count": len(self.items),
            "total": self.total,
            "pages": self.pages,
            "currentPage": self.page,
            "data": data,
        }


async def paginate(db: AsyncSession, stmt, page: int = 1, limit: int = 10) -> Page:
    page = max(page, 1)
    limit = min(max(limit, 1), MAX_PAGE_SIZE)
    total = (await db.execute(
        select(func.count()).select_from(stmt.order_by(None).subquery())
    )).scalar_one()
    result = await db.execute(stmt.offset((page - 1) * limit).limit(limit))
    return Page(items=list(result.scalars().all()), total=total, page=page, limit=limit)
