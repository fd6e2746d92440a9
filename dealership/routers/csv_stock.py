import logging
from typing import Optional

from fastapi import APIRouter, Depends, File, Form, HTTPException, Query, Response, UploadFile
from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from dealership.auth.dependencies import any_admin
from dealership.auth.rbac import AdminPrincipal, ensure_branch_access, scoped_branch_filter
from dealership.core.db import get_db
from dealership.middleware.uploads import CSV_UPLOAD, read_uploads
from dealership.models.enums import StockSource, StockStatus
from dealership.models.stock import StockItem
from dealership.schemas.customer_vehicle import VehicleOut
from dealership.schemas.stock import AssignStockRequest, StockOut, StockStatusUpdate, UnassignStockRequest
from dealership.services.csv_import import CsvStockImportService, parse_csv
from dealership.services.lookups import get_branch_or_404, get_stock_or_404
from dealership.services.pagination import paginate
from dealership.services.stock_assignment import StockAssignmentService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/csv-stock", tags=["csv-stock"])


def csv_stock_query():
    return select(StockItem).where(
        StockItem.is_active.is_(True), StockItem.source == StockSource.CSV.value
    )


async def get_csv_stock(db: AsyncSession, stock_ref: str, principal: AdminPrincipal) -> StockItem:
    item = await get_stock_or_404(db, stock_ref, source=StockSource.CSV.value)
    ensure_branch_access(principal, item.branch_id)
    return item


@router.post("/import")
async def import_csv(
    response: Response,
    file: Optional[UploadFile] = File(None),
    default_branch_id: Optional[str] = Form(None, alias="defaultBranchId"),
    principal: AdminPrincipal = Depends(any_admin),
    db: AsyncSession = Depends(get_db),
):
    if file is None or not file.filename:
        raise HTTPException(status_code=400, detail="CSV file required")
    if not default_branch_id:
        raise HTTPException(status_code=400, detail="Default branch ID required")

    branch = await get_branch_or_404(db, default_branch_id)
    ensure_branch_access(principal, branch.id)

    upload = (await read_uploads([file], CSV_UPLOAD))[0]
    records = parse_csv(upload.content)

    result = await CsvStockImportService(db).import_records(
        records,
        branch_id=branch.id,
        file_name=upload.filename,
        imported_by=principal.label,
    )
    response.status_code = 201 if result.failure_count == 0 else 207
    return {
        "success": result.success,
        "message": f"Imported {result.success_count}/{result.total_rows}",
        "data": result,
    }


@router.get("/")
async def list_csv_stock(
    batch_id: Optional[str] = Query(None, alias="batchId"),
    status: Optional[StockStatus] = None,
    location: Optional[str] = None,
    branch_id: Optional[int] = Query(None, alias="branchId"),
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1),
    principal: AdminPrincipal = Depends(any_admin),
    db: AsyncSession = Depends(get_db),
):
    stmt = csv_stock_query()
    branch_filter = scoped_branch_filter(principal, branch_id)
    if branch_filter is not None:
        stmt = stmt.where(StockItem.branch_id == branch_filter)
    if batch_id:
        stmt = stmt.where(StockItem.csv_batch_id == batch_id)
    if status:
        stmt = stmt.where(StockItem.status == status.value)
    if location:
        stmt = stmt.where(StockItem.location == location.upper())
    stmt = stmt.order_by(StockItem.created_at.desc(), StockItem.id.desc())

    result = await paginate(db, stmt, page, limit)
    body = result.envelope([StockOut.from_model(item) for item in result.items])
    body["pagination"] = {
        "page": result.page,
        "limit": result.limit,
        "total": result.total,
        "pages": result.pages,
    }
    return body


@router.get("/batches/list")
async def list_batches(
    principal: AdminPrincipal = Depends(any_admin),
    db: AsyncSession = Depends(get_db),
):
    stmt = (
        select(
            StockItem.csv_batch_id,
            func.max(StockItem.csv_file_name).label("file_name"),
            func.min(StockItem.csv_import_date).label("import_date"),
            func.count(StockItem.id).label("row_count"),
        )
        .where(StockItem.source == StockSource.CSV.value, StockItem.is_active.is_(True))
        .group_by(StockItem.csv_batch_id)
        .order_by(func.min(StockItem.csv_import_date).desc())
    )
    branch_filter = scoped_branch_filter(principal, None)
    if branch_filter is not None:
        stmt = stmt.where(StockItem.branch_id == branch_filter)

    rows = (await db.execute(stmt)).all()
    return {
        "success": True,
        "count": len(rows),
        "data": [
            {
                "batchId": row.csv_batch_id,
                "fileName": row.file_name,
                "importDate": row.import_date,
                "count": row.row_count,
            }
            for row in rows
        ],
    }


@router.get("/batch/{batch_id}")
async def get_batch(
    batch_id: str,
    principal: AdminPrincipal = Depends(any_admin),
    db: AsyncSession = Depends(get_db),
):
    stmt = csv_stock_query().where(StockItem.csv_batch_id == batch_id)
    branch_filter = scoped_branch_filter(principal, None)
    if branch_filter is not None:
        stmt = stmt.where(StockItem.branch_id == branch_filter)

    items = (await db.execute(stmt.order_by(StockItem.id))).scalars().all()
    if not items:
        raise HTTPException(status_code=404, detail="Batch not found")
    return {
        "success": True,
        "count": len(items),
        "data": [StockOut.from_model(item) for item in items],
    }


@router.get("/{stock_ref}")
async def get_csv_stock_item(
    stock_ref: str,
    principal: AdminPrincipal = Depends(any_admin),
    db: AsyncSession = Depends(get_db),
):
    item = await get_csv_stock(db, stock_ref, principal)
    return {"success": True, "data": StockOut.from_model(item)}


@router.patch("/{stock_ref}/status")
async def update_csv_stock_status(
    stock_ref: str,
    payload: StockStatusUpdate,
    principal: AdminPrincipal = Depends(any_admin),
    db: AsyncSession = Depends(get_db),
):
    item = await get_csv_stock(db, stock_ref, principal)
    # a Sold unit always carries a sale record, so selling and returning go through assign/unassign
    if payload.status == StockStatus.SOLD:
        raise HTTPException(status_code=400, detail="Use the assign endpoint to sell a stock item")
    if item.status == StockStatus.SOLD.value:
        raise HTTPException(status_code=400, detail="Use the unassign endpoint to return a sold stock item")

    previous = item.status
    item.status = payload.status.value
    if payload.location:
        item.location = payload.location.upper()
    item.updated_by = principal.label
    await db.commit()

    logger.info(
        "CSV stock status updated",
        extra={"stock_id": item.stock_id, "from_status": previous, "to_status": item.status},
    )
    return {"success": True, "data": StockOut.from_model(item)}


@router.post("/assign/{stock_ref}")
async def assign_csv_stock(
    stock_ref: str,
    payload: AssignStockRequest,
    principal: AdminPrincipal = Depends(any_admin),
    db: AsyncSession = Depends(get_db),
):
    item = await get_csv_stock(db, stock_ref, principal)
    vehicle = await StockAssignmentService(db).assign(item, payload, actor=principal.label)
    return {
        "success": True,
        "message": "Stock assigned to customer successfully",
        "data": {"stock": StockOut.from_model(item), "vehicle": VehicleOut.from_model(vehicle)},
    }


@router.post("/unassign/{stock_ref}")
async def unassign_csv_stock(
    stock_ref: str,
    payload: Optional[UnassignStockRequest] = None,
    principal: AdminPrincipal = Depends(any_admin),
    db: AsyncSession = Depends(get_db),
):
    item = await get_csv_stock(db, stock_ref, principal)
    reason = payload.reason if payload else None
    item = await StockAssignmentService(db).unassign(item, reason, actor=principal.label)
    return {
        "success": True,
        "message": "Stock returned to inventory",
        "data": StockOut.from_model(item),
    }


@router.delete("/{stock_ref}")
async def delete_csv_stock(
    stock_ref: str,
    principal: AdminPrincipal = Depends(any_admin),
    db: AsyncSession = Depends(get_db),
):
    item = await get_csv_stock(db, stock_ref, principal)
    item.is_active = False
    item.updated_by = principal.label
    await db.commit()
    logger.info("CSV stock item deactivated", extra={"stock_id": item.stock_id})
    return {"success": True, "message": "Stock item deleted successfully"}
