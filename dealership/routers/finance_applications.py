import logging
from datetime import timedelta
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy import func, or_, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from dealership.auth.dependencies import any_admin, super_admin_only
from dealership.auth.rbac import AdminPrincipal, ensure_branch_access, scoped_branch_filter
from dealership.core.db import get_db
from dealership.core.retry import RetryableError, async_retry
from dealership.core.timeutils import today, utcnow
from dealership.models.enums import ApplicationStatus, CreditScoreRange, EmploymentType
from dealership.models.finance_application import FinanceApplication
from dealership.schemas.finance_application import (
    ApplicationCreate,
    ApplicationOut,
    ApplicationStatusOut,
    ApplicationStatusUpdate,
    CheckStatusRequest,
    EmiRequest,
)
from dealership.services.finance import emi_summary
from dealership.services.ids import finance_application_id
from dealership.services.lookups import count_rows, get_branch_or_404
from dealership.services.pagination import paginate

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/getapproved", tags=["getapproved"])

SORT_COLUMNS = {
    "createdAt": FinanceApplication.created_at,
    "monthlyIncome": FinanceApplication.monthly_income,
    "status": FinanceApplication.status,
    "lastName": FinanceApplication.last_name,
}


@async_retry(max_attempts=3)
async def insert_application(db: AsyncSession, payload: ApplicationCreate) -> FinanceApplication:
    application = FinanceApplication(
        application_id=finance_application_id(),
        **payload.model_dump(exclude={"employment_type", "credit_score_range"}),
        employment_type=payload.employment_type.value,
        credit_score_range=payload.credit_score_range.value,
        status=ApplicationStatus.PENDING.value,
    )
    db.add(application)
    try:
        await db.commit()
    except IntegrityError as e:
        await db.rollback()
        taken = (await db.execute(
            select(FinanceApplication.id).where(FinanceApplication.email == payload.email)
        )).first()
        if taken:
            raise HTTPException(status_code=400, detail="An application with this email already exists")
        raise RetryableError(f"Application id {application.application_id} already taken") from e
    return application


async def get_application_or_404(db: AsyncSession, application_ref: str) -> FinanceApplication:
    """Application by numeric id or GA-... application id."""
    if application_ref.isdigit():
        condition = FinanceApplication.id == int(application_ref)
    else:
        condition = FinanceApplication.application_id == application_ref.upper()
    application = (await db.execute(select(FinanceApplication).where(condition))).scalar_one_or_none()
    if not application:
        raise HTTPException(status_code=404, detail="Application not found")
    return application


@router.post("/", status_code=201)
async def submit_application(payload: ApplicationCreate, db: AsyncSession = Depends(get_db)):
    if not payload.terms_accepted:
        raise HTTPException(status_code=400, detail="You must accept the terms and conditions")
    if not payload.privacy_policy_accepted:
        raise HTTPException(status_code=400, detail="You must accept the privacy policy")
    if payload.branch_id is not None:
        await get_branch_or_404(db, payload.branch_id)

    existing = (await db.execute(
        select(FinanceApplication.id).where(FinanceApplication.email == payload.email)
    )).first()
    if existing:
        raise HTTPException(status_code=400, detail="An application with this email already exists")

    try:
        application = await insert_application(db, payload)
    except RetryableError:
        raise HTTPException(status_code=409, detail="Could not allocate an application number, please try again")

    logger.info("Finance application submitted", extra={"application_id": application.application_id})
    return {
        "success": True,
        "message": "Application submitted successfully",
        "data": ApplicationOut.model_validate(application),
    }


@router.post("/check-status")
async def check_status(payload: CheckStatusRequest, db: AsyncSession = Depends(get_db)):
    application = (await db.execute(
        select(FinanceApplication).where(
            FinanceApplication.email == payload.email,
            FinanceApplication.application_id == payload.application_id,
        )
    )).scalar_one_or_none()
    if not application:
        raise HTTPException(status_code=404, detail="Application not found")
    return {"success": True, "data": ApplicationStatusOut.model_validate(application)}


@router.post("/emi")
async def calculate_emi(payload: EmiRequest):
    if payload.down_payment >= payload.price:
        raise HTTPException(status_code=400, detail="Down payment must be less than the price")
    return {
        "success": True,
        "data": emi_summary(payload.price, payload.down_payment, payload.interest_rate, payload.tenure_months),
    }


@router.get("/")
async def list_applications(
    status: Optional[ApplicationStatus] = None,
    employment_type: Optional[EmploymentType] = Query(None, alias="employmentType"),
    credit_score_range: Optional[CreditScoreRange] = Query(None, alias="creditScoreRange"),
    branch_id: Optional[int] = Query(None, alias="branchId"),
    search: Optional[str] = None,
    sort_by: str = Query("createdAt", alias="sortBy"),
    sort_order: str = Query("desc", alias="sortOrder", pattern="^(asc|desc)$"),
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1),
    principal: AdminPrincipal = Depends(any_admin),
    db: AsyncSession = Depends(get_db),
):
    stmt = select(FinanceApplication)
    branch_filter = scoped_branch_filter(principal, branch_id)
    if branch_filter is not None:
        stmt = stmt.where(FinanceApplication.branch_id == branch_filter)
    if status:
        stmt = stmt.where(FinanceApplication.status == status.value)
    if employment_type:
        stmt = stmt.where(FinanceApplication.employment_type == employment_type.value)
    if credit_score_range:
        stmt = stmt.where(FinanceApplication.credit_score_range == credit_score_range.value)
    if search:
        pattern = f"%{search.strip()}%"
        stmt = stmt.where(or_(
            FinanceApplication.application_id.ilike(pattern),
            FinanceApplication.first_name.ilike(pattern),
            FinanceApplication.last_name.ilike(pattern),
            FinanceApplication.email.ilike(pattern),
            FinanceApplication.phone.ilike(pattern),
        ))

    column = SORT_COLUMNS.get(sort_by, FinanceApplication.created_at)
    stmt = stmt.order_by(column.asc() if sort_order == "asc" else column.desc(), FinanceApplication.id)
    result = await paginate(db, stmt, page, limit)
    return result.envelope([ApplicationOut.model_validate(a) for a in result.items])


@router.get("/stats")
async def application_stats(
    principal: AdminPrincipal = Depends(any_admin),
    db: AsyncSession = Depends(get_db),
):
    base = select(FinanceApplication)
    branch_filter = scoped_branch_filter(principal, None)
    if branch_filter is not None:
        base = base.where(FinanceApplication.branch_id == branch_filter)

    async def grouped(column):
        rows = (await db.execute(
            base.with_only_columns(column, func.count(FinanceApplication.id)).group_by(column)
        )).all()
        return {key: count for key, count in rows}

    average_income = (await db.execute(
        base.with_only_columns(func.avg(FinanceApplication.monthly_income))
    )).scalar_one()
    return {
        "success": True,
        "data": {
            "total": await count_rows(db, base),
            "byStatus": await grouped(FinanceApplication.status),
            "byEmploymentType": await grouped(FinanceApplication.employment_type),
            "byCreditScoreRange": await grouped(FinanceApplication.credit_score_range),
            "averageMonthlyIncome": round(average_income or 0, 2),
            "lastThirtyDays": await count_rows(
                db, base.where(FinanceApplication.created_at >= utcnow() - timedelta(days=30))
            ),
        },
    }


@router.get("/branch/{branch_id}")
async def applications_for_branch(
    branch_id: int,
    status: Optional[ApplicationStatus] = None,
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1),
    principal: AdminPrincipal = Depends(any_admin),
    db: AsyncSession = Depends(get_db),
):
    ensure_branch_access(principal, branch_id)
    stmt = select(FinanceApplication).where(FinanceApplication.branch_id == branch_id)
    if status:
        stmt = stmt.where(FinanceApplication.status == status.value)
    stmt = stmt.order_by(FinanceApplication.created_at.desc(), FinanceApplication.id.desc())
    result = await paginate(db, stmt, page, limit)
    return result.envelope([ApplicationOut.model_validate(a) for a in result.items])


@router.get("/{application_ref}")
async def get_application(
    application_ref: str,
    principal: AdminPrincipal = Depends(any_admin),
    db: AsyncSession = Depends(get_db),
):
    application = await get_application_or_404(db, application_ref)
    if application.branch_id is not None:
        ensure_branch_access(principal, application.branch_id)
    return {"success": True, "data": ApplicationOut.model_validate(application)}


@router.put("/{application_ref}/status")
async def update_application_status(
    application_ref: str,
    payload: ApplicationStatusUpdate,
    principal: AdminPrincipal = Depends(any_admin),
    db: AsyncSession = Depends(get_db),
):
    application = await get_application_or_404(db, application_ref)
    if application.branch_id is not None:
        ensure_branch_access(principal, application.branch_id)

    previous = application.status
    application.status = payload.status.value
    application.reviewed_by = principal.label
    application.reviewed_at = utcnow()
    if payload.review_notes is not None:
        application.review_notes = payload.review_notes
    if payload.status == ApplicationStatus.PRE_APPROVED:
        application.pre_approval_amount = payload.pre_approval_amount
        application.pre_approval_valid_until = today() + timedelta(days=payload.valid_days)
    await db.commit()

    logger.info(
        "Finance application status changed",
        extra={"application_id": application.application_id, "from": previous, "to": application.status},
    )
    return {"success": True, "data": ApplicationOut.model_validate(application)}


@router.delete("/{application_ref}")
async def delete_application(
    application_ref: str,
    principal: AdminPrincipal = Depends(super_admin_only),
    db: AsyncSession = Depends(get_db),
):
    application = await get_application_or_404(db, application_ref)
    application_id = application.application_id
    await db.delete(application)
    await db.commit()
    logger.info("Finance application deleted", extra={"application_id": application_id})
    return {"success": True, "message": "Application deleted successfully"}
