from typing import Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from core.auth import current_user_context
from db.database import get_async_session
from schemas.access import UserContext
from schemas.reports import Dashboard, Report, ReportPeriod
from services import reports

router = APIRouter()


@router.get("/dashboard", response_model=Dashboard)
async def get_dashboard(
    db: AsyncSession = Depends(get_async_session),
    user: Optional[UserContext] = Depends(current_user_context),
):
    return await reports.get_dashboard(db, user)


@router.get("/summary", response_model=Report)
async def get_report(
    period: ReportPeriod = Query("30d"),
    db: AsyncSession = Depends(get_async_session),
    user: Optional[UserContext] = Depends(current_user_context),
):
    return await reports.get_report(db, user, period)
