"""
Read-only finance API: dashboard summary and the full finance data set.
"""
from datetime import date

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from redemption.api.deps import get_db, get_current_user
from redemption.application.dashboard import DashboardService
from redemption.infrastructure.db.models import User


router = APIRouter(prefix="/api/v1", tags=["finance"])


@router.get("/dashboard")
def dashboard(
    today: date | None = None,
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    """Totals, upcoming bills (next UPCOMING_WINDOW_DAYS days) and bank balances"""
    return {"success": True, "data": DashboardService(db).get_summary(user.id, today)}


@router.get("/finance")
def finance(
    today: date | None = None,
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    return {"success": True, "data": DashboardService(db).get_all_finance_data(user.id, today)}
