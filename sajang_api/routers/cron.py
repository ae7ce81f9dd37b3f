"""Scheduler-triggered maintenance endpoints.

Authenticated with Authorization: Bearer <CRON_SECRET_KEY>, not user sessions.
"""

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from sajang_api.auth.session_auth import require_cron_secret
from sajang_api.config import env
from sajang_api.db.repo_places import PlaceRepository
from sajang_api.db.session import get_db
from sajang_api.schemas import DailyRefreshResponse

router = APIRouter(prefix="/cron", tags=["cron"], dependencies=[Depends(require_cron_secret)])


@router.post("/daily-refresh", response_model=DailyRefreshResponse)
async def daily_refresh(db: Session = Depends(get_db)) -> DailyRefreshResponse:
    """Reset each paying subscriber's per-place refresh allowance."""
    updated = PlaceRepository(db).reset_daily_refreshes(env.get_daily_refresh_allowance())
    return DailyRefreshResponse(
        success=True,
        message="일일 리프레시가 성공적으로 처리되었습니다",
        updated_places=updated,
    )
