from typing import Annotated

from fastapi import APIRouter, Depends
from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from dbadmin.core import models, schemas
from dbadmin.core.database import get_db
from dbadmin.core.security import validate_admin_role
from dbadmin.core.browser.types import now_millis

router = APIRouter(prefix="/admin", tags=["Admin"])

db_dep = Annotated[AsyncSession, Depends(get_db)]
admin_dep = Annotated[models.User, Depends(validate_admin_role)]


@router.get("/stats", response_model=schemas.AdminStatsResponse)
async def get_stats(admin: admin_dep, db: db_dep):
    """Headline numbers for the admin dashboard."""
    total_users = await db.scalar(select(func.count(models.User.id)))

    # Sessions that haven't expired yet
    active_sessions = await db.scalar(
        select(func.count(models.Session.id)).where(
            models.Session.expires_at > now_millis()
        )
    )

    banned_users = await db.scalar(
        select(func.count(models.User.id)).where(models.User.banned == True)
    )

    return {
        "total_users": total_users or 0,
        "active_sessions": active_sessions or 0,
        "banned_users": banned_users or 0,
    }
