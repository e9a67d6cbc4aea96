from typing import Optional

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from core.auth import current_user_context
from core.exceptions import NoTeamError, NotFoundError, UnauthorizedError
from db.database import get_async_session
from schemas.access import TeamDetails, UserContext
from services.access import get_team_details

router = APIRouter()


@router.get("/me", response_model=UserContext)
async def read_me(user: Optional[UserContext] = Depends(current_user_context)):
    if user is None:
        raise UnauthorizedError()
    return user


@router.get("/team", response_model=TeamDetails)
async def read_team(
    db: AsyncSession = Depends(get_async_session),
    user: Optional[UserContext] = Depends(current_user_context),
):
    if user is None:
        raise UnauthorizedError()
    if user.team_id is None:
        raise NoTeamError()
    team = await get_team_details(db, user.team_id)
    if team is None:
        raise NotFoundError("Team", user.team_id)
    return team
