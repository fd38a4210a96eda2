"""User profile router: /api/v1/users/me."""

from __future__ import annotations

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from elp.auth.dependencies import get_current_user
from elp.auth.schemas import UserResponse
from elp.database import get_session
from elp.db.models import User
from elp.users.schemas import ProfileUpdateRequest
from elp.users.service import update_profile

router = APIRouter(prefix="/api/v1/users", tags=["Users"])


@router.get("/me", response_model=UserResponse)
async def get_profile(user: User = Depends(get_current_user)) -> UserResponse:
    return UserResponse.model_validate(user)


@router.patch("/me", response_model=UserResponse)
async def update_my_profile(
    body: ProfileUpdateRequest,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_session),
) -> UserResponse:
    """Update full_name and avatar_url."""
    user = await update_profile(db, user, full_name=body.full_name, avatar_url=body.avatar_url)
    await db.commit()
    return UserResponse.model_validate(user)
