from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from carrental.api.dependencies import get_current_user
from carrental.core.errors import ValidationError
from carrental.core.security import verify_password
from carrental.db import crud_users
from carrental.db.session import get_db
from carrental.schemas.auth import PasswordChange
from carrental.schemas.user import UserBase, UserUpdate

router = APIRouter()


@router.get("/me")
async def me(current_user=Depends(get_current_user)):
    return UserBase.model_validate(current_user)


@router.put("/me")
async def update_me(
    body: UserUpdate,
    db: AsyncSession = Depends(get_db),
    current_user=Depends(get_current_user),
):
    user = await crud_users.update_profile(db, current_user, body.model_dump())
    return {"success": True, "message": "Profile updated", "user": UserBase.model_validate(user)}


@router.put("/me/password")
async def change_password(
    body: PasswordChange,
    db: AsyncSession = Depends(get_db),
    current_user=Depends(get_current_user),
):
    if not verify_password(body.current_password, current_user.hashed_password):
        raise ValidationError(["Current password is incorrect"])
    await crud_users.set_password(db, current_user, body.new_password)
    return {"success": True, "message": "Password changed"}
