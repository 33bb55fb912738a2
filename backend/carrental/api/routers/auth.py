# carrental/api/routers/auth.py
import logging
from typing import Dict, Any

from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.ext.asyncio import AsyncSession

from carrental.core.errors import ValidationError
from carrental.db.session import get_db
from carrental.db import crud_users
from carrental.schemas.auth import Token
from carrental.schemas.user import UserBase, UserCreate, UserLogin
from carrental.core.security import create_access_token, verify_password

logger = logging.getLogger(__name__)
router = APIRouter()


def _token_response(user) -> Dict[str, Any]:
    # role is informational; access checks always reload the user
    access = create_access_token({"user_id": user.id, "role": user.role})
    return {
        "access_token": access,
        "token_type": "bearer",
        "user": UserBase.model_validate(user),
    }


@router.post("/register", response_model=Token, status_code=status.HTTP_201_CREATED)
async def register(payload: UserCreate, db: AsyncSession = Depends(get_db)):
    if await crud_users.get_user_by_email(db, payload.email):
        raise ValidationError(["Email is already registered"])

    user = await crud_users.create_user(
        db=db,
        name=payload.name,
        email=payload.email,
        password=payload.password,
        phone=payload.phone,
        role=payload.role,
    )
    logger.info("registered user %s as %s", user.id, user.role)
    return _token_response(user)


@router.post("/login", response_model=Token)
async def login(payload: UserLogin, db: AsyncSession = Depends(get_db)):
    user = await crud_users.get_user_by_email(db, payload.email)
    if not user or not verify_password(payload.password, user.hashed_password):
        logger.info("failed login for %s", payload.email)
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid credentials",
        )
    return _token_response(user)
