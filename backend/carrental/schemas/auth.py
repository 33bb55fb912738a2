# carrental/schemas/auth.py
from typing import Optional
from pydantic import BaseModel, Field

from carrental.schemas.user import UserBase


class Token(BaseModel):
    access_token: str
    token_type: str = "bearer"
    user: Optional[UserBase] = None

    model_config = {"from_attributes": True}


class PasswordChange(BaseModel):
    current_password: str = Field(..., alias="currentPassword")
    new_password: str = Field(..., min_length=6, alias="newPassword")

    model_config = {"populate_by_name": True}
