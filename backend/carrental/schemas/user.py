# backend/carrental/schemas/user.py
from typing import Literal, Optional
from pydantic import BaseModel, EmailStr, Field


class UserBase(BaseModel):
    id: int
    name: str
    email: EmailStr
    phone: Optional[str] = None
    role: str

    # Pydantic v2 style (replaces orm_mode = True)
    model_config = {"from_attributes": True}


class UserCreate(BaseModel):
    name: str = Field(..., min_length=1)
    email: EmailStr
    password: str = Field(..., min_length=6)
    phone: Optional[str] = None
    # self-service signup can pick renter or car owner, never admin
    role: Literal["user", "owner"] = "user"


class UserUpdate(BaseModel):
    # email and role are not self-service
    name: Optional[str] = Field(None, min_length=1)
    phone: Optional[str] = Field(None, max_length=20)


class UserLogin(BaseModel):
    email: EmailStr
    password: str


class UserRoleUpdate(BaseModel):
    """
    Admin role change:
      body: { "role": "user" | "owner" | "admin" }
    """
    role: Literal["user", "owner", "admin"]
