# tradecert/schemas/user.py
from __future__ import annotations
from datetime import datetime
from typing import List, Literal, Optional
from pydantic import BaseModel, EmailStr, Field

StatusName = Literal["Active", "Suspended", "Locked"]

class RegisterIn(BaseModel):
    name: str = Field(min_length=1)
    email: EmailStr
    phone_number: str = Field(min_length=1)
    id_card: str = Field(min_length=1)
    company: str = Field(min_length=1)
    password: str

class LoginIn(BaseModel):
    email: str
    password: str

class StatusChangeIn(BaseModel):
    status: StatusName
    reason: str = ""

class StatusHistoryOut(BaseModel):
    status: str
    reason: str
    updated_at: datetime
    updated_by: Optional[int] = None

    model_config = {"from_attributes": True}

class UserOut(BaseModel):
    id: int
    name: str
    email: str          # legacy rows may not be valid EmailStr
    role: str
    status: str
    status_reason: str = ""
    last_status_update: Optional[datetime] = None
    last_login_at: Optional[datetime] = None
    created_at: Optional[datetime] = None

    model_config = {"from_attributes": True}

class UserDetailOut(UserOut):
    status_history: List[StatusHistoryOut] = []

class MeOut(BaseModel):
    user_id: int
    email: str
    role: str
