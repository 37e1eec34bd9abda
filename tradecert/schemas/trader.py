# tradecert/schemas/trader.py
from __future__ import annotations
from datetime import datetime
from typing import List, Optional
from pydantic import BaseModel, EmailStr, Field

from tradecert.schemas.enrollment import Display

class TrainingOut(BaseModel):
    course_id: int
    course_name: str
    description: str
    location: Optional[str] = None
    hours: int
    date: datetime
    image_url: Optional[str] = None
    is_completed: bool

    model_config = {"from_attributes": True}

class TraderOut(BaseModel):
    id: int
    user_id: int
    company: str
    name: str
    id_card: str
    email: str
    phone_number: Optional[str] = None
    start_date: Optional[datetime] = None
    end_date: Optional[datetime] = None
    duration_display: Display
    remaining_time_display: Display
    is_deleted: bool = False

    model_config = {"from_attributes": True}

class TraderDetailOut(TraderOut):
    certification_status: str
    trainings: List[TrainingOut] = []

class TraderUpdate(BaseModel):
    # only contact fields; the certification window belongs to the status engine
    company: Optional[str] = Field(default=None, min_length=1)
    name: Optional[str] = Field(default=None, min_length=1)
    email: Optional[EmailStr] = None
    phone_number: Optional[str] = Field(default=None, min_length=1)

    model_config = {"extra": "forbid"}

class VerifyIdIn(BaseModel):
    user_id: int
    id_card: str = Field(min_length=1)

class VerifyIdOut(BaseModel):
    user_id: int
    verified_at: datetime
