from __future__ import annotations
from datetime import datetime
from typing import List, Literal, Optional
from pydantic import BaseModel, Field

from tradecert.models.enrollment import EnrollmentStatus

# ---- requests ----

class RegisterCourseIn(BaseModel):
    user_id: int
    course_id: int

class GenerateCodeIn(BaseModel):
    course_id: int

class ValidateCodeIn(BaseModel):
    entered_code: str = Field(default="", max_length=6)

class AdminActionIn(BaseModel):
    user_id: int
    course_id: int
    action: Literal["approve", "reject"]

# ---- refs ----

class TraderRef(BaseModel):
    id: int
    user_id: int
    name: str
    email: str
    id_card: Optional[str] = None

class CourseRef(BaseModel):
    id: int
    name: str
    date: Optional[str] = None
    location: Optional[str] = None
    hours: Optional[int] = None

class EnrollmentOut(BaseModel):
    id: int
    user_id: int
    course_id: int
    status: EnrollmentStatus
    enroll_date: datetime
    validation_code: Optional[str] = None
    validated_at: Optional[datetime] = None
    verified_by: Optional[int] = None
    verified_at: Optional[datetime] = None

    model_config = {"from_attributes": True}

# ---- responses ----

class RegistrationOut(BaseModel):
    trader: TraderRef
    course: CourseRef
    enrollment: EnrollmentOut

class GeneratedCodeOut(BaseModel):
    course_id: int
    course_code: str
    valid_until: datetime

class ValidationOut(BaseModel):
    course_name: str
    validated_at: datetime
    enrollment_status: EnrollmentStatus

class Display(BaseModel):
    years: int = 0
    months: int = 0
    days: int = 0

class TraderWindowOut(BaseModel):
    id: int
    name: str
    start_date: Optional[datetime] = None
    end_date: Optional[datetime] = None
    duration_display: Display
    remaining_time_display: Display

class AdminActionOut(BaseModel):
    enrollment_id: int
    status: EnrollmentStatus
    trader: Optional[TraderWindowOut] = None

class ReviewItem(BaseModel):
    enrollment_id: int
    status: EnrollmentStatus
    enroll_date: datetime
    validated_at: Optional[datetime] = None
    trader: Optional[TraderRef] = None
    course: Optional[CourseRef] = None

class HistoryItem(BaseModel):
    enrollment_id: int
    status: EnrollmentStatus
    enroll_date: str
    validated_at: Optional[str] = None
    verified_at: Optional[str] = None
    course: CourseRef

class RegistrationStatusOut(BaseModel):
    is_registered: bool
    enrollment_status: Optional[EnrollmentStatus] = None
    has_enrollment: bool
    in_registered_users: bool
    in_trader_trainings: bool

