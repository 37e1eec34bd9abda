# tradecert/schemas/course.py
from __future__ import annotations
from datetime import datetime
from decimal import Decimal
from typing import List, Optional, Union
from pydantic import BaseModel, Field

# tags arrive either as a list or as a JSON / comma separated string
TagsIn = Union[List[str], str, None]

class CourseBase(BaseModel):
    course_name: str = Field(min_length=1, max_length=200)
    course_code: str = Field(min_length=1, max_length=40)
    description: str = ""
    start_date: Optional[datetime] = None
    end_date: Optional[datetime] = None
    course_date: datetime
    location: str = Field(min_length=1, max_length=200)
    price: Decimal = Decimal("0")
    hours: int
    max_seats: int
    image_url: Optional[str] = None

class CourseCreate(CourseBase):
    course_tags: TagsIn = None
    stripe_price_id: Optional[str] = None

class CourseUpdate(BaseModel):
    course_name: Optional[str] = Field(default=None, min_length=1, max_length=200)
    course_code: Optional[str] = Field(default=None, min_length=1, max_length=40)
    description: Optional[str] = None
    start_date: Optional[datetime] = None
    end_date: Optional[datetime] = None
    course_date: Optional[datetime] = None
    location: Optional[str] = Field(default=None, min_length=1, max_length=200)
    price: Optional[Decimal] = None
    hours: Optional[int] = None
    max_seats: Optional[int] = None
    course_tags: TagsIn = None
    image_url: Optional[str] = None
    stripe_price_id: Optional[str] = None
    is_published: Optional[bool] = None

class CourseOut(BaseModel):
    id: int
    course_name: str
    course_code: str
    description: str
    start_date: Optional[datetime] = None
    end_date: Optional[datetime] = None
    course_date: Optional[datetime] = None
    location: str
    price: Decimal
    hours: int
    max_seats: int
    available_seats: int
    course_tags: List[str] = []
    image_url: Optional[str] = None
    stripe_product_id: Optional[str] = None
    stripe_price_id: Optional[str] = None
    is_published: bool
    is_deleted: bool
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    model_config = {"from_attributes": True}
