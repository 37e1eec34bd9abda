# tradecert/api/v1/courses.py
from __future__ import annotations
from typing import List

from fastapi import APIRouter, Depends, Path, Query, status
from sqlalchemy.orm import Session

from tradecert.api.deps import get_current_user, get_db, require_admin
from tradecert.core.rbac import Identity
from tradecert.schemas.course import CourseCreate, CourseOut, CourseUpdate
from tradecert.services import courses
from tradecert.services.checkout import StripeClient, get_stripe

router = APIRouter()

@router.get("", response_model=List[CourseOut])
def list_courses(
    include_deleted: bool = Query(False),
    db: Session = Depends(get_db),
    identity: Identity = Depends(get_current_user),
):
    return courses.list_courses(db, identity, include_deleted=include_deleted)

@router.get("/{course_id}", response_model=CourseOut)
def get_course(course_id: int = Path(..., ge=1), db: Session = Depends(get_db),
               identity: Identity = Depends(get_current_user)):
    return courses.get_course(db, identity, course_id)

@router.post("", response_model=CourseOut, status_code=status.HTTP_201_CREATED)
def create_course(
    payload: CourseCreate,
    db: Session = Depends(get_db),
    _: Identity = Depends(require_admin),
    stripe: StripeClient = Depends(get_stripe),
):
    return courses.create_course(db, payload, stripe)

@router.patch("/{course_id}", response_model=CourseOut)
def update_course(
    payload: CourseUpdate,
    course_id: int = Path(..., ge=1),
    db: Session = Depends(get_db),
    _: Identity = Depends(require_admin),
    stripe: StripeClient = Depends(get_stripe),
):
    return courses.update_course(db, course_id, payload, stripe)

@router.delete("/{course_id}", response_model=CourseOut)
def delete_course(course_id: int = Path(..., ge=1), db: Session = Depends(get_db),
                  _: Identity = Depends(require_admin)):
    return courses.delete_course(db, course_id)
