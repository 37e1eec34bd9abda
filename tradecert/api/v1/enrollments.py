# tradecert/api/v1/enrollments.py
from __future__ import annotations
from typing import List

from fastapi import APIRouter, Depends, Path, Query, status
from sqlalchemy.orm import Session

from tradecert.api.deps import get_current_user, get_db, require_admin
from tradecert.core.rbac import Identity
from tradecert.models.enrollment import EnrollmentStatus
from tradecert.schemas.enrollment import (
    AdminActionIn, AdminActionOut, GenerateCodeIn, GeneratedCodeOut, HistoryItem,
    RegisterCourseIn, RegistrationOut, RegistrationStatusOut, ReviewItem, ValidateCodeIn, ValidationOut,
)
from tradecert.services import enrollment as workflow

router = APIRouter()

@router.post("/register", response_model=RegistrationOut, status_code=status.HTTP_201_CREATED)
def register_course(payload: RegisterCourseIn, db: Session = Depends(get_db),
                    identity: Identity = Depends(get_current_user)):
    return workflow.register_for_course(db, identity, user_id=payload.user_id, course_id=payload.course_id)

@router.post("/generate-code", response_model=GeneratedCodeOut)
def generate_code(payload: GenerateCodeIn, db: Session = Depends(get_db), _: Identity = Depends(require_admin)):
    return workflow.generate_attendance_code(db, course_id=payload.course_id)

@router.post("/validate-code", response_model=ValidationOut)
def validate_code(payload: ValidateCodeIn, db: Session = Depends(get_db),
                  identity: Identity = Depends(get_current_user)):
    return workflow.validate_attendance_code(db, identity, entered_code=payload.entered_code)

@router.post("/action", response_model=AdminActionOut)
def admin_action(payload: AdminActionIn, db: Session = Depends(get_db), admin: Identity = Depends(require_admin)):
    return workflow.apply_admin_action(
        db, admin, user_id=payload.user_id, course_id=payload.course_id, action=payload.action,
    )

@router.get("/pending", response_model=List[ReviewItem])
def pending_enrollments(db: Session = Depends(get_db), _: Identity = Depends(require_admin)):
    return workflow.list_for_review(db, EnrollmentStatus.pending)

@router.get("/validated", response_model=List[ReviewItem])
def validated_enrollments(db: Session = Depends(get_db), _: Identity = Depends(require_admin)):
    return workflow.list_for_review(db, EnrollmentStatus.validated)

@router.get("/history/{user_id}", response_model=List[HistoryItem])
def history(user_id: int = Path(..., ge=1), db: Session = Depends(get_db),
            identity: Identity = Depends(get_current_user)):
    return workflow.enrollment_history(db, identity, user_id=user_id)

@router.get("/check-registration", response_model=RegistrationStatusOut)
def check_registration(
    user_id: int = Query(..., ge=1),
    course_id: int = Query(..., ge=1),
    db: Session = Depends(get_db),
    identity: Identity = Depends(get_current_user),
):
    return workflow.registration_status(db, identity, user_id=user_id, course_id=course_id)
