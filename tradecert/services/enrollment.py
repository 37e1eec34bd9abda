# tradecert/services/enrollment.py
"""Enrollment workflow.

pending --(correct code inside the course window)--> validated
validated --(admin approve)--> approved
pending|validated --(admin reject)--> rejected

Every mutating operation runs as one unit of work: the enrollment, the
trader's trainings and the course inventory either all change or none do.
"""
from __future__ import annotations

import secrets
from datetime import datetime, timedelta
from typing import List, Optional, Tuple

from loguru import logger
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from tradecert.core import clock
from tradecert.core.config import settings
from tradecert.core.errors import Conflict, NotFound, ValidationFailed
from tradecert.core.rbac import Identity, ensure_self_or_admin
from tradecert.crud.course import course_crud
from tradecert.crud.enrollment import enrollment_crud
from tradecert.crud.trader import trader_crud
from tradecert.db.session import unit_of_work
from tradecert.models.course import Course
from tradecert.models.enrollment import OPEN_STATUSES, Enrollment, EnrollmentStatus
from tradecert.models.trader import Trader
from tradecert.schemas.enrollment import (
    AdminActionOut, CourseRef, Display, EnrollmentOut, GeneratedCodeOut, HistoryItem,
    RegistrationOut, RegistrationStatusOut, ReviewItem, TraderRef, TraderWindowOut, ValidationOut,
)
from tradecert.services import trader_status

ACTIONS = ("approve", "reject")


# -------------------------- helpers --------------------------

def _now(now: Optional[datetime]) -> datetime:
    return clock.to_local(now) if now is not None else clock.now()

def code_window(course: Course) -> Tuple[datetime, datetime]:
    """(course start, code expiry): the course runs `hours`, plus the grace period."""
    start = clock.to_local(course.course_date)
    course_end = start + timedelta(hours=course.hours)
    return start, course_end + timedelta(hours=settings.CODE_GRACE_HOURS)

def mask_id_card(id_card: Optional[str]) -> Optional[str]:
    return f"{id_card[:4]}XXXXXXX" if id_card else None

def _trader_ref(trader: Trader, *, masked: bool = False) -> TraderRef:
    return TraderRef(
        id=trader.id,
        user_id=trader.user_id,
        name=trader.name,
        email=trader.email,
        id_card=mask_id_card(trader.id_card) if masked else None,
    )

def _course_ref(course: Course, *, with_time: bool = False) -> CourseRef:
    date = clock.fmt_stamp(course.course_date) if with_time else clock.fmt_day(course.course_date)
    return CourseRef(id=course.id, name=course.course_name, date=date, location=course.location, hours=course.hours)

def _window_out(trader: Trader) -> TraderWindowOut:
    return TraderWindowOut(
        id=trader.id,
        name=trader.name,
        start_date=trader.start_date,
        end_date=trader.end_date,
        duration_display=Display(**(trader.duration_display or {})),
        remaining_time_display=Display(**(trader.remaining_time_display or {})),
    )

def _new_code(db: Session, course_id: int) -> str:
    # six digits, unique among courses currently holding a code
    while True:
        code = f"{secrets.randbelow(900_000) + 100_000:06d}"
        if not course_crud.code_in_use(db, code, exclude_course_id=course_id):
            return code


# -------------------------- registration --------------------------

def register_for_course(db: Session, identity: Identity, *, user_id: int, course_id: int,
                        now: Optional[datetime] = None) -> RegistrationOut:
    ensure_self_or_admin(identity, user_id, "You can only register yourself for a course.")
    now = _now(now)

    trader = trader_crud.get_by_user_id(db, user_id)
    if not trader:
        raise NotFound("TRADER_NOT_FOUND", "Trader not found.")
    if trader.is_deleted:
        raise ValidationFailed("TRADER_DEACTIVATED", "This trader account has been deactivated.")

    course = course_crud.get(db, course_id)
    if not course:
        raise NotFound("COURSE_NOT_FOUND", "Course not found.")
    if course.is_deleted:
        raise ValidationFailed("COURSE_UNAVAILABLE", "This course has been cancelled or is no longer available.")
    if course.course_date is None:
        raise ValidationFailed("COURSE_SCHEDULE_INCOMPLETE", "This course has no scheduled date.")
    course_day = clock.local_day(course.course_date)
    if course_day < now.date():
        raise ValidationFailed("COURSE_ALREADY_TOOK_PLACE", "Cannot register for a course that has already taken place.")

    if course.available_seats <= 0:
        raise Conflict("NO_SEATS", "No available seats for this course.")
    if enrollment_crud.get_for(db, user_id=user_id, course_id=course_id):
        raise Conflict("ALREADY_ENROLLED", "You are already enrolled in this course.")
    if trader_crud.has_schedule_conflict(trader, course.id, course_day):
        raise Conflict(
            "SCHEDULE_CONFLICT",
            "Trader is already registered for this course or has another course on the same date.",
        )

    try:
        with unit_of_work(db, "register_for_course"):
            enrollment = enrollment_crud.add(db, Enrollment(
                user_id=user_id, course_id=course.id, status=EnrollmentStatus.pending, enroll_date=now,
            ))
            trader_crud.append_training(db, trader, course)
            if not course_crud.reserve_seat(db, course):
                # another registration took the last seat after our pre-check
                raise Conflict("NO_SEATS", "No available seats for this course.")
            course_crud.add_registration(db, course, user_id)
    except IntegrityError as exc:
        logger.warning("duplicate registration user={} course={}: {}", user_id, course_id, exc.orig)
        raise Conflict("ALREADY_ENROLLED", "You are already enrolled in this course.") from exc

    logger.info(
        "user {} registered for course {} (enrollment {}, seats left {})",
        user_id, course.id, enrollment.id, course.available_seats,
    )
    return RegistrationOut(
        trader=_trader_ref(trader),
        course=_course_ref(course),
        enrollment=EnrollmentOut.model_validate(enrollment),
    )


# -------------------------- attendance code --------------------------

def generate_attendance_code(db: Session, *, course_id: int, now: Optional[datetime] = None) -> GeneratedCodeOut:
    now = _now(now)
    course = course_crud.get(db, course_id)
    if not course or course.is_deleted:
        raise NotFound("COURSE_NOT_FOUND", "Course not found.")
    if not course.course_date or not course.hours:
        raise ValidationFailed("COURSE_SCHEDULE_INCOMPLETE", "Course date and hours are required to generate a code.")

    start, expires = code_window(course)
    if now < start:
        raise ValidationFailed("CODE_BEFORE_START", "Cannot generate code before course starts.")
    if now > expires:
        raise ValidationFailed("CODE_PERIOD_EXPIRED", "The code generation period has expired.")

    if course.generated_code and course.generated_code_at:
        issued = clock.to_local(course.generated_code_at)
        if start < issued < expires:
            raise Conflict(
                "CODE_ALREADY_GENERATED",
                "Code has already been generated for this course period.",
                data={"existing_code": course.generated_code},
            )

    with unit_of_work(db, "generate_attendance_code"):
        course.generated_code = _new_code(db, course.id)
        course.generated_code_at = now
        db.flush()

    logger.info("attendance code issued for course {} valid until {}", course.id, expires.isoformat())
    return GeneratedCodeOut(course_id=course.id, course_code=course.generated_code, valid_until=expires)


def validate_attendance_code(db: Session, identity: Identity, *, entered_code: str,
                             now: Optional[datetime] = None) -> ValidationOut:
    now = _now(now)
    code = (entered_code or "").strip()
    if not code:
        raise ValidationFailed("CODE_REQUIRED", "Code is required.")

    course = course_crud.find_by_code(db, code)
    if not course:
        raise NotFound("INVALID_CODE", "Invalid code. No matching course found.")
    if not course_crud.is_registered(db, course.id, identity.user_id):
        raise ValidationFailed("NOT_REGISTERED", "You are not registered for this course.")

    enrollment = enrollment_crud.get_for(db, user_id=identity.user_id, course_id=course.id)
    if not enrollment:
        raise NotFound("ENROLLMENT_NOT_FOUND", "Enrollment record not found.")
    if enrollment.status != EnrollmentStatus.pending:
        raise Conflict("ALREADY_PROCESSED", f"This enrollment has already been {enrollment.status.value}.")

    start, expires = code_window(course)
    if now > expires:
        raise ValidationFailed("CODE_EXPIRED", "Code has expired.")
    if now < start:
        raise ValidationFailed("CODE_NOT_YET_VALID", "Code cannot be used before the course starts.")

    with unit_of_work(db, "validate_attendance_code"):
        enrollment.status = EnrollmentStatus.validated
        enrollment.validation_code = code
        enrollment.validated_at = now
        course_crud.enqueue_for_approval(db, course, identity.user_id, identity.email)
        db.flush()

    logger.info("user {} validated attendance for course {}", identity.user_id, course.id)
    return ValidationOut(course_name=course.course_name, validated_at=now, enrollment_status=enrollment.status)


# -------------------------- admin decision --------------------------

def apply_admin_action(db: Session, admin: Identity, *, user_id: int, course_id: int, action: str,
                       now: Optional[datetime] = None) -> AdminActionOut:
    if action not in ACTIONS:
        raise ValidationFailed("INVALID_ACTION", "Invalid input or action. 'approve' or 'reject' is required.")
    now = _now(now)

    trader = trader_crud.get_by_user_id(db, user_id)
    course = course_crud.get(db, course_id)
    if not trader or not course:
        raise NotFound("TRADER_OR_COURSE_NOT_FOUND", "Trader or course not found.")

    enrollment = enrollment_crud.get_for(db, user_id=user_id, course_id=course_id)
    if not enrollment:
        raise NotFound("ENROLLMENT_NOT_FOUND", "Enrollment record not found.")
    if enrollment.status not in OPEN_STATUSES:
        raise Conflict("ALREADY_PROCESSED", f"This enrollment has already been {enrollment.status.value}.")
    if trader_crud.find_training(trader, course.id) is None:
        raise NotFound("TRAINING_NOT_FOUND", "Trader is not registered for this course.")

    with unit_of_work(db, f"admin_{action}"):
        enrollment.verified_by = admin.user_id
        enrollment.verified_at = now

        if action == "reject":
            enrollment.status = EnrollmentStatus.rejected
            trader_crud.remove_training(db, trader, course.id)
            if not course_crud.release_seat(db, course):
                logger.warning("course {} already at max seats on reject of user {}", course.id, user_id)
            course_crud.remove_registration(db, course.id, user_id)
            course_crud.dequeue_from_approval(db, course.id, user_id)
        else:
            enrollment.status = EnrollmentStatus.approved
            trader_crud.complete_training(db, trader, course.id)
            trader_status.recompute_certification_window(trader, now)
            course_crud.dequeue_from_approval(db, course.id, user_id)
        db.flush()

    logger.info("admin {} {}d enrollment {} (user {}, course {})",
                admin.user_id, action, enrollment.id, user_id, course.id)
    return AdminActionOut(
        enrollment_id=enrollment.id,
        status=enrollment.status,
        trader=_window_out(trader) if action == "approve" else None,
    )


# -------------------------- queries --------------------------

def list_for_review(db: Session, status: EnrollmentStatus) -> List[ReviewItem]:
    if status not in OPEN_STATUSES:
        raise ValidationFailed("INVALID_STATUS", "Only pending or validated enrollments can be reviewed.")
    validated = status == EnrollmentStatus.validated
    items: List[ReviewItem] = []
    for e in enrollment_crud.list_by_status(db, [status]):
        trader = trader_crud.get_by_user_id(db, e.user_id)
        course = course_crud.get(db, e.course_id)
        items.append(ReviewItem(
            enrollment_id=e.id,
            status=e.status,
            enroll_date=e.enroll_date,
            validated_at=e.validated_at,
            trader=_trader_ref(trader, masked=validated) if trader else None,
            course=_course_ref(course, with_time=validated) if course else None,
        ))
    return items


def enrollment_history(db: Session, identity: Identity, *, user_id: int) -> List[HistoryItem]:
    ensure_self_or_admin(identity, user_id, "You are not authorized to view this enrollment history.")
    history: List[HistoryItem] = []
    for e in enrollment_crud.list_for_user(db, user_id):
        course = course_crud.get(db, e.course_id)
        ref = _course_ref(course) if course else CourseRef(
            id=e.course_id, name="Course not found", date="Unknown", location="Unknown", hours=0,
        )
        history.append(HistoryItem(
            enrollment_id=e.id,
            status=e.status,
            enroll_date=clock.fmt_day(e.enroll_date),
            validated_at=clock.fmt_stamp(e.validated_at),
            verified_at=clock.fmt_stamp(e.verified_at),
            course=ref,
        ))
    return history


def registration_status(db: Session, identity: Identity, *, user_id: int, course_id: int) -> RegistrationStatusOut:
    """Cross-checks the enrollment record, the course's seat holders and the trader's trainings."""
    ensure_self_or_admin(identity, user_id, "You can only check your own registration status.")
    enrollment = enrollment_crud.get_for(db, user_id=user_id, course_id=course_id)

    course = course_crud.get(db, course_id)
    if not course:
        raise NotFound("COURSE_NOT_FOUND", "Course not found.")
    in_registered = course_crud.is_registered(db, course.id, user_id)

    trader = trader_crud.get_by_user_id(db, user_id)
    if not trader:
        raise NotFound("TRADER_NOT_FOUND", "Trader not found.")
    in_trainings = trader_crud.find_training(trader, course.id) is not None

    return RegistrationStatusOut(
        is_registered=bool(enrollment) or in_registered or in_trainings,
        enrollment_status=enrollment.status if enrollment else None,
        has_enrollment=bool(enrollment),
        in_registered_users=in_registered,
        in_trader_trainings=in_trainings,
    )
