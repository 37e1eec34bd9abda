# tradecert/services/courses.py
from __future__ import annotations

import json
from typing import Any, List, Optional

from loguru import logger
from sqlalchemy.orm import Session

from tradecert.core.config import settings
from tradecert.core.errors import GatewayError, NotFound, ValidationFailed
from tradecert.core.rbac import Identity
from tradecert.crud.course import course_crud
from tradecert.db.session import unit_of_work
from tradecert.models.course import Course
from tradecert.schemas.course import CourseCreate, CourseUpdate, TagsIn
from tradecert.services.checkout import StripeClient

MIN_HOURS, MAX_HOURS = 1, 24


def parse_tags(raw: TagsIn) -> List[str]:
    """Accepts a list, a JSON array string or a comma separated string."""
    if raw is None:
        return []
    if isinstance(raw, list):
        return [str(t).strip() for t in raw if str(t).strip()]
    try:
        parsed: Any = json.loads(raw)
    except ValueError:
        parsed = raw.split(",")
    if not isinstance(parsed, list):
        parsed = [parsed]
    return [str(t).strip() for t in parsed if str(t).strip()]


def _check_hours(hours: int) -> None:
    if not (MIN_HOURS <= hours <= MAX_HOURS):
        raise ValidationFailed("INVALID_HOURS", "Hours must be a valid number between 1 and 24.")

def _check_max_seats(max_seats: int) -> None:
    if max_seats < 1:
        raise ValidationFailed("INVALID_MAX_SEATS", "Maximum seats must be a valid number greater than 0.")


def list_courses(db: Session, identity: Identity, *, include_deleted: bool = False) -> List[Course]:
    if identity.is_admin:
        return course_crud.list(db, published_only=False, include_deleted=include_deleted)
    return course_crud.list(db, published_only=True, include_deleted=False)


def get_course(db: Session, identity: Identity, course_id: int) -> Course:
    course = course_crud.get(db, course_id)
    if not course or (not identity.is_admin and (course.is_deleted or not course.is_published)):
        raise NotFound("COURSE_NOT_FOUND", "Course not found.")
    return course


def create_course(db: Session, data: CourseCreate, stripe: Optional[StripeClient] = None) -> Course:
    _check_hours(data.hours)
    _check_max_seats(data.max_seats)

    fields = data.model_dump(exclude={"course_tags"})
    course = Course(
        **fields,
        course_tags=parse_tags(data.course_tags),
        available_seats=data.max_seats,
        is_published=False,
        is_deleted=False,
    )

    # the catalog entry on the gateway is optional; a course can be priced later
    if stripe is not None and stripe.configured and not data.stripe_price_id and data.price > 0:
        course.stripe_product_id, course.stripe_price_id = stripe.create_product_with_price(
            name=data.course_name,
            description=data.description,
            price=data.price,
            currency=settings.DEFAULT_CURRENCY,
            metadata={"course_code": data.course_code, "location": data.location},
        )

    with unit_of_work(db, "create_course"):
        course_crud.add(db, course)

    logger.info("course {} created ({} seats)", course.id, course.max_seats)
    return course


def update_course(db: Session, course_id: int, data: CourseUpdate, stripe: Optional[StripeClient] = None) -> Course:
    course = course_crud.get(db, course_id)
    if not course:
        raise NotFound("COURSE_NOT_FOUND", "Course not found.")

    fields = data.model_dump(exclude_unset=True)
    if "description" in fields and fields["description"] is None:
        fields["description"] = ""
    fields = {k: v for k, v in fields.items() if v is not None or k == "image_url"}
    if "hours" in fields:
        _check_hours(fields["hours"])
    max_seats = fields.pop("max_seats", None)
    if max_seats is not None:
        _check_max_seats(max_seats)
    if "course_tags" in fields:
        fields["course_tags"] = parse_tags(fields["course_tags"])

    if ("price" in fields and "stripe_price_id" not in fields and course.stripe_product_id
            and stripe is not None and stripe.configured):
        try:
            price = stripe.create_price(
                product_id=course.stripe_product_id, price=fields["price"], currency=settings.DEFAULT_CURRENCY,
            )
            fields["stripe_price_id"] = price["id"]
        except GatewayError:
            # course update still goes through with the old gateway price
            logger.warning("could not re-price course {} on the gateway", course.id)

    with unit_of_work(db, "update_course"):
        if max_seats is not None:
            # seats taken by concurrent registrations survive the resize
            course_crud.resize(db, course, max_seats)
        course_crud.update(db, course, fields)

    if max_seats is not None:
        fields["max_seats"] = max_seats
    logger.info("course {} updated: {}", course.id, sorted(fields))
    return course


def delete_course(db: Session, course_id: int) -> Course:
    course = course_crud.get(db, course_id)
    if not course:
        raise NotFound("COURSE_NOT_FOUND", "Course not found.")
    with unit_of_work(db, "delete_course"):
        course.is_deleted = True
        db.flush()
    logger.info("course {} deleted", course.id)
    return course
