from typing import List, Optional

from sqlalchemy import case, delete, select, update
from sqlalchemy.orm import Session

from tradecert.crud.base import CRUDBase
from tradecert.db.types import utcnow
from tradecert.models.course import ApprovalQueueEntry, Course, CourseRegistration

class CRUDCourse(CRUDBase[Course]):
    def list(self, db: Session, *, published_only: bool = True, include_deleted: bool = False) -> List[Course]:
        stmt = select(Course).order_by(Course.course_date, Course.id)
        if published_only:
            stmt = stmt.where(Course.is_published.is_(True))
        if not include_deleted:
            stmt = stmt.where(Course.is_deleted.is_(False))
        return list(db.scalars(stmt).all())

    def find_by_code(self, db: Session, code: str) -> Optional[Course]:
        stmt = (
            select(Course)
            .where(Course.generated_code == code, Course.is_deleted.is_(False))
            .order_by(Course.generated_code_at.desc())
            .limit(1)
        )
        return db.scalars(stmt).first()

    def code_in_use(self, db: Session, code: str, *, exclude_course_id: int) -> bool:
        stmt = select(Course.id).where(Course.generated_code == code, Course.id != exclude_course_id).limit(1)
        return db.execute(stmt).first() is not None

    # ---- seat inventory: conditional updates, never read-then-write ----

    def reserve_seat(self, db: Session, course: Course) -> bool:
        """Decrement-if-positive. False when no seat was left at write time."""
        result = db.execute(
            update(Course)
            .where(Course.id == course.id, Course.available_seats > 0)
            .values(available_seats=Course.available_seats - 1, updated_at=utcnow())
            .execution_options(synchronize_session=False)
        )
        db.refresh(course, ["available_seats"])
        return result.rowcount == 1

    def release_seat(self, db: Session, course: Course) -> bool:
        """Increment-if-below-max."""
        result = db.execute(
            update(Course)
            .where(Course.id == course.id, Course.available_seats < Course.max_seats)
            .values(available_seats=Course.available_seats + 1, updated_at=utcnow())
            .execution_options(synchronize_session=False)
        )
        db.refresh(course, ["available_seats"])
        return result.rowcount == 1

    def resize(self, db: Session, course: Course, max_seats: int) -> None:
        """New capacity; available seats shift by the capacity change, clamped to [0, max_seats]."""
        shifted = Course.available_seats + (max_seats - Course.max_seats)
        db.execute(
            update(Course)
            .where(Course.id == course.id)
            .values(
                max_seats=max_seats,
                available_seats=case((shifted < 0, 0), (shifted > max_seats, max_seats), else_=shifted),
                updated_at=utcnow(),
            )
            .execution_options(synchronize_session=False)
        )
        db.refresh(course, ["max_seats", "available_seats"])

    # ---- membership lists ----

    def is_registered(self, db: Session, course_id: int, user_id: int) -> bool:
        stmt = select(CourseRegistration.id).where(
            CourseRegistration.course_id == course_id, CourseRegistration.user_id == user_id
        )
        return db.execute(stmt).first() is not None

    def add_registration(self, db: Session, course: Course, user_id: int) -> CourseRegistration:
        reg = CourseRegistration(course_id=course.id, user_id=user_id)
        db.add(reg); db.flush()
        return reg

    def remove_registration(self, db: Session, course_id: int, user_id: int) -> bool:
        result = db.execute(
            delete(CourseRegistration).where(
                CourseRegistration.course_id == course_id, CourseRegistration.user_id == user_id
            ).execution_options(synchronize_session=False)
        )
        return result.rowcount > 0

    def in_approval_queue(self, db: Session, course_id: int, user_id: int) -> bool:
        stmt = select(ApprovalQueueEntry.id).where(
            ApprovalQueueEntry.course_id == course_id, ApprovalQueueEntry.user_id == user_id
        )
        return db.execute(stmt).first() is not None

    def enqueue_for_approval(self, db: Session, course: Course, user_id: int, email: Optional[str]) -> bool:
        """Idempotent add; False when the user was already queued."""
        if self.in_approval_queue(db, course.id, user_id):
            return False
        db.add(ApprovalQueueEntry(course_id=course.id, user_id=user_id, email=email))
        db.flush()
        return True

    def dequeue_from_approval(self, db: Session, course_id: int, user_id: int) -> bool:
        result = db.execute(
            delete(ApprovalQueueEntry).where(
                ApprovalQueueEntry.course_id == course_id, ApprovalQueueEntry.user_id == user_id
            ).execution_options(synchronize_session=False)
        )
        return result.rowcount > 0

course_crud = CRUDCourse(Course)
