from typing import List, Optional, Sequence

from sqlalchemy import select
from sqlalchemy.orm import Session

from tradecert.crud.base import CRUDBase
from tradecert.models.enrollment import Enrollment, EnrollmentStatus

class CRUDEnrollment(CRUDBase[Enrollment]):
    def get_for(self, db: Session, *, user_id: int, course_id: int) -> Optional[Enrollment]:
        return db.execute(
            select(Enrollment).where(Enrollment.user_id == user_id, Enrollment.course_id == course_id)
        ).scalar_one_or_none()

    def list_by_status(self, db: Session, statuses: Sequence[EnrollmentStatus]) -> List[Enrollment]:
        stmt = select(Enrollment).where(Enrollment.status.in_(list(statuses))).order_by(Enrollment.enroll_date)
        return list(db.scalars(stmt).all())

    def list_for_user(self, db: Session, user_id: int) -> List[Enrollment]:
        stmt = select(Enrollment).where(Enrollment.user_id == user_id).order_by(Enrollment.enroll_date.desc(), Enrollment.id.desc())
        return list(db.scalars(stmt).all())

enrollment_crud = CRUDEnrollment(Enrollment)
