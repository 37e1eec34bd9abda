from datetime import date
from typing import List, Optional

from sqlalchemy import select
from sqlalchemy.orm import Session

from tradecert.core.clock import local_day
from tradecert.crud.base import CRUDBase
from tradecert.models.course import Course
from tradecert.models.trader import Trader, TraderTraining

class CRUDTrader(CRUDBase[Trader]):
    def get_by_user_id(self, db: Session, user_id: int) -> Optional[Trader]:
        return db.execute(select(Trader).where(Trader.user_id == user_id)).scalar_one_or_none()

    def get_by_id_card(self, db: Session, id_card: str) -> Optional[Trader]:
        return db.execute(select(Trader).where(Trader.id_card == id_card)).scalar_one_or_none()

    def get_by_phone(self, db: Session, phone_number: str) -> Optional[Trader]:
        return db.scalars(select(Trader).where(Trader.phone_number == phone_number).limit(1)).first()

    def list(self, db: Session, *, include_deleted: bool = False) -> List[Trader]:
        stmt = select(Trader).order_by(Trader.id)
        if not include_deleted:
            stmt = stmt.where(Trader.is_deleted.is_(False))
        return list(db.scalars(stmt).all())

    # trainings are addressed by course id, never by list position

    def find_training(self, trader: Trader, course_id: int) -> Optional[TraderTraining]:
        return next((t for t in trader.trainings if t.course_id == course_id), None)

    def has_schedule_conflict(self, trader: Trader, course_id: int, day: date) -> bool:
        """True when the trader already trains on this course or on the same calendar day."""
        return any(t.course_id == course_id or local_day(t.date) == day for t in trader.trainings)

    def append_training(self, db: Session, trader: Trader, course: Course) -> TraderTraining:
        training = TraderTraining(
            course_id=course.id,
            course_name=course.course_name,
            description=course.description,
            location=course.location,
            hours=course.hours,
            date=course.course_date,
            image_url=course.image_url,
            is_completed=False,
        )
        trader.trainings.append(training)
        db.flush()
        return training

    def remove_training(self, db: Session, trader: Trader, course_id: int) -> bool:
        training = self.find_training(trader, course_id)
        if training is None:
            return False
        trader.trainings.remove(training)
        db.flush()
        return True

    def complete_training(self, db: Session, trader: Trader, course_id: int) -> bool:
        training = self.find_training(trader, course_id)
        if training is None:
            return False
        training.is_completed = True
        db.flush()
        return True

trader_crud = CRUDTrader(Trader)
