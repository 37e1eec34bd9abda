from typing import List, Optional

from sqlalchemy import select
from sqlalchemy.orm import Session

from tradecert.crud.base import CRUDBase
from tradecert.models.payment import Payment, PaymentStatus

class CRUDPayment(CRUDBase[Payment]):
    def get_by_session(self, db: Session, session_id: str) -> Optional[Payment]:
        return db.execute(select(Payment).where(Payment.session_id == session_id)).scalar_one_or_none()

    def get_by_intent(self, db: Session, payment_intent: str) -> Optional[Payment]:
        return db.scalars(select(Payment).where(Payment.payment_intent == payment_intent).limit(1)).first()

    def list(self, db: Session, *, status: Optional[PaymentStatus] = None, user_id: Optional[int] = None,
             skip: int = 0, limit: int = 100) -> List[Payment]:
        stmt = select(Payment).order_by(Payment.created_at.desc(), Payment.id.desc())
        if status is not None:
            stmt = stmt.where(Payment.status == status)
        if user_id is not None:
            stmt = stmt.where(Payment.user_id == user_id)
        return list(db.scalars(stmt.offset(skip).limit(limit)).all())

payment_crud = CRUDPayment(Payment)
