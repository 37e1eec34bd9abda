from datetime import datetime
from typing import List, Optional

from sqlalchemy import select
from sqlalchemy.orm import Session

from tradecert.crud.base import CRUDBase
from tradecert.models.user import User, UserStatusHistory, UserRole
from tradecert.db.types import utcnow

class CRUDUser(CRUDBase[User]):
    def get_by_email(self, db: Session, email: str) -> Optional[User]:
        return db.execute(select(User).where(User.email == email)).scalar_one_or_none()

    def create(self, db: Session, *, email: str, hashed_password: str, role: str = UserRole.user.value,
               name: str = "") -> User:
        return self.add(db, User(name=name, email=email, hashed_password=hashed_password, role=role))

    def list(self, db: Session, *, role: Optional[str] = None, status: Optional[str] = None) -> List[User]:
        stmt = select(User).order_by(User.id)
        if role:
            stmt = stmt.where(User.role == role)
        if status:
            stmt = stmt.where(User.status == status)
        return list(db.scalars(stmt).all())

    def set_status(self, db: Session, user: User, *, status: str, reason: str, updated_by: Optional[int],
                   at: Optional[datetime] = None) -> User:
        at = at or utcnow()
        user.status = status
        user.status_reason = reason
        user.last_status_update = at
        user.status_history.append(UserStatusHistory(status=status, reason=reason, updated_at=at, updated_by=updated_by))
        db.flush()
        return user

user_crud = CRUDUser(User)
