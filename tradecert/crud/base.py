from typing import TypeVar, Generic, Type, Any, Optional, List, Dict
from sqlalchemy.orm import Session
from pydantic import BaseModel
from tradecert.db.base import Base

ModelType = TypeVar("ModelType", bound=Base)

class CRUDBase(Generic[ModelType]):
    """Data access helpers. They flush but never commit: the calling
    service owns the transaction."""

    def __init__(self, model: Type[ModelType]): self.model = model

    def get(self, db: Session, id: Any) -> Optional[ModelType]:
        return db.get(self.model, id)

    def get_multi(self, db: Session, skip=0, limit=100) -> List[ModelType]:
        return db.query(self.model).order_by(self.model.id).offset(skip).limit(limit).all()

    def add(self, db: Session, obj: ModelType) -> ModelType:
        db.add(obj); db.flush()
        return obj

    def update(self, db: Session, db_obj: ModelType, obj_in: BaseModel | Dict[str, Any]) -> ModelType:
        data = obj_in if isinstance(obj_in, dict) else obj_in.model_dump(exclude_unset=True)
        for f, v in data.items(): setattr(db_obj, f, v)
        db.add(db_obj); db.flush()
        return db_obj
