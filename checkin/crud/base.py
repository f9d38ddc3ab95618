# checkin/crud/base.py
from typing import Any, Generic, List, Optional, Type, TypeVar

from sqlalchemy import delete, select
from sqlalchemy.orm import Session

from checkin.db.base import Base

ModelType = TypeVar("ModelType", bound=Base)


class CRUDBase(Generic[ModelType]):
    """Acesso ao store. Só faz flush; quem abre/fecha a transação é o service."""

    def __init__(self, model: Type[ModelType]): self.model = model

    def get(self, db: Session, id: Any, *, fresh: bool = False) -> Optional[ModelType]:
        # fresh=True ignora a cópia do identity map e relê do banco
        return db.get(self.model, id, populate_existing=fresh)

    def get_multi(self, db: Session, skip=0, limit=100, order_by=None) -> List[ModelType]:
        stmt = select(self.model)
        if order_by is not None:
            stmt = stmt.order_by(*order_by)
        return list(db.scalars(stmt.offset(skip).limit(limit)).all())

    def add(self, db: Session, obj: ModelType) -> ModelType:
        db.add(obj); db.flush()
        return obj

    def delete_all(self, db: Session) -> int:
        return db.execute(delete(self.model)).rowcount or 0
