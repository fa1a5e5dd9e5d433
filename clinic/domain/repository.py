"""Generic repository - Database operations shared by every entity"""

from typing import Any, Generic, Optional, TypeVar

from sqlalchemy.orm import Session

from ..database import Base

ModelT = TypeVar("ModelT", bound=Base)


class Repository(Generic[ModelT]):
    """CRUD over one model class; entity repositories subclass this for custom queries"""

    model: type[ModelT]

    def __init__(self, model: Optional[type[ModelT]] = None):
        if model is not None:
            self.model = model

    def get(self, db: Session, entity_id: int) -> Optional[ModelT]:
        """Get an entity by primary key"""
        return db.get(self.model, entity_id)

    def query(self, db: Session, **filters: Any):
        """Base query with equality filters; None values are ignored"""
        query = db.query(self.model)
        for field, value in filters.items():
            if value is not None:
                query = query.filter(getattr(self.model, field) == value)
        return query

    def find(
        self,
        db: Session,
        order_by: Optional[Any] = None,
        limit: Optional[int] = None,
        offset: int = 0,
        **filters: Any,
    ) -> list[ModelT]:
        """List entities matching equality filters"""
        query = self.query(db, **filters)
        query = query.order_by(order_by if order_by is not None else self.model.id)
        if offset:
            query = query.offset(offset)
        if limit is not None:
            query = query.limit(limit)
        return query.all()

    def count(self, db: Session, **filters: Any) -> int:
        return self.query(db, **filters).count()

    def add(self, db: Session, commit: bool = True, **data: Any) -> ModelT:
        """Create a new entity"""
        entity = self.model(**data)
        db.add(entity)
        if commit:
            db.commit()
        else:
            db.flush()
        db.refresh(entity)
        return entity

    def update(self, db: Session, entity: ModelT, **updates: Any) -> ModelT:
        """Update an entity with provided fields"""
        for key, value in updates.items():
            if value is not None and hasattr(entity, key):
                setattr(entity, key, value)

        db.commit()
        db.refresh(entity)
        return entity

    def delete(self, db: Session, entity: ModelT) -> None:
        db.delete(entity)
        db.commit()
