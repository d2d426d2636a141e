"""
Base Repository - Abstract base class for the buyer repositories
Common SQLAlchemy operations following the Repository Pattern
"""

from abc import ABC, abstractmethod
from typing import TypeVar, Generic, List, Optional, Dict, Any, Type
from sqlalchemy.orm import Session, Query
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy import desc, asc
from dataclasses import dataclass
from enum import Enum
import logging

logger = logging.getLogger(__name__)

T = TypeVar('T')


class SortOrder(Enum):
    ASC = "asc"
    DESC = "desc"


@dataclass
class PaginationParams:
    """Parameters for pagination"""
    page: int = 1
    per_page: int = 10

    @property
    def offset(self) -> int:
        return (self.page - 1) * self.per_page

    @property
    def limit(self) -> int:
        return self.per_page


@dataclass
class PaginatedResult(Generic[T]):
    """One page of query results and the total match count"""
    items: List[T]
    total: int
    page: int
    per_page: int

    @property
    def pages(self) -> int:
        return (self.total + self.per_page - 1) // self.per_page if self.per_page > 0 else 0


class BaseRepository(ABC, Generic[T]):
    """
    Abstract base repository with common CRUD operations.

    Writes flush but never commit; the calling service owns the transaction
    and calls commit() or rollback().
    """

    def __init__(self, session: Session, model_class: Type[T]):
        """
        Args:
            session: SQLAlchemy database session
            model_class: The model class this repository manages
        """
        self.session = session
        self.model_class = model_class

    # CREATE Operations

    def create(self, **kwargs) -> T:
        """
        Create a new entity.

        Raises:
            SQLAlchemyError: If database operation fails
        """
        try:
            entity = self.model_class(**kwargs)
            self.session.add(entity)
            self.session.flush()
            logger.debug(f"Created {self.model_class.__name__} with id {entity.id}")
            return entity
        except SQLAlchemyError as e:
            logger.error(f"Error creating {self.model_class.__name__}: {e}")
            self.session.rollback()
            raise

    def create_many(self, entities_data: List[Dict[str, Any]]) -> List[T]:
        """
        Create multiple entities in a single flush.

        Either every entity is flushed or, on error, the session is rolled
        back and nothing is kept.

        Raises:
            SQLAlchemyError: If database operation fails
        """
        try:
            entities = [self.model_class(**data) for data in entities_data]
            self.session.add_all(entities)
            self.session.flush()
            logger.debug(f"Created {len(entities)} {self.model_class.__name__} entities")
            return entities
        except SQLAlchemyError as e:
            logger.error(f"Error creating multiple {self.model_class.__name__}: {e}")
            self.session.rollback()
            raise

    # READ Operations

    def get_by_id(self, entity_id: str) -> Optional[T]:
        try:
            return self.session.get(self.model_class, entity_id)
        except SQLAlchemyError as e:
            logger.error(f"Error getting {self.model_class.__name__} by id {entity_id}: {e}")
            return None

    def find_by(self, **filters) -> List[T]:
        """Find entities whose fields equal the given values"""
        try:
            return self._build_query(filters).all()
        except SQLAlchemyError as e:
            logger.error(f"Error finding {self.model_class.__name__} by filters: {e}")
            return []

    def count(self, **filters) -> int:
        try:
            return self._build_query(filters).count()
        except SQLAlchemyError as e:
            logger.error(f"Error counting {self.model_class.__name__}: {e}")
            return 0

    # UPDATE Operations

    def update(self, entity: T, **updates) -> T:
        """
        Set attributes on an entity and flush.

        Raises:
            SQLAlchemyError: If database operation fails
        """
        try:
            for field, value in updates.items():
                if hasattr(entity, field):
                    setattr(entity, field, value)
            self.session.flush()
            logger.debug(f"Updated {self.model_class.__name__} with id {entity.id}")
            return entity
        except SQLAlchemyError as e:
            logger.error(f"Error updating {self.model_class.__name__}: {e}")
            self.session.rollback()
            raise

    # DELETE Operations

    def delete(self, entity: T) -> bool:
        try:
            self.session.delete(entity)
            self.session.flush()
            logger.debug(f"Deleted {self.model_class.__name__} with id {entity.id}")
            return True
        except SQLAlchemyError as e:
            logger.error(f"Error deleting {self.model_class.__name__}: {e}")
            self.session.rollback()
            return False

    # Transaction Management

    def commit(self) -> None:
        try:
            self.session.commit()
        except SQLAlchemyError as e:
            logger.error(f"Error committing transaction: {e}")
            self.session.rollback()
            raise

    def rollback(self) -> None:
        self.session.rollback()

    # Helper Methods

    def _build_query(self, filters: Optional[Dict[str, Any]] = None) -> Query:
        """
        Build a query from equality filters.

        List values become IN clauses and None becomes IS NULL; unknown
        field names are ignored.
        """
        query = self.session.query(self.model_class)

        if filters:
            for field, value in filters.items():
                if not hasattr(self.model_class, field):
                    continue
                column = getattr(self.model_class, field)
                if isinstance(value, list):
                    query = query.filter(column.in_(value))
                elif value is None:
                    query = query.filter(column.is_(None))
                else:
                    query = query.filter(column == value)

        return query

    def _order_by(self, query: Query, order_by: Optional[str], order: SortOrder) -> Query:
        order_field = getattr(self.model_class, order_by, None) if order_by else None
        if order_field is None:
            return query
        return query.order_by(desc(order_field) if order == SortOrder.DESC else asc(order_field))

    # Abstract Methods

    @abstractmethod
    def search(self, query: str, fields: Optional[List[str]] = None) -> List[T]:
        """
        Search entities by text query.

        Args:
            query: Search query string
            fields: Fields to search in (None for default fields)
        """
        pass
