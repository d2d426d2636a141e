"""
Result Pattern Implementation
Buyer services return these instead of raising, so callers can branch on
success and surface error codes without catching exceptions
"""

from typing import TypeVar, Generic, Optional, Any, Dict
from dataclasses import dataclass

T = TypeVar('T')


class ErrorCode:
    """Error codes used by the buyer services"""
    VALIDATION_ERROR = 'VALIDATION_ERROR'
    NOT_FOUND = 'NOT_FOUND'
    ACCESS_DENIED = 'ACCESS_DENIED'
    STALE_DATA = 'STALE_DATA'
    INVALID_QUERY = 'INVALID_QUERY'
    DATABASE_ERROR = 'DATABASE_ERROR'


@dataclass
class Result(Generic[T]):
    """
    Outcome of a service call: either data, or an error message with a code.

    Examples:
        result = buyer_service.get_buyer(buyer_id, user_id, 'user')
        if result.is_failure and result.error_code == ErrorCode.NOT_FOUND:
            ...
    """

    success: bool
    data: Optional[T] = None
    error: Optional[str] = None
    error_code: Optional[str] = None
    metadata: Optional[Dict[str, Any]] = None

    @classmethod
    def success(cls, data: T, metadata: Optional[Dict[str, Any]] = None) -> 'Result[T]':
        return cls(success=True, data=data, metadata=metadata)

    @classmethod
    def failure(cls,
                error: str,
                code: Optional[str] = None,
                metadata: Optional[Dict[str, Any]] = None) -> 'Result[T]':
        """
        Create a failure result.

        Args:
            error: Human readable description
            code: One of the ErrorCode values
            metadata: Extra detail, e.g. {'errors': [...]} for validation failures
        """
        return cls(success=False, error=error, error_code=code, metadata=metadata)

    @property
    def is_success(self) -> bool:
        return self.success

    @property
    def is_failure(self) -> bool:
        return not self.success

    def unwrap(self) -> T:
        """
        Get the data from a successful result.

        Raises:
            ValueError: If called on a failure result
        """
        if self.is_failure:
            raise ValueError(f"Cannot unwrap a failure result: {self.error}")
        return self.data

    def unwrap_or(self, default: T) -> T:
        return self.data if self.is_success else default

    def __bool__(self) -> bool:
        return self.is_success

    def __repr__(self) -> str:
        if self.is_success:
            return f"Result.success(data={self.data!r})"
        return f"Result.failure(error={self.error!r}, code={self.error_code!r})"


@dataclass
class PagedResult(Result[T]):
    """
    Result carrying one page of a listing plus pagination metadata.
    """

    total: int = 0
    page: int = 1
    per_page: int = 10
    total_pages: int = 0

    @classmethod
    def paginated(cls,
                  data: T,
                  total: int,
                  page: int,
                  per_page: int,
                  metadata: Optional[Dict[str, Any]] = None) -> 'PagedResult[T]':
        total_pages = (total + per_page - 1) // per_page if per_page > 0 else 0
        return cls(
            success=True,
            data=data,
            metadata=metadata,
            total=total,
            page=page,
            per_page=per_page,
            total_pages=total_pages
        )

    @property
    def has_next(self) -> bool:
        return self.page * self.per_page < self.total

    @property
    def has_prev(self) -> bool:
        return self.page > 1

    def pagination(self) -> Dict[str, Any]:
        """Pagination block in the shape the buyers list endpoint returns"""
        return {
            'page': self.page,
            'pageSize': self.per_page,
            'total': self.total,
            'totalPages': self.total_pages,
            'hasNext': self.has_next,
            'hasPrev': self.has_prev,
        }
