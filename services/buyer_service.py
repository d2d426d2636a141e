"""
BuyerService - buyer lead management using the Result pattern and repositories
Create, read, update, delete, list, history and export for single buyers
"""

import csv
import io
import logging
from dataclasses import dataclass
from typing import Any, Dict, List, Mapping, Optional, Tuple

from crm_database import Buyer, BUYER_FIELD_COLUMNS
from repositories.base_repository import PaginationParams
from repositories.buyer_repository import BuyerRepository, FILTER_COLUMNS, SORT_OPTIONS
from repositories.buyer_history_repository import BuyerHistoryRepository
from services.common.result import Result, PagedResult, ErrorCode
from services.enums import ENUM_FIELDS, BuyerStatus, enum_values
from services.field_normalizer import FieldNormalizer
from services.row_validator import RowValidator
from utils.datetime_utils import ensure_utc, parse_utc_iso

logger = logging.getLogger(__name__)

ADMIN_ROLE = 'admin'
DEFAULT_PAGE_SIZE = 10
MAX_PAGE_SIZE = 50
DEFAULT_SORT = 'updatedAt_desc'

EXPORT_HEADERS = [
    'fullName', 'email', 'phone', 'city', 'propertyType', 'bhk', 'purpose',
    'budgetMin', 'budgetMax', 'timeline', 'source', 'notes', 'tags', 'status'
]


@dataclass
class BuyerQuery:
    """Listing parameters for the buyers table"""
    page: int = 1
    page_size: int = DEFAULT_PAGE_SIZE
    q: Optional[str] = None
    city: Optional[str] = None
    property_type: Optional[str] = None
    status: Optional[str] = None
    timeline: Optional[str] = None
    sort: str = DEFAULT_SORT

    @classmethod
    def from_args(cls, args: Mapping[str, Any], default_page_size: int = DEFAULT_PAGE_SIZE) -> Result['BuyerQuery']:
        """
        Build a query from request arguments (camelCase keys, string values).

        Returns:
            Result[BuyerQuery], or failure with code INVALID_QUERY listing
            every bad parameter in metadata['errors']
        """
        errors: List[str] = []

        page = cls._parse_int(args.get('page'), 1, 'page', errors)
        if page is not None and page < 1:
            errors.append('page must be at least 1')

        page_size = cls._parse_int(args.get('pageSize'), default_page_size, 'pageSize', errors)
        if page_size is not None and not 1 <= page_size <= MAX_PAGE_SIZE:
            errors.append(f'pageSize must be between 1 and {MAX_PAGE_SIZE}')

        filters = {}
        for field_name in FILTER_COLUMNS:
            value = (args.get(field_name) or '').strip()
            if not value:
                continue
            allowed = enum_values(ENUM_FIELDS[field_name])
            if value not in allowed:
                errors.append(f"{field_name} must be one of: {', '.join(allowed)} (provided: {value})")
            filters[field_name] = value

        sort = (args.get('sort') or DEFAULT_SORT).strip()
        if sort not in SORT_OPTIONS:
            errors.append(f"sort must be one of: {', '.join(SORT_OPTIONS)} (provided: {sort})")

        if errors:
            return Result.failure('Invalid query parameters', code=ErrorCode.INVALID_QUERY,
                                  metadata={'errors': errors})

        return Result.success(cls(
            page=page,
            page_size=page_size,
            q=(args.get('q') or '').strip() or None,
            city=filters.get('city'),
            property_type=filters.get('propertyType'),
            status=filters.get('status'),
            timeline=filters.get('timeline'),
            sort=sort
        ))

    @staticmethod
    def _parse_int(value, default, name, errors):
        if value is None or value == '':
            return default
        try:
            return int(value)
        except (TypeError, ValueError):
            errors.append(f'{name} must be an integer (provided: {value})')
            return None

    def filters(self) -> Dict[str, Optional[str]]:
        return {
            'city': self.city,
            'propertyType': self.property_type,
            'status': self.status,
            'timeline': self.timeline,
        }


class BuyerService:
    """Service for managing buyer leads using Result pattern and Repository"""

    def __init__(self,
                 buyer_repository: BuyerRepository,
                 buyer_history_repository: BuyerHistoryRepository,
                 default_page_size: int = DEFAULT_PAGE_SIZE):
        self.buyer_repository = buyer_repository
        self.buyer_history_repository = buyer_history_repository
        self.default_page_size = default_page_size

    # Create / read / update / delete

    def create_buyer(self, data: Dict[str, Any], owner_id: str) -> Result[Buyer]:
        """
        Create a buyer from camelCase field data.

        The data goes through the same cleaning and validation as an
        imported CSV row.

        Returns:
            Result[Buyer], or VALIDATION_ERROR with metadata['errors']
        """
        cleaned, errors, warnings = self._prepare(data)
        if errors:
            return Result.failure('Validation failed', code=ErrorCode.VALIDATION_ERROR,
                                  metadata={'errors': errors, 'warnings': warnings})

        record = Buyer.columns_from_fields(cleaned)
        record.setdefault('tags', '[]')
        record['status'] = record.get('status') or BuyerStatus.NEW.value
        record['owner_id'] = owner_id

        try:
            buyer = self.buyer_repository.create(**record)
            self.buyer_history_repository.record(buyer.id, owner_id, {'created': buyer.to_dict()})
            self.buyer_repository.commit()
        except Exception as e:
            logger.error(f"Failed to create buyer: {e}")
            self.buyer_repository.rollback()
            return Result.failure(f"Failed to create buyer: {e}", code=ErrorCode.DATABASE_ERROR)

        logger.info(f"Created buyer {buyer.id} for owner {owner_id}")
        return Result.success(buyer, metadata={'warnings': warnings} if warnings else None)

    def get_buyer(self, buyer_id: str, user_id: str, user_role: str) -> Result[Buyer]:
        buyer = self.buyer_repository.get_by_id(buyer_id)
        if buyer is None:
            return Result.failure('Buyer not found', code=ErrorCode.NOT_FOUND)
        if not self._can_access(buyer, user_id, user_role):
            return Result.failure('Access denied: You can only view your own buyers',
                                  code=ErrorCode.ACCESS_DENIED)
        return Result.success(buyer)

    def update_buyer(self, buyer_id: str, data: Dict[str, Any], user_id: str, user_role: str) -> Result[Buyer]:
        """
        Update a buyer with optimistic concurrency.

        Args:
            buyer_id: Buyer to update
            data: Changed fields plus ``updatedAt``, the timestamp the
                caller last saw. Fields not present keep their value.
            user_id: User making the change
            user_role: 'admin' may edit any buyer

        Returns:
            Result[Buyer] with the updated buyer; failure codes NOT_FOUND,
            ACCESS_DENIED, STALE_DATA, VALIDATION_ERROR or DATABASE_ERROR
        """
        seen_updated_at = data.get('updatedAt')
        if not seen_updated_at:
            return Result.failure('updatedAt is required', code=ErrorCode.VALIDATION_ERROR,
                                  metadata={'errors': ['updatedAt is required']})
        try:
            seen_updated_at = parse_utc_iso(str(seen_updated_at))
        except ValueError:
            return Result.failure('updatedAt must be an ISO 8601 datetime', code=ErrorCode.VALIDATION_ERROR,
                                  metadata={'errors': [f"updatedAt must be an ISO 8601 datetime (provided: {data['updatedAt']})"]})

        buyer = self.buyer_repository.get_by_id(buyer_id)
        if buyer is None:
            return Result.failure('Buyer not found', code=ErrorCode.NOT_FOUND)
        if not self._can_access(buyer, user_id, user_role):
            return Result.failure('Access denied: You can only edit your own buyers',
                                  code=ErrorCode.ACCESS_DENIED)
        if ensure_utc(buyer.updated_at) != seen_updated_at:
            return Result.failure('Record has been modified by someone else. Please refresh and try again.',
                                  code=ErrorCode.STALE_DATA)

        current = buyer.to_dict()
        merged = {field_name: current[field_name] for field_name in BUYER_FIELD_COLUMNS}
        merged.update({key: value for key, value in data.items() if key in BUYER_FIELD_COLUMNS})

        cleaned, errors, warnings = self._prepare(merged)
        if errors:
            return Result.failure('Validation failed', code=ErrorCode.VALIDATION_ERROR,
                                  metadata={'errors': errors, 'warnings': warnings})

        cleaned['status'] = cleaned.get('status') or BuyerStatus.NEW.value
        diff = {}
        for field_name in BUYER_FIELD_COLUMNS:
            old_value = current.get(field_name)
            new_value = cleaned.get(field_name)
            if field_name == 'tags':
                new_value = new_value or []
            if old_value != new_value:
                diff[field_name] = [old_value, new_value]

        if not diff:
            return Result.success(buyer, metadata={'changed': False})

        updates = Buyer.columns_from_fields({field_name: cleaned.get(field_name) for field_name in diff})
        try:
            self.buyer_repository.update(buyer, **updates)
            self.buyer_history_repository.record(buyer.id, user_id, diff)
            self.buyer_repository.commit()
        except Exception as e:
            logger.error(f"Failed to update buyer {buyer_id}: {e}")
            self.buyer_repository.rollback()
            return Result.failure(f"Failed to update buyer: {e}", code=ErrorCode.DATABASE_ERROR)

        logger.info(f"Updated buyer {buyer_id}: {', '.join(diff)}")
        return Result.success(buyer, metadata={'changed': True, 'warnings': warnings})

    def delete_buyer(self, buyer_id: str, user_id: str, user_role: str) -> Result[bool]:
        buyer = self.buyer_repository.get_by_id(buyer_id)
        if buyer is None:
            return Result.failure('Buyer not found', code=ErrorCode.NOT_FOUND)
        if not self._can_access(buyer, user_id, user_role):
            return Result.failure('Access denied: You can only delete your own buyers',
                                  code=ErrorCode.ACCESS_DENIED)

        if not self.buyer_repository.delete(buyer):
            return Result.failure('Failed to delete buyer', code=ErrorCode.DATABASE_ERROR)
        try:
            self.buyer_repository.commit()
        except Exception as e:
            return Result.failure(f"Failed to delete buyer: {e}", code=ErrorCode.DATABASE_ERROR)

        logger.info(f"Deleted buyer {buyer_id}")
        return Result.success(True)

    # Listing

    def parse_query(self, args: Mapping[str, Any]) -> Result[BuyerQuery]:
        """BuyerQuery.from_args using the configured page size"""
        return BuyerQuery.from_args(args, default_page_size=self.default_page_size)

    def list_buyers(self, query: BuyerQuery, user_id: str, user_role: str) -> PagedResult[List[Buyer]]:
        """
        Get one page of buyers. Non-admin users only see buyers they own.
        """
        pagination = PaginationParams(page=query.page, per_page=query.page_size)
        page = self.buyer_repository.get_filtered_page(
            pagination,
            owner_id=self._owner_scope(user_id, user_role),
            search_query=query.q,
            filters=query.filters(),
            sort=query.sort
        )
        return PagedResult.paginated(
            data=page.items,
            total=page.total,
            page=page.page,
            per_page=page.per_page
        )

    def get_buyer_history(self, buyer_id: str, limit: int = 5) -> Result[List[Dict[str, Any]]]:
        """Most recent changes first, with diffs decoded"""
        entries = self.buyer_history_repository.get_recent_for_buyer(buyer_id, limit=limit)
        return Result.success([entry.to_dict() for entry in entries])

    def export_buyers_csv(self, query: BuyerQuery, user_id: str, user_role: str) -> Result[str]:
        """
        Export every buyer matching the list filters as CSV text.

        Paging is ignored and rows are ordered by last update, newest first.
        The output can be fed back to the CSV import.
        """
        buyers = self.buyer_repository.get_filtered(
            owner_id=self._owner_scope(user_id, user_role),
            search_query=query.q,
            filters=query.filters(),
            sort=DEFAULT_SORT
        )

        output = io.StringIO()
        writer = csv.writer(output, lineterminator='\n')
        writer.writerow(EXPORT_HEADERS)
        for buyer in buyers:
            writer.writerow(self._export_row(buyer))

        return Result.success(output.getvalue(), metadata={'count': len(buyers)})

    # Helpers

    @staticmethod
    def _prepare(data: Dict[str, Any]) -> Tuple[Dict[str, Any], List[str], List[str]]:
        fields = {key: value for key, value in data.items() if key in BUYER_FIELD_COLUMNS}
        cleaned = FieldNormalizer.clean(fields)
        validation = RowValidator.validate(cleaned)
        return cleaned, validation.errors, validation.warnings

    @staticmethod
    def _can_access(buyer: Buyer, user_id: str, user_role: str) -> bool:
        return user_role == ADMIN_ROLE or buyer.owner_id == user_id

    @staticmethod
    def _owner_scope(user_id: str, user_role: str) -> Optional[str]:
        return None if user_role == ADMIN_ROLE else user_id

    @staticmethod
    def _export_row(buyer: Buyer) -> List[Any]:
        values = {
            'fullName': buyer.full_name,
            'email': buyer.email or '',
            'phone': buyer.phone,
            'city': buyer.city,
            'propertyType': buyer.property_type,
            'bhk': buyer.bhk or '',
            'purpose': buyer.purpose,
            'budgetMin': buyer.budget_min if buyer.budget_min is not None else '',
            'budgetMax': buyer.budget_max if buyer.budget_max is not None else '',
            'timeline': buyer.timeline,
            'source': buyer.source,
            'notes': ' '.join((buyer.notes or '').splitlines()),
            'tags': buyer.tags or '[]',
            'status': buyer.status,
        }
        return [values[header] for header in EXPORT_HEADERS]
