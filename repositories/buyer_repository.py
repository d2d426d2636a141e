"""
BuyerRepository - Data access layer for Buyer entities
Isolates all database queries related to buyer leads
"""

from typing import List, Optional, Dict, Any
from sqlalchemy import or_
from sqlalchemy.orm import Query
from sqlalchemy.exc import SQLAlchemyError
from repositories.base_repository import BaseRepository, PaginationParams, PaginatedResult, SortOrder
from crm_database import Buyer
import logging

logger = logging.getLogger(__name__)

# Filterable API field -> Buyer column
FILTER_COLUMNS = {
    'city': 'city',
    'propertyType': 'property_type',
    'status': 'status',
    'timeline': 'timeline',
}

# Sort key accepted by the list endpoint -> (column, order)
SORT_OPTIONS = {
    'updatedAt_desc': ('updated_at', SortOrder.DESC),
    'updatedAt_asc': ('updated_at', SortOrder.ASC),
    'createdAt_desc': ('created_at', SortOrder.DESC),
    'createdAt_asc': ('created_at', SortOrder.ASC),
}


class BuyerRepository(BaseRepository[Buyer]):
    """Repository for Buyer data access"""

    def __init__(self, session):
        super().__init__(session, Buyer)

    def search(self, query: str, fields: Optional[List[str]] = None, limit: Optional[int] = None) -> List[Buyer]:
        """
        Search buyers by name, phone or email.

        Args:
            query: Search text; empty returns no results
            fields: Columns to search (default: full_name, phone, email)
            limit: Maximum number of results
        """
        if not query:
            return []

        try:
            query_obj = self.session.query(Buyer).filter(self._search_condition(query, fields))
            if limit:
                query_obj = query_obj.limit(limit)
            return query_obj.all()
        except SQLAlchemyError as e:
            logger.error(f"Error searching buyers: {e}")
            return []

    def find_by_phone(self, phone: str) -> List[Buyer]:
        return self.find_by(phone=phone)

    def find_by_owner(self, owner_id: str) -> List[Buyer]:
        return self.find_by(owner_id=owner_id)

    def get_filtered_page(self,
                          pagination: PaginationParams,
                          owner_id: Optional[str] = None,
                          search_query: Optional[str] = None,
                          filters: Optional[Dict[str, Any]] = None,
                          sort: str = 'updatedAt_desc') -> PaginatedResult[Buyer]:
        """
        Get one page of buyers matching the list filters.

        Args:
            pagination: Page number and size
            owner_id: Restrict to this owner (None for all owners)
            search_query: Free text matched against name, phone and email
            filters: Exact-match filters keyed by API field name
            sort: One of SORT_OPTIONS
        """
        try:
            query = self._filtered_query(owner_id, search_query, filters, sort)
            total = query.count()
            items = query.offset(pagination.offset).limit(pagination.limit).all()
            return PaginatedResult(items=items, total=total, page=pagination.page, per_page=pagination.per_page)
        except SQLAlchemyError as e:
            logger.error(f"Error getting filtered buyers page: {e}")
            return PaginatedResult(items=[], total=0, page=pagination.page, per_page=pagination.per_page)

    def get_filtered(self,
                     owner_id: Optional[str] = None,
                     search_query: Optional[str] = None,
                     filters: Optional[Dict[str, Any]] = None,
                     sort: str = 'updatedAt_desc') -> List[Buyer]:
        """Same as get_filtered_page but without paging (used for export)"""
        try:
            return self._filtered_query(owner_id, search_query, filters, sort).all()
        except SQLAlchemyError as e:
            logger.error(f"Error getting filtered buyers: {e}")
            return []

    def _filtered_query(self, owner_id, search_query, filters, sort) -> Query:
        query = self.session.query(Buyer)

        if owner_id is not None:
            query = query.filter(Buyer.owner_id == owner_id)

        for field_name, value in (filters or {}).items():
            column = FILTER_COLUMNS.get(field_name)
            if column and value:
                query = query.filter(getattr(Buyer, column) == value)

        if search_query:
            query = query.filter(self._search_condition(search_query))

        order_by, order = SORT_OPTIONS.get(sort, SORT_OPTIONS['updatedAt_desc'])
        return self._order_by(query, order_by, order)

    @staticmethod
    def _search_condition(text: str, fields: Optional[List[str]] = None):
        search_fields = fields or ['full_name', 'phone', 'email']
        conditions = [
            getattr(Buyer, field).ilike(f'%{text}%')
            for field in search_fields
            if hasattr(Buyer, field)
        ]
        return or_(*conditions)
