"""
BuyerHistoryRepository - Data access layer for the buyer change log
"""

import json
from typing import List, Optional, Dict, Any
from sqlalchemy import desc
from sqlalchemy.exc import SQLAlchemyError
from repositories.base_repository import BaseRepository
from crm_database import BuyerHistory
from utils.datetime_utils import utc_now
import logging

logger = logging.getLogger(__name__)


class BuyerHistoryRepository(BaseRepository[BuyerHistory]):
    """Repository for BuyerHistory entries"""

    def __init__(self, session):
        super().__init__(session, BuyerHistory)

    def search(self, query: str, fields: Optional[List[str]] = None) -> List[BuyerHistory]:
        """History entries are looked up by buyer, not by text"""
        return []

    def record(self, buyer_id: str, changed_by: str, diff: Dict[str, Any]) -> BuyerHistory:
        """
        Add one history entry.

        Args:
            buyer_id: Buyer the change applies to
            changed_by: User who made the change
            diff: JSON-serializable description of the change
        """
        return self.create(
            buyer_id=buyer_id,
            changed_by=changed_by,
            changed_at=utc_now(),
            diff=json.dumps(diff, default=str)
        )

    def record_many(self, entries: List[Dict[str, Any]]) -> List[BuyerHistory]:
        """Add several entries in one flush; each entry has buyer_id, changed_by and diff"""
        now = utc_now()
        return self.create_many([
            {
                'buyer_id': entry['buyer_id'],
                'changed_by': entry['changed_by'],
                'changed_at': now,
                'diff': json.dumps(entry['diff'], default=str),
            }
            for entry in entries
        ])

    def get_recent_for_buyer(self, buyer_id: str, limit: int = 5) -> List[BuyerHistory]:
        """Newest entries first"""
        try:
            return self.session.query(BuyerHistory).filter(
                BuyerHistory.buyer_id == buyer_id
            ).order_by(desc(BuyerHistory.changed_at)).limit(limit).all()
        except SQLAlchemyError as e:
            logger.error(f"Error getting history for buyer {buyer_id}: {e}")
            return []
