"""
Creative repository - persistence for normalized creative records
"""
import logging
from typing import Any, Dict, List, Optional
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from creativesync.models import Creative

logger = logging.getLogger(__name__)

CREATIVE_COLUMNS = frozenset(Creative.__table__.columns.keys()) - {"id", "created_at", "updated_at"}


class CreativeRepository:
    """Store keyed by the Graph creative id"""

    def __init__(self, db: Session):
        self.db = db

    @staticmethod
    def _apply(creative: Creative, fields: Dict[str, Any]) -> None:
        for key, value in fields.items():
            if key in CREATIVE_COLUMNS:
                setattr(creative, key, value)

    def find_by_id(self, creative_id: str) -> Optional[Creative]:
        return self.db.query(Creative).filter(Creative.creative_id == creative_id).first()

    def find_by_ids(self, creative_ids: List[str]) -> List[Creative]:
        if not creative_ids:
            return []
        return self.db.query(Creative).filter(Creative.creative_id.in_(creative_ids)).all()

    def upsert(self, fields: Dict[str, Any]) -> Creative:
        """
        Insert or overwrite a creative by creative_id.

        A concurrent insert of the same id is retried once as an update;
        the last writer wins.
        """
        creative_id = fields.get("creative_id")
        if not creative_id:
            raise ValueError("creative_id is required for upsert")

        try:
            creative = self.find_by_id(creative_id)
            if creative is None:
                creative = Creative()
                self._apply(creative, fields)
                self.db.add(creative)
            else:
                self._apply(creative, fields)
            self.db.commit()
        except IntegrityError:
            self.db.rollback()
            logger.warning(f"Concurrent insert for creative {creative_id}, retrying as update")
            creative = self.find_by_id(creative_id)
            if creative is None:
                raise
            self._apply(creative, fields)
            try:
                self.db.commit()
            except SQLAlchemyError:
                self.db.rollback()
                raise
        except SQLAlchemyError:
            self.db.rollback()
            raise

        self.db.refresh(creative)
        return creative

    def update(self, creative_id: str, fields: Dict[str, Any]) -> Optional[Creative]:
        """Partial update; returns None if the creative is not stored."""
        creative = self.find_by_id(creative_id)
        if creative is None:
            return None
        self._apply(creative, fields)
        try:
            self.db.commit()
        except SQLAlchemyError:
            self.db.rollback()
            raise
        self.db.refresh(creative)
        return creative

    def list_by_ad_account(self, ad_account_id: str, limit: int = 100) -> List[Creative]:
        return (
            self.db.query(Creative)
            .filter(Creative.ad_account_id == ad_account_id, Creative.is_deleted.is_(False))
            .order_by(Creative.last_fetched_at.desc())
            .limit(limit)
            .all()
        )

    def count_by_ad_account(self, ad_account_id: str) -> int:
        return (
            self.db.query(Creative)
            .filter(Creative.ad_account_id == ad_account_id, Creative.is_deleted.is_(False))
            .count()
        )
