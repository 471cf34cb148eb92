"""
Ad insight repository - read access to stored analytics rows
"""
from datetime import date
from typing import List
from sqlalchemy.orm import Session

from creativesync.models import AdInsight


class AdInsightRepository:
    def __init__(self, db: Session):
        self.db = db

    def get_creative_ids_for_date_range(self, client_id: str, start_date: date, end_date: date) -> List[str]:
        """Distinct creative ids of rows overlapping [start_date, end_date], first seen first."""
        rows = (
            self.db.query(AdInsight.creative_id)
            .filter(
                AdInsight.client_id == client_id,
                AdInsight.creative_id.isnot(None),
                AdInsight.date_start <= end_date,
                AdInsight.date_stop >= start_date,
            )
            .order_by(AdInsight.date_start, AdInsight.creative_id)
            .all()
        )
        return list(dict.fromkeys(row[0] for row in rows if row[0]))
