from sqlalchemy import Column, String, Date, DateTime, Integer, Numeric, Index, Uuid
from sqlalchemy.sql import func
import uuid
from creativesync.database import Base


class AdInsight(Base):
    __tablename__ = "ad_insights"

    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4)
    client_id = Column(String(64), nullable=False, index=True)
    ad_account_id = Column(String(64), nullable=False)
    ad_id = Column(String(64), nullable=False)
    creative_id = Column(String(64), nullable=True)
    date_start = Column(Date, nullable=False)
    date_stop = Column(Date, nullable=False)
    impressions = Column(Integer, nullable=True)
    clicks = Column(Integer, nullable=True)
    spend = Column(Numeric(14, 2), nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())

    __table_args__ = (
        Index("ix_ad_insights_client_dates", "client_id", "date_start", "date_stop"),
    )

    def __repr__(self):
        return f"<AdInsight(ad_id={self.ad_id}, creative_id={self.creative_id}, date_start={self.date_start})>"
