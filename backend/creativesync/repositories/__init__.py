from creativesync.repositories.creatives import CreativeRepository
from creativesync.repositories.ad_insights import AdInsightRepository

__all__ = [
    "CreativeRepository",
    "AdInsightRepository",
]
