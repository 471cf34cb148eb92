from creativesync.models.creative import Creative
from creativesync.models.ad_insight import AdInsight

__all__ = [
    "Creative",
    "AdInsight",
]
