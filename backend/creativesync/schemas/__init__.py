"""
Pydantic schemas for creative records.
"""

from .creative import (
    AssemblyMode,
    MediaType,
    ChildAttachment,
    CreativeRecord,
    CreativeListResponse,
    DateRangeSyncResult,
)

__all__ = [
    "AssemblyMode",
    "MediaType",
    "ChildAttachment",
    "CreativeRecord",
    "CreativeListResponse",
    "DateRangeSyncResult",
]
