"""
Core visits module.

Contains the record schema, the filter predicate builder, the store
backends and the client that reads and writes visit rows.
"""

from .client import VisitsClient
from .database import D1Database, SQLiteDatabase, create_database
from .models import (
    BeaconPayload,
    EdgeMetadata,
    VisitFilters,
    VisitPage,
    VisitRecord,
)
from .query import VisitPredicate, build_filter

__all__ = [
    "VisitRecord", "BeaconPayload", "EdgeMetadata", "VisitFilters", "VisitPage",
    "VisitPredicate", "build_filter",
    "D1Database", "SQLiteDatabase", "create_database",
    "VisitsClient",
]
