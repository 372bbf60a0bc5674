"""
Client for writing and reading visit records.

Takes the store handle explicitly; nothing here looks up bindings from
module or environment state.
"""
import logging
from typing import Optional

from ..errors import StoreNotConfiguredError
from .database import Database
from .models import VisitFilters, VisitPage, VisitRecord
from .query import TABLE, build_filter

logger = logging.getLogger(__name__)


class VisitsClient:
    """Append-only writer and paginated reader for the visits table."""

    def __init__(self, database: Optional[Database]):
        self.database = database

    @property
    def is_configured(self) -> bool:
        return self.database is not None

    def _require_database(self) -> Database:
        if self.database is None:
            raise StoreNotConfiguredError()
        return self.database

    # =========================================================================
    # WRITES
    # =========================================================================

    async def insert(self, record: VisitRecord) -> None:
        """Append one row. Rows are never updated or deleted."""
        database = self._require_database()
        row = record.to_row()
        columns = ", ".join(row.keys())
        placeholders = ", ".join("?" for _ in row)
        await database.execute(
            f"INSERT INTO {TABLE} ({columns}) VALUES ({placeholders})",
            list(row.values()),
        )

    # =========================================================================
    # READS
    # =========================================================================

    async def query_visits(self, filters: VisitFilters) -> VisitPage:
        """Fetch one page of visits, most recent first, plus the total count.

        The row fetch and the count share one predicate. They run one after
        the other without a transaction, so under concurrent writes the total
        may be off by the rows inserted in between.
        """
        database = self._require_database()
        predicate = build_filter(filters)

        select_sql, select_params = predicate.select_sql()
        rows = await database.query(select_sql, select_params + [filters.limit, filters.offset])

        count_sql, count_params = predicate.count_sql()
        count = await database.query(count_sql, count_params)
        total = (count[0].get("total") if count else 0) or 0

        return VisitPage(
            visits=rows,
            total=total,
            limit=filters.limit,
            offset=filters.offset,
        )
