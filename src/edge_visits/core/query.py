"""
Filter predicate builder for the visits table.

The same ``VisitPredicate`` is rendered into both the row fetch and the
count statement, so the page of rows and the pagination total are always
computed over the same row set.
"""
import re
from dataclasses import dataclass, field

from .models import VisitFilters

TABLE = "visits"

# Bare calendar date as sent by date pickers (YYYY-MM-DD)
BARE_DATE = re.compile(r"^\d{4}-\d{2}-\d{2}$")

START_OF_DAY = "T00:00:00.000Z"
END_OF_DAY = "T23:59:59.999Z"

LIKE_ESCAPE = "\\"


@dataclass(frozen=True)
class VisitPredicate:
    """Rendered WHERE clause plus its bound values.

    Attributes:
        clauses: Individual conditions, each with ``?`` placeholders
        params: Values for the placeholders, in order
    """
    clauses: tuple[str, ...] = ()
    params: tuple[str, ...] = field(default_factory=tuple)

    @property
    def where(self) -> str:
        """SQL WHERE clause, or "" when there are no conditions."""
        if not self.clauses:
            return ""
        return "WHERE " + " AND ".join(self.clauses)

    def select_sql(self) -> tuple[str, list]:
        """Row fetch, most recent first, with LIMIT/OFFSET placeholders."""
        sql = f"SELECT * FROM {TABLE} {self.where} ORDER BY timestamp DESC, id DESC LIMIT ? OFFSET ?"
        return _squash(sql), list(self.params)

    def count_sql(self) -> tuple[str, list]:
        """Row count over the same predicate."""
        sql = f"SELECT COUNT(*) AS total FROM {TABLE} {self.where}"
        return _squash(sql), list(self.params)


def _squash(sql: str) -> str:
    return " ".join(sql.split())


def escape_like(value: str) -> str:
    """Escape LIKE wildcards so user text only matches literally."""
    return (
        value.replace(LIKE_ESCAPE, LIKE_ESCAPE * 2)
        .replace("%", LIKE_ESCAPE + "%")
        .replace("_", LIKE_ESCAPE + "_")
    )


def contains(value: str) -> str:
    """Bound value for a substring match."""
    return f"%{escape_like(value)}%"


def expand_start(value: str) -> str:
    """Expand a bare date to the first millisecond of that day (UTC)."""
    if BARE_DATE.match(value):
        return value + START_OF_DAY
    return value


def expand_end(value: str) -> str:
    """Expand a bare date to the last millisecond of that day (UTC)."""
    if BARE_DATE.match(value):
        return value + END_OF_DAY
    return value


def build_filter(filters: VisitFilters | None) -> VisitPredicate:
    """Build the WHERE predicate for a set of visit filters.

    Uses parameterized queries to prevent SQL injection; filter values are
    only ever placed in ``params``. Empty filters produce no clause at all.
    """
    if filters is None:
        return VisitPredicate()

    clauses = []
    params = []

    like = f"LIKE ? ESCAPE '{LIKE_ESCAPE}'"

    if filters.ip:
        clauses.append(f"ip {like}")
        params.append(contains(filters.ip))

    # Date range (inclusive of whole boundary days)
    if filters.start_date:
        clauses.append("timestamp >= ?")
        params.append(expand_start(filters.start_date))
    if filters.end_date:
        clauses.append("timestamp <= ?")
        params.append(expand_end(filters.end_date))

    # Geographic filters
    if filters.country:
        clauses.append("country = ?")
        params.append(filters.country)
    if filters.continent:
        clauses.append("continent = ?")
        params.append(filters.continent)
    if filters.region:
        clauses.append(f"region {like}")
        params.append(contains(filters.region))

    # Only an explicit "true"/"false" filters; anything else is ignored
    if filters.is_eu in ("true", "false"):
        clauses.append("is_eu_country = ?")
        params.append(filters.is_eu)

    if filters.path:
        clauses.append(f"path {like}")
        params.append(contains(filters.path))

    return VisitPredicate(clauses=tuple(clauses), params=tuple(params))
