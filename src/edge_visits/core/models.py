"""
Pydantic models for visit data.
"""
import json
from datetime import datetime, timezone
from typing import Any, ClassVar

from pydantic import BaseModel, ConfigDict, Field

# =============================================================================
# Stored Record
# =============================================================================

class VisitRecord(BaseModel):
    """A single tracked request or beacon submission.

    Every column is text and absence is stored as "" rather than NULL, so
    server-tracked rows and beacon rows can share one sparse table and
    equality filters never have to special-case NULL.
    """

    # Identity / time
    ip: str = ""
    timestamp: str  # ISO-8601 UTC, server-assigned
    user_agent: str = ""
    referrer: str = ""

    # Location
    url: str = ""  # origin
    uri: str = ""  # full URL
    path: str = ""
    query: str = ""
    protocol: str = ""

    # Routing context
    original_host: str = ""
    response_code: str = ""

    # Geography
    country: str = ""
    city: str = ""
    region: str = ""
    region_code: str = ""
    continent: str = ""
    postal_code: str = ""
    metro_code: str = ""
    timezone: str = ""
    latitude: str = ""
    longitude: str = ""
    is_eu_country: str = ""  # "true" / "false"

    # Network
    asn: str = ""
    colo: str = ""
    http_version: str = ""
    tls_version: str = ""
    tls_cipher: str = ""

    # Client-declared
    language: str = ""
    accept_encoding: str = ""
    client_hints_ua: str = ""
    client_hints_platform: str = ""
    client_hints_mobile: str = ""

    # Beacon only
    cookie: str = ""
    epoch_timestamp: str = ""
    hardware_concurrency: str = ""
    cookies_enabled: str = ""
    do_not_track: str = ""
    memory: str = ""
    connection_type: str = ""
    hash: str = ""
    port: str = ""

    COLUMNS: ClassVar[tuple[str, ...]]

    def to_row(self) -> dict[str, str]:
        """Column -> value mapping in table order."""
        return {column: getattr(self, column) for column in self.COLUMNS}


VisitRecord.COLUMNS = tuple(VisitRecord.model_fields.keys())

# Fields only the beacon path ever writes
BEACON_ONLY_FIELDS = (
    "cookie", "epoch_timestamp", "hardware_concurrency", "cookies_enabled",
    "do_not_track", "memory", "connection_type", "hash", "port",
)


def to_text(value: Any) -> str:
    """Store a client-supplied JSON value as text.

    Strings pass through untouched, booleans use the JavaScript spelling,
    null becomes "" and nested values are kept as compact JSON.
    """
    if value is None:
        return ""
    if isinstance(value, str):
        return value
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, (int, float)):
        return str(value)
    return json.dumps(value, separators=(",", ":"), ensure_ascii=False)


def iso_timestamp(moment: datetime | None = None) -> str:
    """UTC instant as ISO-8601 with milliseconds ("2024-01-05T23:59:59.999Z").

    Fixed width, so stored timestamps compare correctly as text.
    """
    moment = (moment or datetime.now(timezone.utc)).astimezone(timezone.utc)
    return moment.strftime("%Y-%m-%dT%H:%M:%S.") + f"{moment.microsecond // 1000:03d}Z"


# =============================================================================
# Inbound Models
# =============================================================================

class BeaconPayload(BaseModel):
    """Client-submitted beacon body.

    Nothing here is validated beyond "is a JSON object": values are copied
    verbatim and must be treated as untrusted data at rest. A client-declared
    ``timestamp`` is accepted but never stored.
    """
    model_config = ConfigDict(extra="ignore", populate_by_name=True)

    visitor_ip: Any = None
    ip: Any = None
    timestamp: Any = None
    user_agent: Any = None
    referrer: Any = None
    url: Any = None
    uri: Any = None
    path: Any = None
    query: Any = None
    protocol: Any = None
    language: Any = None
    http_version: Any = None

    cookie: Any = None
    epoch_timestamp: Any = None
    hardware_concurrency: Any = None
    cookies_enabled: Any = None
    do_not_track: Any = None
    memory: Any = None
    connection_type: Any = None
    hash: Any = None
    port: Any = None

    # Copied as-is from the payload into the record
    COPIED_FIELDS: ClassVar[tuple[str, ...]] = (
        "user_agent", "referrer", "url", "uri", "path", "query", "protocol",
        "language", "http_version",
    ) + BEACON_ONLY_FIELDS

    def to_record(self, timestamp: str) -> VisitRecord:
        """Build the stored record, stamping the server-side timestamp."""
        ip = self.visitor_ip if self.visitor_ip is not None else self.ip
        values = {name: to_text(getattr(self, name)) for name in self.COPIED_FIELDS}
        return VisitRecord(ip=to_text(ip), timestamp=timestamp, **values)


class EdgeMetadata(BaseModel):
    """Connection attributes observed by the serving edge.

    Cloudflare exposes these on ``request.cf`` inside a Worker; behind a
    proxy they arrive as request headers (see ``edge_visits.edge``).
    """
    country: str = ""
    city: str = ""
    region: str = ""
    region_code: str = ""
    continent: str = ""
    postal_code: str = ""
    metro_code: str = ""
    timezone: str = ""
    latitude: str = ""
    longitude: str = ""
    is_eu_country: bool = False
    asn: str = ""
    colo: str = ""
    http_version: str = ""
    tls_version: str = ""
    tls_cipher: str = ""


# =============================================================================
# Query Models
# =============================================================================

DEFAULT_LIMIT = 100
DEFAULT_OFFSET = 0

# Largest value a SQLite / D1 INTEGER parameter can bind
MAX_SQL_INTEGER = 2**63 - 1


class VisitFilters(BaseModel):
    """Filters accepted by the visits query endpoint.

    All filters use parameterized queries to prevent SQL injection.
    Multiple filters are AND'd together. Field aliases match the public
    query-string names (``startDate``, ``isEU``...).
    """
    model_config = ConfigDict(populate_by_name=True)

    ip: str | None = None
    start_date: str | None = Field(default=None, alias="startDate")
    end_date: str | None = Field(default=None, alias="endDate")
    country: str | None = None
    continent: str | None = None
    region: str | None = None
    is_eu: str | None = Field(default=None, alias="isEU")
    path: str | None = None

    limit: int = DEFAULT_LIMIT
    offset: int = DEFAULT_OFFSET

    PARAM_NAMES: ClassVar[tuple[str, ...]] = (
        "ip", "startDate", "endDate", "country", "continent", "region", "isEU", "path",
    )

    @classmethod
    def from_query_params(cls, params) -> "VisitFilters":
        """Parse a query-string mapping (e.g. ``request.query_params``)."""
        values = {name: params.get(name) for name in cls.PARAM_NAMES}
        return cls(
            **values,
            limit=parse_int(params.get("limit"), DEFAULT_LIMIT, minimum=1),
            offset=parse_int(params.get("offset"), DEFAULT_OFFSET, minimum=0),
        )

    def is_empty(self) -> bool:
        """Check if no row filter is set (pagination is ignored)."""
        return not self.active_filters()

    def active_filters(self) -> dict[str, str]:
        """Return dict of active (non-empty) filters keyed by public name."""
        return {
            k: v for k, v in self.model_dump(by_alias=True, exclude={"limit", "offset"}).items()
            if v
        }


def parse_int(value: Any, default: int, minimum: int = 0) -> int:
    """Coerce a query-string value to int, falling back to default.

    Like ``parseInt``, a leading integer is accepted ("25abc" -> 25).
    Values outside [minimum, MAX_SQL_INTEGER] also fall back to default.
    """
    if value is None:
        return default
    text = str(value).strip()
    digits = ""
    for i, ch in enumerate(text):
        if ch in "0123456789" or (i == 0 and ch in "+-"):
            digits += ch
        else:
            break
    try:
        number = int(digits)
    except ValueError:
        return default
    if number < minimum or number > MAX_SQL_INTEGER:
        return default
    return number


class VisitPage(BaseModel):
    """One page of visit rows plus the total matching count."""
    visits: list[dict[str, Any]]
    total: int
    limit: int
    offset: int
