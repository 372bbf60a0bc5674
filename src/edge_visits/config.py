"""
Configuration for Edge Visits.
"""
import logging
import os
from dataclasses import dataclass, field

logger = logging.getLogger(__name__)

ENV_PREFIX = "EDGE_VISITS_"

# Hostnames that are never redirected to the canonical host
DEFAULT_LOCAL_HOSTS = ("localhost", "127.0.0.1", "::1", "testserver")

DEFAULT_ASSET_EXTENSIONS = (
    ".css", ".js",
    ".png", ".jpg", ".jpeg", ".gif", ".ico", ".svg",
    ".woff", ".woff2", ".ttf", ".eot",
)

DEFAULT_EXCLUDED_PAGES = ("/settings", "/settings.html")


def _split_env_list(value: str) -> tuple[str, ...]:
    return tuple(v.strip() for v in value.split(",") if v.strip())


@dataclass
class VisitsConfig:
    """Configuration for a single Edge Visits deployment.

    Either the three D1 settings or ``sqlite_path`` select the visit store.
    With neither set the app still serves assets, but tracking is a silent
    no-op and ``/api/visits`` answers "Database not configured".
    """

    # Routing
    canonical_host: str | None = None  # e.g. "example.com"; None disables redirects
    local_hosts: tuple[str, ...] = DEFAULT_LOCAL_HOSTS
    assets_dir: str | None = None

    # Cloudflare D1 store
    d1_database_id: str | None = None
    cf_account_id: str | None = None
    cf_api_token: str | None = None

    # Local SQLite store
    sqlite_path: str | None = None

    # Tracking rules
    api_prefix: str = "/api/"
    excluded_pages: tuple[str, ...] = DEFAULT_EXCLUDED_PAGES
    asset_extensions: tuple[str, ...] = DEFAULT_ASSET_EXTENSIONS

    # Query endpoint
    cors_allow_origin: str = "*"

    # Store client timeout
    timeout_seconds: float = field(default=30.0)

    @property
    def has_d1(self) -> bool:
        """Check if all Cloudflare D1 settings are present."""
        return bool(self.d1_database_id and self.cf_account_id and self.cf_api_token)

    @property
    def has_store(self) -> bool:
        """Check if any visit store is configured."""
        return self.has_d1 or bool(self.sqlite_path)

    def is_local_host(self, hostname: str) -> bool:
        """Check if hostname is a local-development host."""
        return hostname in self.local_hosts or hostname.startswith("127.")

    def __post_init__(self):
        """Validate configuration after initialization."""
        self._validate_store()
        if self.canonical_host:
            self.canonical_host = self.canonical_host.strip().lower()
        if not self.api_prefix.startswith("/"):
            raise ValueError(f"api_prefix must start with '/': {self.api_prefix!r}")

    def _validate_store(self) -> None:
        d1_settings = [self.d1_database_id, self.cf_account_id, self.cf_api_token]
        if any(d1_settings) and not all(d1_settings):
            raise ValueError(
                "D1 store requires d1_database_id, cf_account_id and cf_api_token "
                "to be set together"
            )

        if self.has_d1 and self.sqlite_path:
            logger.warning(
                f"Both D1 and SQLite stores configured; using D1 and ignoring "
                f"sqlite_path={self.sqlite_path}"
            )

    @classmethod
    def from_env(cls, environ: dict[str, str] | None = None) -> "VisitsConfig":
        """Build a config from ``EDGE_VISITS_*`` environment variables.

        Recognized variables: CANONICAL_HOST, LOCAL_HOSTS, ASSETS_DIR,
        D1_DATABASE_ID, CF_ACCOUNT_ID, CF_API_TOKEN, SQLITE_PATH, API_PREFIX,
        EXCLUDED_PAGES, ASSET_EXTENSIONS, CORS_ALLOW_ORIGIN, TIMEOUT_SECONDS.
        List values are comma separated.
        """
        env = os.environ if environ is None else environ

        def get(name: str) -> str | None:
            value = env.get(ENV_PREFIX + name)
            return value if value else None

        kwargs = {
            "canonical_host": get("CANONICAL_HOST"),
            "assets_dir": get("ASSETS_DIR"),
            "d1_database_id": get("D1_DATABASE_ID"),
            "cf_account_id": get("CF_ACCOUNT_ID"),
            "cf_api_token": get("CF_API_TOKEN"),
            "sqlite_path": get("SQLITE_PATH"),
        }
        if get("LOCAL_HOSTS"):
            kwargs["local_hosts"] = _split_env_list(get("LOCAL_HOSTS"))
        if get("API_PREFIX"):
            kwargs["api_prefix"] = get("API_PREFIX")
        if get("EXCLUDED_PAGES"):
            kwargs["excluded_pages"] = _split_env_list(get("EXCLUDED_PAGES"))
        if get("ASSET_EXTENSIONS"):
            kwargs["asset_extensions"] = _split_env_list(get("ASSET_EXTENSIONS"))
        if get("CORS_ALLOW_ORIGIN"):
            kwargs["cors_allow_origin"] = get("CORS_ALLOW_ORIGIN")
        if get("TIMEOUT_SECONDS"):
            kwargs["timeout_seconds"] = float(get("TIMEOUT_SECONDS"))

        return cls(**kwargs)
