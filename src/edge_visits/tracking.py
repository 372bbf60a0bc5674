"""
Decides which inbound requests are tracked as page visits.

Only page navigations are interesting: static assets, API calls and
operational pages would drown real visits in noise, and anything other
than GET is not a page view.

This is a pure predicate. It runs before the recorder is scheduled, so
a rejected request never touches the store.
"""

from dataclasses import dataclass

from .config import DEFAULT_ASSET_EXTENSIONS, DEFAULT_EXCLUDED_PAGES

TRACKED_METHOD = "GET"
API_PREFIX = "/api/"


@dataclass(frozen=True)
class TrackingFilter:
    """
    Tracking rules for a site.

    Attributes:
        asset_extensions: Lowercase path suffixes treated as static assets
        api_prefix: Path prefix of the API namespace
        excluded_pages: Exact paths never tracked
    """
    asset_extensions: tuple[str, ...] = DEFAULT_ASSET_EXTENSIONS
    api_prefix: str = API_PREFIX
    excluded_pages: tuple[str, ...] = DEFAULT_EXCLUDED_PAGES

    def should_track(self, method: str, path: str) -> bool:
        """Return True if a request is a trackable page visit."""
        if method != TRACKED_METHOD:
            return False

        pathname = path.lower()
        if pathname.endswith(tuple(ext.lower() for ext in self.asset_extensions)):
            return False

        if pathname.startswith(self.api_prefix.lower()):
            return False
        if pathname in (page.lower() for page in self.excluded_pages):
            return False

        return True


DEFAULT_FILTER = TrackingFilter()


def should_track(method: str, path: str) -> bool:
    """Check a request against the default tracking rules."""
    return DEFAULT_FILTER.should_track(method, path)
