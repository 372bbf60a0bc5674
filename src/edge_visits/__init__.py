"""
Visitor analytics for a static site served behind Cloudflare.

Usage:
    from edge_visits import VisitsConfig, create_app

    app = create_app(VisitsConfig(
        canonical_host="example.com",
        assets_dir="public",
        d1_database_id="your-d1-id",
        cf_account_id="your-account-id",
        cf_api_token="your-api-token",
    ))

    # Or configure from EDGE_VISITS_* environment variables:
    #   uvicorn --factory edge_visits.app:create_app

    # In templates: {{ visits.beacon_script() }}
"""

from .app import EdgeVisits, create_app
from .config import VisitsConfig
from .core.models import VisitFilters, VisitPage, VisitRecord
from .tracking import should_track

__version__ = "0.1.0"
__all__ = [
    "setup_edge_visits", "create_app", "EdgeVisits", "VisitsConfig",
    "VisitRecord", "VisitFilters", "VisitPage", "should_track",
]


def setup_edge_visits(config: VisitsConfig, **kwargs) -> EdgeVisits:
    """
    Set up visit tracking for a site.

    Args:
        config: Deployment configuration
        **kwargs: Optional collaborators passed to EdgeVisits
            (database, asset_store, edge_metadata)

    Returns:
        EdgeVisits instance with ``app`` and ``beacon_script()``
    """
    return EdgeVisits(config, **kwargs)
