"""
Application wiring.

Request flow:
1. CanonicalHostMiddleware answers 301 for any non-canonical host.
2. API paths dispatch to the beacon and visits routes.
3. Everything else is served by the asset store; if the tracking filter
   accepts the request, the visit is recorded as a background task that
   runs after the response has been sent.
"""

import logging
from contextlib import asynccontextmanager
from typing import Callable

from fastapi import BackgroundTasks, FastAPI, Request
from fastapi.responses import RedirectResponse

from .assets import AssetStore, DirectoryAssetStore, EmptyAssetStore
from .beacon import BeaconIngestor
from .config import VisitsConfig
from .core.client import VisitsClient
from .core.database import D1Database, Database, create_database
from .edge import EdgeMetadataProvider, edge_metadata_from_headers
from .errors import StoreQueryError
from .recorder import VisitRecorder
from .routes.api import create_api_router
from .script import beacon_script
from .tracking import TrackingFilter

logger = logging.getLogger(__name__)

ASSET_METHODS = ["GET", "HEAD", "POST", "PUT", "PATCH", "DELETE", "OPTIONS"]


class CanonicalHostMiddleware:
    """Redirect every request on a non-canonical host to the canonical one.

    Path and query string are kept unchanged. Local-development hosts are
    left alone so the app can be run on localhost.
    """

    def __init__(self, app, canonical_host: str, is_local_host: Callable[[str], bool]):
        self.app = app
        self.canonical_host = canonical_host
        self.is_local_host = is_local_host

    def redirect_url(self, request: Request) -> str | None:
        """Canonical URL for a request, or None if no redirect is needed."""
        hostname = (request.url.hostname or "").lower()
        if hostname == self.canonical_host or self.is_local_host(hostname):
            return None

        # raw_path keeps percent-encoding ("%3F" must not become "?")
        raw_path = request.scope.get("raw_path")
        path = raw_path.split(b"?", 1)[0].decode("latin-1") if raw_path else request.scope["path"]

        url = f"https://{self.canonical_host}{path}"
        if request.url.query:
            url += f"?{request.url.query}"
        return url

    async def __call__(self, scope, receive, send):
        if scope["type"] != "http":
            await self.app(scope, receive, send)
            return

        url = self.redirect_url(Request(scope))
        if url is None:
            await self.app(scope, receive, send)
            return

        response = RedirectResponse(url, status_code=301)
        await response(scope, receive, send)


class EdgeVisits:
    """Visit tracking, beacon ingestion and the query API for one site."""

    def __init__(
        self,
        config: VisitsConfig,
        database: Database | None = None,
        asset_store: AssetStore | None = None,
        edge_metadata: EdgeMetadataProvider = edge_metadata_from_headers,
    ):
        self.config = config

        if database is None:
            database = create_database(config)
        if asset_store is None:
            if config.assets_dir:
                asset_store = DirectoryAssetStore(config.assets_dir)
            else:
                logger.warning("No assets_dir configured; every page will 404")
                asset_store = EmptyAssetStore()

        self.asset_store = asset_store
        self.client = VisitsClient(database)
        self.recorder = VisitRecorder(self.client, edge_metadata=edge_metadata)
        self.ingestor = BeaconIngestor(self.client)
        self.tracking = TrackingFilter(
            asset_extensions=config.asset_extensions,
            api_prefix=config.api_prefix,
            excluded_pages=config.excluded_pages,
        )
        self.app = self._create_app()

    async def prepare_store(self) -> None:
        """Create the D1 visits table if missing. SQLite does this on open."""
        database = self.client.database
        if not isinstance(database, D1Database):
            return
        try:
            await database.ensure_schema()
        except StoreQueryError as e:
            logger.error(f"Could not prepare D1 visits schema: {e}")

    def _create_app(self) -> FastAPI:
        @asynccontextmanager
        async def lifespan(app: FastAPI):
            await self.prepare_store()
            yield

        app = FastAPI(
            title="Edge Visits",
            docs_url=None,
            redoc_url=None,
            openapi_url=None,
            lifespan=lifespan,
        )
        app.state.visits = self

        app.include_router(
            create_api_router(self.config, self.client, self.ingestor),
            prefix=self.config.api_prefix.rstrip("/"),
        )

        @app.api_route("/{path:path}", methods=ASSET_METHODS, include_in_schema=False)
        async def serve_asset(request: Request, background_tasks: BackgroundTasks):
            """Serve static content and record qualifying page visits."""
            response = await self.asset_store.fetch(request)
            if self.tracking.should_track(request.method, request.url.path):
                background_tasks.add_task(self.recorder.record, request, response.status_code)
            return response

        if self.config.canonical_host:
            app.add_middleware(
                CanonicalHostMiddleware,
                canonical_host=self.config.canonical_host,
                is_local_host=self.config.is_local_host,
            )

        return app

    def beacon_script(self, endpoint: str | None = None) -> str:
        """Inline beacon <script> for templates, posting to this site's API."""
        if endpoint is None:
            endpoint = f"{self.config.api_prefix.rstrip('/')}/beacon"
        return beacon_script(endpoint)


def create_app(
    config: VisitsConfig | None = None,
    database: Database | None = None,
    asset_store: AssetStore | None = None,
    edge_metadata: EdgeMetadataProvider = edge_metadata_from_headers,
) -> FastAPI:
    """Create the ASGI app.

    With no config, settings are read from ``EDGE_VISITS_*`` environment
    variables, so ``uvicorn --factory edge_visits.app:create_app`` works.
    """
    if config is None:
        config = VisitsConfig.from_env()
    return EdgeVisits(
        config,
        database=database,
        asset_store=asset_store,
        edge_metadata=edge_metadata,
    ).app
