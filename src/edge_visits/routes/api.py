"""
API routes: beacon ingestion and the visits query endpoint.
"""

import logging

from fastapi import APIRouter, Request
from fastapi.responses import JSONResponse, Response

from ..beacon import BeaconIngestor
from ..config import VisitsConfig
from ..core.client import VisitsClient
from ..core.models import VisitFilters
from ..errors import StoreNotConfiguredError

logger = logging.getLogger(__name__)


def create_api_router(
    config: VisitsConfig,
    client: VisitsClient,
    ingestor: BeaconIngestor,
) -> APIRouter:
    """Create the API router.

    Args:
        config: Deployment configuration (CORS origin)
        client: Visits client used by the query endpoint
        ingestor: Beacon ingestor used by the beacon endpoint
    """
    router = APIRouter(tags=["visits"])

    cors_headers = {"Access-Control-Allow-Origin": config.cors_allow_origin}

    # -------------------------------------------------------------------------
    # Beacon
    # -------------------------------------------------------------------------

    @router.post("/beacon")
    async def beacon(request: Request):
        """Store a client-submitted beacon."""
        body = await request.body()
        status, payload = await ingestor.ingest(body)
        return JSONResponse(payload, status_code=status)

    # -------------------------------------------------------------------------
    # Visits query
    # -------------------------------------------------------------------------

    @router.get("/visits")
    async def visits(request: Request):
        """Filtered, paginated visit rows, most recent first."""
        filters = VisitFilters.from_query_params(request.query_params)

        try:
            page = await client.query_visits(filters)
        except StoreNotConfiguredError as e:
            logger.error("Visits query failed: store not configured")
            return JSONResponse({"error": str(e)}, status_code=500)
        except Exception as e:
            logger.error(f"Error querying visits: {e}")
            return JSONResponse({"error": str(e)}, status_code=500)

        return JSONResponse(page.model_dump(), headers=cors_headers)

    @router.options("/visits")
    async def visits_preflight():
        """CORS preflight for cross-origin dashboards."""
        return Response(
            status_code=204,
            headers={
                **cors_headers,
                "Access-Control-Allow-Methods": "GET, OPTIONS",
                "Access-Control-Allow-Headers": "Content-Type",
            },
        )

    @router.api_route("/{rest:path}", methods=["GET", "POST", "PUT", "PATCH", "DELETE"])
    async def not_found(rest: str):
        """Unknown API paths never fall through to the asset store."""
        return JSONResponse({"error": "Not found"}, status_code=404)

    return router
