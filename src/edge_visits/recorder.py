"""
Server-side visit recording.

``VisitRecorder.record`` is meant to run as a background task attached to
the response: it starts after the response has been sent, nobody awaits
its result, and it is never retried or cancelled. Tracking is best-effort
and invisible on failure; a dropped write is simply lost.
"""

import logging
from datetime import datetime
from typing import Callable, Optional

from fastapi import Request

from .core.client import VisitsClient
from .core.models import EdgeMetadata, VisitRecord, iso_timestamp
from .edge import EdgeMetadataProvider, client_ip, edge_metadata_from_headers, primary_language

logger = logging.getLogger(__name__)


class VisitRecorder:
    """Builds normalized visit records from requests and appends them."""

    def __init__(
        self,
        client: VisitsClient,
        edge_metadata: EdgeMetadataProvider = edge_metadata_from_headers,
        clock: Optional[Callable[[], datetime]] = None,
    ):
        self.client = client
        self.edge_metadata = edge_metadata
        self.clock = clock

    def build_record(
        self,
        request: Request,
        edge: EdgeMetadata,
        response_code: int | str = "",
    ) -> VisitRecord:
        """Derive every server-observable field of a visit.

        Pure apart from reading the clock. Missing sources become "".
        """
        url = request.url
        headers = request.headers
        origin = f"{url.scheme}://{url.netloc}"

        return VisitRecord(
            ip=client_ip(request),
            timestamp=iso_timestamp(self.clock() if self.clock else None),
            user_agent=headers.get("user-agent", ""),
            referrer=headers.get("referer", ""),
            # Location
            url=origin,
            uri=str(url),
            path=url.path,
            query=f"?{url.query}" if url.query else "",
            protocol=f"{url.scheme}:",
            # Routing
            original_host=url.hostname or "",
            response_code=str(response_code),
            # Geography
            country=edge.country,
            city=edge.city,
            region=edge.region,
            region_code=edge.region_code,
            continent=edge.continent,
            postal_code=edge.postal_code,
            metro_code=edge.metro_code,
            timezone=edge.timezone,
            latitude=edge.latitude,
            longitude=edge.longitude,
            is_eu_country="true" if edge.is_eu_country else "false",
            # Network
            asn=edge.asn,
            colo=edge.colo,
            http_version=edge.http_version,
            tls_version=edge.tls_version,
            tls_cipher=edge.tls_cipher,
            # Client
            language=primary_language(headers.get("accept-language", "")),
            accept_encoding=headers.get("accept-encoding", ""),
            client_hints_ua=headers.get("sec-ch-ua", ""),
            client_hints_platform=headers.get("sec-ch-ua-platform", ""),
            client_hints_mobile=headers.get("sec-ch-ua-mobile", ""),
        )

    async def record(self, request: Request, response_code: int | str = "") -> None:
        """Record a visit. Never raises.

        A missing store is a silent no-op; any other failure is logged by
        exception type only, so no request data ends up in the logs.
        """
        if not self.client.is_configured:
            logger.debug("Visit store not configured; skipping visit")
            return

        try:
            record = self.build_record(request, self.edge_metadata(request), response_code)
            await self.client.insert(record)
        except Exception as e:
            logger.error(f"Visit tracking failed: {type(e).__name__}")
