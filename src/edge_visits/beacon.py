"""
Beacon ingestion.

Beacons are posted by a script on the page and bypass the tracking
filter: the client chose to report. Unlike server-side tracking, the
insert is awaited so the response tells the client what happened.
"""

import json
import logging
from datetime import datetime
from typing import Callable, Optional

from .core.client import VisitsClient
from .core.models import BeaconPayload, iso_timestamp

logger = logging.getLogger(__name__)

SUCCESS = {"status": "success"}
ERROR = {"status": "error"}


class BeaconIngestor:
    """Persists client-submitted beacon payloads."""

    def __init__(
        self,
        client: VisitsClient,
        clock: Optional[Callable[[], datetime]] = None,
    ):
        self.client = client
        self.clock = clock

    def parse(self, body: bytes) -> BeaconPayload:
        """Parse a raw body into a payload.

        Raises:
            ValueError: If the body is not a JSON object
        """
        data = json.loads(body)
        if not isinstance(data, dict):
            raise ValueError(f"Beacon body must be a JSON object, got {type(data).__name__}")
        return BeaconPayload.model_validate(data)

    async def ingest(self, body: bytes) -> tuple[int, dict]:
        """Store one beacon row.

        Returns:
            Tuple of (http_status, response_body). Malformed bodies and
            failed inserts answer 500 "error". With no store configured the
            beacon is dropped and still answers "success".
        """
        try:
            payload = self.parse(body)
        except (ValueError, RecursionError) as e:
            # Deeply nested bodies raise RecursionError, not ValueError
            logger.warning(f"Rejected malformed beacon: {type(e).__name__}")
            return 500, dict(ERROR)

        if not self.client.is_configured:
            logger.debug("Visit store not configured; dropping beacon")
            return 200, dict(SUCCESS)

        try:
            record = payload.to_record(iso_timestamp(self.clock() if self.clock else None))
            await self.client.insert(record)
        except Exception:
            logger.exception("Error handling beacon")
            return 500, dict(ERROR)

        return 200, dict(SUCCESS)
