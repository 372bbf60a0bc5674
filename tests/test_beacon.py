"""Tests for beacon payload handling and ingestion."""

import asyncio
import json
import logging
from datetime import datetime, timezone
from unittest.mock import AsyncMock

from edge_visits.beacon import BeaconIngestor
from edge_visits.core.client import VisitsClient
from edge_visits.core.models import BeaconPayload, to_text
from edge_visits.errors import StoreQueryError

FIXED_NOW = datetime(2024, 3, 1, 8, 0, 0, tzinfo=timezone.utc)

PAYLOAD = {
    "visitor_ip": "198.51.100.23",
    "timestamp": "1999-01-01T00:00:00.000Z",
    "epoch_timestamp": 1709280000000,
    "referrer": "https://search.example/",
    "url": "https://example.com",
    "uri": "https://example.com/pricing?plan=pro#faq",
    "path": "/pricing",
    "port": "",
    "query": "?plan=pro",
    "user_agent": "Mozilla/5.0",
    "hardware_concurrency": 8,
    "cookies_enabled": True,
    "do_not_track": None,
    "memory": 4,
    "cookie": "1709280000000abc123xyz",
    "protocol": "https:",
    "hash": "#faq",
    "connection_type": "4g",
    "language": "en-GB",
    "http_version": "h2",
}


def run_async(coro):
    """Helper to run async functions in sync tests."""
    return asyncio.run(coro)


def _ingestor(database=None):
    client = VisitsClient(database if database is not None else AsyncMock())
    client.insert = AsyncMock()
    return BeaconIngestor(client, clock=lambda: FIXED_NOW), client


class TestToText:
    """Client values are stored verbatim as text."""

    def test_strings_untouched(self):
        assert to_text("<script>alert(1)</script>") == "<script>alert(1)</script>"

    def test_scalars(self):
        assert to_text(None) == ""
        assert to_text(True) == "true"
        assert to_text(False) == "false"
        assert to_text(8) == "8"
        assert to_text(0.5) == "0.5"

    def test_nested_values_as_json(self):
        assert to_text({"a": [1, 2]}) == '{"a":[1,2]}'


class TestBeaconPayload:
    """Payload to record mapping."""

    def test_fields_copied(self):
        record = BeaconPayload.model_validate(PAYLOAD).to_record("2024-03-01T08:00:00.000Z")

        assert record.ip == "198.51.100.23"
        assert record.cookie == "1709280000000abc123xyz"
        assert record.referrer == "https://search.example/"
        assert record.uri == "https://example.com/pricing?plan=pro#faq"
        assert record.url == "https://example.com"
        assert record.hardware_concurrency == "8"
        assert record.cookies_enabled == "true"
        assert record.do_not_track == ""
        assert record.epoch_timestamp == "1709280000000"
        assert record.connection_type == "4g"
        assert record.hash == "#faq"

    def test_client_timestamp_ignored(self):
        record = BeaconPayload.model_validate(PAYLOAD).to_record("2024-03-01T08:00:00.000Z")
        assert record.timestamp == "2024-03-01T08:00:00.000Z"

    def test_server_observed_fields_not_taken_from_payload(self):
        payload = dict(PAYLOAD, country="ZZ", is_eu_country="true", response_code="200")
        record = BeaconPayload.model_validate(payload).to_record("2024-03-01T08:00:00.000Z")
        assert record.country == ""
        assert record.is_eu_country == ""
        assert record.response_code == ""

    def test_ip_field_accepted(self):
        record = BeaconPayload.model_validate({"ip": "10.0.0.1"}).to_record("t")
        assert record.ip == "10.0.0.1"

    def test_empty_object(self):
        record = BeaconPayload.model_validate({}).to_record("t")
        assert record.cookie == ""
        assert record.uri == ""


class TestIngest:
    """ingest() always answers and reports the real outcome."""

    def test_success(self):
        ingestor, client = _ingestor()
        status, body = run_async(ingestor.ingest(json.dumps(PAYLOAD).encode()))

        assert status == 200
        assert body == {"status": "success"}
        client.insert.assert_awaited_once()
        record = client.insert.await_args.args[0]
        assert record.timestamp == "2024-03-01T08:00:00.000Z"
        assert record.cookie == PAYLOAD["cookie"]

    def test_invalid_json(self):
        ingestor, client = _ingestor()
        status, body = run_async(ingestor.ingest(b"{not json"))

        assert status == 500
        assert body == {"status": "error"}
        client.insert.assert_not_awaited()

    def test_non_object_json(self):
        ingestor, client = _ingestor()
        for raw in (b"[1, 2]", b'"hello"', b"42", b"null"):
            status, body = run_async(ingestor.ingest(raw))
            assert status == 500
            assert body == {"status": "error"}
        client.insert.assert_not_awaited()

    def test_empty_body(self):
        ingestor, client = _ingestor()
        status, _ = run_async(ingestor.ingest(b""))
        assert status == 500
        client.insert.assert_not_awaited()

    def test_invalid_utf8(self):
        ingestor, _ = _ingestor()
        status, body = run_async(ingestor.ingest(b"\xff\xfe{"))
        assert status == 500
        assert body == {"status": "error"}

    def test_insert_failure(self):
        database = AsyncMock()
        database.execute.side_effect = StoreQueryError("database is locked")
        ingestor = BeaconIngestor(VisitsClient(database))

        status, body = run_async(ingestor.ingest(json.dumps(PAYLOAD).encode()))

        assert status == 500
        assert body == {"status": "error"}

    def test_missing_store_is_silent_success(self, caplog):
        """Without a store the write is skipped, not reported as a failure."""
        ingestor = BeaconIngestor(VisitsClient(None))
        with caplog.at_level(logging.WARNING):
            status, body = run_async(ingestor.ingest(json.dumps(PAYLOAD).encode()))
        assert status == 200
        assert body == {"status": "success"}
        assert caplog.records == []

    def test_missing_store_still_rejects_malformed(self):
        ingestor = BeaconIngestor(VisitsClient(None))
        status, body = run_async(ingestor.ingest(b"{not json"))
        assert status == 500
        assert body == {"status": "error"}

    def test_deeply_nested_body(self):
        ingestor, client = _ingestor()
        status, body = run_async(ingestor.ingest(b"[" * 100000))
        assert status == 500
        assert body == {"status": "error"}
        client.insert.assert_not_awaited()
