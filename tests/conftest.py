"""Shared fixtures for Edge Visits tests."""

import asyncio

import pytest
from fastapi.testclient import TestClient

from edge_visits import EdgeVisits, VisitsConfig
from edge_visits.core.client import VisitsClient
from edge_visits.core.database import SQLiteDatabase
from edge_visits.core.models import VisitRecord

CANONICAL_HOST = "example.com"


def run_async(coro):
    """Helper to run async functions in sync tests."""
    return asyncio.run(coro)


def make_record(timestamp: str, **fields) -> VisitRecord:
    """Record with only the given fields set."""
    return VisitRecord(timestamp=timestamp, **fields)


@pytest.fixture
def database(tmp_path):
    """Empty SQLite visits store."""
    db = SQLiteDatabase(str(tmp_path / "visits.sqlite3"))
    db.ensure_schema()
    yield db
    db.close()


@pytest.fixture
def visits_client(database):
    return VisitsClient(database)


@pytest.fixture
def seed(visits_client):
    """Insert records into the store."""
    def _seed(*records: VisitRecord):
        async def insert_all():
            for record in records:
                await visits_client.insert(record)
        run_async(insert_all())
    return _seed


@pytest.fixture
def stored_rows(database):
    """All stored rows, oldest insert first."""
    def _rows():
        return run_async(database.query("SELECT * FROM visits ORDER BY id"))
    return _rows


@pytest.fixture
def assets_dir(tmp_path):
    root = tmp_path / "public"
    (root / "blog").mkdir(parents=True)
    (root / "index.html").write_text("<h1>home</h1>")
    (root / "about.html").write_text("<h1>about</h1>")
    (root / "blog" / "index.html").write_text("<h1>blog</h1>")
    (root / "style.css").write_text("body{}")
    (root / "settings.html").write_text("<h1>settings</h1>")
    return root


@pytest.fixture
def config(assets_dir):
    return VisitsConfig(canonical_host=CANONICAL_HOST, assets_dir=str(assets_dir))


@pytest.fixture
def visits(config, database):
    return EdgeVisits(config, database=database)


@pytest.fixture
def http(visits):
    """TestClient on the canonical host."""
    with TestClient(visits.app, base_url=f"https://{CANONICAL_HOST}") as client:
        yield client
