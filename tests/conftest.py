"""Shared fixtures for the Ephemera test suite.

Everything runs against real stores with a ManualClock, so expiry is driven by
``clock.advance()`` instead of sleeping.
"""
import base64

import httpx
import pytest
import pytest_asyncio

from ephemera.blob_host import BlobHost
from ephemera.clock import ManualClock
from ephemera.config import Settings
from ephemera.timed_store import TimedStore

# 1x1 transparent PNG
PNG_BYTES = base64.b64decode(
    "iVBORw0KGgoAAAANSUhEUgAAAAEAAAABCAYAAAAfFcSJAAAADUlEQVR42mNkYPhfDwAChwGA60e6kgAAAABJRU5ErkJggg=="
)
PNG_DATA_URL = "data:image/png;base64," + base64.b64encode(PNG_BYTES).decode()


@pytest.fixture
def png_bytes():
    return PNG_BYTES


@pytest.fixture
def png_data_url():
    return PNG_DATA_URL


@pytest.fixture
def clock():
    # Start exactly on a minute boundary so window arithmetic is easy to follow.
    return ManualClock(start=1_700_000_040.0)


@pytest.fixture
def store(clock):
    return TimedStore(clock, shards=4)


@pytest.fixture
def blob_host(clock):
    return BlobHost(TimedStore(clock), ttl_seconds=3600)


@pytest.fixture
def settings():
    return Settings(
        _env_file=None,
        public_base_url="https://img.example.test",
        rate_limit_ceiling=3,
        upload_rate_limit_ceiling=2,
    )


@pytest.fixture
def app(settings, clock):
    from main import create_app

    return create_app(settings, clock)


@pytest_asyncio.fixture
async def client(app):
    """httpx.AsyncClient using ASGITransport — bypasses lifespan, so no sweep task runs."""
    transport = httpx.ASGITransport(app=app)
    async with httpx.AsyncClient(transport=transport, base_url="http://testserver") as c:
        yield c
