"""Pytest configuration and fixtures."""

import asyncio
from typing import Any, Dict, List, Optional

import pytest

from market_radar.core.errors import AuthError
from market_radar.core.models import FilterCriteria
from market_radar.data.connector import ListingsConnector
from market_radar.data.credentials import InMemoryCredentialProvider
from market_radar.monitoring.request_log import RequestLog

LISTINGS_URL = "https://pro-api.coinmarketcap.com/v1/cryptocurrency/listings/latest"


def build_listing(
    coin_id: int,
    symbol: str,
    price: float = 1.0,
    volume_24h: float = 1_000_000.0,
    percent_change_24h: float = 0.0,
    percent_change_1h: float = 0.0,
    volume_change_24h: float = 0.0,
    market_cap: float = 10_000_000.0,
    cmc_rank: int = 1,
) -> Dict[str, Any]:
    """Raw listing shaped like the upstream listings payload."""
    return {
        "id": coin_id,
        "name": f"{symbol} coin",
        "symbol": symbol,
        "cmc_rank": cmc_rank,
        "circulating_supply": 1_000_000,
        "total_supply": 2_000_000,
        "quote": {
            "USD": {
                "price": price,
                "volume_24h": volume_24h,
                "volume_change_24h": volume_change_24h,
                "percent_change_1h": percent_change_1h,
                "percent_change_24h": percent_change_24h,
                "percent_change_7d": 0.0,
                "market_cap": market_cap,
                "last_updated": "2024-01-01T00:00:00.000Z",
            }
        },
    }


class FakeListingsConnector(ListingsConnector):
    """In-process connector that logs like the real one and can be held open."""

    def __init__(
        self,
        listings: Optional[List[Dict[str, Any]]] = None,
        request_log: Optional[RequestLog] = None,
        error: Optional[Exception] = None,
        block: bool = False,
        ignore_cancel: bool = False,
        require_key: bool = False,
    ):
        self.listings = listings or []
        self.request_log = request_log or RequestLog()
        self.error = error
        self.block = block
        self.ignore_cancel = ignore_cancel
        self.require_key = require_key
        self.calls = 0
        self.api_keys: List[Optional[str]] = []
        self.closed = False
        self.started = asyncio.Event()
        self.release = asyncio.Event()

    async def fetch_listings(self, limit, api_key):
        self.calls += 1
        self.api_keys.append(api_key)
        if self.require_key and not api_key:
            raise AuthError()
        self.request_log.log_request(
            "GET", LISTINGS_URL, {"limit": limit}, {"X-CMC_PRO_API_KEY": api_key or ""}
        )
        self.started.set()

        if self.block:
            try:
                await self.release.wait()
            except asyncio.CancelledError:
                self.request_log.log_error("GET", LISTINGS_URL, "Request cancelled")
                # A transport that still delivers the response after cancellation
                if not self.ignore_cancel:
                    raise

        if self.error is not None:
            self.request_log.log_error("GET", LISTINGS_URL, str(self.error))
            raise self.error

        self.request_log.log_response("GET", LISTINGS_URL, 200, "OK", data_size=len(self.listings))
        return [dict(item) for item in self.listings]

    async def close(self):
        self.closed = True


async def wait_for_idle(orchestrator, calls: int, connector, timeout: float = 2.0):
    """Wait until *connector* has served *calls* fetches and the orchestrator is idle."""
    async def _poll():
        while connector.calls < calls or orchestrator.loading:
            await asyncio.sleep(0.005)
    await asyncio.wait_for(_poll(), timeout=timeout)


@pytest.fixture
def make_listing():
    """Factory for raw listings."""
    return build_listing


@pytest.fixture
def sample_listings():
    """Small mixed population: one pumping asset, one heavy volume asset, quiet rest."""
    return [
        build_listing(1, "BTC", price=40_000, volume_24h=20_000_000, percent_change_24h=2.0),
        build_listing(2, "ETH", price=2_000, volume_24h=10_000_000, percent_change_24h=-1.5),
        build_listing(3, "PUMP", price=0.5, volume_24h=5_000_000, percent_change_24h=35.0,
                      percent_change_1h=12.0, volume_change_24h=250.0),
        build_listing(4, "QUIET", price=1.0, volume_24h=2_000_000, percent_change_24h=0.5),
        build_listing(5, "WHALE", price=3.0, volume_24h=150_000_000, percent_change_24h=4.0),
    ]


@pytest.fixture
def request_log():
    return RequestLog(max_entries=100)


@pytest.fixture
def credentials():
    return InMemoryCredentialProvider("test-key")


@pytest.fixture
def no_filters():
    return FilterCriteria()


@pytest.fixture
def fake_connector(sample_listings, request_log):
    return FakeListingsConnector(listings=sample_listings, request_log=request_log)


@pytest.fixture
def connector_factory(request_log):
    """Build fake connectors sharing the test's request log."""
    def factory(listings=None, **kwargs):
        kwargs.setdefault("request_log", request_log)
        return FakeListingsConnector(listings=listings, **kwargs)
    return factory


@pytest.fixture
def wait_idle():
    return wait_for_idle
