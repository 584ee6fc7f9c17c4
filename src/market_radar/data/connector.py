"""Listings connector interface and the CoinMarketCap implementation."""

from abc import ABC, abstractmethod
from typing import Any, Dict, List, Optional
import asyncio
import json
import logging
import time

import aiohttp

from ..core.errors import AuthError, HttpError, NetworkError
from ..monitoring.request_log import RequestLog

logger = logging.getLogger(__name__)

MAX_LISTINGS = 5000


class ListingsConnector(ABC):
    """Abstract base class for market listing sources."""

    @abstractmethod
    async def fetch_listings(self, limit: int, api_key: Optional[str]) -> List[Dict[str, Any]]:
        """Fetch one snapshot of raw listings."""
        pass

    @abstractmethod
    async def close(self):
        """Close connection."""
        pass


class CoinMarketCapConnector(ListingsConnector):
    """aiohttp-based connector for the CoinMarketCap Pro API.

    Every request, response and error is written to the request log; the
    log is never consulted for decisions.
    """

    def __init__(
        self,
        config: Optional[Dict] = None,
        request_log: Optional[RequestLog] = None,
        session: Optional[aiohttp.ClientSession] = None,
    ):
        defaults = self._default_config()
        if config:
            defaults.update(config)
        self.config = defaults
        self.base_url = self.config['base_url'].rstrip('/')
        self.request_log = request_log or RequestLog()
        self._session = session
        logger.info(f"Initialized CoinMarketCap connector ({self.base_url})")

    @staticmethod
    def _default_config() -> Dict:
        return {
            'base_url': 'https://pro-api.coinmarketcap.com/v1',
            'timeout': 30,
            'convert': 'USD',
            'sort': 'market_cap',
        }

    async def _get_session(self) -> aiohttp.ClientSession:
        """Get or create aiohttp session."""
        if self._session is None or self._session.closed:
            self._session = aiohttp.ClientSession(
                timeout=aiohttp.ClientTimeout(total=self.config['timeout'])
            )
        return self._session

    async def close(self):
        """Close the HTTP session."""
        if self._session is not None and not self._session.closed:
            await self._session.close()
            logger.info("Closed CoinMarketCap connector session")

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    async def fetch_listings(self, limit: int, api_key: Optional[str]) -> List[Dict[str, Any]]:
        """
        Fetch the latest listings sorted by market cap.

        Raises:
            AuthError: no API key configured
            HttpError: non-2xx response or an upstream error status
            NetworkError: no response received
        """
        if limit < 1:
            raise ValueError(f"limit must be at least 1, got {limit}")
        params = {
            'start': 1,
            'limit': min(int(limit), MAX_LISTINGS),
            'convert': self.config['convert'],
            'sort': self.config['sort'],
        }
        payload = await self._get('/cryptocurrency/listings/latest', params, api_key)
        data = payload.get('data')
        if not isinstance(data, list):
            raise HttpError(None, "Unexpected listings payload")
        logger.debug(f"Fetched {len(data)} listings")
        return data

    async def fetch_quote(self, coin_id: int, api_key: Optional[str]) -> Optional[Dict[str, Any]]:
        """Fetch the latest quote of a single asset by upstream id."""
        params = {'id': coin_id, 'convert': self.config['convert']}
        payload = await self._get('/cryptocurrency/quotes/latest', params, api_key)
        data = payload.get('data') or {}
        return data.get(str(coin_id))

    # ------------------------------------------------------------------
    # Transport
    # ------------------------------------------------------------------

    async def _get(self, path: str, params: Dict[str, Any], api_key: Optional[str]) -> Dict[str, Any]:
        if not api_key:
            raise AuthError()

        url = f"{self.base_url}{path}"
        headers = {'X-CMC_PRO_API_KEY': api_key, 'Accept': 'application/json'}
        self.request_log.log_request('GET', url, params, headers)
        start = time.monotonic()

        try:
            session = await self._get_session()
            async with session.get(url, params=params, headers=headers) as response:
                body = await response.text()
                elapsed_ms = (time.monotonic() - start) * 1000
                payload = self._parse_body(body)
                reason = response.reason or ''

                if not 200 <= response.status < 300:
                    message = self._upstream_message(payload) or reason or 'Request failed'
                    self.request_log.log_error(
                        'GET', url, message, status=response.status,
                        status_text=reason, duration_ms=elapsed_ms,
                    )
                    raise HttpError(response.status, message)

                if payload is None:
                    message = 'Malformed response body'
                    self.request_log.log_error(
                        'GET', url, message, status=response.status,
                        status_text=reason, duration_ms=elapsed_ms,
                    )
                    raise HttpError(response.status, message)

                status = payload.get('status') or {}
                if status.get('error_code') not in (None, 0, '0'):
                    message = self._upstream_message(payload) or 'Upstream reported an error'
                    self.request_log.log_error(
                        'GET', url, message, status=response.status,
                        status_text=reason, duration_ms=elapsed_ms,
                    )
                    raise HttpError(response.status, message)

                self.request_log.log_response(
                    'GET', url, response.status, reason,
                    data_size=len(body), duration_ms=elapsed_ms,
                )
                return payload

        except (aiohttp.ClientError, asyncio.TimeoutError) as e:
            elapsed_ms = (time.monotonic() - start) * 1000
            self.request_log.log_error('GET', url, str(e) or type(e).__name__, duration_ms=elapsed_ms)
            logger.error(f"Network error fetching {path}: {e!r}")
            raise NetworkError() from e
        except asyncio.CancelledError:
            elapsed_ms = (time.monotonic() - start) * 1000
            self.request_log.log_error('GET', url, 'Request cancelled', duration_ms=elapsed_ms)
            raise

    @staticmethod
    def _parse_body(body: str) -> Optional[Dict[str, Any]]:
        try:
            payload = json.loads(body) if body else None
        except ValueError:
            return None
        return payload if isinstance(payload, dict) else None

    @staticmethod
    def _upstream_message(payload: Optional[Dict[str, Any]]) -> Optional[str]:
        if not payload:
            return None
        status = payload.get('status') or {}
        return status.get('error_message') or None
