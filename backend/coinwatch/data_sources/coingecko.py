"""
CoinGecko market data adapter.

Uses the Pro API (https://pro-api.coingecko.com) when an API key is
configured and the public keyless API otherwise. Only coin lookup is
exposed; watchlists never store prices.
"""

import logging
import threading
from datetime import datetime
from enum import Enum
from typing import Any, Callable, Dict, List, Optional, TypeVar
import requests
from .base import BaseDataSource, DataSourceError

logger = logging.getLogger(__name__)

T = TypeVar("T")


class CoinGeckoClient(BaseDataSource):
    """HTTP client for the CoinGecko REST API."""
    
    PUBLIC_URL = "https://api.coingecko.com/api/v3"
    PRO_URL = "https://pro-api.coingecko.com/api/v3"
    
    def __init__(
        self,
        api_key: Optional[str] = None,
        base_url: Optional[str] = None,
        timeout: float = 10.0,
        session: Optional[requests.Session] = None,
        **kwargs
    ):
        """
        Initialize CoinGecko client.
        
        Args:
            api_key: CoinGecko Pro API key (optional)
            base_url: Override the endpoint chosen from the key
            timeout: Request timeout in seconds
            session: Pre-built requests session (tests)
        """
        super().__init__(api_key=api_key, **kwargs)
        if base_url:
            self.base_url = base_url.rstrip("/")
        elif api_key:
            self.base_url = self.PRO_URL
        else:
            self.base_url = self.PUBLIC_URL
        self.timeout = timeout
        self.session = session or requests.Session()
        self.session.headers.update({"Accept": "application/json"})
        if api_key:
            self.session.headers["x-cg-pro-api-key"] = api_key
    
    @property
    def access_type(self) -> str:
        return "Pro API" if self.api_key else "Public API"
    
    def fetch_data(self, path: str, **params) -> Any:
        url = f"{self.base_url}/{path.lstrip('/')}"
        try:
            response = self.session.get(url, params=params or None, timeout=self.timeout)
            response.raise_for_status()
            data = response.json()
        except (requests.RequestException, ValueError) as e:
            self.last_error = str(e)
            raise DataSourceError(f"CoinGecko request to {path} failed: {e}") from e
        
        is_valid, errors = self.validate_data(data)
        if not is_valid:
            self.last_error = "; ".join(errors)
            raise DataSourceError(f"CoinGecko returned invalid data: {self.last_error}")
        
        self.last_fetch_time = datetime.now()
        self.last_error = None
        return data
    
    def connect(self):
        self.fetch_data("ping")
        logger.info(f"Connected to CoinGecko ({self.access_type}) at {self.base_url}")
    
    def search_coins(self, query: str) -> List[Dict[str, Any]]:
        """Search coins by name or symbol."""
        data = self.fetch_data("search", query=query)
        return [
            {
                "coin_id": coin.get("id"),
                "symbol": (coin.get("symbol") or "").upper(),
                "name": coin.get("name"),
                "market_cap_rank": coin.get("market_cap_rank"),
            }
            for coin in data.get("coins", [])
        ]
    
    def get_coin(self, coin_id: str) -> Dict[str, Any]:
        """Catalog metadata for one coin."""
        data = self.fetch_data(
            f"coins/{coin_id}",
            localization="false",
            tickers="false",
            market_data="false",
            community_data="false",
            developer_data="false",
        )
        return {
            "coin_id": data.get("id"),
            "symbol": (data.get("symbol") or "").upper(),
            "name": data.get("name"),
            "categories": data.get("categories") or [],
            "description": (data.get("description") or {}).get("en"),
        }
    
    def close(self):
        self.session.close()


class ConnectionState(str, Enum):
    """Lifecycle of the market data connection."""
    DISCONNECTED = "disconnected"
    CONNECTING = "connecting"
    CONNECTED = "connected"
    FAILED = "failed"


class ConnectionManager:
    """
    Shared connection to a market data source.
    
    ``ensure_connected`` is idempotent: while an attempt is in flight,
    concurrent callers wait for it and share its outcome. A failed attempt
    leaves the manager FAILED with no client, and the next call starts a
    fresh attempt.
    """
    
    def __init__(self, factory: Callable[[], BaseDataSource]):
        self._factory = factory
        self._client: Optional[BaseDataSource] = None
        self._state = ConnectionState.DISCONNECTED
        self._attempt = 0
        self._last_error: Optional[str] = None
        self._cond = threading.Condition()
    
    @property
    def state(self) -> ConnectionState:
        return self._state
    
    def ensure_connected(self) -> BaseDataSource:
        with self._cond:
            if self._state == ConnectionState.CONNECTED:
                return self._client
            if self._state == ConnectionState.CONNECTING:
                attempt = self._attempt
                while self._state == ConnectionState.CONNECTING and self._attempt == attempt:
                    self._cond.wait()
                if self._state == ConnectionState.CONNECTED:
                    return self._client
                raise DataSourceError(f"Market data connection failed: {self._last_error}")
            self._state = ConnectionState.CONNECTING
            self._attempt += 1
            attempt = self._attempt
        
        client = None
        try:
            client = self._factory()
            client.connect()
        except Exception as e:
            if client is not None:
                client.close()
            with self._cond:
                if self._is_current(attempt):
                    self._client = None
                    self._state = ConnectionState.FAILED
                    self._last_error = str(e)
                    self._cond.notify_all()
            logger.warning(f"Market data connection attempt failed: {e}")
            if isinstance(e, DataSourceError):
                raise
            raise DataSourceError(f"Market data connection failed: {e}") from e
        
        with self._cond:
            current = self._is_current(attempt)
            if current:
                self._client = client
                self._state = ConnectionState.CONNECTED
                self._last_error = None
                self._cond.notify_all()
        if not current:
            client.close()
            raise DataSourceError("Market data connection closed while connecting")
        return client
    
    def _is_current(self, attempt: int) -> bool:
        return self._state == ConnectionState.CONNECTING and self._attempt == attempt
    
    def call(self, operation: Callable[[BaseDataSource], T]) -> T:
        """
        Run ``operation`` against a connected client.
        
        A failed call drops the connection so the next call reconnects.
        """
        client = self.ensure_connected()
        try:
            return operation(client)
        except DataSourceError as e:
            with self._cond:
                if self._client is client:
                    self._client = None
                    self._state = ConnectionState.FAILED
                    self._last_error = str(e)
            client.close()
            raise
    
    def close(self):
        with self._cond:
            client = self._client
            self._client = None
            self._state = ConnectionState.DISCONNECTED
            self._last_error = "connection closed"
            self._cond.notify_all()
        if client is not None:
            client.close()
            logger.info("Disconnected from market data source")
