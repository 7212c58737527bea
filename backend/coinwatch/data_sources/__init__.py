"""
Market data source adapters.

Each adapter implements a common interface to reach a remote catalog of
coins. Connections are shared through a ConnectionManager.
"""

from .base import BaseDataSource, DataSourceError
from .coingecko import CoinGeckoClient, ConnectionManager, ConnectionState

__all__ = [
    'BaseDataSource',
    'DataSourceError',
    'CoinGeckoClient',
    'ConnectionManager',
    'ConnectionState',
]
