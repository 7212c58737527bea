"""
Base interface for market data source adapters.
"""

from abc import ABC, abstractmethod
from typing import Any, Dict, List, Optional
from datetime import datetime


class DataSourceError(Exception):
    """Exception raised by data source adapters."""
    pass


class BaseDataSource(ABC):
    """
    Base class for remote market data adapters.
    
    Each adapter should implement methods to:
    1. Open (and verify) a connection to the source
    2. Fetch raw data from the source
    3. Release the connection
    """
    
    def __init__(self, api_key: Optional[str] = None, **kwargs):
        """
        Initialize the data source adapter.
        
        Args:
            api_key: API key for the data source (if required)
            **kwargs: Additional configuration options
        """
        self.api_key = api_key
        self.config = kwargs
        self.last_fetch_time: Optional[datetime] = None
        self.last_error: Optional[str] = None
    
    @abstractmethod
    def connect(self):
        """
        Verify the source is reachable.
        
        Raises:
            DataSourceError: If the source cannot be reached
        """
        pass
    
    @abstractmethod
    def fetch_data(self, path: str, **params) -> Any:
        """
        Fetch raw data from the data source.
        
        Args:
            path: Source-specific resource path
            **params: Query parameters
            
        Returns:
            Decoded response body
            
        Raises:
            DataSourceError: If data fetch fails
        """
        pass
    
    def close(self):
        """Release any held resources."""
        pass
    
    def validate_data(self, raw_data: Any) -> tuple[bool, List[str]]:
        """
        Validate a decoded response.
        
        Returns:
            Tuple of (is_valid, list_of_errors)
        """
        errors = []
        
        if raw_data is None:
            errors.append("Empty data received")
            return False, errors
        
        if isinstance(raw_data, dict) and 'error' in raw_data:
            errors.append(f"API error: {raw_data.get('error')}")
            return False, errors
        
        return True, errors
    
    def get_last_update_time(self) -> Optional[datetime]:
        """Get timestamp of last successful data fetch."""
        return self.last_fetch_time
