"""Base adapter interface for the planning service connections."""

from abc import ABC, abstractmethod
from typing import Any

import structlog

logger = structlog.get_logger()


class BaseAdapter(ABC):
    """Abstract base class for connections to the planning service.

    All adapters must implement:
    - connect(): Open the underlying transport
    - disconnect(): Clean up resources
    - health_check(): Verify the service is reachable
    """

    def __init__(self, name: str) -> None:
        """Initialize adapter with a name for logging."""
        self.name = name
        self._connected = False
        self.logger = logger.bind(adapter=name)

    @property
    def is_connected(self) -> bool:
        """Check if adapter is currently connected."""
        return self._connected

    @abstractmethod
    async def connect(self) -> bool:
        """Open the connection.

        Returns:
            True if connection successful, False otherwise.
        """
        pass

    @abstractmethod
    async def disconnect(self) -> None:
        """Disconnect and clean up resources."""
        pass

    @abstractmethod
    async def health_check(self) -> bool:
        """Verify the adapter is operational."""
        pass

    async def __aenter__(self) -> "BaseAdapter":
        """Async context manager entry."""
        await self.connect()
        return self

    async def __aexit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
        """Async context manager exit."""
        await self.disconnect()


class AdapterError(Exception):
    """Base exception for adapter errors."""

    def __init__(self, adapter_name: str, message: str) -> None:
        self.adapter_name = adapter_name
        self.message = message
        super().__init__(f"[{adapter_name}] {message}")


class TransportError(AdapterError):
    """Raised when the request never produced an HTTP response."""

    pass


class ResponseError(AdapterError):
    """Raised when a successful response body cannot be decoded or validated."""

    pass


class ApiError(AdapterError):
    """Raised for any non-2xx response.

    ``message`` is the best human-readable text the server gave us.
    """

    def __init__(self, adapter_name: str, status: int, message: str) -> None:
        self.status = status
        super().__init__(adapter_name, message)


class SessionInvalidError(ApiError):
    """Raised on 401/403: the stored token must be discarded."""

    pass


class ValidationError(Exception):
    """Raised for input rejected locally, before any request is made."""

    def __init__(self, message: str) -> None:
        self.message = message
        super().__init__(message)
