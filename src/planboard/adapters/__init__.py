"""Connections to the planning service."""

from planboard.adapters.api import PlanboardClient
from planboard.adapters.base import (
    AdapterError,
    ApiError,
    ResponseError,
    BaseAdapter,
    SessionInvalidError,
    TransportError,
    ValidationError,
)
from planboard.adapters.push import PushChannel

__all__ = [
    # Base
    "BaseAdapter",
    "AdapterError",
    "ApiError",
    "ResponseError",
    "SessionInvalidError",
    "TransportError",
    "ValidationError",
    # Adapters
    "PlanboardClient",
    "PushChannel",
]
