"""
Pydantic Schemas for the WireGuard Access Server API
Organized by domain: devices, sessions
"""

from .base import BaseResponse, ErrorResponse, HealthResponse
from .device import (
    DeviceCreate,
    DeviceResponse,
    DeviceListResponse,
    SyncResponse,
    PoolStatsResponse,
)
from .session import Identity, AuthSession

__all__ = [
    # Base
    "BaseResponse",
    "ErrorResponse",
    "HealthResponse",
    # Device
    "DeviceCreate",
    "DeviceResponse",
    "DeviceListResponse",
    "SyncResponse",
    "PoolStatsResponse",
    # Session
    "Identity",
    "AuthSession",
]
