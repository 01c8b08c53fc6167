"""
Core business logic modules
"""

from .errors import (
    DeviceError,
    InvalidInput,
    DeviceAlreadyExists,
    PublicKeyInUse,
    NotFound,
    PoolExhausted,
    PersistenceFailure,
    ActivationFailure,
    RegistryError,
    DeviceNotFound,
    PeerGatewayError,
)
from .ipam import IPAMService
from .wireguard_service import WireGuardService
from .device_registry import DeviceRegistry
from .device_manager import DeviceManager, SyncReport
from .client_config import render_client_config, generate_qr_code

__all__ = [
    # Errors
    "DeviceError",
    "InvalidInput",
    "DeviceAlreadyExists",
    "PublicKeyInUse",
    "NotFound",
    "PoolExhausted",
    "PersistenceFailure",
    "ActivationFailure",
    "RegistryError",
    "DeviceNotFound",
    "PeerGatewayError",
    # IPAM
    "IPAMService",
    # WireGuard Service
    "WireGuardService",
    # Registry
    "DeviceRegistry",
    # Device Manager
    "DeviceManager",
    "SyncReport",
    # Client config
    "render_client_config",
    "generate_qr_code",
]
