# access_server/schemas/device.py
"""
Device-related Pydantic schemas
"""

from pydantic import BaseModel, Field, field_validator, ConfigDict
from typing import Dict, List
from datetime import datetime

# Path segments under /api/v1/devices that are routes of their own
RESERVED_DEVICE_NAMES = {"sync", "pool"}


# === Request Schemas ===

class DeviceCreate(BaseModel):
    """
    Schema for provisioning a new device
    The client generates its own keypair and sends only the public key
    """
    name: str = Field(
        ...,
        max_length=64,
        description="Unique device name",
        examples=["laptop", "iphone-john"]
    )
    public_key: str = Field(
        ...,
        max_length=64,
        description="Client WireGuard public key (Base64 encoded)",
        examples=["aB3dE5fG7hI9jK1lM3nO5pQ7rS9tU1vW3xY5zA7bC9dE="]
    )

    @field_validator('name')
    @classmethod
    def validate_name(cls, v: str) -> str:
        """Names must be addressable as a single path segment"""
        if '/' in v:
            raise ValueError('Device name must not contain "/"')
        if v in RESERVED_DEVICE_NAMES:
            raise ValueError(f'Device name is reserved: {", ".join(sorted(RESERVED_DEVICE_NAMES))}')
        return v

    model_config = ConfigDict(
        json_schema_extra={
            "example": {
                "name": "laptop",
                "public_key": "aB3dE5fG7hI9jK1lM3nO5pQ7rS9tU1vW3xY5zA7bC9dE=",
            }
        }
    )


# === Response Schemas ===

class DeviceResponse(BaseModel):
    """A provisioned device"""
    name: str
    public_key: str
    address: str
    endpoint: str
    dns: str
    server_public_key: str
    created_at: datetime

    model_config = ConfigDict(from_attributes=True)


class DeviceListResponse(BaseModel):
    """List of devices"""
    devices: List[DeviceResponse]
    total: int


class SyncResponse(BaseModel):
    """Result of a reconciliation pass"""
    success: bool
    activated: List[str] = Field(default_factory=list, description="Devices applied to the interface")
    pruned: List[str] = Field(default_factory=list, description="Orphan peer keys removed")
    failed: Dict[str, str] = Field(default_factory=dict, description="Device name or peer key -> error")


class PoolStatsResponse(BaseModel):
    """Address pool utilisation"""
    network: str
    gateway: str
    total_hosts: int
    used: int
    available: int
    reserved: List[str]
    utilization_percent: float
