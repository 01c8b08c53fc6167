# access_server/api/v1/devices.py
"""
Device API Endpoints
RESTful API for provisioning and revoking VPN client devices
"""

from fastapi import APIRouter, Depends, Request, status
from fastapi.responses import PlainTextResponse, Response
import logging

from access_server.api.auth import require_identity
from access_server.core.client_config import render_client_config, generate_qr_code
from access_server.core.device_manager import DeviceManager
from access_server.schemas.base import BaseResponse, ErrorResponse
from access_server.schemas.device import (
    DeviceCreate,
    DeviceResponse,
    DeviceListResponse,
    SyncResponse,
    PoolStatsResponse,
)
from access_server.schemas.session import Identity

logger = logging.getLogger(__name__)

router = APIRouter()


def get_device_manager(request: Request) -> DeviceManager:
    """The DeviceManager owned by the running application"""
    return request.app.state.device_manager


@router.get(
    "",
    response_model=DeviceListResponse,
    summary="List devices",
    description="Get list of all provisioned devices"
)
def list_devices(
    identity: Identity = Depends(require_identity),
    manager: DeviceManager = Depends(get_device_manager)
):
    """List all devices"""
    devices = manager.list_devices()
    return DeviceListResponse(
        devices=[DeviceResponse.model_validate(d) for d in devices],
        total=len(devices)
    )


@router.post(
    "",
    response_model=DeviceResponse,
    status_code=status.HTTP_201_CREATED,
    responses={
        400: {"description": "Invalid name or public key", "model": ErrorResponse},
        409: {"description": "Name or public key already registered", "model": ErrorResponse},
        502: {"description": "Saved but the peer was not activated", "model": ErrorResponse},
        503: {"description": "Pool exhausted or registry unavailable", "model": ErrorResponse},
    },
    summary="Provision new device",
    description="Allocate an address for the device and add it as a peer on the server"
)
def create_device(
    device: DeviceCreate,
    identity: Identity = Depends(require_identity),
    manager: DeviceManager = Depends(get_device_manager)
):
    """
    Provision a new device

    - Allocates the lowest free address in the VPN subnet
    - Persists the device, then adds the WireGuard peer
    """
    new_device = manager.add_device(device.name, device.public_key)
    logger.info(f"Device '{new_device.name}' provisioned by {identity.subject}")
    return DeviceResponse.model_validate(new_device)


@router.post(
    "/sync",
    response_model=SyncResponse,
    responses={
        503: {"description": "Registry unavailable", "model": ErrorResponse},
    },
    summary="Reconcile peers",
    description="Re-apply every registered device to the WireGuard interface"
)
def sync_devices(
    identity: Identity = Depends(require_identity),
    manager: DeviceManager = Depends(get_device_manager)
):
    """Run a reconciliation pass now"""
    logger.info(f"Manual sync requested by {identity.subject}")
    report = manager.sync()
    return SyncResponse(
        success=report.ok,
        activated=report.activated,
        pruned=report.pruned,
        failed=report.failed
    )


@router.get(
    "/pool",
    response_model=PoolStatsResponse,
    summary="Address pool statistics"
)
def pool_stats(
    identity: Identity = Depends(require_identity),
    manager: DeviceManager = Depends(get_device_manager)
):
    return PoolStatsResponse(**manager.pool_stats())


@router.get(
    "/{name}",
    response_model=DeviceResponse,
    responses={
        200: {"description": "Device found"},
        404: {"description": "Device not found", "model": ErrorResponse},
    },
    summary="Get device details"
)
def get_device(
    name: str,
    identity: Identity = Depends(require_identity),
    manager: DeviceManager = Depends(get_device_manager)
):
    """Get device details by name"""
    return DeviceResponse.model_validate(manager.get_device(name))


@router.delete(
    "/{name}",
    response_model=BaseResponse,
    responses={
        404: {"description": "Device not found", "model": ErrorResponse},
        502: {"description": "Deleted but the peer is still live", "model": ErrorResponse},
        503: {"description": "Registry unavailable", "model": ErrorResponse},
    },
    summary="Delete device",
    description="Remove the device from storage and its peer from the server"
)
def delete_device(
    name: str,
    identity: Identity = Depends(require_identity),
    manager: DeviceManager = Depends(get_device_manager)
):
    """Revoke a device"""
    manager.delete_device(name)
    logger.info(f"Device '{name}' deleted by {identity.subject}")

    return BaseResponse(
        success=True,
        message=f"Device '{name}' has been deleted"
    )


@router.get(
    "/{name}/config",
    response_class=PlainTextResponse,
    responses={
        404: {"description": "Device not found", "model": ErrorResponse},
    },
    summary="Download client config",
    description="WireGuard config for the device; fill in the private key before use"
)
def download_config(
    name: str,
    identity: Identity = Depends(require_identity),
    manager: DeviceManager = Depends(get_device_manager)
):
    device = manager.get_device(name)
    return PlainTextResponse(
        content=render_client_config(device),
        media_type="text/plain",
        headers={
            "Content-Disposition": f'attachment; filename="{device.name}.conf"'
        }
    )


@router.get(
    "/{name}/qr",
    responses={
        200: {"content": {"image/png": {}}},
        404: {"description": "Device not found", "model": ErrorResponse},
    },
    summary="Get QR code image",
    description="QR code of the client config as PNG, for the mobile WireGuard app"
)
def get_qr_code(
    name: str,
    identity: Identity = Depends(require_identity),
    manager: DeviceManager = Depends(get_device_manager)
):
    device = manager.get_device(name)
    qr_bytes = generate_qr_code(render_client_config(device))

    return Response(
        content=qr_bytes,
        media_type="image/png",
        headers={
            "Content-Disposition": f'inline; filename="{device.name}-qr.png"'
        }
    )
