# access_server/core/errors.py
"""
Error taxonomy for device lifecycle operations

Every failure raised by the DeviceManager names the subsystem that failed,
so the caller (or an operator) knows which side needs reconciling.
"""

from typing import Optional


class DeviceError(Exception):
    """Base class for device lifecycle failures"""
    error_code = "DEVICE_ERROR"

    def __init__(self, message: str, details: Optional[dict] = None):
        super().__init__(message)
        self.message = message
        self.details = details or {}


class InvalidInput(DeviceError):
    """Caller error, e.g. an empty device name"""
    error_code = "INVALID_INPUT"


class DeviceAlreadyExists(InvalidInput):
    """A device with the requested name is already registered"""
    error_code = "DEVICE_EXISTS"


class PublicKeyInUse(InvalidInput):
    """The public key already belongs to another registered device"""
    error_code = "PUBLIC_KEY_IN_USE"


class NotFound(DeviceError):
    """Operation on an unknown device name"""
    error_code = "NOT_FOUND"


class PoolExhausted(DeviceError):
    """No free address left in the VPN subnet"""
    error_code = "POOL_EXHAUSTED"


class PersistenceFailure(DeviceError):
    """The device registry was unavailable or rejected the write"""
    error_code = "PERSISTENCE_FAILURE"


class ActivationFailure(DeviceError):
    """
    The peer gateway failed to apply or remove a peer

    `device` is set when the registry write already committed, so the
    caller can see what is now persisted without a live peer.
    """
    error_code = "ACTIVATION_FAILURE"

    def __init__(self, message: str, details: Optional[dict] = None, device=None):
        super().__init__(message, details)
        self.device = device


# === Collaborator errors ===

class RegistryError(Exception):
    """Raised by the device registry when its backend fails"""


class DeviceNotFound(RegistryError):
    """Raised by the device registry when no record has the given name"""


class PeerGatewayError(Exception):
    """Raised by the peer gateway when the tunnel interface cannot be programmed"""
