# access_server/core/device_registry.py
"""
Device Registry
Durable storage of Device records, keyed by device name
"""

import logging
from typing import List

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import sessionmaker

from access_server.database.models import Device
from .errors import RegistryError, DeviceNotFound

logger = logging.getLogger(__name__)


class DeviceRegistry:
    """
    SQLAlchemy-backed device store

    Each call opens its own session and commits a single record, so one
    registry can be shared by concurrent request threads. There is no
    multi-record transaction; callers must not assume one.
    """

    def __init__(self, session_factory: sessionmaker):
        self.session_factory = session_factory

    def save(self, device: Device) -> None:
        """Persist a new device record"""
        db = self.session_factory()
        try:
            db.add(device)
            db.commit()
        except SQLAlchemyError as e:
            db.rollback()
            raise RegistryError(f"failed to save device '{device.name}': {e}") from e
        finally:
            db.close()

    def get(self, name: str) -> Device:
        """Get a device by name, raising DeviceNotFound when missing"""
        db = self.session_factory()
        try:
            device = db.get(Device, name)
        except SQLAlchemyError as e:
            raise RegistryError(f"failed to read device '{name}': {e}") from e
        finally:
            db.close()

        if device is None:
            raise DeviceNotFound(f"device '{name}' does not exist")
        return device

    def list(self) -> List[Device]:
        """All devices, oldest first"""
        db = self.session_factory()
        try:
            return db.query(Device).order_by(Device.created_at, Device.name).all()
        except SQLAlchemyError as e:
            raise RegistryError(f"failed to list devices: {e}") from e
        finally:
            db.close()

    def delete(self, device: Device) -> None:
        """Delete a device record"""
        db = self.session_factory()
        try:
            deleted = db.query(Device).filter(Device.name == device.name).delete()
            db.commit()
        except SQLAlchemyError as e:
            db.rollback()
            raise RegistryError(f"failed to delete device '{device.name}': {e}") from e
        finally:
            db.close()

        if not deleted:
            raise DeviceNotFound(f"device '{device.name}' does not exist")
