# access_server/core/device_manager.py
"""
Device Manager - Handles the device lifecycle

Coordinates three collaborators:
1. IPAMService picks the address
2. DeviceRegistry persists the record (source of truth)
3. WireGuardService activates the peer on the live interface

The registry is always written first and the peer second. A failed peer
step leaves a record without a live peer, which the next sync() repairs.
"""

import logging
import threading
from contextlib import contextmanager
from dataclasses import dataclass, field
from datetime import datetime
from typing import Dict, Iterable, Iterator, List, Optional

from access_server.database.models import Device
from .errors import (
    ActivationFailure,
    DeviceAlreadyExists,
    DeviceNotFound,
    InvalidInput,
    NotFound,
    PeerGatewayError,
    PersistenceFailure,
    PublicKeyInUse,
    RegistryError,
)
from .ipam import IPAMService

logger = logging.getLogger(__name__)


@dataclass
class SyncReport:
    """Outcome of one reconciliation pass"""
    activated: List[str] = field(default_factory=list)
    pruned: List[str] = field(default_factory=list)
    failed: Dict[str, str] = field(default_factory=dict)

    @property
    def ok(self) -> bool:
        return not self.failed


class _NameLock:
    __slots__ = ("lock", "users")

    def __init__(self):
        self.lock = threading.Lock()
        self.users = 0


class DeviceManager:
    """
    Device lifecycle coordinator

    Responsibilities:
    1. Allocate collision-free addresses under concurrent requests
    2. Keep the registry and the live peer table in agreement
    3. Report which subsystem failed when they disagree
    4. Reconcile the peer table with the registry (sync)

    The allocation lock belongs to the instance, so independent managers
    (e.g. one per test) never contend with each other.
    """

    def __init__(
        self,
        registry,
        gateway,
        ipam: Optional[IPAMService] = None,
        prune_orphans: bool = True,
        static_peers: Iterable[str] = (),
    ):
        self.registry = registry
        self.gateway = gateway
        self.ipam = ipam or IPAMService()
        self.prune_orphans = prune_orphans
        self.static_peers = set(static_peers)

        self._allocation_lock = threading.Lock()
        self._name_locks: Dict[str, _NameLock] = {}
        self._name_locks_guard = threading.Lock()

    @contextmanager
    def _name_lock(self, name: str) -> Iterator[None]:
        """
        Hold the lock serialising add/delete/sync for one device name

        Entries are reference counted and dropped once the last holder or
        waiter leaves, so the map only contains names currently in use.
        """
        with self._name_locks_guard:
            entry = self._name_locks.get(name)
            if entry is None:
                entry = self._name_locks[name] = _NameLock()
            entry.users += 1

        try:
            with entry.lock:
                yield
        finally:
            with self._name_locks_guard:
                entry.users -= 1
                if entry.users == 0:
                    del self._name_locks[name]

    def _list(self) -> List[Device]:
        try:
            return self.registry.list()
        except RegistryError as e:
            logger.error(f"Failed to list devices: {e}")
            raise PersistenceFailure("failed to list devices", details={"reason": str(e)}) from e

    # === Lifecycle operations ===

    def add_device(self, name: str, public_key: str) -> Device:
        """
        Provision a new device

        Raises:
            InvalidInput: Empty name or public key
            DeviceAlreadyExists: Name already registered
            PublicKeyInUse: Public key already held by another device
            PoolExhausted: No free address in the subnet
            PersistenceFailure: Registry read or write failed, nothing activated
            ActivationFailure: Record persisted but the peer was not applied
        """
        if not name or not name.strip():
            raise InvalidInput("device name must not be empty")
        if not public_key or not public_key.strip():
            raise InvalidInput("device public key must not be empty", details={"name": name})

        try:
            endpoint = self.gateway.endpoint
            dns = self.gateway.dns
            server_public_key = self.gateway.public_key
        except PeerGatewayError as e:
            raise ActivationFailure(
                "failed to read the server configuration from the peer gateway",
                details={"name": name, "reason": str(e)},
            ) from e

        with self._name_lock(name):
            with self._allocation_lock:
                devices = self._list()
                if any(d.name == name for d in devices):
                    raise DeviceAlreadyExists(f"device '{name}' already exists", details={"name": name})

                # The peer table is keyed by public key; two devices cannot share one peer
                owner = next((d.name for d in devices if d.public_key == public_key), None)
                if owner is not None:
                    raise PublicKeyInUse(
                        f"public key is already registered to device '{owner}'",
                        details={"name": name, "owner": owner},
                    )

                address = self.ipam.allocate(self.ipam.used_addresses(devices))

                device = Device(
                    name=name,
                    public_key=public_key,
                    address=address,
                    endpoint=endpoint,
                    dns=dns,
                    server_public_key=server_public_key,
                    created_at=datetime.utcnow(),
                )

                try:
                    self.registry.save(device)
                except RegistryError as e:
                    logger.error(f"Failed to save device '{name}': {e}")
                    raise PersistenceFailure(
                        "failed to save the new device",
                        details={"name": name, "reason": str(e)},
                    ) from e

            try:
                self.gateway.add_peer(public_key, address)
            except PeerGatewayError as e:
                logger.error(f"Device '{name}' saved but peer activation failed: {e}")
                raise ActivationFailure(
                    "device was saved but the peer could not be provisioned; the next sync will retry",
                    details={"name": name, "address": address, "reason": str(e)},
                    device=device,
                ) from e

        logger.info(f"Created device: {name}, IP: {address}")
        return device

    def delete_device(self, name: str) -> None:
        """
        Revoke a device

        Raises:
            NotFound: No device with that name
            PersistenceFailure: Registry delete failed, peer left active
            ActivationFailure: Record deleted but the peer is still live
        """
        with self._name_lock(name):
            device = self.get_device(name)

            try:
                self.registry.delete(device)
            except DeviceNotFound as e:
                raise NotFound(f"device '{name}' does not exist", details={"name": name}) from e
            except RegistryError as e:
                logger.error(f"Failed to delete device '{name}': {e}")
                raise PersistenceFailure(
                    "failed to delete the device",
                    details={"name": name, "reason": str(e)},
                ) from e

            try:
                self.gateway.remove_peer(device.public_key)
            except PeerGatewayError as e:
                logger.error(f"Device '{name}' deleted but peer removal failed: {e}")
                raise ActivationFailure(
                    "device was removed from storage but failed to be removed from the wireguard interface",
                    details={"name": name, "public_key": device.public_key, "reason": str(e)},
                ) from e

        logger.info(f"Deleted device: {name}")

    def get_device(self, name: str) -> Device:
        """Get a device by name"""
        try:
            return self.registry.get(name)
        except DeviceNotFound as e:
            raise NotFound(f"device '{name}' does not exist", details={"name": name}) from e
        except RegistryError as e:
            raise PersistenceFailure(
                "failed to retrieve device",
                details={"name": name, "reason": str(e)},
            ) from e

    def list_devices(self) -> List[Device]:
        """All registered devices, in registry order"""
        return self._list()

    def pool_stats(self) -> dict:
        """Address pool utilisation"""
        return self.ipam.get_allocation_stats(self._list())

    # === Reconciliation ===

    def sync(self) -> SyncReport:
        """
        Re-apply every registered device onto the peer table

        Best effort: a device that fails is logged and skipped. When orphan
        pruning is enabled, live peers without a registry record are removed
        afterwards. The peer snapshot is taken before the registry is read;
        since devices are always persisted before they are activated, a peer
        added concurrently is either absent from the snapshot or present in
        the listing, and is never mistaken for an orphan.

        Raises:
            PersistenceFailure: The registry could not be listed
        """
        report = SyncReport()

        live_keys = None
        if self.prune_orphans:
            try:
                live_keys = {peer['public_key'] for peer in self.gateway.list_peers()}
            except PeerGatewayError as e:
                logger.warning(f"Failed to list live peers, skipping orphan pruning: {e}")

        devices = self._list()

        for device in devices:
            with self._name_lock(device.name):
                try:
                    # Re-read under the name lock so a concurrent delete is not undone
                    current = self.registry.get(device.name)
                except DeviceNotFound:
                    continue
                except RegistryError as e:
                    logger.warning(f"Failed to sync device '{device.name}' (ignoring): {e}")
                    report.failed[device.name] = str(e)
                    continue

                try:
                    self.gateway.add_peer(current.public_key, current.address)
                    report.activated.append(current.name)
                except PeerGatewayError as e:
                    logger.warning(f"Failed to sync device '{current.name}' (ignoring): {e}")
                    report.failed[current.name] = str(e)

        if live_keys is not None:
            known_keys = {d.public_key for d in devices} | self.static_peers
            for public_key in sorted(live_keys - known_keys):
                try:
                    self.gateway.remove_peer(public_key)
                    report.pruned.append(public_key)
                    logger.warning(f"Pruned orphan peer {public_key[:20]}...")
                except PeerGatewayError as e:
                    logger.warning(f"Failed to prune orphan peer {public_key[:20]}... (ignoring): {e}")
                    report.failed[public_key] = str(e)

        logger.info(
            f"Sync complete: {len(report.activated)} activated, "
            f"{len(report.pruned)} pruned, {len(report.failed)} failed"
        )
        return report
