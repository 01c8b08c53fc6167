"""In-memory collaborators for exercising the DeviceManager without wg(8) or a database."""

from __future__ import annotations

import threading

from access_server.core.errors import DeviceNotFound, PeerGatewayError, RegistryError


class FakePeerGateway:
    """Peer table kept in a dict of public_key -> allowed_ips."""

    def __init__(
        self,
        endpoint: str = "vpn.example.com:51820",
        dns: str = "1.1.1.1",
        public_key: str = "server-public-key=",
    ):
        self.endpoint = endpoint
        self.dns = dns
        self.public_key = public_key
        self.peers: dict[str, str] = {}
        self.fail_add = False
        self.fail_remove = False
        self.fail_list = False
        self.fail_add_for: set[str] = set()
        self.add_calls: list[tuple[str, str]] = []
        self.remove_calls: list[str] = []
        self.up = True
        self._lock = threading.Lock()

    def add_peer(self, public_key: str, allowed_ips: str) -> None:
        with self._lock:
            self.add_calls.append((public_key, allowed_ips))
            if self.fail_add or public_key in self.fail_add_for:
                raise PeerGatewayError("wg set failed: interface busy")
            self.peers[public_key] = allowed_ips

    def remove_peer(self, public_key: str) -> None:
        with self._lock:
            self.remove_calls.append(public_key)
            if self.fail_remove:
                raise PeerGatewayError("wg set failed: interface busy")
            self.peers.pop(public_key, None)

    def list_peers(self) -> list[dict]:
        with self._lock:
            if self.fail_list:
                raise PeerGatewayError("wg show failed")
            return [
                {"public_key": key, "endpoint": None, "allowed_ips": ips, "latest_handshake": None}
                for key, ips in self.peers.items()
            ]

    def is_interface_up(self) -> bool:
        return self.up


class InMemoryRegistry:
    """Thread-safe device store with switchable failures."""

    def __init__(self):
        self.devices: dict = {}
        self.fail_save = False
        self.fail_delete = False
        self.fail_list = False
        self._lock = threading.Lock()

    def save(self, device) -> None:
        with self._lock:
            if self.fail_save:
                raise RegistryError("disk full")
            self.devices[device.name] = device

    def get(self, name: str):
        with self._lock:
            if name not in self.devices:
                raise DeviceNotFound(f"device '{name}' does not exist")
            return self.devices[name]

    def list(self) -> list:
        with self._lock:
            if self.fail_list:
                raise RegistryError("database is locked")
            return sorted(self.devices.values(), key=lambda d: (d.created_at, d.name))

    def delete(self, device) -> None:
        with self._lock:
            if self.fail_delete:
                raise RegistryError("database is locked")
            if device.name not in self.devices:
                raise DeviceNotFound(f"device '{device.name}' does not exist")
            del self.devices[device.name]
