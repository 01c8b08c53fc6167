# access_server/core/wireguard_service.py
"""
WireGuard Service
Programs client peers onto the server's live WireGuard interface
"""

import subprocess
import logging
from typing import List, Optional

from access_server.config import settings
from .errors import PeerGatewayError

logger = logging.getLogger(__name__)


class WireGuardService:
    """
    Manages peers on the server's WireGuard interface through wg(8)

    Responsibilities:
    - Add peers when devices are created or re-synced
    - Remove peers when devices are deleted or orphaned
    - Expose the server endpoint, DNS and public key that new devices snapshot

    Every command runs with a bounded timeout so a hung interface cannot
    stall a reconciliation pass. Failures raise PeerGatewayError.
    """

    def __init__(
        self,
        interface: Optional[str] = None,
        endpoint: Optional[str] = None,
        dns: Optional[List[str]] = None,
        public_key: Optional[str] = None,
        timeout: Optional[float] = None,
    ):
        self.interface = interface or settings.WG_INTERFACE
        self._endpoint = endpoint if endpoint is not None else settings.WG_ENDPOINT
        self._dns = dns if dns is not None else settings.WG_DNS
        self._public_key = public_key or settings.WG_PUBLIC_KEY
        self.timeout = timeout or settings.WG_COMMAND_TIMEOUT

    def _run(self, cmd: list) -> subprocess.CompletedProcess:
        """Run a wg command, translating every failure into PeerGatewayError"""
        logger.debug(f"Running: {' '.join(cmd)}")
        try:
            return subprocess.run(
                cmd,
                check=True,
                capture_output=True,
                text=True,
                timeout=self.timeout
            )
        except subprocess.CalledProcessError as e:
            raise PeerGatewayError(f"'{' '.join(cmd[:3])}' failed: {(e.stderr or '').strip()}") from e
        except subprocess.TimeoutExpired as e:
            raise PeerGatewayError(f"'{' '.join(cmd[:3])}' timed out after {self.timeout}s") from e
        except FileNotFoundError as e:
            raise PeerGatewayError("WireGuard tools not installed. Please install wireguard-tools.") from e

    # === Server snapshot accessors ===

    @property
    def endpoint(self) -> str:
        """Public host:port clients connect to"""
        return self._endpoint

    @property
    def dns(self) -> str:
        """DNS servers pushed to clients, comma separated"""
        return ", ".join(self._dns)

    @property
    def public_key(self) -> str:
        """Server public key, read from the interface when not configured"""
        if not self._public_key:
            result = self._run(["wg", "show", self.interface, "public-key"])
            self._public_key = result.stdout.strip()
        return self._public_key

    # === Peer management ===

    def add_peer(self, public_key: str, allowed_ips: str) -> None:
        """
        Add or refresh a peer on the WireGuard interface

        `wg set` replaces the allowed-ips of an existing peer, so applying
        the same peer twice leaves the peer table unchanged.

        Args:
            public_key: WireGuard public key of the peer
            allowed_ips: Allowed IPs for the peer (e.g., "10.0.0.2/32")
        """
        self._run([
            "wg", "set", self.interface,
            "peer", public_key,
            "allowed-ips", allowed_ips
        ])
        logger.info(f"Added peer: {public_key[:20]}... -> {allowed_ips}")

    def remove_peer(self, public_key: str) -> None:
        """
        Remove a peer from the WireGuard interface

        Removing a peer that is not configured is a no-op for wg(8).
        """
        self._run([
            "wg", "set", self.interface,
            "peer", public_key,
            "remove"
        ])
        logger.info(f"Removed peer: {public_key[:20]}...")

    def list_peers(self) -> List[dict]:
        """Get list of current peers from `wg show <iface> dump`"""
        result = self._run(["wg", "show", self.interface, "dump"])
        peers = []

        for line in result.stdout.strip().split('\n')[1:]:  # Skip interface line
            parts = line.split('\t')
            if len(parts) >= 4:
                peers.append({
                    'public_key': parts[0],
                    'endpoint': parts[2] if parts[2] != '(none)' else None,
                    'allowed_ips': parts[3],
                    'latest_handshake': parts[4] if len(parts) > 4 else None,
                })

        return peers

    def is_interface_up(self) -> bool:
        """Check if WireGuard interface is running"""
        try:
            self._run(["wg", "show", self.interface])
            return True
        except PeerGatewayError:
            return False
