# access_server/core/ipam.py
"""
IP Address Management (IPAM) Service
Allocates single-host VPN addresses for client devices
"""

import ipaddress
from typing import Iterable, Optional, Set
import logging

from access_server.config import settings
from .errors import PoolExhausted

logger = logging.getLogger(__name__)


def _host_ip(address: str) -> ipaddress.IPv4Address:
    """Parse '10.0.0.2/32' or '10.0.0.2' into an address"""
    return ipaddress.IPv4Address(address.split('/')[0])


class IPAMService:
    """
    IPAM Service for the VPN subnet

    Holds no allocation state of its own: the used set is always derived
    from the current device registry, and concurrent callers are serialised
    by the DeviceManager's allocation lock.

    Features:
    - Lowest-free address allocation
    - Reserved IPs (network, gateway, broadcast)
    - Pool statistics
    """

    def __init__(self, network_cidr: Optional[str] = None, gateway: Optional[str] = None):
        """
        Initialize IPAM with network CIDR

        Args:
            network_cidr: Network in CIDR notation (e.g., "10.0.0.0/24")
            gateway: Server address inside the subnet, defaults to the first usable address
        """
        self.network_cidr = network_cidr or settings.VPN_NETWORK
        self.network = ipaddress.IPv4Network(self.network_cidr, strict=False)
        if gateway is None:
            gateway = settings.VPN_GATEWAY if network_cidr is None else str(self.network.network_address + 1)
        self.gateway = ipaddress.IPv4Address(gateway)

        if self.gateway not in self.network:
            raise ValueError(f"Gateway {self.gateway} is not in network {self.network}")

        # Reserved IPs that cannot be allocated
        self._reserved_ips = {
            self.network.network_address,    # Network address (10.0.0.0)
            self.gateway,                    # Gateway/server (10.0.0.1)
            self.network.broadcast_address,  # Broadcast (10.0.0.255)
        }

        logger.debug(f"IPAM initialized with network {self.network} gateway {self.gateway}")

    @property
    def total_hosts(self) -> int:
        """Total allocatable host addresses"""
        return max(self.network.num_addresses - len(self._reserved_ips), 0)

    def is_reserved(self, ip: str) -> bool:
        """Check if IP is reserved"""
        return _host_ip(ip) in self._reserved_ips

    @staticmethod
    def used_addresses(devices: Iterable) -> Set[str]:
        """Collect the addresses held by a sequence of devices"""
        return {device.address for device in devices if device.address}

    def allocate(self, used: Iterable[str]) -> str:
        """
        Return the lowest free address in the subnet as a /32 CIDR

        Args:
            used: Addresses already assigned, with or without a prefix

        Raises:
            PoolExhausted: If every usable address is taken
        """
        used_ips = {_host_ip(address) for address in used}

        # Walk the whole range; the address arithmetic carries across octets
        ip = self.network.network_address
        last = self.network.broadcast_address
        while ip <= last:
            if ip not in self._reserved_ips and ip not in used_ips:
                logger.debug(f"Allocated IP {ip}")
                return f"{ip}/32"
            if ip == last:
                break
            ip += 1

        logger.error(f"IP pool exhausted for {self.network}")
        raise PoolExhausted(
            f"There are no free IP addresses in the VPN subnet '{self.network}'",
            details={"network": str(self.network), "used": len(used_ips)},
        )

    def get_allocation_stats(self, devices: Iterable) -> dict:
        """
        Get IP allocation statistics

        Returns:
            Dictionary with allocation stats
        """
        used_count = len(self.used_addresses(devices))

        return {
            "network": str(self.network),
            "gateway": str(self.gateway),
            "total_hosts": self.total_hosts,
            "used": used_count,
            "available": self.total_hosts - used_count,
            "reserved": sorted(str(ip) for ip in self._reserved_ips),
            "utilization_percent": round((used_count / self.total_hosts) * 100, 2) if self.total_hosts > 0 else 0
        }
