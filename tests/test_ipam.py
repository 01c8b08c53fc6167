"""Tests for the VPN address pool."""

from __future__ import annotations

import ipaddress

import pytest

from access_server.core.errors import PoolExhausted
from access_server.core.ipam import IPAMService


class TestAllocate:
    def test_first_allocation_skips_network_and_gateway(self, ipam):
        assert ipam.allocate(set()) == "10.0.0.2/32"

    def test_returns_lowest_free_address(self, ipam):
        assert ipam.allocate({"10.0.0.2/32", "10.0.0.3/32"}) == "10.0.0.4/32"

    def test_fills_gaps_first(self, ipam):
        used = {"10.0.0.2/32", "10.0.0.4/32", "10.0.0.5/32"}
        assert ipam.allocate(used) == "10.0.0.3/32"

    def test_accepts_addresses_without_prefix(self, ipam):
        assert ipam.allocate({"10.0.0.2"}) == "10.0.0.3/32"

    def test_deterministic(self, ipam):
        used = {"10.0.0.2/32", "10.0.0.7/32"}
        assert ipam.allocate(used) == ipam.allocate(used)

    def test_never_returns_broadcast(self, ipam):
        used = {f"10.0.0.{i}/32" for i in range(2, 255)}
        with pytest.raises(PoolExhausted):
            ipam.allocate(used)

    def test_last_usable_address(self, ipam):
        used = {f"10.0.0.{i}/32" for i in range(2, 254)}
        assert ipam.allocate(used) == "10.0.0.254/32"

    def test_carries_across_octets(self):
        pool = IPAMService("10.0.0.0/23", gateway="10.0.0.1")
        used = {f"10.0.0.{i}/32" for i in range(2, 256)}
        assert pool.allocate(used) == "10.0.1.0/32"

    def test_small_subnet_exhaustion(self):
        pool = IPAMService("192.168.5.0/30")
        assert pool.allocate(set()) == "192.168.5.2/32"
        with pytest.raises(PoolExhausted) as exc:
            pool.allocate({"192.168.5.2/32"})
        assert exc.value.error_code == "POOL_EXHAUSTED"
        assert exc.value.details["network"] == "192.168.5.0/30"

    def test_custom_gateway_is_reserved(self):
        pool = IPAMService("10.8.0.0/24", gateway="10.8.0.2")
        assert pool.allocate(set()) == "10.8.0.1/32"
        assert pool.allocate({"10.8.0.1/32"}) == "10.8.0.3/32"

    def test_gateway_outside_network_rejected(self):
        with pytest.raises(ValueError):
            IPAMService("10.0.0.0/24", gateway="10.1.0.1")

    def test_allocated_address_is_inside_network(self, ipam):
        address = ipam.allocate({"10.0.0.2/32"})
        assert ipaddress.ip_interface(address).ip in ipam.network


class TestHelpers:
    def test_reserved_addresses(self, ipam):
        assert ipam.is_reserved("10.0.0.0")
        assert ipam.is_reserved("10.0.0.1/32")
        assert ipam.is_reserved("10.0.0.255")
        assert not ipam.is_reserved("10.0.0.2")

    def test_total_hosts(self, ipam):
        assert ipam.total_hosts == 253

    def test_allocation_stats(self, ipam):
        from types import SimpleNamespace

        devices = [SimpleNamespace(address="10.0.0.2/32"), SimpleNamespace(address="10.0.0.3/32")]
        stats = ipam.get_allocation_stats(devices)

        assert stats["network"] == "10.0.0.0/24"
        assert stats["gateway"] == "10.0.0.1"
        assert stats["used"] == 2
        assert stats["available"] == 251
        assert stats["reserved"] == ["10.0.0.0", "10.0.0.1", "10.0.0.255"]
