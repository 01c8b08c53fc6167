"""Tests for the wg(8) peer gateway (subprocess mocked)."""

from __future__ import annotations

import subprocess
from unittest.mock import MagicMock, patch

import pytest

from access_server.core.errors import PeerGatewayError
from access_server.core.wireguard_service import WireGuardService


def _completed(stdout: str = "") -> subprocess.CompletedProcess:
    return subprocess.CompletedProcess(args=[], returncode=0, stdout=stdout, stderr="")


@pytest.fixture()
def service():
    return WireGuardService(
        interface="wg0",
        endpoint="vpn.example.com:51820",
        dns=["1.1.1.1", "8.8.8.8"],
        public_key="server-public-key=",
        timeout=2.5,
    )


class TestPeerCommands:
    def test_add_peer(self, service):
        with patch("access_server.core.wireguard_service.subprocess.run", return_value=_completed()) as run:
            service.add_peer("client-key=", "10.0.0.2/32")

        cmd = run.call_args.args[0]
        assert cmd == ["wg", "set", "wg0", "peer", "client-key=", "allowed-ips", "10.0.0.2/32"]
        assert run.call_args.kwargs["timeout"] == 2.5
        assert run.call_args.kwargs["check"] is True

    def test_remove_peer(self, service):
        with patch("access_server.core.wireguard_service.subprocess.run", return_value=_completed()) as run:
            service.remove_peer("client-key=")

        assert run.call_args.args[0] == ["wg", "set", "wg0", "peer", "client-key=", "remove"]

    def test_command_failure_raises(self, service):
        error = subprocess.CalledProcessError(1, ["wg"], stderr="Unable to modify interface: No such device")
        with patch("access_server.core.wireguard_service.subprocess.run", side_effect=error):
            with pytest.raises(PeerGatewayError, match="No such device"):
                service.add_peer("client-key=", "10.0.0.2/32")

    def test_timeout_raises(self, service):
        error = subprocess.TimeoutExpired(["wg"], 2.5)
        with patch("access_server.core.wireguard_service.subprocess.run", side_effect=error):
            with pytest.raises(PeerGatewayError, match="timed out"):
                service.remove_peer("client-key=")

    def test_missing_wg_binary(self, service):
        with patch("access_server.core.wireguard_service.subprocess.run", side_effect=FileNotFoundError("wg")):
            with pytest.raises(PeerGatewayError, match="wireguard-tools"):
                service.add_peer("client-key=", "10.0.0.2/32")


class TestListPeers:
    def test_parses_dump(self, service):
        dump = (
            "server-private=\tserver-public=\t51820\toff\n"
            "key-a=\t(none)\t203.0.113.5:40000\t10.0.0.2/32\t1700000000\t100\t200\toff\n"
            "key-b=\t(none)\t(none)\t10.0.0.3/32\t0\t0\t0\toff\n"
        )
        with patch("access_server.core.wireguard_service.subprocess.run", return_value=_completed(dump)):
            peers = service.list_peers()

        assert [p["public_key"] for p in peers] == ["key-a=", "key-b="]
        assert peers[0]["endpoint"] == "203.0.113.5:40000"
        assert peers[1]["endpoint"] is None
        assert peers[1]["allowed_ips"] == "10.0.0.3/32"

    def test_empty_interface(self, service):
        dump = "server-private=\tserver-public=\t51820\toff\n"
        with patch("access_server.core.wireguard_service.subprocess.run", return_value=_completed(dump)):
            assert service.list_peers() == []


class TestServerSnapshot:
    def test_configured_values(self, service):
        assert service.endpoint == "vpn.example.com:51820"
        assert service.dns == "1.1.1.1, 8.8.8.8"
        assert service.public_key == "server-public-key="

    def test_public_key_read_from_interface_once(self):
        service = WireGuardService(interface="wg0", public_key="")
        run = MagicMock(return_value=_completed("interface-public-key=\n"))
        with patch("access_server.core.wireguard_service.subprocess.run", run):
            assert service.public_key == "interface-public-key="
            assert service.public_key == "interface-public-key="

        run.assert_called_once()
        assert run.call_args.args[0] == ["wg", "show", "wg0", "public-key"]

    def test_interface_down(self, service):
        error = subprocess.CalledProcessError(1, ["wg"], stderr="No such device")
        with patch("access_server.core.wireguard_service.subprocess.run", side_effect=error):
            assert service.is_interface_up() is False
