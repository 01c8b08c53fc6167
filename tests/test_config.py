from __future__ import annotations

from access_server.config import Settings


def test_defaults_describe_a_24_subnet(monkeypatch):
    monkeypatch.delenv("VPN_NETWORK", raising=False)
    monkeypatch.delenv("VPN_GATEWAY", raising=False)

    settings = Settings(_env_file=None)

    assert settings.VPN_NETWORK == "10.0.0.0/24"
    assert settings.VPN_GATEWAY == "10.0.0.1"
    assert settings.SYNC_PRUNE_ORPHANS is True


def test_environment_overrides(monkeypatch):
    monkeypatch.setenv("VPN_NETWORK", "10.8.0.0/16")
    monkeypatch.setenv("WG_DNS", '["9.9.9.9"]')
    monkeypatch.setenv("WG_COMMAND_TIMEOUT", "1.5")
    monkeypatch.setenv("ENV", "production")

    settings = Settings(_env_file=None)

    assert settings.VPN_NETWORK == "10.8.0.0/16"
    assert settings.WG_DNS == ["9.9.9.9"]
    assert settings.WG_COMMAND_TIMEOUT == 1.5
    assert settings.is_production
