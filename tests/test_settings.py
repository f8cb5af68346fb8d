"""
Tests for `services/settings.py`.

The .env file is never loaded here; every variable comes from monkeypatch.
"""

import pytest

from services.settings import PacketSettings

_VARS = (
    "PACKET_STORE_BACKEND",
    "SUPABASE_URL",
    "SUPABASE_KEY",
    "SUPABASE_KV_TABLE",
    "PACKET_KEY_PREFIX",
    "PACKET_LOCK_LEASE_SECONDS",
    "PACKET_LOCK_WAIT_SECONDS",
    "PACKET_DEFAULT_EXPIRE_MINUTES",
    "PACKET_EXPIRED_RETENTION_SECONDS",
)


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    for name in _VARS:
        monkeypatch.delenv(name, raising=False)


def test_memory_backend_defaults(monkeypatch) -> None:
    monkeypatch.setenv("PACKET_STORE_BACKEND", "memory")

    settings = PacketSettings.from_env(load_env_file=False)

    assert settings.backend == "memory"
    assert settings.kv_table == "packet_store"
    assert settings.key_prefix == "redpacket"
    assert settings.lock_lease_seconds == 10.0
    assert settings.lock_wait_seconds == 0.0
    assert settings.default_expire_minutes == 1440
    assert settings.expired_retention_seconds == 600


def test_overrides_are_read(monkeypatch) -> None:
    monkeypatch.setenv("PACKET_STORE_BACKEND", "Supabase")
    monkeypatch.setenv("SUPABASE_URL", "https://example.supabase.co")
    monkeypatch.setenv("SUPABASE_KEY", "service-key")
    monkeypatch.setenv("SUPABASE_KV_TABLE", "kv")
    monkeypatch.setenv("PACKET_KEY_PREFIX", "lp")
    monkeypatch.setenv("PACKET_LOCK_LEASE_SECONDS", "2.5")
    monkeypatch.setenv("PACKET_LOCK_WAIT_SECONDS", "0.2")
    monkeypatch.setenv("PACKET_DEFAULT_EXPIRE_MINUTES", "30")
    monkeypatch.setenv("PACKET_EXPIRED_RETENTION_SECONDS", "0")

    settings = PacketSettings.from_env(load_env_file=False)

    assert settings.backend == "supabase"
    assert settings.supabase_url == "https://example.supabase.co"
    assert settings.supabase_key == "service-key"
    assert settings.kv_table == "kv"
    assert settings.key_prefix == "lp"
    assert settings.lock_lease_seconds == 2.5
    assert settings.lock_wait_seconds == 0.2
    assert settings.default_expire_minutes == 30
    assert settings.expired_retention_seconds == 0


def test_supabase_backend_requires_credentials(monkeypatch) -> None:
    with pytest.raises(RuntimeError, match="SUPABASE_URL"):
        PacketSettings.from_env(load_env_file=False)

    monkeypatch.setenv("SUPABASE_URL", "https://example.supabase.co")
    with pytest.raises(RuntimeError, match="SUPABASE_KEY"):
        PacketSettings.from_env(load_env_file=False)


def test_unknown_backend_is_rejected(monkeypatch) -> None:
    monkeypatch.setenv("PACKET_STORE_BACKEND", "redis")

    with pytest.raises(RuntimeError, match="PACKET_STORE_BACKEND"):
        PacketSettings.from_env(load_env_file=False)


@pytest.mark.parametrize(
    "name, value",
    [
        ("PACKET_LOCK_LEASE_SECONDS", "soon"),
        ("PACKET_LOCK_LEASE_SECONDS", "0"),
        ("PACKET_LOCK_WAIT_SECONDS", "-1"),
        ("PACKET_DEFAULT_EXPIRE_MINUTES", "0"),
        ("PACKET_EXPIRED_RETENTION_SECONDS", "-5"),
    ],
)
def test_invalid_numbers_are_rejected(monkeypatch, name, value) -> None:
    monkeypatch.setenv("PACKET_STORE_BACKEND", "memory")
    monkeypatch.setenv(name, value)

    with pytest.raises(RuntimeError, match=name):
        PacketSettings.from_env(load_env_file=False)
