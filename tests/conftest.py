"""Shared fixtures and fakes for elgato-light tests."""

from __future__ import annotations

import ipaddress
from typing import Optional

import pytest

from elgato_light.cache import TargetCache
from elgato_light.client import Light, LightStatus
from elgato_light.discovery import LightDiscovery
from elgato_light.errors import DeviceUnreachable, NoneFound
from elgato_light.targets import Target


def make_target(name: str, address: str, port: int = 9123) -> Target:
    return Target(name=name, address=ipaddress.IPv4Address(address), port=port)


class FakeDiscovery(LightDiscovery):
    """Discovery that returns a fixed list and counts calls."""

    def __init__(self, targets: Optional[list[Target]] = None):
        self.targets = targets or []
        self.calls: list[float] = []

    def discover(self, timeout: float) -> list[Target]:
        self.calls.append(timeout)
        if not self.targets:
            raise NoneFound(timeout)
        return sorted(self.targets, key=lambda t: t.name)


class FakeDeviceClient:
    """In-memory stand-in for DeviceClient keyed by target name."""

    def __init__(self, lights: Optional[dict[str, Light]] = None, unreachable: tuple[str, ...] = ()):
        self.lights = dict(lights or {})
        self.unreachable = set(unreachable)
        self.calls: list[tuple[str, str]] = []
        self.writes: dict[str, LightStatus] = {}

    async def get_status(self, target: Target) -> LightStatus:
        self.calls.append(("get", target.name))
        if target.name in self.unreachable:
            raise DeviceUnreachable(target, ConnectionRefusedError("connection refused"))
        light = self.lights[target.name]
        return LightStatus(number_of_lights=1, lights=[light])

    async def set_status(self, target: Target, status: LightStatus) -> None:
        self.calls.append(("set", target.name))
        if target.name in self.unreachable:
            raise DeviceUnreachable(target, ConnectionRefusedError("connection refused"))
        self.writes[target.name] = status
        self.lights[target.name] = status.lights[0]

    async def __aenter__(self) -> FakeDeviceClient:
        return self

    async def __aexit__(self, *args) -> None:
        pass


@pytest.fixture
def desk_lights():
    """Two lights as discovery would report them."""
    return [
        make_target("Desk Left", "192.168.1.50"),
        make_target("Desk Right", "192.168.1.51"),
    ]


@pytest.fixture
def cache(tmp_path):
    """Cache store in a temporary directory."""
    return TargetCache(tmp_path / "cache" / "targets.yaml")


@pytest.fixture(autouse=True)
def isolated_environment(tmp_path, monkeypatch):
    """Keep tests away from the real config, cache and environment overrides."""
    monkeypatch.setenv("XDG_CACHE_HOME", str(tmp_path / "xdg-cache"))
    monkeypatch.setenv("ELGATO_LIGHT_CONFIG", str(tmp_path / "config.yaml"))
    monkeypatch.delenv("ELGATO_LIGHT_IP", raising=False)
    monkeypatch.delenv("ELGATO_LIGHT_DISABLE_DISCOVERY", raising=False)
