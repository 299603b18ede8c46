"""Addressable light targets."""

from __future__ import annotations

import ipaddress
from dataclasses import dataclass
from typing import Any

# Port the Elgato HTTP API listens on
DEFAULT_PORT = 9123


@dataclass(frozen=True)
class Target:
    """One resolved, addressable light.

    Targets are immutable; every resolution builds a fresh list of them.
    """

    name: str
    address: ipaddress.IPv4Address
    port: int = DEFAULT_PORT

    def __post_init__(self) -> None:
        if not isinstance(self.address, ipaddress.IPv4Address):
            object.__setattr__(self, "address", ipaddress.IPv4Address(self.address))
        if self.address.is_unspecified:
            raise ValueError(f"{self.address} is not a usable host address")
        if not 0 < int(self.port) <= 0xFFFF:
            raise ValueError(f"port must be between 1 and 65535, got {self.port}")
        object.__setattr__(self, "port", int(self.port))

    @property
    def url(self) -> str:
        """Base URL of the light's HTTP API."""
        return f"http://{self.address}:{self.port}"

    @classmethod
    def from_address(cls, text: str) -> Target:
        """Create a target from an explicit address, named after the address itself."""
        address = ipaddress.IPv4Address(text)
        return cls(name=str(address), address=address, port=DEFAULT_PORT)

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for serialization."""
        return {"name": self.name, "address": str(self.address), "port": self.port}

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> Target:
        """Create from dictionary."""
        return cls(
            name=str(data["name"]),
            address=ipaddress.IPv4Address(data["address"]),
            port=int(data.get("port", DEFAULT_PORT)),
        )

    def __str__(self) -> str:
        return self.name
