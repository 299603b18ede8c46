"""mDNS discovery of Elgato lights.

Lights advertise the ``_elg._tcp.local.`` service. Discovery browses for it
for the whole timeout window, resolving every advertisement it sees, and
returns the lights sorted by name.

Two variants exist: :class:`ZeroconfDiscovery` does the actual browse and
:class:`UnsupportedDiscovery` fails fast where mDNS cannot work. Use
:func:`detect_discovery` to pick one for the current environment.
"""

from __future__ import annotations

import ipaddress
import logging
import os
import sys
import threading
import time
from abc import ABC, abstractmethod
from typing import Any, Callable, Mapping, Optional

from zeroconf import IPVersion, ServiceBrowser, ServiceInfo, ServiceListener, Zeroconf

from .config import ENV_DISABLE_DISCOVERY
from .errors import DiscoveryUnsupported, NoneFound
from .targets import Target

logger = logging.getLogger(__name__)

SERVICE_TYPE = "_elg._tcp.local."

# Platforms without the sockets mDNS needs
UNSUPPORTED_PLATFORMS = ("emscripten", "wasi")

# Upper bound for resolving a single advertisement, in milliseconds
RESOLVE_TIMEOUT_MS = 3000


def instance_name(full_name: str, service_type: str = SERVICE_TYPE) -> str:
    """Strip the service type suffix from an advertised instance name.

    Examples:
        >>> instance_name("Key Light Left._elg._tcp.local.")
        'Key Light Left'
    """
    suffix = "." + service_type
    if full_name.endswith(suffix):
        return full_name[: -len(suffix)]
    return full_name.rstrip(".")


def usable_ipv4(addresses: list[str]) -> Optional[ipaddress.IPv4Address]:
    """Return the first IPv4 address that is neither loopback nor unspecified."""
    for text in addresses:
        try:
            address = ipaddress.ip_address(text)
        except ValueError:
            continue
        if address.version != 4 or address.is_loopback or address.is_unspecified:
            continue
        return address
    return None


def target_from_service_info(info: ServiceInfo, service_type: str = SERVICE_TYPE) -> Optional[Target]:
    """Build a target from a resolved advertisement, or None if it has no usable address."""
    address = usable_ipv4(info.parsed_addresses(IPVersion.V4Only))
    if address is None or not info.port:
        return None
    return Target(name=instance_name(info.name, service_type), address=address, port=info.port)


class LightListener(ServiceListener):
    """Collects resolved lights while a browse is running.

    Callbacks arrive on the browser thread; results are keyed by name so an
    updated advertisement replaces the earlier one.
    """

    def __init__(self, service_type: str = SERVICE_TYPE, resolve_timeout_ms: int = RESOLVE_TIMEOUT_MS):
        self.service_type = service_type
        self.resolve_timeout_ms = resolve_timeout_ms
        self._lock = threading.Lock()
        self._found: dict[str, Target] = {}

    def add_service(self, zc: Zeroconf, type_: str, name: str) -> None:
        self._resolve(zc, type_, name)

    def update_service(self, zc: Zeroconf, type_: str, name: str) -> None:
        self._resolve(zc, type_, name)

    def remove_service(self, zc: Zeroconf, type_: str, name: str) -> None:
        # A light seen during the window still counts
        pass

    def _resolve(self, zc: Zeroconf, type_: str, name: str) -> None:
        info = zc.get_service_info(type_, name, timeout=self.resolve_timeout_ms)
        if info is None:
            logger.debug("Could not resolve %s", name)
            return

        target = target_from_service_info(info, self.service_type)
        if target is None:
            logger.debug("Skipping %s: no usable IPv4 address", name)
            return

        with self._lock:
            self._found[target.name] = target
        logger.debug("Found %s at %s:%d", target.name, target.address, target.port)

    @property
    def targets(self) -> list[Target]:
        """Lights found so far, sorted by name."""
        with self._lock:
            return sorted(self._found.values(), key=lambda t: t.name)


class LightDiscovery(ABC):
    """Base class for discovery variants."""

    available = True

    @abstractmethod
    def discover(self, timeout: float) -> list[Target]:
        """Find lights on the local network, sorted by name.

        Raises:
            NoneFound: No light answered within ``timeout`` seconds
            DiscoveryUnsupported: Discovery cannot run here
        """


class ZeroconfDiscovery(LightDiscovery):
    """Browse for lights with zeroconf."""

    def __init__(
        self,
        service_type: str = SERVICE_TYPE,
        zeroconf_factory: Optional[Callable[[], Zeroconf]] = None,
        browser_factory: Callable[..., Any] = ServiceBrowser,
        sleep: Callable[[float], None] = time.sleep,
    ):
        """
        Initialize the discovery client.

        Args:
            service_type: mDNS service type the lights advertise
            zeroconf_factory: Creates the zeroconf session (IPv4 only by default)
            browser_factory: Starts a browse, called as ``(zeroconf, service_type, listener)``
            sleep: Waits out the discovery window
        """
        self.service_type = service_type
        self.zeroconf_factory = zeroconf_factory or (lambda: Zeroconf(ip_version=IPVersion.V4Only))
        self.browser_factory = browser_factory
        self.sleep = sleep

    def discover(self, timeout: float) -> list[Target]:
        try:
            zc = self.zeroconf_factory()
        except OSError as e:
            raise DiscoveryUnsupported(f"could not open an mDNS socket ({e})") from e

        listener = LightListener(
            self.service_type, resolve_timeout_ms=max(100, min(RESOLVE_TIMEOUT_MS, int(timeout * 1000)))
        )
        browser = None
        logger.debug("Browsing for %s for %.1fs", self.service_type, timeout)
        try:
            browser = self.browser_factory(zc, self.service_type, listener)
            self.sleep(timeout)
        finally:
            if browser is not None:
                browser.cancel()
            zc.close()

        targets = listener.targets
        if not targets:
            raise NoneFound(timeout)
        logger.info("Discovered %d light(s)", len(targets))
        return targets


class UnsupportedDiscovery(LightDiscovery):
    """Discovery stand-in for environments where mDNS cannot work."""

    available = False

    def __init__(self, reason: str):
        self.reason = reason

    def discover(self, timeout: float) -> list[Target]:
        raise DiscoveryUnsupported(self.reason)


def detect_discovery(
    environ: Optional[Mapping[str, str]] = None,
    platform: Optional[str] = None,
) -> LightDiscovery:
    """Select the discovery variant for the current environment."""
    environ = os.environ if environ is None else environ
    platform = sys.platform if platform is None else platform

    if environ.get(ENV_DISABLE_DISCOVERY, "").strip() not in ("", "0"):
        return UnsupportedDiscovery(f"disabled by {ENV_DISABLE_DISCOVERY}")
    if platform.startswith(UNSUPPORTED_PLATFORMS):
        return UnsupportedDiscovery(f"mDNS is not supported on {platform}")
    return ZeroconfDiscovery()
