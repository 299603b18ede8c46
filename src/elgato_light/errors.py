"""Error taxonomy for elgato-light.

Every error carries a ``hint`` with remediation text so the command line can
tell the user what to do next, not just what went wrong.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Optional

if TYPE_CHECKING:
    from .targets import Target

EXPLICIT_ADDRESS_HINT = "Use --ip <address>[,<address>...] (or ELGATO_LIGHT_IP) to address lights directly."


class ElgatoLightError(Exception):
    """Base class for all errors reported to the user."""

    hint: Optional[str] = None

    def __init__(self, message: str, hint: Optional[str] = None):
        super().__init__(message)
        if hint is not None:
            self.hint = hint


# Resolution errors


class SelectorConflict(ElgatoLightError):
    """Both explicit addresses and a name filter were given."""

    def __init__(self) -> None:
        super().__init__(
            "--ip and --name cannot be used together",
            hint="Pick lights either by address (--ip) or by name (--name), not both.",
        )


class InvalidAddress(ElgatoLightError):
    """An explicit address token is not a valid IPv4 address."""

    def __init__(self, token: str):
        self.token = token
        super().__init__(
            f"'{token}' is not a valid IPv4 address",
            hint="Addresses must be dotted IPv4, separated by commas (e.g. 192.168.0.25,192.168.0.26).",
        )


class DiscoveryError(ElgatoLightError):
    """Base class for discovery failures."""

    hint = EXPLICIT_ADDRESS_HINT


class DiscoveryUnsupported(DiscoveryError):
    """Discovery cannot run on this platform or network."""

    def __init__(self, reason: str):
        self.reason = reason
        super().__init__(f"Light discovery is not available: {reason}")


class NoneFound(DiscoveryError):
    """No light advertised itself within the discovery window."""

    def __init__(self, timeout: float):
        self.timeout = timeout
        super().__init__(f"No lights found on the network after {timeout:g}s")
        self.hint = (
            "Make sure the lights are powered and on this network, or try a longer --timeout. "
            + EXPLICIT_ADDRESS_HINT
        )


class NoMatch(ElgatoLightError):
    """A name filter excluded every known light."""

    def __init__(self, name_filter: str, available: Optional[list[str]] = None):
        self.name_filter = name_filter
        self.available = available or []
        super().__init__(f"No light name contains '{name_filter}'")
        if self.available:
            self.hint = "Known lights: " + ", ".join(self.available) + ". Run 'elgato-light discover' to refresh."
        else:
            self.hint = "Run 'elgato-light discover' to refresh the list of lights."


# Device errors


class DeviceError(ElgatoLightError):
    """Base class for failures talking to one light."""

    def __init__(self, target: Target, message: str, hint: Optional[str] = None):
        self.target = target
        super().__init__(message, hint=hint)


class DeviceUnreachable(DeviceError):
    """The connection to the light failed or timed out."""

    def __init__(self, target: Target, cause: Optional[BaseException] = None):
        self.cause = cause
        detail = f": {cause}" if cause and str(cause) else ""
        super().__init__(
            target,
            f"Could not connect to {target.name} at {target.address}:{target.port}{detail}",
            hint="Check that the light is powered on and reachable from this machine.",
        )


class DeviceRejected(DeviceError):
    """The light answered with a non-success HTTP status."""

    def __init__(self, target: Target, status_code: int):
        self.status_code = status_code
        super().__init__(
            target,
            f"{target.name} rejected the request (HTTP {status_code})",
            hint="Check that the address belongs to an Elgato light.",
        )


class MalformedDeviceResponse(DeviceError):
    """The light replied but the body is not a light status document."""

    def __init__(self, target: Target, detail: str = ""):
        suffix = f": {detail}" if detail else ""
        super().__init__(
            target,
            f"Unexpected response from {target.name}{suffix}",
            hint="Check that the address belongs to an Elgato light.",
        )


class EmptyDeviceResponse(DeviceError):
    """The light reported zero lights."""

    def __init__(self, target: Target):
        super().__init__(
            target,
            f"{target.name} reported no lights",
            hint="Power-cycle the light and try again.",
        )


# Configuration errors


class ConfigWriteError(ElgatoLightError):
    """The configuration file could not be written."""

    def __init__(self, path: object, cause: OSError):
        self.path = path
        self.cause = cause
        super().__init__(
            f"Could not write configuration to {path}: {cause.strerror or cause}",
            hint="Check that the parent directory exists and is writable, or pass --config with another path.",
        )
