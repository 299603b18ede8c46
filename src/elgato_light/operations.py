"""The fixed set of operations the executor can apply to a light.

Operations are plain values. :class:`~elgato_light.executor.CommandExecutor`
decides how to carry each one out; nothing here talks to the network.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Union

from .client import Light, LightStatus, kelvin_to_mireds
from .config import MAX_TEMPERATURE, MIN_TEMPERATURE


def _check_kelvin(kelvin: int) -> None:
    if not MIN_TEMPERATURE <= kelvin <= MAX_TEMPERATURE:
        raise ValueError(
            f"temperature must be between {MIN_TEMPERATURE} and {MAX_TEMPERATURE}, got {kelvin}"
        )


def clamp_brightness(value: int) -> int:
    return max(0, min(100, value))


@dataclass(frozen=True)
class TurnOn:
    """Power on at an absolute brightness and temperature."""

    brightness: int = 10
    kelvin: int = 3000

    def __post_init__(self) -> None:
        if not 0 <= self.brightness <= 100:
            raise ValueError(f"brightness must be between 0 and 100, got {self.brightness}")
        _check_kelvin(self.kelvin)

    def desired(self) -> LightStatus:
        return LightStatus.single(True, self.brightness, kelvin_to_mireds(self.kelvin))


@dataclass(frozen=True)
class TurnOff:
    """Power off."""

    def desired(self) -> LightStatus:
        return LightStatus.single(False, 0, 0)


@dataclass(frozen=True)
class AdjustBrightness:
    """Change brightness by a relative amount, saturating at 0 and 100."""

    delta: int

    def __post_init__(self) -> None:
        if not -100 <= self.delta <= 100:
            raise ValueError(f"brightness change must be between -100 and 100, got {self.delta}")

    def apply(self, light: Light) -> Light:
        return light.model_copy(update={
            "on": 1,
            "brightness": clamp_brightness(light.brightness + self.delta),
        })


@dataclass(frozen=True)
class SetTemperature:
    """Set the colour temperature, keeping brightness."""

    kelvin: int

    def __post_init__(self) -> None:
        _check_kelvin(self.kelvin)

    def apply(self, light: Light) -> Light:
        return light.model_copy(update={"on": 1, "temperature": kelvin_to_mireds(self.kelvin)})


@dataclass(frozen=True)
class QueryStatus:
    """Read the current state without changing it."""


Operation = Union[TurnOn, TurnOff, AdjustBrightness, SetTemperature, QueryStatus]
