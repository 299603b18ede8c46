"""Fan a single operation out to every resolved light."""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from typing import Iterable, Optional, Protocol

from .client import Light, LightStatus
from .errors import DeviceError, EmptyDeviceResponse
from .operations import (
    AdjustBrightness,
    Operation,
    QueryStatus,
    SetTemperature,
    TurnOff,
    TurnOn,
)
from .targets import Target

logger = logging.getLogger(__name__)


class LightClient(Protocol):
    """What the executor needs from a device client."""

    async def get_status(self, target: Target) -> LightStatus: ...

    async def set_status(self, target: Target, status: LightStatus) -> None: ...


@dataclass(frozen=True)
class TargetOutcome:
    """Result of applying an operation to one target."""

    target: Target
    light: Optional[Light] = None
    error: Optional[DeviceError] = None

    @property
    def ok(self) -> bool:
        return self.error is None


@dataclass(frozen=True)
class ExecutionReport:
    """Outcomes for every target, in resolution order."""

    outcomes: tuple[TargetOutcome, ...]

    @property
    def multi(self) -> bool:
        """True when more than one target was involved; output is then name-prefixed."""
        return len(self.outcomes) > 1

    @property
    def failures(self) -> list[TargetOutcome]:
        return [outcome for outcome in self.outcomes if not outcome.ok]

    @property
    def ok(self) -> bool:
        return not self.failures


class CommandExecutor:
    """Applies operations to targets through a device client.

    Targets are handled concurrently; a failure on one target is recorded
    against that target and never stops the others.
    """

    def __init__(self, client: LightClient):
        self.client = client

    async def apply(self, targets: Iterable[Target], operation: Operation) -> ExecutionReport:
        """Apply ``operation`` to every target and collect the outcomes."""
        targets = list(targets)
        outcomes = await asyncio.gather(*(self._apply_one(t, operation) for t in targets))
        report = ExecutionReport(tuple(outcomes))
        if report.failures:
            logger.info("%d of %d light(s) failed", len(report.failures), len(targets))
        return report

    async def _apply_one(self, target: Target, operation: Operation) -> TargetOutcome:
        try:
            light = await self._run(target, operation)
        except DeviceError as e:
            logger.debug("%s failed: %s", target.name, e)
            return TargetOutcome(target, error=e)
        return TargetOutcome(target, light=light)

    async def _run(self, target: Target, operation: Operation) -> Light:
        if isinstance(operation, (TurnOn, TurnOff)):
            desired = operation.desired()
            await self.client.set_status(target, desired)
            return desired.lights[0]

        if isinstance(operation, (AdjustBrightness, SetTemperature)):
            current = await self._read(target)
            updated = [operation.apply(light) for light in current.lights]
            await self.client.set_status(target, LightStatus(number_of_lights=len(updated), lights=updated))
            return updated[0]

        if isinstance(operation, QueryStatus):
            return (await self._read(target)).lights[0]

        raise TypeError(f"Unknown operation: {operation!r}")

    async def _read(self, target: Target) -> LightStatus:
        status = await self.client.get_status(target)
        if not status.lights:
            raise EmptyDeviceResponse(target)
        return status
