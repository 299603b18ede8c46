"""Command line interface for elgato-light."""

from __future__ import annotations

import argparse
import asyncio
import logging
import sys
from pathlib import Path
from typing import Optional, Sequence

import yaml
from rich.console import Console
from rich.markup import escape
from rich.table import Table

from . import __version__
from .cache import TargetCache
from .client import DeviceClient, Light
from .config import MAX_TEMPERATURE, MIN_TEMPERATURE, LightConfig, addresses_from_env, config_file_from_env
from .discovery import detect_discovery
from .errors import ConfigWriteError, DeviceUnreachable, ElgatoLightError, SelectorConflict
from .executor import CommandExecutor, ExecutionReport
from .operations import AdjustBrightness, Operation, QueryStatus, SetTemperature, TurnOff, TurnOn
from .resolver import Resolution, TargetResolver, TargetSource
from .targets import Target

logger = logging.getLogger(__name__)

console = Console(highlight=False)
err_console = Console(stderr=True, highlight=False)

STALE_CACHE_HINT = "This light came from the cache and may have moved. Run 'elgato-light discover' to refresh."


# Argument types


def _kelvin(value: str) -> int:
    try:
        kelvin = int(value)
    except ValueError:
        raise argparse.ArgumentTypeError(f"'{value}' is not a valid number")
    if not MIN_TEMPERATURE <= kelvin <= MAX_TEMPERATURE:
        raise argparse.ArgumentTypeError(
            f"temperature must be between {MIN_TEMPERATURE} and {MAX_TEMPERATURE}, got {kelvin}"
        )
    return kelvin


def _ranged_int(low: int, high: int, what: str):
    def parse(value: str) -> int:
        try:
            number = int(value)
        except ValueError:
            raise argparse.ArgumentTypeError(f"'{value}' is not a valid number")
        if not low <= number <= high:
            raise argparse.ArgumentTypeError(f"{what} must be between {low} and {high}, got {number}")
        return number
    return parse


def _timeout(value: str) -> float:
    try:
        seconds = float(value)
    except ValueError:
        raise argparse.ArgumentTypeError(f"'{value}' is not a valid number of seconds")
    if seconds <= 0:
        raise argparse.ArgumentTypeError("timeout must be positive")
    return seconds


# Wiring


def _make_resolver(config: LightConfig) -> TargetResolver:
    return TargetResolver(TargetCache(config.cache_file), detect_discovery())


def _selection(args: argparse.Namespace) -> tuple[Optional[str], Optional[str]]:
    """Return (addresses, name_filter); ELGATO_LIGHT_IP applies only when neither flag is given."""
    addresses = args.ip
    if addresses is None and args.name is None:
        addresses = addresses_from_env()
    return addresses, args.name


def _discovery_timeout(args: argparse.Namespace, config: LightConfig) -> float:
    timeout = getattr(args, "timeout", None)
    return timeout if timeout is not None else config.discovery_timeout


async def _execute(config: LightConfig, resolution: Resolution, operation: Operation) -> ExecutionReport:
    async with DeviceClient(timeout=config.request_timeout) as client:
        return await CommandExecutor(client).apply(resolution, operation)


# Output


def _describe(operation: Operation, light: Light) -> str:
    if isinstance(operation, TurnOn):
        return f"Light on (brightness: {light.brightness}%, temperature: {operation.kelvin}K)"
    if isinstance(operation, TurnOff):
        return "Light off"
    if isinstance(operation, AdjustBrightness):
        return f"Brightness: {light.brightness}%"
    if isinstance(operation, SetTemperature):
        return f"Temperature: {operation.kelvin}K"
    return (
        f"Power:       {'On' if light.powered else 'Off'}\n"
        f"Brightness:  {light.brightness}%\n"
        f"Temperature: {light.kelvin}K"
    )


def _print_error(exc: ElgatoLightError, prefix: str = "Error") -> None:
    err_console.print(f"[red]{escape(prefix)}: {escape(str(exc))}[/]")
    if exc.hint:
        err_console.print(f"[yellow]{escape(exc.hint)}[/]")


def _print_status_table(report: ExecutionReport) -> None:
    table = Table(title="Lights")
    table.add_column("Name", style="cyan")
    table.add_column("Address")
    table.add_column("Power")
    table.add_column("Brightness", justify="right")
    table.add_column("Temperature", justify="right")
    for outcome in report.outcomes:
        if outcome.ok:
            light = outcome.light
            table.add_row(
                escape(outcome.target.name),
                str(outcome.target.address),
                "[green]On[/]" if light.powered else "[dim]Off[/]",
                f"{light.brightness}%",
                f"{light.kelvin}K",
            )
        else:
            table.add_row(escape(outcome.target.name), str(outcome.target.address), "[red]error[/]", "-", "-")
    console.print(table)


def _print_output(report: ExecutionReport, operation: Operation, resolution: Resolution) -> None:
    """Print per-target results; single-target output carries no name prefix."""
    if report.multi and isinstance(operation, QueryStatus):
        _print_status_table(report)
    else:
        for outcome in report.outcomes:
            if not outcome.ok:
                continue
            text = _describe(operation, outcome.light)
            if report.multi:
                text = f"[{outcome.target.name}] {text}"
            console.print(escape(text))

    for outcome in report.failures:
        prefix = f"[{outcome.target.name}] Error" if report.multi else "Error"
        _print_error(outcome.error, prefix)
        if resolution.source is TargetSource.CACHE and isinstance(outcome.error, DeviceUnreachable):
            err_console.print(f"[yellow]{escape(STALE_CACHE_HINT)}[/]")

    if report.multi and report.failures:
        err_console.print(f"[red]{len(report.failures)} of {len(report.outcomes)} lights failed[/]")


def _print_targets(targets: Sequence[Target], title: str) -> None:
    table = Table(title=title)
    table.add_column("Name", style="cyan")
    table.add_column("Address")
    table.add_column("Port", justify="right")
    for target in targets:
        table.add_row(escape(target.name), str(target.address), str(target.port))
    console.print(table)


# Commands


def _run_operation(args: argparse.Namespace, config: LightConfig, operation: Operation) -> int:
    addresses, name_filter = _selection(args)
    resolution = _make_resolver(config).resolve(
        addresses, name_filter, timeout=_discovery_timeout(args, config)
    )
    logger.debug("Resolved %d target(s) from %s", len(resolution), resolution.source.value)
    report = asyncio.run(_execute(config, resolution, operation))
    _print_output(report, operation, resolution)
    return 0 if report.ok else 1


def cmd_on(args: argparse.Namespace, config: LightConfig) -> int:
    brightness = args.brightness if args.brightness is not None else config.default_brightness
    kelvin = args.temperature if args.temperature is not None else config.default_temperature
    return _run_operation(args, config, TurnOn(brightness=brightness, kelvin=kelvin))


def cmd_off(args: argparse.Namespace, config: LightConfig) -> int:
    return _run_operation(args, config, TurnOff())


def cmd_brightness(args: argparse.Namespace, config: LightConfig) -> int:
    return _run_operation(args, config, AdjustBrightness(args.delta))


def cmd_temperature(args: argparse.Namespace, config: LightConfig) -> int:
    return _run_operation(args, config, SetTemperature(args.kelvin))


def cmd_status(args: argparse.Namespace, config: LightConfig) -> int:
    return _run_operation(args, config, QueryStatus())


def cmd_list(args: argparse.Namespace, config: LightConfig) -> int:
    addresses, name_filter = _selection(args)
    resolution = _make_resolver(config).resolve(
        addresses, name_filter, timeout=_discovery_timeout(args, config)
    )
    _print_targets(resolution.targets, f"Lights ({resolution.source.value})")
    return 0


def cmd_discover(args: argparse.Namespace, config: LightConfig) -> int:
    targets = _make_resolver(config).rediscover(_discovery_timeout(args, config))
    _print_targets(targets, f"Discovered {len(targets)} light(s)")
    return 0


def cmd_clear_cache(args: argparse.Namespace, config: LightConfig) -> int:
    _make_resolver(config).clear_cache()
    console.print(f"Cache cleared ({escape(str(config.cache_file))})")
    return 0


def cmd_config(args: argparse.Namespace, config: LightConfig) -> int:
    if args.save:
        path = args.config or config_file_from_env()
        try:
            config.save(path)
        except OSError as e:
            raise ConfigWriteError(path, e) from e
        console.print(f"Configuration written to {escape(str(path))}")
    else:
        console.print(escape(yaml.safe_dump(config.to_dict(), sort_keys=False).rstrip()))
    return 0


# Parser


def build_parser() -> argparse.ArgumentParser:
    selection = argparse.ArgumentParser(add_help=False)
    group = selection.add_argument_group("light selection")
    group.add_argument(
        "-i", "--ip",
        help="Comma-separated IPv4 addresses of the lights (default: $ELGATO_LIGHT_IP)",
    )
    group.add_argument("-n", "--name", help="Only lights whose name contains this text (case-insensitive)")
    group.add_argument("--timeout", type=_timeout, help="Discovery timeout in seconds")

    parser = argparse.ArgumentParser(
        prog="elgato-light",
        description="Control Elgato lights on the local network",
    )
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    parser.add_argument("-v", "--verbose", action="store_true", help="Show debug logging")
    parser.add_argument("--config", type=Path, help="Path to the configuration file")
    sub = parser.add_subparsers(dest="command", metavar="COMMAND", required=True)

    p = sub.add_parser("on", parents=[selection], help="Turn the lights on")
    p.add_argument("-b", "--brightness", type=_ranged_int(0, 100, "brightness"), help="Brightness level (0-100)")
    p.add_argument(
        "-t", "--temperature", type=_kelvin,
        help=f"Color temperature in Kelvin ({MIN_TEMPERATURE}-{MAX_TEMPERATURE})",
    )
    p.set_defaults(func=cmd_on)

    p = sub.add_parser("off", parents=[selection], help="Turn the lights off")
    p.set_defaults(func=cmd_off)

    p = sub.add_parser(
        "brightness", parents=[selection],
        help="Change the brightness relatively. Use -- to pass negative values.",
    )
    p.add_argument("delta", type=_ranged_int(-100, 100, "brightness change"), help="Brightness change (-100 to 100)")
    p.set_defaults(func=cmd_brightness)

    p = sub.add_parser("temperature", parents=[selection], help="Set the color temperature")
    p.add_argument("kelvin", type=_kelvin, help=f"Color temperature in Kelvin ({MIN_TEMPERATURE}-{MAX_TEMPERATURE})")
    p.set_defaults(func=cmd_temperature)

    p = sub.add_parser("status", parents=[selection], help="Show the current state of the lights")
    p.set_defaults(func=cmd_status)

    p = sub.add_parser("list", parents=[selection], help="Show which lights a selection resolves to")
    p.set_defaults(func=cmd_list)

    p = sub.add_parser("discover", help="Forget cached lights and discover them again")
    p.add_argument("--timeout", type=_timeout, help="Discovery timeout in seconds")
    p.set_defaults(func=cmd_discover)

    p = sub.add_parser("clear-cache", help="Remove the cached list of discovered lights")
    p.set_defaults(func=cmd_clear_cache)

    p = sub.add_parser("config", help="Show the effective configuration")
    p.add_argument("--save", action="store_true", help="Write the effective configuration to the config file")
    p.set_defaults(func=cmd_config)

    return parser


def main(argv: Optional[Sequence[str]] = None) -> int:
    """Entry point for the elgato-light command."""
    parser = build_parser()
    args = parser.parse_args(argv)

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format="%(levelname)s %(name)s: %(message)s",
        stream=sys.stderr,
    )

    config = LightConfig.load(args.config)
    try:
        return args.func(args, config)
    except SelectorConflict as e:
        _print_error(e)
        return 2
    except ElgatoLightError as e:
        _print_error(e)
        return 1
