"""Tests for the command line interface."""

import pytest

from elgato_light import cli
from elgato_light.cache import TargetCache
from elgato_light.client import Light
from elgato_light.config import default_cache_file
from elgato_light.discovery import UnsupportedDiscovery

from conftest import FakeDeviceClient, FakeDiscovery, make_target


def light(on=1, brightness=50, temperature=250):
    return Light(on=on, brightness=brightness, temperature=temperature)


@pytest.fixture
def discovery(desk_lights, monkeypatch):
    fake = FakeDiscovery(desk_lights)
    monkeypatch.setattr(cli, "detect_discovery", lambda: fake)
    return fake


@pytest.fixture
def device(monkeypatch):
    fake = FakeDeviceClient({
        "Desk Left": light(brightness=95),
        "Desk Right": light(on=0, brightness=20),
        "10.0.0.7": light(brightness=60, temperature=200),
    })
    monkeypatch.setattr(cli, "DeviceClient", lambda timeout: fake)
    return fake


def test_single_explicit_target_has_plain_output(discovery, device, capsys):
    """Test that one target prints without a name prefix."""
    assert cli.main(["status", "--ip", "10.0.0.7"]) == 0
    out = capsys.readouterr().out
    assert "Power:       On" in out
    assert "Brightness:  60%" in out
    assert "Temperature: 5000K" in out
    assert "[10.0.0.7]" not in out
    assert discovery.calls == []


def test_brightness_on_all_discovered_lights(discovery, device, capsys):
    """Test fan-out with name-prefixed output and saturation."""
    assert cli.main(["brightness", "10"]) == 0
    out = capsys.readouterr().out
    assert "[Desk Left] Brightness: 100%" in out
    assert "[Desk Right] Brightness: 30%" in out
    assert device.lights["Desk Right"].on == 1


def test_negative_brightness_change(discovery, device, capsys):
    """Test that a negative delta parses as a value."""
    assert cli.main(["brightness", "-30", "--name", "left"]) == 0
    assert "Brightness: 65%" in capsys.readouterr().out


def test_discovery_result_is_cached(discovery, device, capsys):
    """Test that the second invocation uses the cache."""
    cli.main(["off"])
    cli.main(["off"])
    assert len(discovery.calls) == 1
    assert TargetCache(default_cache_file()).load() is not None


def test_failure_on_one_light_reports_and_exits_nonzero(discovery, device, capsys):
    """Test that a failing light is named and the others still run."""
    device.unreachable.add("Desk Left")
    assert cli.main(["on", "-b", "40", "-t", "4000"]) == 1
    captured = capsys.readouterr()
    assert "[Desk Right] Light on (brightness: 40%, temperature: 4000K)" in captured.out
    assert "[Desk Left] Error" in captured.err
    assert "1 of 2 lights failed" in captured.err


def test_stale_cache_hint(discovery, device, capsys):
    """Test that an unreachable cached light suggests rediscovery."""
    TargetCache(default_cache_file()).save([make_target("Desk Left", "192.168.1.50")])
    device.unreachable.add("Desk Left")
    assert cli.main(["status"]) == 1
    assert "discover" in capsys.readouterr().err


def test_ip_and_name_conflict_is_usage_error(discovery, device, capsys):
    """Test that combining --ip and --name exits with a usage error."""
    assert cli.main(["off", "--ip", "10.0.0.7", "--name", "desk"]) == 2
    assert "cannot be used together" in capsys.readouterr().err
    assert device.calls == []


def test_invalid_address(discovery, device, capsys):
    """Test that a malformed address is reported."""
    assert cli.main(["off", "--ip", "10.0.0.7,bogus"]) == 1
    assert "bogus" in capsys.readouterr().err
    assert device.calls == []


def test_no_match(discovery, device, capsys):
    """Test that a filter matching nothing is an error."""
    assert cli.main(["off", "--name", "closet"]) == 1
    err = capsys.readouterr().err
    assert "closet" in err
    assert device.calls == []


def test_environment_address_used_without_selectors(discovery, device, monkeypatch, capsys):
    """Test that ELGATO_LIGHT_IP is the default selection."""
    monkeypatch.setenv("ELGATO_LIGHT_IP", "10.0.0.7")
    assert cli.main(["status"]) == 0
    assert discovery.calls == []


def test_environment_address_ignored_with_name_filter(discovery, device, monkeypatch, capsys):
    """Test that --name takes over from ELGATO_LIGHT_IP instead of conflicting."""
    monkeypatch.setenv("ELGATO_LIGHT_IP", "10.0.0.7")
    assert cli.main(["off", "--name", "right"]) == 0
    assert device.writes.keys() == {"Desk Right"}


def test_discovery_unsupported_gives_guidance(device, monkeypatch, capsys):
    """Test that unsupported discovery fails fast with a hint."""
    monkeypatch.setattr(cli, "detect_discovery", lambda: UnsupportedDiscovery("no mDNS"))
    assert cli.main(["status"]) == 1
    assert "--ip" in capsys.readouterr().err


def test_discover_refreshes_cache(discovery, capsys):
    """Test that discover ignores the cache and rewrites it."""
    TargetCache(default_cache_file()).save([make_target("Gone", "10.0.0.99")])
    assert cli.main(["discover", "--timeout", "1.5"]) == 0
    assert discovery.calls == [1.5]
    out = capsys.readouterr().out
    assert "Desk Left" in out
    assert "Gone" not in out


def test_list_shows_resolved_targets(discovery, capsys):
    """Test that list prints the selection without touching lights."""
    assert cli.main(["list", "--name", "right"]) == 0
    out = capsys.readouterr().out
    assert "Desk Right" in out
    assert "Desk Left" not in out


def test_clear_cache(discovery, capsys):
    """Test that clear-cache removes the cache file."""
    cache = TargetCache(default_cache_file())
    cache.save([make_target("Desk", "10.0.0.2")])
    assert cli.main(["clear-cache"]) == 0
    assert not cache.path.exists()


def test_multi_target_status_table(discovery, device, capsys):
    """Test that status for several lights renders a table."""
    assert cli.main(["status"]) == 0
    out = capsys.readouterr().out
    assert "Desk Left" in out
    assert "Desk Right" in out
    assert "Off" in out


def test_on_uses_configured_defaults(discovery, device, tmp_path, capsys):
    """Test that brightness and temperature default from the config file."""
    config = tmp_path / "config.yaml"
    config.write_text("default_brightness: 25\ndefault_temperature: 5000\n")
    assert cli.main(["on", "--ip", "10.0.0.7"]) == 0
    assert "Light on (brightness: 25%, temperature: 5000K)" in capsys.readouterr().out


@pytest.mark.parametrize(
    "argv",
    [
        ["temperature", "2000"],
        ["on", "-b", "101"],
        ["brightness", "150"],
        ["status", "--timeout", "0"],
        [],
    ],
)
def test_bad_arguments_exit_with_usage_error(argv, capsys):
    """Test that argument validation exits with code 2."""
    with pytest.raises(SystemExit) as excinfo:
        cli.main(argv)
    assert excinfo.value.code == 2


def test_config_save(tmp_path, capsys):
    """Test that config --save writes the effective configuration."""
    path = tmp_path / "written.yaml"
    assert cli.main(["--config", str(path), "config", "--save"]) == 0
    assert "discovery_timeout" in path.read_text()


def test_config_save_to_unwritable_path(tmp_path, capsys):
    """Test that a config file that cannot be written is a reported error."""
    blocker = tmp_path / "not-a-directory"
    blocker.write_text("")
    assert cli.main(["--config", str(blocker / "c.yaml"), "config", "--save"]) == 1
    err = capsys.readouterr().err
    assert "Could not write configuration" in err
    assert "--config" in err
