from __future__ import annotations

import asyncio
import json
import os
from datetime import time, timedelta
from pathlib import Path

import pytest

import settings
from adapters.config_watcher import JsonConfigProvider
from core.errors import ConfigError

VALID = {
    "alerts": {
        "channel": "-1001234567890",
        "categories": ["Met", "Warning"],
        "check_interval": 900,
        "areas": ["CAZ006", " CAZ508 "],
    },
    "quiet_hours": {"start": "22:00", "end": "07:00"},
}


def _write(path: Path, data) -> None:
    path.write_text(json.dumps(data) if not isinstance(data, str) else data, encoding="utf-8")


def _bump_mtime(path: Path) -> None:
    stat = path.stat()
    os.utime(path, (stat.st_atime, stat.st_mtime + 5))


def test_parse_snapshot_valid_config() -> None:
    snapshot = settings.parse_snapshot(VALID, version=3)

    assert snapshot.version == 3
    assert snapshot.destination == -1001234567890
    assert snapshot.poll_interval == timedelta(seconds=900)
    assert snapshot.area_codes == ("CAZ006", "CAZ508")
    assert snapshot.zone_param == "CAZ006,CAZ508"
    assert snapshot.accepted_categories == frozenset({"Met", "Warning"})
    assert snapshot.quiet_hours is not None
    assert snapshot.quiet_hours.start == time(22, 0)
    assert snapshot.quiet_hours.end == time(7, 0)


def test_quiet_hours_are_optional() -> None:
    raw = {"alerts": dict(VALID["alerts"], channel="me")}
    snapshot = settings.parse_snapshot(raw, version=1)
    assert snapshot.quiet_hours is None
    assert snapshot.destination == "me"


@pytest.mark.parametrize(
    "raw",
    [
        {},
        {"alerts": dict(VALID["alerts"], check_interval=0)},
        {"alerts": dict(VALID["alerts"], check_interval="900")},
        {"alerts": dict(VALID["alerts"], areas=[])},
        {"alerts": dict(VALID["alerts"], areas="CAZ006")},
        {"alerts": dict(VALID["alerts"], channel="")},
        {"alerts": dict(VALID["alerts"], channel=None)},
        {"alerts": VALID["alerts"], "quiet_hours": {"start": "25:00", "end": "07:00"}},
        {"alerts": VALID["alerts"], "quiet_hours": {"start": "22:00"}},
        {"alerts": VALID["alerts"], "quiet_hours": {"start": "22:00+01:00", "end": "07:00"}},
        {"alerts": dict(VALID["alerts"], check_interval=float("nan"))},
        {"alerts": dict(VALID["alerts"], check_interval=float("inf"))},
        {"alerts": dict(VALID["alerts"], check_interval=1e300)},
    ],
)
def test_parse_snapshot_rejects_invalid_config(raw) -> None:
    with pytest.raises(ConfigError):
        settings.parse_snapshot(raw, version=1)


def test_read_config_file_errors(tmp_path: Path) -> None:
    with pytest.raises(ConfigError):
        settings.read_config_file(str(tmp_path / "missing.json"))

    broken = tmp_path / "config.json"
    _write(broken, "{not json")
    with pytest.raises(ConfigError):
        settings.read_config_file(str(broken))


def test_provider_reload_publishes_new_snapshot(tmp_path: Path) -> None:
    path = tmp_path / "config.json"
    _write(path, VALID)
    provider = JsonConfigProvider(str(path))
    initial = provider.load_initial()
    assert initial is not None and initial.version == 1

    _write(path, {**VALID, "alerts": dict(VALID["alerts"], check_interval=60)})
    assert provider.reload()

    assert provider.current().version == 2
    assert provider.current().poll_interval == timedelta(seconds=60)
    assert provider.changes.peek() is provider.current()


def test_provider_keeps_previous_snapshot_on_bad_update(tmp_path: Path) -> None:
    path = tmp_path / "config.json"
    _write(path, VALID)
    provider = JsonConfigProvider(str(path))
    initial = provider.load_initial()

    _write(path, {"alerts": dict(VALID["alerts"], areas=[])})
    assert not provider.reload()

    assert provider.current() is initial
    assert provider.changes.version == 0

    _write(path, VALID)
    assert provider.reload()
    assert provider.current().version == 2


def test_provider_starts_without_snapshot_on_invalid_file(tmp_path: Path) -> None:
    path = tmp_path / "config.json"
    _write(path, "{}")
    provider = JsonConfigProvider(str(path))

    assert provider.load_initial() is None
    assert provider.current() is None


def test_watch_detects_file_change(tmp_path: Path) -> None:
    path = tmp_path / "config.json"
    _write(path, VALID)
    provider = JsonConfigProvider(str(path), poll_interval=0.01, debounce=0.0)
    provider.load_initial()

    async def scenario():
        task = asyncio.create_task(provider.watch())
        await asyncio.sleep(0.03)
        _write(path, {**VALID, "alerts": dict(VALID["alerts"], check_interval=30)})
        _bump_mtime(path)
        snapshot = await asyncio.wait_for(provider.changes.next(), timeout=2.0)
        task.cancel()
        try:
            await task
        except asyncio.CancelledError:
            pass
        return snapshot

    snapshot = asyncio.run(scenario())
    assert snapshot.poll_interval == timedelta(seconds=30)


def test_provider_rejects_non_finite_interval(tmp_path: Path) -> None:
    path = tmp_path / "config.json"
    _write(path, VALID)
    provider = JsonConfigProvider(str(path))
    initial = provider.load_initial()

    _write(path, json.dumps(VALID).replace("900", "NaN"))
    assert not provider.reload()
    assert provider.current() is initial

    _write(path, json.dumps(VALID).replace("900", "Infinity"))
    assert not provider.reload()
    assert provider.changes.version == 0


def test_watch_keeps_running_after_rejected_edit(tmp_path: Path) -> None:
    path = tmp_path / "config.json"
    _write(path, VALID)
    provider = JsonConfigProvider(str(path), poll_interval=0.01, debounce=0.0)
    initial = provider.load_initial()

    async def scenario():
        task = asyncio.create_task(provider.watch())
        await asyncio.sleep(0.03)
        _write(path, json.dumps(VALID).replace("900", "NaN"))
        _bump_mtime(path)
        await asyncio.sleep(0.1)
        rejected = (provider.changes.version, provider.current(), task.done())

        _write(path, {**VALID, "alerts": dict(VALID["alerts"], check_interval=45)})
        _bump_mtime(path)
        snapshot = await asyncio.wait_for(provider.changes.next(), timeout=2.0)
        task.cancel()
        try:
            await task
        except asyncio.CancelledError:
            pass
        return rejected, snapshot

    (version, current, done), snapshot = asyncio.run(scenario())
    assert version == 0
    assert current is initial
    assert not done
    assert snapshot.poll_interval == timedelta(seconds=45)


def test_watch_detects_same_mtime_edit_with_new_size(tmp_path: Path) -> None:
    path = tmp_path / "config.json"
    _write(path, VALID)
    before = path.stat()
    provider = JsonConfigProvider(str(path), poll_interval=0.01, debounce=0.0)
    provider.load_initial()

    async def scenario():
        task = asyncio.create_task(provider.watch())
        await asyncio.sleep(0.03)
        _write(path, {**VALID, "alerts": dict(VALID["alerts"], check_interval=30)})
        os.utime(path, ns=(before.st_atime_ns, before.st_mtime_ns))
        snapshot = await asyncio.wait_for(provider.changes.next(), timeout=2.0)
        task.cancel()
        try:
            await task
        except asyncio.CancelledError:
            pass
        return snapshot

    snapshot = asyncio.run(scenario())
    assert path.stat().st_mtime_ns == before.st_mtime_ns
    assert snapshot.poll_interval == timedelta(seconds=30)
