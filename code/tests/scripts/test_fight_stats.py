"""Tests for the fight_stats CLI script."""

import asyncio
import logging
from pathlib import Path
from unittest.mock import AsyncMock, patch

import httpx
import pytest
import respx

from kusanagi.analysis.errors import NoMatchingFightsError
from kusanagi.config import Settings
from kusanagi.scripts import fight_stats
from kusanagi.scripts.fight_stats import parse_args, run, with_heartbeat

CODE = "a1B2c3D4e5F6g7H8"
API_URL = "https://www.fflogs.com/v1"

UWU = """
name = "The Weapon's Refrain"

[[phase]]
name = "Garuda"
startMarker = { type = "fightStart" }
"""


def test_parse_args():
    args = parse_args([CODE, "The Weapon's Refrain"])
    assert args.report == CODE
    assert args.fight == "The Weapon's Refrain"
    assert args.definitions_dir is None


def test_parse_args_definitions_dir():
    args = parse_args([CODE, "UWU", "--definitions-dir", "/srv/phases"])
    assert args.definitions_dir == Path("/srv/phases")


async def test_heartbeat_logs_until_work_done(caplog):
    async def work():
        await asyncio.sleep(0.05)
        return 42

    with caplog.at_level(logging.INFO, logger="kusanagi.scripts.fight_stats"):
        result = await with_heartbeat(work(), interval=0.01)

    assert result == 42
    assert "Still analysing" in caplog.text


async def test_heartbeat_propagates_errors():
    async def work():
        raise NoMatchingFightsError()

    with pytest.raises(NoMatchingFightsError):
        await with_heartbeat(work(), interval=1.0)


async def test_heartbeat_cancellation_waits_for_work_to_unwind():
    started = asyncio.Event()
    unwound = []

    async def work():
        started.set()
        try:
            await asyncio.sleep(60)
        finally:
            unwound.append(True)

    outer = asyncio.ensure_future(with_heartbeat(work(), interval=1.0))
    await started.wait()
    outer.cancel()

    with pytest.raises(asyncio.CancelledError):
        await outer
    assert unwound == [True]


@respx.mock
async def test_run_renders_summary(tmp_path, monkeypatch):
    (tmp_path / "uwu.toml").write_text(UWU)
    settings = Settings(
        _env_file=None,
        fflogs={"api_key": "k" * 32, "api_url": API_URL},
        analysis={"definitions_dir": tmp_path},
    )
    monkeypatch.setattr(fight_stats, "get_settings", lambda: settings)
    respx.get(f"{API_URL}/report/fights/{CODE}").mock(
        return_value=httpx.Response(200, json={
            "fights": [{
                "id": 1, "start_time": 1000, "end_time": 91_000,
                "name": "The Weapon's Refrain", "boss": 1042,
            }],
            "start": 1_600_000_000_000,
            "end": 1_600_000_100_000,
        }),
    )
    respx.get(f"{API_URL}/report/events/summary/{CODE}").mock(
        return_value=httpx.Response(200, json={
            "events": [{"timestamp": 1000, "type": "limitbreakupdate", "value": 0, "bars": 3}],
        }),
    )

    output = await run(CODE, "The Weapon's Refrain")

    assert output.startswith("Total pulls: 1 with average duration 90.0s.")
    assert "**Garuda**" in output


def test_main_prints_user_facing_error(monkeypatch, capsys):
    monkeypatch.setattr("sys.argv", ["kusanagi-fight-stats", CODE, "UWU"])
    with patch.object(
        fight_stats, "run", new=AsyncMock(side_effect=NoMatchingFightsError()),
    ):
        with pytest.raises(SystemExit) as exc_info:
            fight_stats.main()

    assert exc_info.value.code == 1
    out = capsys.readouterr().out
    assert out.startswith("Uh-oh, something went wrong:\n")
    assert "did not contain any fights" in out


def test_main_prints_summary(monkeypatch, capsys):
    monkeypatch.setattr("sys.argv", ["kusanagi-fight-stats", CODE, "UWU"])
    with patch.object(fight_stats, "run", new=AsyncMock(return_value="Total pulls: 3")):
        fight_stats.main()

    assert capsys.readouterr().out == "Total pulls: 3\n"
