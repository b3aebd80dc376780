"""
Tests for the command line interface.
"""

import json

import pytest
import yaml
from typer.testing import CliRunner

from slotbooking import __version__
from slotbooking.cli.app import app
from tests.conftest import CATALOG

runner = CliRunner()

NOW = "2024-11-25T08:00:00"


@pytest.fixture
def paths(tmp_path):
    config_path = tmp_path / "config.yaml"
    config_path.write_text(yaml.safe_dump(CATALOG), encoding="utf-8")
    return {
        "config": config_path,
        "store": tmp_path / "appointments.json",
        "session": tmp_path / "session",
    }


def invoke(paths, *args, now=NOW):
    return runner.invoke(
        app,
        [*args, "--config", str(paths["config"]), "--store", str(paths["store"]), "--now", now],
    )


def stored(paths):
    return json.loads(paths["store"].read_text(encoding="utf-8"))["appointments"]


class TestSlotsCommand:
    """Tests for the slots command."""

    def test_lists_slots(self, paths):
        result = invoke(paths, "slots", "bruno", "-s", "cut", "--date", "2024-11-25")

        assert result.exit_code == 0, result.output
        assert "09:00" in result.output
        assert "11:30" in result.output
        assert "available" in result.output

    def test_only_available(self, paths):
        result = invoke(paths, "slots", "ana", "-s", "cut", "--date", "2024-11-25", "--available")

        assert result.exit_code == 0, result.output
        assert "break" not in result.output
        assert "13:00" in result.output

    def test_day_off(self, paths):
        result = invoke(paths, "slots", "ana", "-s", "cut", "--date", "2024-12-01")

        assert result.exit_code == 0, result.output
        assert "does not work" in result.output

    def test_no_services(self, paths):
        result = invoke(paths, "slots", "ana", "--date", "2024-11-25")

        assert result.exit_code == 1
        assert "at least one service" in result.output

    def test_bad_date(self, paths):
        result = invoke(paths, "slots", "ana", "-s", "cut", "--date", "25/11/2024")
        assert result.exit_code == 1

    def test_bad_now(self, paths):
        result = invoke(paths, "slots", "ana", "-s", "cut", "--date", "2024-11-25", now="not-a-time")

        assert result.exit_code == 1
        assert "Error:" in result.output

    def test_corrupt_store(self, paths):
        paths["store"].write_text("{broken", encoding="utf-8")
        result = invoke(paths, "slots", "ana", "-s", "cut", "--date", "2024-11-25")

        assert result.exit_code == 1
        assert "Invalid JSON" in result.output

    def test_invalid_config(self, paths):
        paths["config"].write_text("timezone: Mars/Olympus_Mons\n", encoding="utf-8")
        result = runner.invoke(app, ["professionals", "--config", str(paths["config"])])

        assert result.exit_code == 1
        assert "Unknown timezone" in result.output

    def test_missing_config(self, tmp_path):
        result = runner.invoke(app, ["slots", "ana", "-s", "cut", "--config", str(tmp_path / "nope.yaml")])

        assert result.exit_code == 1
        assert "Config file not found" in result.output


class TestBookingCommands:
    """Tests for book, resume and status commands."""

    def test_book_and_conflict(self, paths):
        first = invoke(paths, "book", "ana", "-t", "10:00", "-s", "cut", "-d", "2024-11-25", "--client", "c1")
        assert first.exit_code == 0, first.output
        assert "Booked" in first.output
        assert stored(paths)[0]["status"] == "confirmed"

        second = invoke(paths, "book", "ana", "-t", "10:15", "-s", "cut", "-d", "2024-11-25", "--client", "c2")
        assert second.exit_code == 1
        assert "no longer available" in second.output
        assert len(stored(paths)) == 1

    def test_booked_slot_is_shown(self, paths):
        invoke(paths, "book", "bruno", "-t", "10:00", "-s", "cut", "-d", "2024-11-25", "--client", "c1")
        result = invoke(paths, "slots", "bruno", "-s", "cut", "--date", "2024-11-25")
        assert "booked" in result.output

    def test_book_unknown_professional(self, paths):
        result = invoke(paths, "book", "zoe", "-t", "10:00", "-s", "cut", "--client", "c1")
        assert result.exit_code == 1
        assert "Unknown professional" in result.output

    def test_draft_then_resume(self, paths):
        session = str(paths["session"])
        drafted = invoke(
            paths, "book", "carla", "-t", "11:00", "-s", "nails", "-d", "2024-11-25", "--session-dir", session
        )
        assert drafted.exit_code == 0, drafted.output
        assert "Sign in" in drafted.output
        assert (paths["session"] / "pending-booking.json").exists()

        resumed = invoke(paths, "resume", "--provider", "studio", "--client", "c7", "--session-dir", session)
        assert resumed.exit_code == 0, resumed.output
        assert "Booked" in resumed.output
        assert stored(paths)[0]["status"] == "pending"
        assert stored(paths)[0]["client_id"] == "c7"

        again = invoke(paths, "resume", "--provider", "studio", "--client", "c7", "--session-dir", session)
        assert "Nothing to resume" in again.output

    def test_accept_decline_cancel(self, paths):
        for time in ("10:00", "11:00"):
            invoke(paths, "book", "carla", "-t", time, "-s", "nails", "-d", "2024-11-25", "--client", "c1")
        first, second = (record["id"] for record in stored(paths))

        accepted = invoke(paths, "accept", first)
        assert accepted.exit_code == 0, accepted.output

        declined = invoke(paths, "decline", second, "--reason", "Closed early")
        assert declined.exit_code == 0, declined.output

        records = {record["id"]: record for record in stored(paths)}
        assert records[first]["status"] == "confirmed"
        assert records[second]["status"] == "cancelled"
        assert records[second]["cancellation_reason"] == "Closed early"

        cancelled = invoke(paths, "cancel", first)
        assert cancelled.exit_code == 0, cancelled.output

        refused = invoke(paths, "accept", first)
        assert refused.exit_code == 1

    def test_status_change_with_corrupt_store(self, paths):
        paths["store"].write_text("{broken", encoding="utf-8")
        result = invoke(paths, "cancel", "a1")
        assert result.exit_code == 1
        assert "Invalid JSON" in result.output

    def test_resume_with_undecodable_draft(self, paths):
        paths["session"].mkdir()
        (paths["session"] / "pending-booking.json").write_bytes(b"\xff\xfe{not utf8")
        result = invoke(paths, "resume", "--provider", "shop", "--client", "c1", "--session-dir", str(paths["session"]))

        assert result.exit_code == 0, result.output
        assert "Nothing to resume" in result.output

    def test_complete_after_end(self, paths):
        invoke(paths, "book", "bruno", "-t", "09:00", "-s", "cut", "-d", "2024-11-25", "--client", "c1")
        appointment_id = stored(paths)[0]["id"]

        early = invoke(paths, "complete", appointment_id, now="2024-11-25T09:10:00")
        assert early.exit_code == 1

        done = invoke(paths, "complete", appointment_id, now="2024-11-25T09:30:00")
        assert done.exit_code == 0, done.output
        assert stored(paths)[0]["status"] == "completed"


def test_professionals(paths):
    result = runner.invoke(app, ["professionals", "--config", str(paths["config"])])

    assert result.exit_code == 0, result.output
    assert "ana" in result.output
    assert "carla" in result.output


def test_version():
    result = runner.invoke(app, ["version"])
    assert result.exit_code == 0
    assert __version__ in result.output
