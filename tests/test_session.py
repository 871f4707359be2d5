"""End-to-end log call tests: bootstrap, rotation, append."""
import zipfile
from dataclasses import replace
from datetime import datetime, timedelta
from pathlib import Path

import pytest

from rotalog.config import DEFAULT_CONFIG, settings_from_config
from rotalog.session import RESUMED_BANNER, STARTED_BANNER, prepare_log, rotate_now, write_log
from rotalog.threshold import created_marker_path, creation_time, record_creation_time
from rotalog.writer import append_line


def _settings(tmp_path: Path, **overrides):
    config = {**DEFAULT_CONFIG, "name": "Test", "directory": "logs",
              "scratch_dir": str(tmp_path / "scratch"), **overrides}
    return settings_from_config(config, tmp_path)


class TestBootstrap:
    def test_first_write_creates_file_with_banner(self, tmp_path):
        settings = _settings(tmp_path)
        result = write_log("hello", settings)
        assert result.ok
        lines = settings.base_path.read_text().splitlines()
        assert len(lines) == 2
        assert lines[0].endswith(f"[Info] {STARTED_BANNER}")
        assert lines[1].endswith("[Info] hello")

    def test_raw_mode(self, tmp_path):
        settings = _settings(tmp_path, raw=True)
        write_log("plain", settings, level="Error")
        assert settings.base_path.read_text() == f"{STARTED_BANNER}\nplain\n"

    def test_no_rotation_without_threshold(self, tmp_path):
        settings = _settings(tmp_path)
        write_log("a", settings)
        assert prepare_log(settings) is False


class TestScenarios:
    def test_scenario_a_plain_rotation(self, tmp_path):
        settings = _settings(tmp_path, rotate="10M", archive=False)
        settings.directory.mkdir(parents=True)
        settings.base_path.write_bytes(b"x" * (11 * 1024 * 1024))

        assert prepare_log(settings) is True

        rotated = settings.directory / "Test.1.log"
        assert rotated.stat().st_size == 11 * 1024 * 1024
        assert settings.base_path.read_text().strip().endswith(RESUMED_BANNER)

    def test_scenario_b_eviction(self, tmp_path):
        settings = _settings(tmp_path, rotate="1K", archive=False, keep=2)
        d = settings.directory
        d.mkdir(parents=True)
        (d / "Test.1.log").write_text("one\n")
        (d / "Test.2.log").write_text("two\n")
        settings.base_path.write_bytes(b"b" * 2048)

        result = write_log("after", settings)

        assert result.ok
        assert (d / "Test.1.log").read_bytes() == b"b" * 2048
        assert (d / "Test.2.log").read_text() == "one\n"
        assert not (d / "Test.3.log").exists()
        text = settings.base_path.read_text()
        assert RESUMED_BANNER in text and text.endswith("after\n")

    def test_scenario_c_first_archive(self, tmp_path):
        settings = _settings(tmp_path, rotate="1K", archive=True)
        d = settings.directory
        d.mkdir(parents=True)
        (d / "Test.1.log").write_text("one\n")
        settings.base_path.write_bytes(b"b" * 2048)

        assert prepare_log(settings) is True

        assert not (d / "Test.1.log").exists()
        assert not (d / "Test.2.log").exists()
        with zipfile.ZipFile(d / "Test-archive.zip") as zf:
            assert sorted(zf.namelist()) == ["Test.1.log", "Test.2.log"]

    def test_scenario_d_invalid_spec(self, tmp_path):
        settings = _settings(tmp_path, rotate="xyz", archive=False)
        settings.directory.mkdir(parents=True)
        settings.base_path.write_bytes(b"b" * (5 * 1024 * 1024))
        assert prepare_log(settings) is False
        assert not (settings.directory / "Test.1.log").exists()


class TestArchivedCycle:
    def test_two_rotations_through_archive(self, tmp_path):
        settings = _settings(tmp_path, rotate="10K", archive=True, keep=5)
        for payload in (b"a", b"b"):
            write_log("msg", settings)
            with open(settings.base_path, "ab") as f:
                f.write(payload * 20 * 1024)
        write_log("final", settings)

        with zipfile.ZipFile(settings.directory / "Test-archive.zip") as zf:
            assert sorted(zf.namelist()) == ["Test.1.log", "Test.2.log"]
            assert zf.read("Test.1.log").endswith(b"b" * 1024)
            assert zf.read("Test.2.log").endswith(b"a" * 1024)
        assert settings.base_path.read_text().endswith("final\n")
        assert not (tmp_path / "scratch").exists()


class TestAgeRotation:
    def test_creation_recorded_on_first_write(self, tmp_path):
        settings = _settings(tmp_path)
        write_log("hello", settings)
        assert created_marker_path(settings.base_path).exists()

    def test_rotates_by_age_despite_recent_appends(self, tmp_path):
        settings = _settings(tmp_path, rotate="7", archive=False)
        write_log("day one", settings)
        record_creation_time(settings.base_path, datetime.now() - timedelta(days=10))
        append_line("still writing", settings.base_path)

        write_log("after a week", settings)

        assert (settings.directory / "Test.1.log").exists()
        rotated = (settings.directory / "Test.1.log").read_text()
        assert "day one" in rotated and "still writing" in rotated
        text = settings.base_path.read_text()
        assert RESUMED_BANNER in text and text.endswith("after a week\n")
        assert (datetime.now() - creation_time(settings.base_path)).days == 0

    def test_young_log_with_appends_not_rotated(self, tmp_path):
        settings = _settings(tmp_path, rotate="7", archive=False)
        write_log("a", settings)
        record_creation_time(settings.base_path, datetime.now() - timedelta(days=3))
        write_log("b", settings)
        assert not (settings.directory / "Test.1.log").exists()

    def test_marker_not_archived(self, tmp_path):
        settings = _settings(tmp_path, rotate="7", archive=True)
        write_log("a", settings)
        record_creation_time(settings.base_path, datetime.now() - timedelta(days=10))
        write_log("b", settings)
        with zipfile.ZipFile(settings.directory / "Test-archive.zip") as zf:
            assert zf.namelist() == ["Test.1.log"]


class TestRotationErrors:
    def test_rotation_error_aborts_append(self, tmp_path, monkeypatch):
        settings = _settings(tmp_path, rotate="1K", archive=False)
        settings.directory.mkdir(parents=True)
        settings.base_path.write_bytes(b"b" * 2048)

        def boom(*args, **kwargs):
            raise PermissionError("denied")

        monkeypatch.setattr("rotalog.session.roll", boom)
        with pytest.raises(PermissionError):
            write_log("lost", settings)
        assert "lost" not in settings.base_path.read_text(errors="ignore")


class TestRotateNow:
    def test_force_rotation(self, tmp_path):
        settings = _settings(tmp_path, archive=False)
        write_log("a", settings)
        assert rotate_now(settings) is True
        assert (settings.directory / "Test.1.log").exists()

    def test_nothing_to_rotate(self, tmp_path):
        settings = _settings(tmp_path)
        assert rotate_now(settings) is False

    def test_settings_are_immutable(self, tmp_path):
        settings = _settings(tmp_path)
        other = replace(settings, name="Other")
        assert settings.name == "Test"
        assert other.base_path.name == "Other.log"
