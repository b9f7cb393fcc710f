"""Tests for Calibrator CLI commands."""

import json
import sqlite3
from pathlib import Path
from unittest.mock import patch

import pytest
from typer.testing import CliRunner

from calibrator import __version__
from calibrator.cli import app
from calibrator.store import CalibratorStore

runner = CliRunner()


def _payload(command: str = "npx tsc --noEmit", exit_code: int = 2) -> str:
    return json.dumps({
        "tool_input": {"command": command},
        "tool_result": {
            "exit_code": exit_code,
            "stdout": "src/a.ts(3,1): error TS2304: Cannot find name 'x'.",
            "stderr": "",
        },
    })


class TestVersion:
    def test_version_shows_version(self) -> None:
        result = runner.invoke(app, ["--version"])
        assert result.exit_code == 0
        assert f"Calibrator v{__version__}" in result.stdout


class TestInit:
    def test_creates_store(
        self, monkeypatch: pytest.MonkeyPatch, project_root: Path
    ) -> None:
        monkeypatch.setenv("PROJECT_ROOT", str(project_root))

        result = runner.invoke(app, ["init"])

        assert result.exit_code == 0
        assert "Initialized calibrator store" in result.stdout
        assert (project_root / ".claude" / "calibrator" / "patterns.db").is_file()
        assert not (project_root / ".claude" / "calibrator" / "auto-detect.enabled").exists()

    def test_auto_detect_flag(
        self, monkeypatch: pytest.MonkeyPatch, project_root: Path
    ) -> None:
        monkeypatch.setenv("PROJECT_ROOT", str(project_root))

        result = runner.invoke(app, ["init", "--auto-detect"])

        assert result.exit_code == 0
        assert (project_root / ".claude" / "calibrator" / "auto-detect.enabled").is_file()

    def test_second_init_keeps_data(self, initialized_project: Path) -> None:
        db_path = initialized_project / ".claude" / "calibrator" / "patterns.db"
        CalibratorStore(db_path).upsert_pattern("s", "i")

        result = runner.invoke(app, ["init"])

        assert result.exit_code == 0
        assert "already initialized" in result.stdout
        assert len(CalibratorStore(db_path).get_all_patterns()) == 1


class TestCreateSkill:
    def test_success(self, initialized_project: Path, store: CalibratorStore) -> None:
        pattern = store.upsert_pattern("missing null check", "Add a null guard")

        result = runner.invoke(
            app,
            ["create-skill", str(pattern.id), "missing null check", "Add a null guard", "4"],
        )

        assert result.exit_code == 0
        skill_file = (
            initialized_project / ".claude" / "skills" / "missing-null-check" / "SKILL.md"
        ).resolve()
        assert result.stdout.strip() == f"SKILL_CREATED: {skill_file}"
        assert skill_file.is_file()
        stored = store.get_pattern(pattern.id)
        assert stored is not None
        assert stored.promoted is True

    @pytest.mark.parametrize(
        "pattern_id",
        [
            "abc", "-1", "1.5", " 1", "1e3", "",
            "9223372036854775808", "99999999999999999999999",
        ],
    )
    def test_invalid_pattern_id(self, initialized_project: Path, pattern_id: str) -> None:
        result = runner.invoke(app, ["create-skill", "--", pattern_id, "s", "i", "1"])

        assert result.exit_code == 1
        assert f"Error: Invalid pattern id '{pattern_id}'" in result.stdout
        assert not (initialized_project / ".claude" / "skills").exists()

    def test_invalid_count(self, initialized_project: Path) -> None:
        result = runner.invoke(app, ["create-skill", "1", "s", "i", "many"])
        assert result.exit_code == 1
        assert "Error: Invalid count 'many'" in result.stdout

    def test_missing_arguments(self, initialized_project: Path) -> None:
        result = runner.invoke(app, ["create-skill", "1", "s"])
        assert result.exit_code != 0

    def test_store_missing(
        self, monkeypatch: pytest.MonkeyPatch, project_root: Path
    ) -> None:
        monkeypatch.setenv("PROJECT_ROOT", str(project_root))

        result = runner.invoke(app, ["create-skill", "1", "s", "i", "1"])

        assert result.exit_code == 1
        assert "Error: Database not found at" in result.stdout
        assert not (project_root / ".claude").exists()

    def test_template_missing(
        self,
        monkeypatch: pytest.MonkeyPatch,
        initialized_project: Path,
        store: CalibratorStore,
        tmp_path: Path,
    ) -> None:
        pattern = store.upsert_pattern("s", "i")
        monkeypatch.setenv("CLAUDE_PLUGIN_ROOT", str(tmp_path / "plugin"))

        result = runner.invoke(app, ["create-skill", str(pattern.id), "s", "i", "1"])

        assert result.exit_code == 1
        assert "Error: Template file not found at" in result.stdout
        assert not (initialized_project / ".claude" / "skills").exists()

    def test_plugin_template_used(
        self,
        monkeypatch: pytest.MonkeyPatch,
        initialized_project: Path,
        store: CalibratorStore,
        tmp_path: Path,
    ) -> None:
        template = tmp_path / "plugin" / "templates" / "skill-template.md"
        template.parent.mkdir(parents=True)
        template.write_text("custom {{SKILL_NAME}} x{{COUNT}}\n", encoding="utf-8")
        monkeypatch.setenv("CLAUDE_PLUGIN_ROOT", str(tmp_path / "plugin"))
        pattern = store.upsert_pattern("s", "i")

        result = runner.invoke(app, ["create-skill", str(pattern.id), "s", "i", "3"])

        assert result.exit_code == 0
        skill_file = initialized_project / ".claude" / "skills" / "s" / "SKILL.md"
        assert skill_file.read_text(encoding="utf-8") == "custom s x3\n"

    def test_pattern_not_found(self, initialized_project: Path) -> None:
        result = runner.invoke(app, ["create-skill", "42", "s", "i", "1"])

        assert result.exit_code == 1
        assert "Error: Pattern not found (id=42)" in result.stdout

    def test_name_exhaustion(
        self,
        monkeypatch: pytest.MonkeyPatch,
        initialized_project: Path,
        store: CalibratorStore,
    ) -> None:
        monkeypatch.setenv("CALIBRATOR_MAX_NAME_ATTEMPTS", "1")
        skills = initialized_project / ".claude" / "skills"
        (skills / "s").mkdir(parents=True)
        (skills / "s-1").mkdir()
        pattern = store.upsert_pattern("s", "i")

        result = runner.invoke(app, ["create-skill", str(pattern.id), "s", "i", "1"])

        assert result.exit_code == 1
        assert "Failed to generate unique skill name after 1 attempts" in result.stdout

    def test_store_update_failure_is_warning(
        self, initialized_project: Path, store: CalibratorStore
    ) -> None:
        pattern = store.upsert_pattern("s", "i")

        with patch.object(
            CalibratorStore,
            "mark_promoted",
            side_effect=sqlite3.OperationalError("database is locked"),
        ):
            result = runner.invoke(app, ["create-skill", str(pattern.id), "s", "i", "1"])

        assert result.exit_code == 0
        assert "Warning: Skill file created but database update failed" in result.stdout
        assert "SKILL_CREATED:" in result.stdout


class TestHookCommand:
    def test_records_when_enabled(self, initialized_project: Path) -> None:
        (initialized_project / ".claude" / "calibrator" / "auto-detect.enabled").touch()

        result = runner.invoke(app, ["hook"], input=_payload())

        assert result.exit_code == 0
        assert result.stdout == ""
        db_path = initialized_project / ".claude" / "calibrator" / "patterns.db"
        [record] = CalibratorStore(db_path).get_recent_observations()
        assert record.situation.startswith("typecheck: src/a.ts(3,1): error TS2304")

    def test_invalid_utf8_still_recorded(self, initialized_project: Path) -> None:
        (initialized_project / ".claude" / "calibrator" / "auto-detect.enabled").touch()
        raw = (
            b'{"tool_input": {"command": "pytest"},'
            b' "tool_result": {"exit_code": 1, "stdout": "", "stderr": "FAIL \xff\xfe bad bytes"}}'
        )

        result = runner.invoke(app, ["hook"], input=raw)

        assert result.exit_code == 0
        db_path = initialized_project / ".claude" / "calibrator" / "patterns.db"
        [record] = CalibratorStore(db_path).get_recent_observations()
        assert record.situation.startswith("test: FAIL ")
        assert record.situation.endswith(" bad bytes")

    def test_disabled_is_silent(self, initialized_project: Path) -> None:
        result = runner.invoke(app, ["hook"], input=_payload())

        assert result.exit_code == 0
        assert result.stdout == ""

    def test_garbage_input(self, initialized_project: Path) -> None:
        result = runner.invoke(app, ["hook"], input="\x00not json")
        assert result.exit_code == 0

    def test_unexpected_error_still_exits_zero(self, initialized_project: Path) -> None:
        with patch("calibrator.cli.commands.detect.run_hook", side_effect=RuntimeError("boom")):
            result = runner.invoke(app, ["hook"], input=_payload())
        assert result.exit_code == 0


class TestAutoDetect:
    def test_toggle(self, initialized_project: Path) -> None:
        flag = initialized_project / ".claude" / "calibrator" / "auto-detect.enabled"

        result = runner.invoke(app, ["auto-detect", "on"])
        assert result.exit_code == 0
        assert flag.is_file()

        result = runner.invoke(app, ["auto-detect", "status"])
        assert "enabled" in result.stdout

        result = runner.invoke(app, ["auto-detect", "off"])
        assert result.exit_code == 0
        assert not flag.exists()

        result = runner.invoke(app, ["auto-detect"])
        assert "disabled" in result.stdout

    def test_on_requires_store(
        self, monkeypatch: pytest.MonkeyPatch, project_root: Path
    ) -> None:
        monkeypatch.setenv("PROJECT_ROOT", str(project_root))

        result = runner.invoke(app, ["auto-detect", "on"])

        assert result.exit_code == 1
        assert "not initialized" in result.stdout

    def test_invalid_state(self, initialized_project: Path) -> None:
        result = runner.invoke(app, ["auto-detect", "maybe"])
        assert result.exit_code == 2


class TestPatternCommands:
    def test_record_pattern_counts(self, initialized_project: Path) -> None:
        runner.invoke(app, ["record-pattern", "s", "i"])
        result = runner.invoke(app, ["record-pattern", "s", "i", "--json"])

        assert result.exit_code == 0
        data = json.loads(result.stdout)
        assert data["count"] == 2
        assert data["promoted"] is False

    def test_record_pattern_rejects_empty(self, initialized_project: Path) -> None:
        result = runner.invoke(app, ["record-pattern", "", "i"])
        assert result.exit_code == 1
        assert "Error:" in result.stdout

    def test_patterns_json(self, initialized_project: Path, store: CalibratorStore) -> None:
        for _ in range(3):
            store.upsert_pattern("often", "i")
        store.upsert_pattern("once", "i")

        result = runner.invoke(app, ["patterns", "--json", "--min-count", "2"])

        assert result.exit_code == 0
        assert [p["situation"] for p in json.loads(result.stdout)] == ["often"]

    def test_patterns_table(self, initialized_project: Path, store: CalibratorStore) -> None:
        store.upsert_pattern("[bold]not markup[/bold]", "i")

        result = runner.invoke(app, ["patterns"])

        assert result.exit_code == 0
        assert "[bold]not" in result.stdout

    def test_patterns_empty(self, initialized_project: Path) -> None:
        result = runner.invoke(app, ["patterns"])
        assert result.exit_code == 0
        assert "No patterns found" in result.stdout

    def test_dismiss(self, initialized_project: Path, store: CalibratorStore) -> None:
        pattern = store.upsert_pattern("s", "i")

        result = runner.invoke(app, ["dismiss", str(pattern.id)])

        assert result.exit_code == 0
        assert store.get_promotion_candidates() == []
        result = runner.invoke(app, ["patterns", "--all", "--json"])
        assert json.loads(result.stdout)[0]["dismissed"] is True

    def test_dismiss_unknown(self, initialized_project: Path) -> None:
        result = runner.invoke(app, ["dismiss", "7"])
        assert result.exit_code == 1
        assert "Pattern not found (id=7)" in result.stdout

    def test_dismiss_out_of_range_id(self, initialized_project: Path) -> None:
        result = runner.invoke(app, ["dismiss", "99999999999999999999999"])
        assert result.exit_code == 1
        assert "Error: Invalid pattern id '99999999999999999999999'" in result.stdout


class TestStatusAndReset:
    def test_status_json(self, initialized_project: Path, store: CalibratorStore) -> None:
        store.upsert_pattern("s", "i")
        store.record_observation("style", "lint: x", "e")
        store.record_observation("style", "lint: x", "e")

        result = runner.invoke(app, ["status", "--json"])

        assert result.exit_code == 0
        data = json.loads(result.stdout)
        assert data["patterns"] == 1
        assert data["observations"] == 2
        assert data["schema_version"] == "1.1"
        assert data["auto_detect"] is False
        assert data["top_observations"][0]["occurrences"] == 2

    def test_status_table(self, initialized_project: Path) -> None:
        result = runner.invoke(app, ["status"])
        assert result.exit_code == 0
        assert "Schema version" in result.stdout

    def test_status_uninitialized(
        self, monkeypatch: pytest.MonkeyPatch, project_root: Path
    ) -> None:
        monkeypatch.setenv("PROJECT_ROOT", str(project_root))
        result = runner.invoke(app, ["status"])
        assert result.exit_code == 1
        assert "Database not found" in result.stdout

    def test_reset_with_yes(self, initialized_project: Path, store: CalibratorStore) -> None:
        store.upsert_pattern("s", "i")
        skill = initialized_project / ".claude" / "skills" / "s" / "SKILL.md"
        skill.parent.mkdir(parents=True)
        skill.write_text("keep me")

        result = runner.invoke(app, ["reset", "--yes"])

        assert result.exit_code == 0
        assert store.get_all_patterns() == []
        assert skill.read_text() == "keep me"

    def test_reset_declined(self, initialized_project: Path, store: CalibratorStore) -> None:
        store.upsert_pattern("s", "i")

        result = runner.invoke(app, ["reset"], input="n\n")

        assert result.exit_code != 0
        assert len(store.get_all_patterns()) == 1


class TestGlobalOptions:
    def test_both_format_requires_file(self, initialized_project: Path) -> None:
        result = runner.invoke(app, ["--log-format", "both", "status"])
        assert result.exit_code == 1
        assert "Logging configuration error" in result.stdout

    def test_log_file_written(self, initialized_project: Path, tmp_path: Path) -> None:
        log_file = tmp_path / "logs" / "calibrator.log"

        result = runner.invoke(
            app,
            ["--log-level", "INFO", "--log-file", str(log_file), "reset", "--yes"],
        )

        assert result.exit_code == 0
        assert "store_reset" in log_file.read_text(encoding="utf-8")

    def test_quiet(self, initialized_project: Path) -> None:
        result = runner.invoke(app, ["--quiet", "record-pattern", "s", "i"])
        assert result.exit_code == 0
        assert result.stdout == ""
