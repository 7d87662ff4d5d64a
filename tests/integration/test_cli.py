"""
Integration tests for the taskwave CLI.

Runs the Typer app end to end against task files and source files
written to tmp_path.
"""

import json

import pytest
from typer.testing import CliRunner

from taskwave import __version__
from taskwave.cli.main import EXIT_INPUT_ERROR, EXIT_STUCK, app
from taskwave.verification.cache import content_hash

pytestmark = pytest.mark.integration


@pytest.fixture
def cli_runner():
    """Fixture providing a Typer CLI runner."""
    return CliRunner()


@pytest.fixture
def cyclic_tasks_file(write_source):
    document = {
        "tasks": [
            {"id": "A", "type": "parent", "dependency_info": {"blocked_by": ["B"]}},
            {"id": "B", "type": "parent", "dependency_info": {"blocked_by": ["A"]}},
        ]
    }
    return write_source("cyclic/tasks.json", json.dumps(document))


class TestGlobalOptions:
    """Tests for the top-level callback."""

    def test_version(self, cli_runner) -> None:
        result = cli_runner.invoke(app, ["--version"])

        assert result.exit_code == 0
        assert __version__ in result.output

    def test_help_lists_commands(self, cli_runner) -> None:
        result = cli_runner.invoke(app, ["--help"])

        assert result.exit_code == 0
        for command in ("analyze", "waves", "status", "ast"):
            assert command in result.output


class TestAnalyzeCommands:
    """Tests for analyze, waves and status."""

    def test_analyze(self, cli_runner, tasks_file) -> None:
        result = cli_runner.invoke(app, ["analyze", str(tasks_file)])

        assert result.exit_code == 0
        assert '"max_concurrent_workers": 2' in result.output
        assert '"estimated_speedup": 1.62' in result.output

    def test_analyze_directory(self, cli_runner, tasks_file) -> None:
        result = cli_runner.invoke(app, ["analyze", str(tasks_file.parent)])

        assert result.exit_code == 0

    def test_analyze_cycle_exits_stuck(self, cli_runner, cyclic_tasks_file) -> None:
        result = cli_runner.invoke(app, ["analyze", str(cyclic_tasks_file)])

        assert result.exit_code == EXIT_STUCK
        assert "Circular dependency" in result.output

    def test_analyze_missing_file(self, cli_runner, tmp_path) -> None:
        result = cli_runner.invoke(app, ["analyze", str(tmp_path / "missing.json")])

        assert result.exit_code == EXIT_INPUT_ERROR
        assert "not found" in result.output

    def test_analyze_invalid_json(self, cli_runner, write_source) -> None:
        path = write_source("bad/tasks.json", "{oops")

        result = cli_runner.invoke(app, ["analyze", str(path)])

        assert result.exit_code == EXIT_INPUT_ERROR

    def test_strict_unknown_dependency(self, cli_runner, write_source) -> None:
        path = write_source(
            "strict/tasks.json",
            json.dumps({"tasks": [{"id": "1", "dependency_info": {"blocked_by": ["ghost"]}}]}),
        )

        permissive = cli_runner.invoke(app, ["analyze", str(path)])
        strict = cli_runner.invoke(app, ["analyze", str(path), "--strict"])

        assert permissive.exit_code == 0
        assert strict.exit_code == EXIT_STUCK
        assert "ghost" in strict.output

    def test_waves_table(self, cli_runner, tasks_file) -> None:
        result = cli_runner.invoke(app, ["waves", str(tasks_file)])

        assert result.exit_code == 0
        assert "Execution Waves" in result.output
        assert "Max concurrent workers: 2" in result.output
        assert "Estimated speedup: 1.62x" in result.output

    def test_waves_cycle(self, cli_runner, cyclic_tasks_file) -> None:
        result = cli_runner.invoke(app, ["waves", str(cyclic_tasks_file)])

        assert result.exit_code == EXIT_STUCK

    def test_status_computed(self, cli_runner, tasks_file) -> None:
        result = cli_runner.invoke(app, ["status", str(tasks_file)])

        assert result.exit_code == 0
        assert "Spec: user-auth" in result.output
        assert "completed: 2" in result.output
        assert "Current wave: 1 of 2 (computed)" in result.output

    def test_status_stored_strategy(self, cli_runner, write_source, sample_task_document) -> None:
        document = {
            **sample_task_document,
            "execution_strategy": {
                "waves": [
                    {"wave_id": 1, "tasks": ["2"]},
                    {"wave_id": 2, "tasks": ["3"]},
                    {"wave_id": 3, "tasks": ["4"]},
                ]
            },
        }
        path = write_source("stored/tasks.json", json.dumps(document))

        result = cli_runner.invoke(app, ["status", str(path)])

        assert result.exit_code == 0
        assert "Current wave: 1 of 3 (stored)" in result.output

    def test_status_malformed_stored_strategy(
        self, cli_runner, write_source, sample_task_document
    ) -> None:
        document = {
            **sample_task_document,
            "execution_strategy": {"waves": [{"wave_id": 0, "tasks": ["2"]}]},
        }
        path = write_source("malformed/tasks.json", json.dumps(document))

        result = cli_runner.invoke(app, ["status", str(path)])

        assert result.exit_code == 0
        assert "Current wave: 1 of 2 (computed)" in result.output

    def test_status_all_complete(self, cli_runner, write_source) -> None:
        path = write_source(
            "done/tasks.json",
            json.dumps({"spec": "done", "tasks": [{"id": "1", "status": "pass"}]}),
        )

        result = cli_runner.invoke(app, ["status", str(path)])

        assert result.exit_code == 0
        assert "complete" in result.output


class TestAstCommands:
    """Tests for the ast sub-commands."""

    def test_verify(self, cli_runner, sample_ts_file) -> None:
        result = cli_runner.invoke(app, ["ast", "verify", str(sample_ts_file)])

        assert result.exit_code == 0
        assert '"verified": true' in result.output
        assert "createUser" in result.output

    def test_verify_missing_file(self, cli_runner, tmp_path) -> None:
        result = cli_runner.invoke(app, ["ast", "verify", str(tmp_path / "gone.ts")])

        assert result.exit_code == 1
        assert '"verified": false' in result.output

    def test_verify_uses_cache(self, cli_runner, sample_ts_file) -> None:
        cli_runner.invoke(app, ["ast", "verify", str(sample_ts_file)])

        cached = cli_runner.invoke(app, ["ast", "verify", str(sample_ts_file)])
        uncached = cli_runner.invoke(app, ["ast", "verify", str(sample_ts_file), "--no-cache"])

        assert '"cached": true' in cached.output
        assert '"cached": false' in uncached.output

    def test_check_export(self, cli_runner, sample_ts_file) -> None:
        found = cli_runner.invoke(app, ["ast", "check-export", str(sample_ts_file), "UserRole"])
        missing = cli_runner.invoke(app, ["ast", "check-export", str(sample_ts_file), "Nope"])

        assert found.exit_code == 0
        assert missing.exit_code == 1

    def test_check_export_prints_brackets_literally(self, cli_runner, sample_ts_file) -> None:
        missing = cli_runner.invoke(app, ["ast", "check-export", str(sample_ts_file), "[bold]x"])
        function = cli_runner.invoke(
            app, ["ast", "check-function", str(sample_ts_file), "[bold]x"]
        )

        assert missing.exit_code == 1
        assert "[bold]x is not exported" in missing.output
        assert function.exit_code == 1
        assert "function [bold]x is not exported" in function.output

    def test_check_function(self, cli_runner, sample_ts_file) -> None:
        function = cli_runner.invoke(
            app, ["ast", "check-function", str(sample_ts_file), "createUser"]
        )
        klass = cli_runner.invoke(
            app, ["ast", "check-function", str(sample_ts_file), "UserService"]
        )

        assert function.exit_code == 0
        assert klass.exit_code == 1

    def test_check_types_pass(self, cli_runner, sample_ts_file) -> None:
        result = cli_runner.invoke(
            app,
            ["ast", "check-types", str(sample_ts_file), "User:interface", "createUser:function"],
        )

        assert result.exit_code == 0
        assert '"verified": true' in result.output

    def test_check_types_kind_mismatch(self, cli_runner, sample_ts_file) -> None:
        result = cli_runner.invoke(app, ["ast", "check-types", str(sample_ts_file), "User:type"])

        assert result.exit_code == 1
        assert "exists but as interface" in result.output

    def test_check_types_bad_claim(self, cli_runner, sample_ts_file) -> None:
        result = cli_runner.invoke(app, ["ast", "check-types", str(sample_ts_file), "User:widget"])

        assert result.exit_code == 2
        assert "widget" in result.output

    def test_types_lists_declarations(self, cli_runner, sample_ts_file) -> None:
        result = cli_runner.invoke(app, ["ast", "types", str(sample_ts_file)])

        assert result.exit_code == 0
        for name in ("User", "UserId", "createUser", "UserService", "UserRole"):
            assert name in result.output

    def test_types_missing_file_is_informational(self, cli_runner, tmp_path) -> None:
        result = cli_runner.invoke(app, ["ast", "types", str(tmp_path / "gone.ts")])

        assert result.exit_code == 0
        assert "File not found" in result.output

    def test_hash(self, cli_runner, sample_ts_file) -> None:
        result = cli_runner.invoke(app, ["ast", "hash", str(sample_ts_file)])

        assert result.exit_code == 0
        assert content_hash(sample_ts_file.read_bytes()) in result.output

    def test_hash_missing_file(self, cli_runner, tmp_path) -> None:
        result = cli_runner.invoke(app, ["ast", "hash", str(tmp_path / "gone.ts")])

        assert result.exit_code == 1

    def test_clear_cache(self, cli_runner, sample_ts_file) -> None:
        cli_runner.invoke(app, ["ast", "verify", str(sample_ts_file)])

        result = cli_runner.invoke(app, ["ast", "clear-cache"])

        assert result.exit_code == 0
        assert '"removed": 1' in result.output

    def test_clear_cache_single_file(self, cli_runner, sample_ts_file) -> None:
        result = cli_runner.invoke(app, ["ast", "clear-cache", str(sample_ts_file)])

        assert result.exit_code == 0
        assert '"removed": 0' in result.output
