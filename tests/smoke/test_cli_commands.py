"""
Smoke Tests for CLI Commands.

These tests verify that CLI commands run without errors and produce output.
They don't validate correctness deeply - just that commands work.

Usage:
    pytest tests/smoke/test_cli_commands.py -v
    pytest tests/smoke/test_cli_commands.py -v -m smoke
"""

import os
import subprocess
import sys
from pathlib import Path

import pytest

# Mark all tests in this module as smoke tests
pytestmark = pytest.mark.smoke

# Project root
PROJECT_ROOT = Path(__file__).parent.parent.parent


def run_cli_command(*args: str, timeout: int = 30, env: dict | None = None) -> tuple[int, str, str]:
    """
    Run a CLI command and return exit code, stdout, stderr.

    Args:
        args: Arguments after 'python -m src.cli.main'
        timeout: Maximum time to wait
        env: Extra environment variables

    Returns:
        Tuple of (exit_code, stdout, stderr)
    """
    full_env = {**os.environ, "COLUMNS": "200", **(env or {})}
    result = subprocess.run(
        [sys.executable, "-m", "src.cli.main", *[str(a) for a in args]],
        cwd=PROJECT_ROOT,
        capture_output=True,
        text=True,
        timeout=timeout,
        env=full_env,
    )

    return result.returncode, result.stdout, result.stderr


class TestCLIHelp:
    """Test that help commands work."""

    def test_main_help(self):
        code, stdout, stderr = run_cli_command("--help")

        assert code == 0, f"Help failed: {stderr}"
        assert "quizpath" in stdout.lower()
        assert "Commands" in stdout

    @pytest.mark.parametrize("command", ["plan", "simulate", "capacity", "db"])
    def test_command_help(self, command):
        code, _, stderr = run_cli_command(command, "--help")
        assert code == 0, f"{command} help failed: {stderr}"

    def test_version(self):
        code, stdout, _ = run_cli_command("version")
        assert code == 0
        assert "v0.1.0" in stdout


class TestPlanCommand:
    def test_plan_two_topics(self, sample_bank_file):
        code, stdout, stderr = run_cli_command(
            "plan", sample_bank_file, "-s", "Math:Algebra", "-s", "Math:Geometry",
            "--total", "12", "--seed", "1", "--show-questions",
        )

        assert code == 0, f"Plan failed: {stderr}"
        assert "Plan: 12/12 questions (balanced)" in stdout
        assert "Math / Algebra" in stdout
        assert "shortfalls" not in stdout

    def test_plan_reports_shortfalls(self, sample_bank_file):
        code, stdout, stderr = run_cli_command(
            "plan", sample_bank_file, "-s", "Math:Algebra:Linear", "--total", "12", "--seed", "1",
        )

        assert code == 0, f"Plan failed: {stderr}"
        assert "Plan: 9/12 questions" in stdout
        assert "Question bank shortfalls" in stdout

    def test_plan_suggests_total(self, sample_bank_file):
        code, stdout, stderr = run_cli_command("plan", sample_bank_file, "-s", "Math:Algebra", "-f", "improve")
        assert code == 0, f"Plan failed: {stderr}"
        assert "(improve)" in stdout

    @pytest.mark.parametrize(
        "args",
        [
            ("-s", "Math"),
            ("-s", "Math:Algebra", "--focus", "cram"),
            ("-s", "Math:Rome", "--total", "5"),
        ],
    )
    def test_plan_rejects_bad_input(self, sample_bank_file, args):
        code, _, _ = run_cli_command("plan", sample_bank_file, *args)
        assert code == 1

    def test_empty_scope_without_total(self, sample_bank_file):
        code, stdout, _ = run_cli_command("plan", sample_bank_file, "-s", "Math:Rome")

        assert code == 1
        assert "No questions available for scope: Math / Rome" in stdout

    def test_missing_bank(self, tmp_path):
        code, _, _ = run_cli_command("plan", tmp_path / "missing.json", "-s", "Math:Algebra")
        assert code == 1


class TestCapacityCommand:
    def test_capacity(self, sample_bank_file):
        code, stdout, stderr = run_cli_command(
            "capacity", sample_bank_file, "-s", "Math:Algebra", "-s", "Math:Geometry"
        )

        assert code == 0, f"Capacity failed: {stderr}"
        assert "Available questions" in stdout
        assert "Suggested:" in stdout


class TestSimulateCommand:
    def test_simulate(self, sample_bank_file):
        code, stdout, stderr = run_cli_command(
            "simulate", sample_bank_file, "--questions", "8", "--seed", "7", "--focus", "improve"
        )

        assert code == 0, f"Simulate failed: {stderr}"
        assert "Simulated session (improve" in stdout
        assert "Answered: 8" in stdout

    def test_simulate_empty_scope(self, sample_bank_file):
        code, _, _ = run_cli_command("simulate", sample_bank_file, "--subject", "History")
        assert code == 1


class TestDatabaseCommands:
    def test_init_and_import(self, sample_bank_file, tmp_path):
        env = {"QUIZPATH_DATABASE_URL": f"sqlite:///{tmp_path / 'quiz.db'}"}

        code, stdout, stderr = run_cli_command("db", "init", env=env)
        assert code == 0, f"db init failed: {stderr}"
        assert "Database initialized" in stdout

        code, stdout, stderr = run_cli_command("db", "import-bank", sample_bank_file, env=env)
        assert code == 0, f"import failed: {stderr}"
        assert "Imported 30 questions" in stdout
