"""CLI smoke tests."""

from __future__ import annotations

import os
import shutil
from pathlib import Path

import pytest
from typer.testing import CliRunner

from governance.audit_logger import AuditLogger
from ui.cli.cli import app

runner = CliRunner()

needs_bash = pytest.mark.skipif(
    os.name == "nt" or shutil.which("bash") is None,
    reason="requires a POSIX bash",
)


@needs_bash
def test_run_safe_command(tmp_path: Path) -> None:
    result = runner.invoke(app, ["run", "echo hello", "--root", str(tmp_path)])
    assert result.exit_code == 0
    assert "hello" in result.stdout
    assert "<cwd>" in result.stdout


@needs_bash
def test_run_denied_at_prompt(tmp_path: Path) -> None:
    target = tmp_path / "workspace" / "made.txt"
    result = runner.invoke(
        app, ["run", f"touch {target}", "--root", str(tmp_path)], input="n\n"
    )
    assert result.exit_code == 1
    assert "permission denied" in result.stdout
    assert not target.exists()


@needs_bash
def test_run_approved_with_yes(tmp_path: Path) -> None:
    target = tmp_path / "workspace" / "made.txt"
    result = runner.invoke(app, ["run", f"touch {target}", "--yes", "--root", str(tmp_path)])
    assert result.exit_code == 0
    assert target.exists()
    events = AuditLogger(tmp_path / "logs" / "audit.jsonl").read_events()
    assert [e["reason"] for e in events if e["action"] == "permission:execute"] == [
        "Session auto-approved."
    ]


def test_tools_list_and_describe(tmp_path: Path) -> None:
    listed = runner.invoke(app, ["tools", "list", "--root", str(tmp_path)])
    assert listed.exit_code == 0
    assert "bash: enabled" in listed.stdout

    described = runner.invoke(app, ["tools", "describe", "bash", "--root", str(tmp_path)])
    assert described.exit_code == 0
    assert '"required"' in described.stdout


def test_config_show(tmp_path: Path) -> None:
    result = runner.invoke(app, ["config", "show", "--root", str(tmp_path)])
    assert result.exit_code == 0
    assert "permissions" in result.stdout
