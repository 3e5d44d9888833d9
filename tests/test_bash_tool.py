"""Bash tool request handling tests."""

from __future__ import annotations

import json
import os
import shutil
from pathlib import Path
from unittest.mock import MagicMock

import pytest

import executor.execution_gate as execution_gate
from executor.execution_gate import DEFAULT_TIMEOUT_MS, MAX_TIMEOUT_MS
from executor.shell_registry import ShellRegistry
from governance.permission_engine import PermissionDeniedError, PermissionEngine
from tools.base_tool import RequestContext, ToolCall
from tools.system_tools.bash_tool import BASH_TOOL_NAME, Attribution, BashTool
from tools.tool_registry import ToolRegistry

CTX = RequestContext(session_id="s1", message_id="m1")


def _call(payload: object) -> ToolCall:
    raw = payload if isinstance(payload, str) else json.dumps(payload)
    return ToolCall(id="call-1", name=BASH_TOOL_NAME, input=raw)


def _tool(tmp_path: Path, allowed: bool = True, **kwargs) -> tuple[BashTool, MagicMock, MagicMock]:
    shell = MagicMock()
    shell.exec.return_value = ("hi\n", "", None)
    shell.get_working_dir.return_value = str(tmp_path)
    permissions = MagicMock()
    permissions.request.return_value = allowed
    tool = BashTool(
        permissions=permissions,
        shells=ShellRegistry(factory=lambda _: shell),
        working_dir=tmp_path,
        **kwargs,
    )
    return tool, shell, permissions


@pytest.mark.parametrize("raw", ["", "not json", '{"command": 5}', '{"timeout": "soon"}'])
def test_invalid_parameters(tmp_path: Path, raw: str) -> None:
    tool, shell, permissions = _tool(tmp_path)
    response = tool.run(CTX, _call(raw))
    assert response.is_error is True
    assert response.content == "invalid parameters"
    shell.exec.assert_not_called()
    permissions.request.assert_not_called()


def test_missing_command(tmp_path: Path) -> None:
    tool, shell, permissions = _tool(tmp_path)
    response = tool.run(CTX, _call({"command": ""}))
    assert response.is_error is True
    assert response.content == "missing command"
    shell.exec.assert_not_called()
    permissions.request.assert_not_called()


def test_missing_command_checked_before_identifiers(tmp_path: Path) -> None:
    tool, _, _ = _tool(tmp_path)
    response = tool.run(RequestContext(), _call({}))
    assert response.content == "missing command"


@pytest.mark.parametrize(
    ("timeout", "expected_seconds"),
    [(0, DEFAULT_TIMEOUT_MS / 1000), (-5, DEFAULT_TIMEOUT_MS / 1000), (MAX_TIMEOUT_MS + 1, MAX_TIMEOUT_MS / 1000), (5000, 5.0)],
)
def test_timeout_reaches_shell_context(
    tmp_path: Path, monkeypatch, timeout: int, expected_seconds: float
) -> None:
    seen: list[float] = []
    original = execution_gate.with_timeout

    def _spy(parent, seconds: float):
        seen.append(seconds)
        return original(parent, seconds)

    monkeypatch.setattr(execution_gate, "with_timeout", _spy)
    tool, shell, _ = _tool(tmp_path)
    tool.run(CTX, _call({"command": "ls", "timeout": timeout}))
    assert seen == [expected_seconds]
    assert shell.exec.call_args.args[0].done()


def test_blocked_commands_configured_once(tmp_path: Path) -> None:
    _, shell, _ = _tool(tmp_path, blocked_commands=["curl"])
    shell.set_blocked_commands.assert_called_once()
    (funcs,) = shell.set_blocked_commands.call_args.args
    assert len(funcs) == 1
    assert funcs[0](["curl", "example.com"]) is True
    assert funcs[0](["ls"]) is False


def test_denial_propagates_from_tool_and_is_folded_by_registry(tmp_path: Path) -> None:
    tool, shell, _ = _tool(tmp_path, allowed=False)
    with pytest.raises(PermissionDeniedError):
        tool.run(CTX, _call({"command": "rm -rf build"}))

    registry = ToolRegistry()
    registry.register(BASH_TOOL_NAME, tool)
    response = registry.dispatch(CTX, _call({"command": "rm -rf build"}))
    assert response.is_error is True
    assert response.content == "permission denied"
    shell.exec.assert_not_called()


def test_registry_unknown_tool(tmp_path: Path) -> None:
    registry = ToolRegistry()
    response = registry.dispatch(CTX, ToolCall(id="c", name="nope", input="{}"))
    assert response.is_error is True


def test_info_schema(tmp_path: Path) -> None:
    tool, _, _ = _tool(tmp_path)
    info = tool.info()
    assert info.name == "bash"
    assert info.required == ["command"]
    assert set(info.parameters) == {"command", "timeout"}
    assert "30000" in info.description
    assert "600000" in info.parameters["timeout"]["description"]


def test_description_attribution(tmp_path: Path) -> None:
    default_tool, _, _ = _tool(tmp_path)
    assert "Co-Authored-By:" in default_tool.description()
    assert "Generated with" in default_tool.description()

    quiet_tool, _, _ = _tool(
        tmp_path, attribution=Attribution(generated_with=False, co_authored_by=False)
    )
    text = quiet_tool.description()
    assert "Co-Authored-By:" not in text
    assert "Create the commit with your commit message." in text


@pytest.mark.skipif(os.name == "nt" or shutil.which("bash") is None, reason="requires a POSIX bash")
def test_end_to_end_with_real_shell(tmp_path: Path) -> None:
    (tmp_path / "sub").mkdir()
    prompts: list[str] = []

    def _prompt(request) -> bool:
        prompts.append(request.description)
        return True

    tool = BashTool(
        permissions=PermissionEngine(prompt=_prompt),
        shells=ShellRegistry(),
        working_dir=tmp_path,
    )

    listed = tool.run(CTX, _call({"command": "ls"}))
    assert "sub" in listed.content
    assert prompts == []

    moved = tool.run(CTX, _call({"command": "cd sub && echo moved"}))
    sub_dir = str((tmp_path / "sub").resolve())
    assert moved.content == f"moved\n\n\n<cwd>{sub_dir}</cwd>"
    assert moved.metadata_dict()["working_directory"] == sub_dir
    assert prompts == ["Execute command: cd sub && echo moved"]

    failed = tool.run(CTX, _call({"command": "ls no-such-file"}))
    assert "Exit code" in failed.content
    assert failed.is_error is False

    timed_out = tool.run(CTX, _call({"command": "sleep 5", "timeout": 100}))
    assert "Command was aborted before completion" in timed_out.content
