"""Read-only command classification tests."""

from __future__ import annotations

import pytest

from governance.command_classifier import SAFE_COMMANDS, has_shell_operators, is_safe_read_only


@pytest.mark.parametrize(
    "command",
    ["ls", "ls -la", "LS -la", "pwd", "git status", "git log --oneline", "cat-foo", "echo hi"],
)
def test_safe_prefix_at_boundary_is_read_only(command: str) -> None:
    assert is_safe_read_only(command) is True


@pytest.mark.parametrize(
    "command",
    [
        "catalog",
        "lsblk",
        "rm -rf build",
        "git commit -m x",
        "gitstatus",
        "echoes",
        "",
        "  ls",
        "env rm -rf /tmp/victim",
        "env FOO=1 make",
    ],
)
def test_non_matching_commands_need_authorization(command: str) -> None:
    assert is_safe_read_only(command) is False


def test_every_builtin_prefix_matches_itself() -> None:
    for safe in SAFE_COMMANDS:
        assert is_safe_read_only(safe)
        assert is_safe_read_only(f"{safe} --help")


def test_custom_prefix_list() -> None:
    assert is_safe_read_only("make test", safe_commands=["make test"]) is True
    assert is_safe_read_only("make install", safe_commands=["make test"]) is False


def test_compound_lines_are_detected_but_still_prefix_safe() -> None:
    command = "echo hi; rm -rf /tmp/x"
    assert is_safe_read_only(command) is True
    assert has_shell_operators(command) is True
    assert has_shell_operators("ls -la") is False
    assert has_shell_operators("cat a | grep b") is True
    assert has_shell_operators("echo $(whoami)") is True
