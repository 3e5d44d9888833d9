"""Read-only command classification for the shell authorization fast path."""

from __future__ import annotations

from collections.abc import Iterable

# Prefix match only. A hit skips the permission prompt; it does not sandbox anything.
SAFE_COMMANDS: tuple[str, ...] = (
    # Unix
    "ls",
    "pwd",
    "echo",
    "cat",
    "head",
    "tail",
    "wc",
    "which",
    "whereis",
    "whatis",
    "whoami",
    "date",
    "cal",
    "uptime",
    "hostname",
    "uname",
    "id",
    "groups",
    "printenv",
    "free",
    "df",
    "du",
    "ps",
    "history",
    "type",
    "file",
    "stat",
    "lsof",
    # Windows
    "dir",
    "ver",
    "where",
    "tasklist",
    "systeminfo",
    "ipconfig",
    "get-childitem",
    "get-location",
    "get-process",
    "get-date",
    # git, read-only subcommands
    "git status",
    "git log",
    "git diff",
    "git show",
    "git branch",
    "git tag",
    "git remote",
    "git ls-files",
    "git ls-remote",
    "git rev-parse",
    "git config --get",
    "git config --list",
    "git describe",
    "git blame",
    "git grep",
    "git shortlog",
)

_PREFIX_BOUNDARIES = (" ", "-")

_SHELL_OPERATORS = ("&&", "||", ";", "|", "&", "`", "$(", ">", "<", "\n")


def is_safe_read_only(command: str, safe_commands: Iterable[str] = SAFE_COMMANDS) -> bool:
    """Return True when the command starts with an allow-listed prefix at a word boundary."""
    command_l = command.lower()
    for safe in safe_commands:
        if not command_l.startswith(safe):
            continue
        rest = command_l[len(safe):]
        if not rest or rest[0] in _PREFIX_BOUNDARIES:
            return True
    return False


def has_shell_operators(command: str) -> bool:
    """Return True if the command chains, pipes, redirects or substitutes."""
    return any(op in command for op in _SHELL_OPERATORS)
