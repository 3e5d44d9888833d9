"""Host-owned registry of shell sessions keyed by working directory."""

from __future__ import annotations

import threading
from collections.abc import Callable, Sequence
from pathlib import Path

from executor.shell_session import BlockFunc, PersistentShell, ShellSession

ShellFactory = Callable[[str], ShellSession]


class ShellRegistry:
    """Creates at most one shell session per working directory."""

    def __init__(self, factory: ShellFactory | None = None) -> None:
        self._factory: ShellFactory = factory or PersistentShell
        self._sessions: dict[str, ShellSession] = {}
        self._lock = threading.Lock()

    @staticmethod
    def _key(working_dir: str | Path) -> str:
        return str(Path(working_dir).resolve())

    def get(self, working_dir: str | Path) -> ShellSession:
        """Return the session for working_dir, creating it on first use."""
        key = self._key(working_dir)
        with self._lock:
            session = self._sessions.get(key)
            if session is None:
                session = self._factory(key)
                self._sessions[key] = session
            return session

    def set_blocked_commands(self, working_dir: str | Path, block_funcs: Sequence[BlockFunc]) -> None:
        self.get(working_dir).set_blocked_commands(block_funcs)

    def __len__(self) -> int:
        with self._lock:
            return len(self._sessions)
