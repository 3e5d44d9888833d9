"""Persistent shell session with a tracked working directory."""

from __future__ import annotations

import logging
import os
import re
import shlex
import shutil
import signal
import subprocess
import tempfile
import threading
from collections.abc import Callable, Iterable, Sequence
from pathlib import Path
from typing import IO, Protocol

from executor.cancellation import CancellationContext
from executor.outcome import CommandBlockedError, CommandInterruptedError, ExitStatusError

logger = logging.getLogger("ao.shell")

BlockFunc = Callable[[list[str]], bool]

_POLL_INTERVAL_S = 0.05

# Block functions see each simple command of a compound line.
_SEGMENT_SEPARATORS = re.compile(r"&&|\|\||\$\(|[;&|\n`()]")


class ShellSession(Protocol):
    """What the execution gate needs from a shell."""

    def exec(
        self, ctx: CancellationContext, command: str
    ) -> tuple[str, str, BaseException | None]: ...

    def get_working_dir(self) -> str: ...

    def set_blocked_commands(self, block_funcs: Sequence[BlockFunc]) -> None: ...


def command_blocker(names: Iterable[str]) -> BlockFunc:
    """Build a block function refusing commands whose program name is listed."""
    banned = {name.lower() for name in names}

    def _blocked(args: list[str]) -> bool:
        return bool(args) and Path(args[0]).name.lower() in banned

    return _blocked


class PersistentShell:
    """Runs each command in a fresh shell process rooted at the session's cwd.

    The working directory a command ends in is carried over to the next
    command, so ``cd`` behaves as it would in an interactive shell. Calls on
    one session are serialized.
    """

    def __init__(
        self,
        cwd: str | Path,
        shell_path: str | None = None,
        env: dict[str, str] | None = None,
    ) -> None:
        self._cwd = str(Path(cwd).resolve())
        self.shell_path = shell_path or shutil.which("bash") or "/bin/sh"
        self.env = dict(env) if env is not None else dict(os.environ)
        self._block_funcs: list[BlockFunc] = []
        self._lock = threading.Lock()

    def get_working_dir(self) -> str:
        with self._lock:
            return self._cwd

    def set_blocked_commands(self, block_funcs: Sequence[BlockFunc]) -> None:
        with self._lock:
            self._block_funcs = list(block_funcs)

    def exec(
        self, ctx: CancellationContext, command: str
    ) -> tuple[str, str, BaseException | None]:
        """Run command; errors are returned, not raised."""
        with self._lock:
            if ctx.done():
                err = CommandInterruptedError(ctx.err or "cancelled")
                return "", "", err
            if self._is_blocked(command):
                blocked = CommandBlockedError(command)
                logger.warning("Blocked command: %s", command)
                return "", str(blocked), blocked
            return self._run(ctx, command)

    def _is_blocked(self, command: str) -> bool:
        if not self._block_funcs:
            return False
        for segment in _SEGMENT_SEPARATORS.split(command):
            try:
                args = shlex.split(segment)
            except ValueError:
                args = segment.split()
            if args and any(block(args) for block in self._block_funcs):
                return True
        return False

    def _run(
        self, ctx: CancellationContext, command: str
    ) -> tuple[str, str, BaseException | None]:
        fd, cwd_file = tempfile.mkstemp(prefix="ao-cwd-")
        os.close(fd)
        script = (
            f"{command}\n"
            "__ao_status=$?\n"
            f"pwd -P > {shlex.quote(cwd_file)}\n"
            "exit $__ao_status\n"
        )
        # Streams go to files so that background jobs holding them open
        # cannot delay completion; the command is done when the shell exits.
        with tempfile.TemporaryFile() as out_fh, tempfile.TemporaryFile() as err_fh:
            try:
                try:
                    proc = subprocess.Popen(
                        [self.shell_path, "-c", script],
                        cwd=self._cwd,
                        env=self.env,
                        stdin=subprocess.DEVNULL,
                        stdout=out_fh,
                        stderr=err_fh,
                        start_new_session=os.name != "nt",
                    )
                except OSError as exc:
                    logger.error("Could not start shell %s: %s", self.shell_path, exc)
                    return "", "", exc

                logger.debug("Started pid %s in %s: %s", proc.pid, self._cwd, command)
                interrupted_reason = self._wait(ctx, proc)
                self._update_cwd(cwd_file)
            finally:
                Path(cwd_file).unlink(missing_ok=True)
            stdout = _read_stream(out_fh)
            stderr = _read_stream(err_fh)

        if interrupted_reason is not None:
            logger.warning("Command interrupted (%s): %s", interrupted_reason, command)
            return stdout, stderr, CommandInterruptedError(interrupted_reason)
        if proc.returncode != 0:
            return stdout, stderr, ExitStatusError(proc.returncode)
        return stdout, stderr, None

    def _wait(self, ctx: CancellationContext, proc: subprocess.Popen[bytes]) -> str | None:
        """Wait for the shell to exit; kill it and return the reason if ctx ends first."""
        while True:
            try:
                proc.wait(timeout=_POLL_INTERVAL_S)
                return None
            except subprocess.TimeoutExpired:
                if ctx.done():
                    reason = ctx.err or "cancelled"
                    self._kill(proc)
                    proc.wait()
                    return reason

    def _update_cwd(self, cwd_file: str) -> None:
        try:
            recorded = Path(cwd_file).read_text(encoding="utf-8").strip()
        except OSError:
            return
        if recorded and Path(recorded).is_dir():
            self._cwd = recorded

    @staticmethod
    def _kill(proc: subprocess.Popen[bytes]) -> None:
        if os.name == "nt":
            proc.kill()
            return
        try:
            os.killpg(proc.pid, signal.SIGKILL)
        except ProcessLookupError:
            pass


def _read_stream(fh: IO[bytes]) -> str:
    fh.seek(0)
    return fh.read().decode("utf-8", errors="replace")
