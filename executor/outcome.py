"""Classification and interpretation of shell execution outcomes."""

from __future__ import annotations

from dataclasses import dataclass

from executor.output_truncator import MAX_OUTPUT_LENGTH, truncate_output

ABORTED_MESSAGE = "Command was aborted before completion"


class ExitStatusError(Exception):
    """Command ran and exited with a non-zero status."""

    def __init__(self, code: int, message: str | None = None) -> None:
        super().__init__(message or f"exit status {code}")
        self.code = code


class CommandBlockedError(ExitStatusError):
    """Command was refused by a block function before it was spawned."""

    def __init__(self, command: str) -> None:
        super().__init__(1, f"command is not allowed for security reasons: {command}")
        self.command = command


class CommandInterruptedError(Exception):
    """Command was killed because its context was cancelled or timed out."""

    def __init__(self, reason: str, code: int = 1) -> None:
        super().__init__(f"command interrupted: {reason}")
        self.reason = reason
        self.code = code


class CommandExecutionError(RuntimeError):
    """The shell session itself failed, independent of the command."""


def is_interrupt(err: BaseException | None) -> bool:
    """Return True if err reports a cancellation or timeout."""
    return isinstance(err, CommandInterruptedError)


def exit_code(err: BaseException | None) -> int:
    """Return the exit status encoded by err; 0 when err carries none."""
    if isinstance(err, (ExitStatusError, CommandInterruptedError)):
        return err.code
    return 0


@dataclass(frozen=True)
class NormalExit:
    code: int


@dataclass(frozen=True)
class Interrupted:
    reason: str


@dataclass(frozen=True)
class TransportFault:
    cause: BaseException


ExecutionStatus = NormalExit | Interrupted | TransportFault


@dataclass(frozen=True)
class ExecutionOutcome:
    """Raw streams of one execution plus its classified status."""

    stdout: str
    stderr: str
    status: ExecutionStatus
    error: BaseException | None = None

    @property
    def interrupted(self) -> bool:
        return isinstance(self.status, Interrupted)

    @property
    def exit_code(self) -> int:
        if isinstance(self.status, NormalExit):
            return self.status.code
        return exit_code(self.error)


@dataclass(frozen=True)
class InterpretedOutcome:
    """Bounded streams and the human-readable error annotation."""

    stdout: str
    stderr: str
    error_message: str


def classify_exec_result(stdout: str, stderr: str, err: BaseException | None) -> ExecutionOutcome:
    """Decide once which of the three outcome branches an exec result belongs to."""
    if is_interrupt(err):
        status: ExecutionStatus = Interrupted(reason=getattr(err, "reason", str(err)))
    else:
        code = exit_code(err)
        if code == 0 and err is not None:
            status = TransportFault(cause=err)
        else:
            status = NormalExit(code=code)
    return ExecutionOutcome(stdout=stdout, stderr=stderr, status=status, error=err)


def interpret_outcome(
    outcome: ExecutionOutcome,
    max_length: int = MAX_OUTPUT_LENGTH,
) -> InterpretedOutcome:
    """Truncate both streams and build the error annotation.

    Raises:
        CommandExecutionError: if the outcome is a transport fault.
    """
    if isinstance(outcome.status, TransportFault):
        cause = outcome.status.cause
        raise CommandExecutionError(f"error executing command: {cause}") from cause

    stdout = truncate_output(outcome.stdout, max_length)
    stderr = truncate_output(outcome.stderr, max_length)

    error_message = stderr
    if not error_message and outcome.error is not None:
        error_message = str(outcome.error)

    if isinstance(outcome.status, Interrupted):
        error_message = _append_line(error_message, ABORTED_MESSAGE)
    elif outcome.status.code != 0:
        error_message = _append_line(error_message, f"Exit code {outcome.status.code}")
    return InterpretedOutcome(stdout=stdout, stderr=stderr, error_message=error_message)


def format_output(result: InterpretedOutcome) -> str:
    """Join stdout and the error annotation into the displayed text."""
    text = result.stdout
    if result.stdout and result.stderr:
        text += "\n"
    if result.error_message:
        text += "\n" + result.error_message
    return text


def _append_line(base: str, line: str) -> str:
    if base:
        return f"{base}\n{line}"
    return line
