"""Authorization-gated, time-bounded shell command execution."""

from __future__ import annotations

import logging
from datetime import UTC, datetime

from pydantic import BaseModel, ConfigDict, Field

from executor.cancellation import background, with_timeout
from executor.outcome import (
    CommandExecutionError,
    ExecutionOutcome,
    Interrupted,
    classify_exec_result,
    format_output,
    interpret_outcome,
)
from executor.output_truncator import MAX_OUTPUT_LENGTH
from executor.shell_session import ShellSession
from governance.audit_logger import AuditLogger
from governance.command_classifier import has_shell_operators, is_safe_read_only
from governance.permission_engine import PermissionDeniedError, PermissionGate, PermissionRequest
from tools.base_tool import RequestContext, ToolResponse, text_response, with_response_metadata

DEFAULT_TIMEOUT_MS = 1 * 60 * 1000
MAX_TIMEOUT_MS = 10 * 60 * 1000
BASH_NO_OUTPUT = "no output"

logger = logging.getLogger("ao.execution_gate")


def _now_ms() -> int:
    return int(datetime.now(UTC).timestamp() * 1000)


class CommandRequest(BaseModel):
    """A validated command with its effective timeout."""

    model_config = ConfigDict(frozen=True)

    command: str = Field(min_length=1)
    timeout_ms: int = Field(default=DEFAULT_TIMEOUT_MS, gt=0, le=MAX_TIMEOUT_MS)

    @staticmethod
    def clamp_timeout(timeout_ms: int | None) -> int:
        """Non-positive or missing means default; anything above the cap is capped."""
        if timeout_ms is None or timeout_ms <= 0:
            return DEFAULT_TIMEOUT_MS
        return min(timeout_ms, MAX_TIMEOUT_MS)

    @classmethod
    def normalize(cls, command: str, timeout_ms: int | None = None) -> CommandRequest:
        return cls(command=command, timeout_ms=cls.clamp_timeout(timeout_ms))


class BashResponseMetadata(BaseModel):
    start_time: int
    end_time: int
    output: str
    working_directory: str


class ExecutionGate:
    """Runs commands in a shell session once they are cleared to run.

    Read-only commands take a fast path past the permission service; all
    others block on it. Execution is bounded by the request timeout, and
    the outcome is folded into a text response. Failed or interrupted
    commands are normal responses. Denials, missing identifiers and shell
    faults are raised.
    """

    def __init__(
        self,
        permissions: PermissionGate,
        shell: ShellSession,
        audit_logger: AuditLogger | None = None,
        tool_name: str = "bash",
        require_approval_for_compound: bool = False,
        max_output_length: int = MAX_OUTPUT_LENGTH,
    ) -> None:
        self.permissions = permissions
        self.shell = shell
        self.audit_logger = audit_logger
        self.tool_name = tool_name
        self.require_approval_for_compound = require_approval_for_compound
        self.max_output_length = max_output_length

    def needs_authorization(self, command: str) -> bool:
        if not is_safe_read_only(command):
            return True
        if has_shell_operators(command):
            if self.require_approval_for_compound:
                return True
            logger.warning("Compound command took the read-only fast path: %s", command)
        return False

    def execute(
        self,
        context: RequestContext,
        tool_call_id: str,
        request: CommandRequest,
    ) -> ToolResponse:
        """Authorize, run and report one command.

        Raises:
            MissingContextError: session or message id is missing.
            PermissionDeniedError: the permission service refused the command.
            CommandExecutionError: the shell session failed to run the command.
        """
        context.require_ids()
        if self.needs_authorization(request.command):
            self._authorize(context, tool_call_id, request)

        start_time = _now_ms()
        with with_timeout(context.cancellation or background(), request.timeout_ms / 1000) as ctx:
            stdout, stderr, err = self.shell.exec(ctx, request.command)
        working_dir = self.shell.get_working_dir()

        outcome = classify_exec_result(stdout, stderr, err)
        try:
            interpreted = interpret_outcome(outcome, self.max_output_length)
        except CommandExecutionError as exc:
            logger.error("Shell failed to run %r: %s", request.command, exc)
            self._audit(request, outcome, "error", working_dir, reason=str(exc))
            raise

        output = format_output(interpreted)
        metadata = BashResponseMetadata(
            start_time=start_time,
            end_time=_now_ms(),
            output=output,
            working_directory=working_dir,
        )
        self._audit(request, outcome, self._outcome_label(outcome), working_dir)
        logger.info(
            "Command finished (exit=%s, interrupted=%s) in %d ms",
            outcome.exit_code,
            outcome.interrupted,
            metadata.end_time - metadata.start_time,
        )

        if not output:
            return with_response_metadata(text_response(BASH_NO_OUTPUT), metadata)
        return with_response_metadata(
            text_response(f"{output}\n\n<cwd>{working_dir}</cwd>"), metadata
        )

    def _authorize(self, context: RequestContext, tool_call_id: str, request: CommandRequest) -> None:
        allowed = self.permissions.request(
            PermissionRequest(
                session_id=context.session_id,
                path=self.shell.get_working_dir(),
                tool_call_id=tool_call_id,
                tool_name=self.tool_name,
                action="execute",
                description=f"Execute command: {request.command}",
                params={"command": request.command},
            )
        )
        if not allowed:
            if self.audit_logger is not None:
                self.audit_logger.log(
                    action="execute",
                    tool=self.tool_name,
                    inputs={"command": request.command},
                    outcome="blocked",
                    allowed=False,
                    reason="permission denied",
                )
            raise PermissionDeniedError()

    @staticmethod
    def _outcome_label(outcome: ExecutionOutcome) -> str:
        if isinstance(outcome.status, Interrupted):
            return "interrupted"
        return "success" if outcome.exit_code == 0 else "failed"

    def _audit(
        self,
        request: CommandRequest,
        outcome: ExecutionOutcome,
        label: str,
        working_dir: str,
        reason: str = "",
    ) -> None:
        if self.audit_logger is None:
            return
        self.audit_logger.log(
            action="execute",
            tool=self.tool_name,
            inputs={"command": request.command},
            outcome=label,
            allowed=True,
            reason=reason,
            details={
                "exit_code": outcome.exit_code,
                "interrupted": outcome.interrupted,
                "timeout_ms": request.timeout_ms,
                "working_directory": working_dir,
            },
        )
