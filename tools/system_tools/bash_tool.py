"""Bash tool: gated shell command execution for the agent."""

from __future__ import annotations

from collections.abc import Iterable
from pathlib import Path
from typing import Any

from pydantic import BaseModel, Field, ValidationError

from executor.execution_gate import (
    DEFAULT_TIMEOUT_MS,
    MAX_TIMEOUT_MS,
    CommandRequest,
    ExecutionGate,
)
from executor.output_truncator import MAX_OUTPUT_LENGTH
from executor.shell_registry import ShellRegistry
from executor.shell_session import BlockFunc, command_blocker
from governance.audit_logger import AuditLogger
from governance.permission_engine import PermissionGate
from tools.base_tool import (
    BaseTool,
    RequestContext,
    ToolCall,
    ToolInfo,
    ToolResponse,
    text_error_response,
)

BASH_TOOL_NAME = "bash"

_DESCRIPTION_TEMPLATE = """\
Executes a bash command in a persistent shell session with an optional timeout.

Before running:
1. If the command creates files or directories, first check the parent
   directory exists with `ls`.
2. Quote paths that contain spaces, e.g. cd "path with spaces/file.txt".

Usage notes:
- `command` is required.
- `timeout` is optional, in milliseconds, at most {max_timeout} ({max_timeout_minutes} minutes).
  Commands run for at most {default_timeout_minutes} minute(s) when no timeout is given.
- Output longer than {max_output_length} characters is truncated; the start and
  end are kept and the middle lines are elided.
- The working directory persists between calls. The directory a command
  finishes in is reported after its output.
- Read-only commands such as `ls`, `pwd` or `git status` run without asking.
  Everything else waits for the user's permission.
- Prefer the dedicated file tools over `cat`, `grep` or `find` where they exist.
- Chain dependent commands with `&&`; use `;` only when failure should not stop
  the rest.

Committing changes with git:
1. Run `git status`, `git diff` and `git log` to see what will be committed and
   how earlier commit messages read.
2. Stage only the relevant files.
3. Draft a concise message that explains why the change was made.
{attribution_step}

{attribution_example}

Never update git config, never push unless asked, and never use interactive
flags such as `git rebase -i`.
{pr_attribution_note}"""


class Attribution(BaseModel):
    """Commit and pull-request attribution preferences."""

    generated_with: bool = True
    co_authored_by: bool = True
    generated_with_text: str = "Generated with AO Shellgate"
    co_author: str = "AO Shellgate <shellgate@localhost>"


class BashParams(BaseModel):
    command: str = ""
    timeout: float = Field(default=0, allow_inf_nan=False)


def block_funcs(blocked_commands: Iterable[str] = ()) -> list[BlockFunc]:
    """Block functions installed on the tool's shell session."""
    names = list(blocked_commands)
    if not names:
        return []
    return [command_blocker(names)]


class BashTool(BaseTool):
    """Runs shell commands through the execution gate."""

    def __init__(
        self,
        permissions: PermissionGate,
        shells: ShellRegistry,
        working_dir: str | Path,
        attribution: Attribution | None = None,
        audit_logger: AuditLogger | None = None,
        require_approval_for_compound: bool = False,
        blocked_commands: Iterable[str] = (),
        name: str = BASH_TOOL_NAME,
        enabled: bool = True,
        settings: dict[str, Any] | None = None,
    ) -> None:
        super().__init__(name=name, enabled=enabled, settings=settings)
        self.working_dir = str(Path(working_dir).resolve())
        self.attribution = attribution
        shell = shells.get(self.working_dir)
        shell.set_blocked_commands(block_funcs(blocked_commands))
        self.gate = ExecutionGate(
            permissions=permissions,
            shell=shell,
            audit_logger=audit_logger,
            tool_name=name,
            require_approval_for_compound=require_approval_for_compound,
        )

    def description(self) -> str:
        # No attribution settings means both kinds are on.
        attribution = self.attribution or Attribution()
        parts: list[str] = []
        if attribution.generated_with:
            parts.append(attribution.generated_with_text)
        if attribution.co_authored_by:
            parts.append(f"Co-Authored-By: {attribution.co_author}")

        if parts:
            attribution_step = "4. Create the commit with a message ending with:\n" + "\n".join(parts)
            trailer = "\n ".join(parts)
            attribution_example = (
                "<example>\n"
                "git commit -m \"$(cat <<'EOF'\n"
                " Commit message here.\n\n"
                f" {trailer}\n"
                " EOF\n"
                ")\"</example>"
            )
        else:
            attribution_step = "4. Create the commit with your commit message."
            attribution_example = (
                "<example>\n"
                "git commit -m \"$(cat <<'EOF'\n"
                " Commit message here.\n"
                " EOF\n"
                ")\"</example>"
            )

        pr_attribution_note = ""
        if attribution.generated_with:
            pr_attribution_note = (
                f"\nWhen opening a pull request, end its body with: {attribution.generated_with_text}\n"
            )

        return _DESCRIPTION_TEMPLATE.format(
            max_timeout=MAX_TIMEOUT_MS,
            max_timeout_minutes=MAX_TIMEOUT_MS // 60000,
            default_timeout_minutes=DEFAULT_TIMEOUT_MS // 60000,
            max_output_length=MAX_OUTPUT_LENGTH,
            attribution_step=attribution_step,
            attribution_example=attribution_example,
            pr_attribution_note=pr_attribution_note,
        )

    def info(self) -> ToolInfo:
        return ToolInfo(
            name=self.name,
            description=self.description(),
            parameters={
                "command": {
                    "type": "string",
                    "description": "The command to execute",
                },
                "timeout": {
                    "type": "number",
                    "description": f"Optional timeout in milliseconds (max {MAX_TIMEOUT_MS})",
                },
            },
            required=["command"],
        )

    def run(self, context: RequestContext, call: ToolCall) -> ToolResponse:
        try:
            params = BashParams.model_validate_json(call.input)
        except ValidationError:
            return text_error_response("invalid parameters")

        if not params.command:
            return text_error_response("missing command")
        request = CommandRequest.normalize(params.command, int(params.timeout))
        return self.gate.execute(context, call.id, request)
