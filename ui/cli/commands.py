"""Typer command handlers."""

from __future__ import annotations

import json
import uuid
from pathlib import Path

import typer

from core.orchestrator import Orchestrator, RuntimeBundle
from core.policy_runtime import configure_logging
from executor.outcome import CommandExecutionError
from governance.permission_engine import PermissionAnswer, PermissionPrompt, PermissionRequest
from tools.base_tool import RequestContext, ToolCall
from tools.system_tools.bash_tool import BASH_TOOL_NAME

_ANSWERS = {
    "y": PermissionAnswer.ALLOW,
    "yes": PermissionAnswer.ALLOW,
    "s": PermissionAnswer.ALLOW_FOR_SESSION,
    "session": PermissionAnswer.ALLOW_FOR_SESSION,
    "n": PermissionAnswer.DENY,
    "no": PermissionAnswer.DENY,
}


def _runtime(root: Path | None = None, prompt: PermissionPrompt | None = None) -> RuntimeBundle:
    return Orchestrator(root=root or Path.cwd(), prompt=prompt).build()


def prompt_user(request: PermissionRequest) -> PermissionAnswer:
    """Ask on the terminal whether a permission request may proceed."""
    typer.echo(f"[{request.tool_name}] {request.description}")
    typer.echo(f"  in {request.path}")
    while True:
        reply = typer.prompt("Allow? [y]es / [s]ession / [n]o", default="n")
        answer = _ANSWERS.get(reply.strip().lower())
        if answer is not None:
            return answer
        typer.echo("Please answer y, s or n.")


def run_command(
    command: str,
    timeout_ms: int = 0,
    yes: bool = False,
    root: Path | None = None,
    verbose: bool = False,
) -> None:
    """Run one shell command through the bash tool."""
    bundle = _runtime(root, prompt=prompt_user)
    configure_logging(bundle.config, verbose=verbose)

    context = RequestContext(session_id=f"cli-{uuid.uuid4().hex}", message_id=uuid.uuid4().hex)
    if yes:
        bundle.permissions.auto_approve_session(context.session_id)
    payload: dict[str, object] = {"command": command}
    if timeout_ms:
        payload["timeout"] = timeout_ms
    call = ToolCall(id=uuid.uuid4().hex, name=BASH_TOOL_NAME, input=json.dumps(payload))
    try:
        response = bundle.tool_registry.dispatch(context, call)
    except CommandExecutionError as exc:
        typer.echo(f"error: {exc}", err=True)
        raise typer.Exit(code=2) from exc

    typer.echo(response.content)
    if response.metadata:
        typer.echo(json.dumps(response.metadata_dict(), indent=2), err=True)
    if response.is_error:
        raise typer.Exit(code=1)


def config_show(root: Path | None = None) -> None:
    """Show effective runtime config."""
    bundle = _runtime(root)
    typer.echo(json.dumps(bundle.config, indent=2, default=str))


def tools_list(root: Path | None = None) -> None:
    """List tools and enabled flags."""
    bundle = _runtime(root)
    for tool in bundle.tool_registry.list_tools():
        typer.echo(f"{tool.name}: {'enabled' if tool.enabled else 'disabled'}")


def tools_describe(name: str, root: Path | None = None) -> None:
    """Print a tool's description and parameter schema."""
    bundle = _runtime(root)
    tool = bundle.tool_registry.get(name)
    if tool is None:
        typer.echo(f"Unknown or disabled tool: {name}", err=True)
        raise typer.Exit(code=1)
    typer.echo(tool.info().model_dump_json(indent=2))
