"""CLI entrypoint for ao-shellgate."""

from __future__ import annotations

from pathlib import Path

import typer

from ui.cli import commands

app = typer.Typer(help="Gated shell command execution for autonomous agents")
config_app = typer.Typer(help="Configuration commands")
tools_app = typer.Typer(help="Tool commands")

_ROOT_HELP = "Directory holding config/ (defaults to the current directory)"


@app.command("run")
def run_cmd(
    command: str = typer.Argument(..., help="Shell command to execute"),
    timeout: int = typer.Option(0, "--timeout", "-t", help="Timeout in milliseconds (max 600000)"),
    yes: bool = typer.Option(False, "--yes", "-y", help="Approve without prompting"),
    root: Path | None = typer.Option(None, "--root", help=_ROOT_HELP),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Debug logging"),
) -> None:
    """Run a command through the permission gate."""
    commands.run_command(command=command, timeout_ms=timeout, yes=yes, root=root, verbose=verbose)


@config_app.command("show")
def config_show_cmd(root: Path | None = typer.Option(None, "--root", help=_ROOT_HELP)) -> None:
    """Show effective configuration."""
    commands.config_show(root=root)


@tools_app.command("list")
def tools_list_cmd(root: Path | None = typer.Option(None, "--root", help=_ROOT_HELP)) -> None:
    """List tool status."""
    commands.tools_list(root=root)


@tools_app.command("describe")
def tools_describe_cmd(
    name: str = typer.Argument(..., help="Tool name"),
    root: Path | None = typer.Option(None, "--root", help=_ROOT_HELP),
) -> None:
    """Show a tool's description and parameters."""
    commands.tools_describe(name=name, root=root)


app.add_typer(config_app, name="config")
app.add_typer(tools_app, name="tools")


def main() -> None:
    """Console script entrypoint."""
    app()


if __name__ == "__main__":
    main()
