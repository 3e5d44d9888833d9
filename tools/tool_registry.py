"""Tool registry and default tool wiring."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Any

from executor.shell_registry import ShellRegistry
from governance.audit_logger import AuditLogger
from governance.permission_engine import PermissionDeniedError, PermissionGate
from tools.base_tool import BaseTool, RequestContext, ToolCall, ToolResponse, text_error_response
from tools.system_tools.bash_tool import BASH_TOOL_NAME, Attribution, BashTool

logger = logging.getLogger("ao.tools")


@dataclass
class RegisteredTool:
    """Metadata for tool listing output."""

    name: str
    enabled: bool


class ToolRegistry:
    """Simple in-memory tool registry."""

    def __init__(self) -> None:
        self._tools: dict[str, BaseTool] = {}

    def register(self, name: str, tool: BaseTool) -> None:
        self._tools[name] = tool

    def get(self, name: str) -> BaseTool | None:
        tool = self._tools.get(name)
        if tool and tool.enabled:
            return tool
        return None

    def list_tools(self) -> list[RegisteredTool]:
        return [
            RegisteredTool(name=name, enabled=tool.enabled)
            for name, tool in sorted(self._tools.items())
        ]

    def dispatch(self, context: RequestContext, call: ToolCall) -> ToolResponse:
        """Route a call to its tool and fold denials into an error result.

        Other exceptions propagate: they mean the host or a collaborator is
        broken, not that the agent asked for something it may not have.
        """
        tool = self.get(call.name)
        if tool is None:
            logger.warning("Tool '%s' not found or disabled", call.name)
            return text_error_response(f"Tool not found: {call.name}")
        try:
            return tool.run(context, call)
        except PermissionDeniedError as exc:
            return text_error_response(str(exc))


def _tool_enabled(config: dict[str, Any], tool_name: str, default: bool) -> bool:
    tools_cfg = config.get("tools", {})
    tool_cfg = tools_cfg.get(tool_name, {})
    if not isinstance(tool_cfg, dict):
        return default
    return bool(tool_cfg.get("enabled", default))


def _tool_settings(config: dict[str, Any], tool_name: str) -> dict[str, Any]:
    tools_cfg = config.get("tools", {})
    tool_cfg = tools_cfg.get(tool_name, {})
    if not isinstance(tool_cfg, dict):
        return {}
    return dict(tool_cfg)


def build_default_registry(
    *,
    workspace_dir: Path,
    config: dict[str, Any],
    permissions: PermissionGate,
    shells: ShellRegistry,
    audit_logger: AuditLogger | None = None,
) -> ToolRegistry:
    """Build default tool registry from config."""
    registry = ToolRegistry()
    settings = _tool_settings(config, BASH_TOOL_NAME)
    attribution_cfg = settings.get("attribution")
    permissions_cfg = config.get("permissions", {})
    registry.register(
        BASH_TOOL_NAME,
        BashTool(
            permissions=permissions,
            shells=shells,
            working_dir=workspace_dir,
            attribution=Attribution(**attribution_cfg) if isinstance(attribution_cfg, dict) else None,
            audit_logger=audit_logger,
            require_approval_for_compound=bool(
                permissions_cfg.get("require_approval_for_compound_commands", False)
            ),
            blocked_commands=settings.get("blocked_commands", []),
            enabled=_tool_enabled(config, BASH_TOOL_NAME, True),
            settings=settings,
        ),
    )
    return registry
