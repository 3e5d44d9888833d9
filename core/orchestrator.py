"""Top-level application orchestrator."""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Any

from core.event_bus import EventBus
from core.policy_runtime import ensure_runtime_dirs, load_effective_config
from executor.shell_registry import ShellRegistry
from governance.audit_logger import AuditLogger
from governance.permission_engine import PermissionEngine, PermissionPrompt
from tools.tool_registry import ToolRegistry, build_default_registry


@dataclass
class RuntimeBundle:
    """Holds initialized runtime components."""

    config: dict[str, Any]
    workspace_dir: Path
    event_bus: EventBus
    audit_logger: AuditLogger
    permissions: PermissionEngine
    shells: ShellRegistry
    tool_registry: ToolRegistry


class Orchestrator:
    """Creates and wires runtime components for CLI use."""

    def __init__(self, root: Path | None = None, prompt: PermissionPrompt | None = None) -> None:
        default_root = Path(__file__).resolve().parents[1]
        self.root = (root or default_root).resolve()
        self.prompt = prompt

    def build(self) -> RuntimeBundle:
        config = load_effective_config(self.root)
        paths = ensure_runtime_dirs(self.root, config)

        event_bus = EventBus()
        audit_logger = AuditLogger(paths["audit_log_path"])
        permissions = PermissionEngine(
            config=dict(config.get("permissions", {})),
            prompt=self.prompt,
            event_bus=event_bus,
            audit_logger=audit_logger,
        )
        # One registry per host process; tools share sessions through it.
        shells = ShellRegistry()
        tool_registry = build_default_registry(
            workspace_dir=paths["workspace_dir"],
            config=config,
            permissions=permissions,
            shells=shells,
            audit_logger=audit_logger,
        )

        return RuntimeBundle(
            config=config,
            workspace_dir=paths["workspace_dir"],
            event_bus=event_bus,
            audit_logger=audit_logger,
            permissions=permissions,
            shells=shells,
            tool_registry=tool_registry,
        )
