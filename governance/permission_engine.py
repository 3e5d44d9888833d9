"""Permission service for tool actions that need explicit approval."""

from __future__ import annotations

import logging
import threading
import uuid
from collections.abc import Callable
from dataclasses import dataclass
from enum import Enum
from typing import Any, Protocol

from pydantic import BaseModel, ConfigDict, Field

from core.event_bus import PERMISSION_REQUESTED, PERMISSION_RESOLVED, EventBus
from governance.audit_logger import AuditLogger

logger = logging.getLogger("ao.permissions")


class PermissionDeniedError(Exception):
    """Raised when the user refuses a permission request."""

    def __init__(self, message: str = "permission denied") -> None:
        super().__init__(message)


class PermissionRequest(BaseModel):
    """One authorization question put to the permission service."""

    model_config = ConfigDict(frozen=True)

    id: str = Field(default_factory=lambda: uuid.uuid4().hex)
    session_id: str
    tool_call_id: str
    tool_name: str
    action: str
    description: str
    path: str
    params: dict[str, Any] = Field(default_factory=dict)


class PermissionAnswer(str, Enum):
    ALLOW = "allow"
    ALLOW_FOR_SESSION = "allow_session"
    DENY = "deny"


PermissionPrompt = Callable[[PermissionRequest], PermissionAnswer | bool]


class PermissionGate(Protocol):
    """Anything that can answer a permission request."""

    def request(self, request: PermissionRequest) -> bool: ...


@dataclass
class PermissionDecision:
    """Represents allow/block decision."""

    allowed: bool
    reason: str


class PermissionEngine:
    """Answers permission requests from policy, session grants, or a prompt.

    Policy is checked first (``skip_requests``, then ``allowed_tools``), then
    sessions marked auto-approve, then grants remembered from earlier
    "allow for session" answers. Anything left is put to the ``prompt``
    callback; with no prompt configured the request is denied.
    """

    def __init__(
        self,
        config: dict[str, Any] | None = None,
        prompt: PermissionPrompt | None = None,
        event_bus: EventBus | None = None,
        audit_logger: AuditLogger | None = None,
    ) -> None:
        cfg = config or {}
        self.skip_requests = bool(cfg.get("skip_requests", False))
        self.allowed_tools = {str(item) for item in cfg.get("allowed_tools", [])}
        self.prompt = prompt
        self.event_bus = event_bus
        self.audit_logger = audit_logger
        self._session_grants: list[PermissionRequest] = []
        self._auto_approve_sessions: set[str] = set()
        self._lock = threading.Lock()

    def auto_approve_session(self, session_id: str) -> None:
        with self._lock:
            self._auto_approve_sessions.add(session_id)

    def request(self, request: PermissionRequest) -> bool:
        """Block until the request is allowed or denied."""
        decision = self._check_policy(request)
        if decision is None:
            decision = self._ask(request)
        logger.info(
            "Permission %s for %s:%s in session %s (%s)",
            "granted" if decision.allowed else "denied",
            request.tool_name,
            request.action,
            request.session_id,
            decision.reason,
        )
        if self.audit_logger is not None:
            self.audit_logger.log(
                action=f"permission:{request.action}",
                tool=request.tool_name,
                inputs=request.params,
                outcome="allowed" if decision.allowed else "denied",
                allowed=decision.allowed,
                reason=decision.reason,
            )
        return decision.allowed

    def _check_policy(self, request: PermissionRequest) -> PermissionDecision | None:
        if self.skip_requests:
            return PermissionDecision(True, "Permission prompts disabled by policy.")
        tool_key = f"{request.tool_name}:{request.action}"
        if request.tool_name in self.allowed_tools or tool_key in self.allowed_tools:
            return PermissionDecision(True, f"Tool '{tool_key}' allowed by policy.")
        with self._lock:
            if request.session_id in self._auto_approve_sessions:
                return PermissionDecision(True, "Session auto-approved.")
            for grant in self._session_grants:
                if (
                    grant.tool_name == request.tool_name
                    and grant.action == request.action
                    and grant.session_id == request.session_id
                    and grant.path == request.path
                ):
                    return PermissionDecision(True, "Previously allowed for session.")
        return None

    def _ask(self, request: PermissionRequest) -> PermissionDecision:
        if self.prompt is None:
            return PermissionDecision(False, "No approver configured.")
        if self.event_bus is not None:
            self.event_bus.emit(PERMISSION_REQUESTED, {"request": request.model_dump()})

        answer = self.prompt(request)
        if isinstance(answer, bool):
            answer = PermissionAnswer.ALLOW if answer else PermissionAnswer.DENY

        if answer is PermissionAnswer.ALLOW_FOR_SESSION:
            with self._lock:
                self._session_grants.append(request)
        if self.event_bus is not None:
            self.event_bus.emit(
                PERMISSION_RESOLVED,
                {"request_id": request.id, "answer": answer.value},
            )
        if answer is PermissionAnswer.DENY:
            return PermissionDecision(False, "Denied by user.")
        return PermissionDecision(True, f"Approved by user ({answer.value}).")
