"""Permission service behaviour tests."""

from __future__ import annotations

from pathlib import Path
from typing import Any

from core.event_bus import PERMISSION_REQUESTED, PERMISSION_RESOLVED, EventBus
from governance.audit_logger import AuditLogger
from governance.permission_engine import PermissionAnswer, PermissionEngine, PermissionRequest


def _request(session_id: str = "s1", path: str = "/work", command: str = "rm x") -> PermissionRequest:
    return PermissionRequest(
        session_id=session_id,
        tool_call_id="call-1",
        tool_name="bash",
        action="execute",
        description=f"Execute command: {command}",
        path=path,
        params={"command": command},
    )


def test_denies_without_prompt(tmp_path: Path) -> None:
    audit = AuditLogger(tmp_path / "audit.jsonl")
    engine = PermissionEngine(audit_logger=audit)

    assert engine.request(_request()) is False
    events = audit.read_events()
    assert events[0]["outcome"] == "denied"
    assert events[0]["allowed"] is False


def test_skip_requests_and_allowed_tools() -> None:
    assert PermissionEngine(config={"skip_requests": True}).request(_request()) is True
    assert PermissionEngine(config={"allowed_tools": ["bash"]}).request(_request()) is True
    assert PermissionEngine(config={"allowed_tools": ["bash:execute"]}).request(_request()) is True
    assert PermissionEngine(config={"allowed_tools": ["edit"]}).request(_request()) is False


def test_prompt_answers_are_honoured() -> None:
    assert PermissionEngine(prompt=lambda _: True).request(_request()) is True
    assert PermissionEngine(prompt=lambda _: False).request(_request()) is False
    assert PermissionEngine(prompt=lambda _: PermissionAnswer.DENY).request(_request()) is False


def test_allow_for_session_is_remembered_per_session_and_path() -> None:
    asked: list[PermissionRequest] = []

    def _prompt(request: PermissionRequest) -> PermissionAnswer:
        asked.append(request)
        return PermissionAnswer.ALLOW_FOR_SESSION

    engine = PermissionEngine(prompt=_prompt)
    assert engine.request(_request()) is True
    assert engine.request(_request(command="rm y")) is True
    assert len(asked) == 1

    engine.request(_request(session_id="s2"))
    engine.request(_request(path="/elsewhere"))
    assert len(asked) == 3


def test_auto_approved_session_never_prompts() -> None:
    def _prompt(request: PermissionRequest) -> bool:
        raise AssertionError("auto-approved sessions must not prompt")

    engine = PermissionEngine(prompt=_prompt)
    engine.auto_approve_session("s1")
    assert engine.request(_request()) is True


def test_prompt_emits_events() -> None:
    bus = EventBus()
    seen: list[tuple[str, dict[str, Any]]] = []
    bus.subscribe(PERMISSION_REQUESTED, lambda payload: seen.append((PERMISSION_REQUESTED, payload)))
    unsubscribe = bus.subscribe(
        PERMISSION_RESOLVED, lambda payload: seen.append((PERMISSION_RESOLVED, payload))
    )

    engine = PermissionEngine(prompt=lambda _: PermissionAnswer.ALLOW, event_bus=bus)
    request = _request()
    engine.request(request)

    assert [name for name, _ in seen] == [PERMISSION_REQUESTED, PERMISSION_RESOLVED]
    assert seen[0][1]["request"]["description"] == "Execute command: rm x"
    assert seen[1][1] == {"request_id": request.id, "answer": "allow"}

    unsubscribe()
    engine.request(_request())
    assert len(seen) == 3
