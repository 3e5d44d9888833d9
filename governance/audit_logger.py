"""Structured JSONL audit trail for permission and command events."""

from __future__ import annotations

import hashlib
import json
import logging
import threading
from datetime import UTC, datetime
from pathlib import Path
from typing import Any


class AuditLogger:
    """Writes audit records as JSON lines and mirrors them to ``ao.audit``."""

    def __init__(self, log_path: Path) -> None:
        self.log_path = log_path
        self.log_path.parent.mkdir(parents=True, exist_ok=True)
        self.logger = logging.getLogger("ao.audit")
        self._lock = threading.Lock()

    @staticmethod
    def _hash_inputs(inputs: dict[str, Any]) -> str:
        payload = json.dumps(inputs, sort_keys=True, default=str).encode("utf-8")
        return hashlib.sha256(payload).hexdigest()

    def log(
        self,
        action: str,
        tool: str,
        inputs: dict[str, Any],
        outcome: str,
        allowed: bool,
        reason: str = "",
        details: dict[str, Any] | None = None,
    ) -> None:
        """Append one JSONL audit event.

        Inputs are stored as a hash only; command text can carry secrets.
        """
        event = {
            "timestamp": datetime.now(UTC).isoformat(),
            "action": action,
            "tool": tool,
            "inputs_hash": self._hash_inputs(inputs),
            "outcome": outcome,
            "allowed": allowed,
            "reason": reason,
        }
        if details:
            event["details"] = details
        line = json.dumps(event, ensure_ascii=True, default=str)
        with self._lock:
            with self.log_path.open("a", encoding="utf-8") as fh:
                fh.write(line + "\n")
        self.logger.info(line)

    def read_events(self) -> list[dict[str, Any]]:
        """Return all recorded events, oldest first."""
        if not self.log_path.exists():
            return []
        with self.log_path.open("r", encoding="utf-8") as fh:
            return [json.loads(line) for line in fh if line.strip()]
