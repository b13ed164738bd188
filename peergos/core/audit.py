"""Audit logging.

Every permission change, page view, state mutation and submission event is
recorded here. Entries are kept in a bounded in-memory list for the session
view and written as structured JSON lines to the audit log file and the
``audit`` logger.
"""
from __future__ import annotations

import json
import logging
import os
import uuid
from datetime import datetime, timezone
from typing import Any, Callable

from pydantic import BaseModel, Field

from peergos.core.config import settings

_logger = logging.getLogger("audit")


class AuditEntry(BaseModel):
    id: str = Field(default_factory=lambda: str(uuid.uuid4()))
    timestamp: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
    role: str | None = None
    action: str
    status: str = "success"
    details: dict[str, Any] = Field(default_factory=dict)


class AuditLog:
    """Append-only audit trail for one session.

    ``role_provider`` supplies the acting role when ``log`` is not given one
    explicitly (normally ``RoleContext.current``).
    """

    def __init__(
        self,
        path: str | None = None,
        max_entries: int | None = None,
        role_provider: Callable[[], str | None] | None = None,
    ):
        self.path = settings.AUDIT_LOG_FILE if path is None else path
        self.max_entries = max_entries or settings.AUDIT_MAX_ENTRIES
        self.role_provider = role_provider
        self._entries: list[AuditEntry] = []

    def log(
        self,
        action: str,
        details: dict[str, Any] | None = None,
        *,
        role: str | None = None,
        status: str = "success",
    ) -> AuditEntry:
        """Record an audit event.

        Parameters:
            action: Machine-readable action key (e.g. 'SWITCH_ROLE', 'SUBMIT_FILING').
            details: Additional context fields (ids, amounts, references).
            role: Acting role; defaults to ``role_provider()``.
            status: 'success' | 'failure' | 'denied'.
        """
        if role is None and self.role_provider is not None:
            role = self.role_provider()
        entry = AuditEntry(role=role, action=action, status=status, details=details or {})

        self._entries.append(entry)
        if len(self._entries) > self.max_entries:
            del self._entries[: len(self._entries) - self.max_entries]

        line = json.dumps(entry.model_dump(mode="json"), separators=(",", ":"))
        # Append to file (best effort)
        if self.path:
            try:
                directory = os.path.dirname(self.path)
                if directory:
                    os.makedirs(directory, exist_ok=True)
                with open(self.path, "a", encoding="utf-8") as f:
                    f.write(line + "\n")
            except OSError:
                _logger.debug("Failed to write audit event to file: %s", entry.action)
        _logger.info(line)
        return entry

    def log_denied(self, action: str, reason: str | None = None, **extra: Any) -> AuditEntry:
        return self.log(action, {"reason": reason, **extra}, status="denied")

    def log_failure(self, action: str, error: str | None = None, **extra: Any) -> AuditEntry:
        return self.log(action, {"error": error, **extra}, status="failure")

    def recent(self, limit: int = 50) -> list[AuditEntry]:
        """Newest first."""
        return list(reversed(self._entries[-limit:])) if limit > 0 else []

    @property
    def entries(self) -> tuple[AuditEntry, ...]:
        return tuple(self._entries)

    def __len__(self) -> int:
        return len(self._entries)
