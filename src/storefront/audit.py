"""Security audit log for account events."""

from __future__ import annotations

from .models import AuditLog, _generate_id, _utc_now
from .storage import Repository

AUDIT_ACTIONS = ("login", "profile_update", "password_change")


class AuditStore:
    def __init__(self, repository: Repository[AuditLog]):
        self.repository = repository

    def record(
        self,
        user_id: str,
        action: str,
        ip_address: str | None = None,
        user_agent: str | None = None,
    ) -> AuditLog:
        if action not in AUDIT_ACTIONS:
            raise ValueError(f"Unknown audit action: {action}")
        entry = AuditLog(
            id=_generate_id(),
            user_id=user_id,
            action=action,
            ip_address=ip_address or "unknown",
            user_agent=user_agent or "unknown",
            timestamp=_utc_now(),
        )
        self.repository.put(entry.id, entry)
        return entry

    def list(self, user_id: str, limit: int = 20) -> tuple[list[AuditLog], int]:
        """Most recent entries for a user and the user's total entry count."""
        entries = [e for e in self.repository.values() if e.user_id == user_id]
        entries.sort(key=lambda e: e.timestamp, reverse=True)
        return entries[:limit], len(entries)
