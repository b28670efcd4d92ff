"""Append-only audit log stored as newline-delimited JSON."""

from __future__ import annotations

import json
from dataclasses import dataclass
from datetime import UTC, datetime
from pathlib import Path
from typing import Any

DEFAULT_RECENT_LIMIT = 100


@dataclass(frozen=True, slots=True)
class AuditEntry:
    time: str
    ip: str
    action: str
    detail: str

    def to_dict(self) -> dict[str, str]:
        return {"time": self.time, "ip": self.ip, "action": self.action, "detail": self.detail}


class AuditLogRepository:
    def __init__(self, path: Path | str) -> None:
        self._path = Path(path)

    @property
    def path(self) -> Path:
        return self._path

    def append(self, *, action: str, detail: Any = "", ip: str = "-") -> AuditEntry:
        entry = AuditEntry(
            time=datetime.now(UTC).isoformat(timespec="milliseconds").replace("+00:00", "Z"),
            ip=ip,
            action=action,
            detail=detail if isinstance(detail, str) else json.dumps(detail, separators=(",", ":")),
        )
        self._path.parent.mkdir(parents=True, exist_ok=True)
        with self._path.open("a", encoding="utf-8") as handle:
            handle.write(json.dumps(entry.to_dict()) + "\n")
        return entry

    def list_recent(self, limit: int = DEFAULT_RECENT_LIMIT) -> list[dict[str, Any]]:
        if limit <= 0 or not self._path.is_file():
            return []

        lines = self._path.read_text(encoding="utf-8").splitlines()
        entries: list[dict[str, Any]] = []
        for line in reversed(lines):
            if not line.strip():
                continue
            try:
                parsed = json.loads(line)
            except ValueError:
                # partial write from a crashed process
                continue
            if not isinstance(parsed, dict):
                continue
            entries.append(parsed)
            if len(entries) >= limit:
                break
        return entries
