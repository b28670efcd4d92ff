"""Panel configuration file holding the operator login password."""

from __future__ import annotations

import hmac
import json
import os
from pathlib import Path
from typing import Any

from gcp_panel.errors import PasswordPolicyError

DEFAULT_PASSWORD = "password"
CONFIG_FILE_MODE = 0o600


class PanelConfigRepository:
    """Reads and merges ``config.json``.

    The password is stored and compared as plain text. This is a known weakness
    of the on-disk format and is kept deliberately.
    """

    def __init__(self, path: Path | str) -> None:
        self._path = Path(path)

    def load(self) -> dict[str, Any]:
        if not self._path.is_file():
            self._write({"password": DEFAULT_PASSWORD})

        parsed = json.loads(self._path.read_text(encoding="utf-8"))
        if not isinstance(parsed, dict):
            raise ValueError(f"panel config at {self._path} must be a JSON object")
        return parsed

    def save(self, updates: dict[str, Any]) -> dict[str, Any]:
        merged = {**self.load(), **updates}
        self._write(merged)
        return merged

    def check_password(self, candidate: str | None) -> bool:
        stored = self.load().get("password")
        if not isinstance(stored, str) or not isinstance(candidate, str):
            return False
        return hmac.compare_digest(candidate.encode("utf-8"), stored.encode("utf-8"))

    def set_password(self, new_password: str | None, *, min_length: int) -> None:
        if not new_password or len(new_password) < min_length:
            raise PasswordPolicyError("Password too short")
        self.save({"password": new_password})

    def _write(self, payload: dict[str, Any]) -> None:
        self._path.parent.mkdir(parents=True, exist_ok=True)
        self._path.write_text(json.dumps(payload, indent=2), encoding="utf-8")
        os.chmod(self._path, CONFIG_FILE_MODE)
