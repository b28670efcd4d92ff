"""In-memory session token registry."""

from __future__ import annotations

import secrets
import threading


def generate_session_token() -> str:
    return secrets.token_hex(32)


class SessionRegistry:
    """Set of currently valid session tokens.

    Tokens live only in process memory; a restart invalidates every session.
    """

    def __init__(self) -> None:
        self._tokens: set[str] = set()
        self._lock = threading.Lock()

    def issue(self) -> str:
        token = generate_session_token()
        with self._lock:
            self._tokens.add(token)
        return token

    def is_valid(self, token: str | None) -> bool:
        if not token:
            return False
        with self._lock:
            return token in self._tokens

    def revoke(self, token: str | None) -> bool:
        if not token:
            return False
        with self._lock:
            if token not in self._tokens:
                return False
            self._tokens.discard(token)
            return True

    def __len__(self) -> int:
        with self._lock:
            return len(self._tokens)
