"""Authentication helpers."""

from gcp_panel.auth.sessions import SessionRegistry, generate_session_token

__all__ = [
    "SessionRegistry",
    "generate_session_token",
]
