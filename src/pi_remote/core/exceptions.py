"""Shared error hierarchy.

Adapters and collaborators compose these base types so retry and severity
behavior stays consistent across the bot.
"""

from __future__ import annotations

from typing import Optional


class PiRemoteError(Exception):
    """Base error for the remote-control bot."""

    recoverable = False
    severity = "error"

    def __init__(self, message: str, *, user_message: Optional[str] = None) -> None:
        super().__init__(message)
        self.user_message = user_message


class TransientError(PiRemoteError):
    """Retryable failure (network hiccups, temporary upstream errors)."""

    recoverable = True
    severity = "warning"


class PermanentError(PiRemoteError):
    """Non-retryable failure (bad credentials, invalid requests)."""

    recoverable = False
    severity = "error"


class ConfigError(PermanentError):
    """Raised when the bot configuration cannot be loaded or is invalid."""
