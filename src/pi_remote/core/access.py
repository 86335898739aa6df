"""Static allow-list gate for inbound senders.

Unauthorized senders are dropped silently: nothing is sent back, so unknown
parties cannot confirm the bot exists.
"""

from __future__ import annotations

import logging
from typing import Iterable, Optional

from .logging_utils import log_event


class AllowList:
    """Usernames permitted to talk to the bot. Never mutated after startup."""

    __slots__ = ("_identities",)

    def __init__(self, identities: Iterable[str]) -> None:
        self._identities: tuple[str, ...] = tuple(identities)

    @property
    def identities(self) -> tuple[str, ...]:
        return self._identities

    def __len__(self) -> int:
        return len(self._identities)

    def __repr__(self) -> str:
        return f"AllowList({list(self._identities)!r})"

    def is_authorized(self, identity: Optional[str]) -> bool:
        if not identity:
            return False
        for allowed in self._identities:
            if allowed == identity:
                return True
        return False


def check_sender(
    allowlist: AllowList,
    identity: Optional[str],
    logger: logging.Logger,
    *,
    display_name: Optional[str] = None,
) -> bool:
    """Return whether the sender may be served, logging any rejection."""
    if not identity:
        log_event(
            logger,
            logging.WARNING,
            "access.denied.unidentified",
            display_name=display_name,
        )
        return False
    if not allowlist.is_authorized(identity):
        log_event(logger, logging.WARNING, "access.denied", identity=identity)
        return False
    return True
