"""Retry policy for the startup handshake with the Bot API."""

from __future__ import annotations

import logging

from tenacity import (
    before_sleep_log,
    retry,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential,
)

from .exceptions import TransientError

STARTUP_ATTEMPTS = 3
STARTUP_MAX_WAIT_SECONDS = 10.0

logger = logging.getLogger(__name__)

# Steady-state deliveries are never retried; only getMe/deleteWebhook use this.
retry_transient = retry(
    stop=stop_after_attempt(STARTUP_ATTEMPTS),
    wait=wait_exponential(multiplier=1.0, max=STARTUP_MAX_WAIT_SECONDS),
    retry=retry_if_exception_type(TransientError),
    before_sleep=before_sleep_log(logger, logging.WARNING),
    reraise=True,
)
