"""
relay/reconnect.py — Bind handshake with exponential backoff.

The relay occasionally drops the first handshake (mobile networks, relay
restarts), so the CLI connects through :func:`connect_with_retry` instead of
calling :meth:`RelayClient.connect` once.

Only :class:`BindHandshakeError` is retried.  Waits double from
``base_seconds`` up to ``max_seconds`` with ±25 % jitter::

    attempt 1 ──fail──→ wait ~1s ──→ attempt 2 ──fail──→ wait ~2s ──→ attempt 3
                                                                       │
                                                      fail ────────────┘
                                                        └─→ BindHandshakeError (last one)
"""

from __future__ import annotations

import logging
import random
import time
from collections.abc import Callable

from core.errors import BindHandshakeError
from relay.client import RelayClient

logger = logging.getLogger(__name__)


def backoff_seconds(attempt: int, base_seconds: float, max_seconds: float) -> float:
    """Un-jittered wait after failed ``attempt`` (1-based)."""
    return min(base_seconds * (2 ** (attempt - 1)), max_seconds)


def connect_with_retry(
    client: RelayClient,
    *,
    attempts: int = 3,
    timeout: float | None = 15.0,
    base_seconds: float = 1.0,
    max_seconds: float = 8.0,
    sleep: Callable[[float], None] = time.sleep,
) -> str:
    """Connect ``client`` and wait for its client id, retrying failed handshakes.

    Args:
        client:       Relay client to connect.
        attempts:     Total handshake attempts including the first.
        timeout:      Per-attempt wait for the bind frame.
        base_seconds: Wait after the first failure.
        max_seconds:  Cap on any single wait.
        sleep:        Wait function, replaceable in tests.

    Returns:
        The client id assigned by the relay.

    Raises:
        ValueError: If ``attempts`` is below 1.
        BindHandshakeError: The last failure, once every attempt failed.
    """
    if attempts < 1:
        raise ValueError(f"attempts must be >= 1, got {attempts}")

    attempt = 1
    while True:
        try:
            return client.connect(timeout=timeout)
        except BindHandshakeError as exc:
            if attempt >= attempts:
                logger.error("giving up on %s after %d attempts: %s", client.url, attempts, exc)
                raise
            wait = backoff_seconds(attempt, base_seconds, max_seconds)
            wait *= 1 + random.uniform(-0.25, 0.25)  # noqa: S311
            logger.warning(
                "handshake with %s failed (attempt %d/%d: %s), retrying in %.2fs",
                client.url,
                attempt,
                attempts,
                exc,
                wait,
            )
            sleep(wait)
            attempt += 1
