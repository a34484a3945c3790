"""
relay/triggers.py — Map editor and debugger events onto relay operations.

The host (an editor plugin, a file watcher, a test runner hook) decides *when*
an event happened; this adapter decides *what* the device does about it:

    ┌──────────────────────────────┬──────────────────────────────────────────┐
    │ Event                        │ Action                                   │
    ├──────────────────────────────┼──────────────────────────────────────────┤
    │ text edited                  │ active waveform for 0.3 s per change;    │
    │                              │ clear queue after an edit burst          │
    │ debug session started        │ fire(onDidStartDebugSession, 0.6 s)      │
    │ debug session terminated     │ fire(onDidTerminateDebugSession, 0.6 s)  │
    │ debuggee wrote to stderr     │ fire(onDidReceiveDebugSessionCustomEvent)│
    │ breakpoints changed          │ fire(onDidChangeBreakpoints, 0.6 s)      │
    │ document saved               │ fire(onDidSaveTextDocument, 2 s)         │
    └──────────────────────────────┴──────────────────────────────────────────┘

A trigger configured as ``"none"`` does nothing.
"""

from __future__ import annotations

import logging
from collections.abc import Callable

from core.settings import DEFAULT_CODING_MAX_FREQUENCY, Settings
from core.types import ACTIVE_WAVEFORM
from infrastructure.rate_limiter import RateLimiter
from relay.client import RelayClient

logger = logging.getLogger(__name__)

EDIT_WINDOW_SECONDS: float = 20.0
EDIT_WAVE_SECONDS: float = 0.3
DEBUG_FIRE_SECONDS: float = 0.6
SAVE_FIRE_SECONDS: float = 2.0

_EDIT_KEY = "edits"


class EditorTriggers:
    """Event adapter around a :class:`RelayClient`.

    Args:
        client:  Connected relay client.
        limiter: Edit-burst limiter; built from the configured
            ``codingMaxFrequency`` when omitted.
    """

    def __init__(self, client: RelayClient, limiter: RateLimiter | None = None) -> None:
        self._client = client
        self._limiter = limiter or RateLimiter(
            max_requests=DEFAULT_CODING_MAX_FREQUENCY, window_seconds=EDIT_WINDOW_SECONDS
        )

    def on_text_changed(self, change_count: int = 1) -> int:
        """Handle ``change_count`` content changes in the active document.

        Returns:
            Number of waveform broadcasts issued.
        """
        settings = self._client.settings()
        if settings is None:
            return 0
        self._limiter.max_requests = settings.coding_max_frequency

        sent = 0
        for _ in range(change_count):
            if self._client.registry.is_empty():
                break
            if not self._limiter.allow(_EDIT_KEY):
                self._client.clear_waves()
            if self._client.send_wave(ACTIVE_WAVEFORM, EDIT_WAVE_SECONDS):
                sent += 1
        return sent

    def on_debug_session_started(self, name: str = "") -> bool:
        logger.debug("debug session started: %s", name)
        return self._fire(lambda s: s.on_did_start_debug_session, DEBUG_FIRE_SECONDS)

    def on_debug_session_terminated(self, name: str = "") -> bool:
        logger.debug("debug session terminated: %s", name)
        return self._fire(lambda s: s.on_did_terminate_debug_session, DEBUG_FIRE_SECONDS)

    def on_debug_output(self, category: str, output: str = "") -> bool:
        """Fire on debuggee output; only the ``stderr`` category counts."""
        if category != "stderr":
            return False
        logger.debug("debug session error: %s", output)
        return self._fire(lambda s: s.on_did_receive_debug_session_custom_event, DEBUG_FIRE_SECONDS)

    def on_breakpoints_changed(self, added: int = 0, removed: int = 0) -> bool:
        if added:
            logger.debug("added %d breakpoints", added)
        if removed:
            logger.debug("removed %d breakpoints", removed)
        return self._fire(lambda s: s.on_did_change_breakpoints, DEBUG_FIRE_SECONDS)

    def on_document_saved(self, file_name: str = "") -> bool:
        logger.debug("file saved: %s", file_name)
        return self._fire(lambda s: s.on_did_save_text_document, SAVE_FIRE_SECONDS)

    def _fire(self, pick: Callable[[Settings], int | None], duration_seconds: float) -> bool:
        settings = self._client.settings()
        if settings is None:
            return False
        extra = pick(settings)
        if extra is None:
            return False
        return self._client.fire(ACTIVE_WAVEFORM, extra, duration_seconds)
