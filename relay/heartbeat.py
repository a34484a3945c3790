"""
relay/heartbeat.py — Keep-alive timer and automatic strength ramp.

State machine::

    STOPPED ──start()──→ RUNNING ──stop()──→ STOPPED
                                            (ramp reset to 0)

Each tick sends a heartbeat and, while a device is bound and the ramp is below
``max_add_interval``, raises the ramp by one and pushes
``strength + ramp`` to both channels.

The timer runs on its own daemon thread.  Ticks and ``stop()`` share one lock
and a tick re-checks the stop flag after acquiring it, so once ``stop()``
returns no further tick can run and the ramp stays at 0.
"""

from __future__ import annotations

import logging
import threading
from collections.abc import Callable

from core.commands import heartbeat_command
from core.registry import SessionRegistry
from core.settings import Settings
from infrastructure.metrics import record_ramp_level
from relay.dispatcher import CommandDispatcher
from relay.strength import StrengthController

logger = logging.getLogger(__name__)


class HeartbeatScheduler:
    """Periodic heartbeat plus ramp, owned by the connection manager.

    Args:
        dispatcher: Outbound command path.
        strength:   Strength controller used for ramp pushes.
        registry:   Bound sessions.
        settings:   Fresh settings snapshot per tick (None = unavailable).
        client_id:  Returns our relay-assigned client id.
    """

    def __init__(
        self,
        dispatcher: CommandDispatcher,
        strength: StrengthController,
        registry: SessionRegistry,
        settings: Callable[[], Settings | None],
        client_id: Callable[[], str],
    ) -> None:
        self._dispatcher = dispatcher
        self._strength = strength
        self._registry = registry
        self._settings = settings
        self._client_id = client_id

        self._lock = threading.RLock()
        self._thread: threading.Thread | None = None
        self._stop_event: threading.Event | None = None
        self._ramp = 0

    @property
    def running(self) -> bool:
        with self._lock:
            return self._thread is not None

    @property
    def ramp(self) -> int:
        """Current ramp step added on top of the base strength."""
        with self._lock:
            return self._ramp

    def reset_ramp(self) -> None:
        with self._lock:
            self._ramp = 0
            record_ramp_level(0)

    def start(self, interval_seconds: float) -> bool:
        """Begin ticking every ``interval_seconds``.

        Returns:
            True if a timer was started, False if one was already running.
        """
        with self._lock:
            if self._thread is not None:
                logger.debug("heartbeat already running")
                return False
            stop_event = threading.Event()
            thread = threading.Thread(
                target=self._run,
                args=(stop_event, interval_seconds),
                name="dglab-heartbeat",
                daemon=True,
            )
            self._stop_event = stop_event
            self._thread = thread
            thread.start()
        logger.info("heartbeat started (every %.1fs)", interval_seconds)
        return True

    def stop(self) -> None:
        """Cancel the timer and reset the ramp.  Idempotent."""
        with self._lock:
            thread, stop_event = self._thread, self._stop_event
            self._thread = None
            self._stop_event = None
            self._ramp = 0
            record_ramp_level(0)
            if stop_event is None:
                return
            stop_event.set()
        if thread is not None and thread is not threading.current_thread():
            thread.join(timeout=1.0)
        logger.info("heartbeat stopped")

    def _run(self, stop_event: threading.Event, interval_seconds: float) -> None:
        while not stop_event.wait(interval_seconds):
            with self._lock:
                if stop_event.is_set():
                    return
                self.tick()

    def tick(self) -> None:
        """Run one heartbeat step."""
        with self._lock:
            if not self._dispatcher.is_open:
                logger.error("WebSocket is not connected, heartbeat skipped")
                return

            self._dispatcher.send(heartbeat_command(self._client_id()))

            settings = self._settings()
            if settings is None:
                return
            if self._registry.is_empty() or self._ramp >= settings.max_add_interval:
                logger.debug("no device connected or strength at cap (+%d)", self._ramp)
                return
            if settings.strength is None:
                logger.warning("base strength not configured, ramp skipped")
                return

            self._ramp += 1
            record_ramp_level(self._ramp)
            logger.info("base strength +%d", self._ramp)
            self._strength.set_both(settings.strength + self._ramp)
