"""
relay/client.py — Connection manager for the DG-LAB relay.

``RelayClient`` owns the WebSocket, performs the bind handshake, wires the
heartbeat to the connection lifecycle and exposes the high-level operations
the host calls (send waveform, clear, fire, refresh settings).

Lifecycle
─────────
::

    connect() ──open──→ relay
                  ←── {"type": "bind", "clientId": c, "targetId": ""}   connect() returns c
                  ←── {"type": "bind", "clientId": c, "targetId": t}    device paired
                            │
                            ├── registry.bind(c, t)
                            ├── heartbeat.start(interval)
                            └── strength -> base on both channels

    close() ── socket closed, heartbeat stopped (ramp = 0), self unbound

Error handling
──────────────
``connect()`` is the only method that raises: :class:`BindHandshakeError` when
the socket fails or closes before the first bind.  Everything else logs and
returns ``False`` / ``None``.
"""

from __future__ import annotations

import logging
import threading
import time
from collections.abc import Callable
from dataclasses import dataclass, field

from core.errors import BindHandshakeError, ConfigUnavailableError, MalformedMessageError
from core.registry import SessionRegistry
from core.settings import ConfigSource, Settings, load_settings
from core.types import ACTIVE_WAVEFORM, RELAY_URL, RelayMessage, pairing_url, parse_relay_message
from core.waveforms import WaveformCatalogue
from infrastructure.metrics import record_fire
from relay.dispatcher import CommandDispatcher, WaveSpec
from relay.heartbeat import HeartbeatScheduler
from relay.strength import StrengthController
from relay.transport import Transport, WebSocketTransport

logger = logging.getLogger(__name__)

FIRE_SETTLE_SECONDS: float = 0.6
"""Fixed wait between sending a fire waveform and restoring strength."""

DEFAULT_FIRE_SECONDS: float = 0.6


@dataclass
class _PendingBind:
    """Handshake state shared between ``connect()`` and the reader thread."""

    done: threading.Event = field(default_factory=threading.Event)
    client_id: str = ""
    error: BaseException | None = None


class RelayClient:
    """Stateful client bound to one relay connection.

    Args:
        config:    Host configuration source, re-read on every operation.
        url:       Relay WebSocket URL.
        transport: Connection implementation (defaults to WebSocket).
        catalogue: Waveform store (defaults to the bundled catalogue).
        sleep:     Wait function used by :meth:`fire`.

    Usage::

        client = RelayClient(EnvConfigSource())
        client_id = client.connect()
        print(client.pairing_url())
        ...
        client.fire(extra_strength=5)
        client.close()
    """

    def __init__(
        self,
        config: ConfigSource,
        *,
        url: str = RELAY_URL,
        transport: Transport | None = None,
        catalogue: WaveformCatalogue | None = None,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        self._config = config
        self._url = url
        self._transport: Transport = transport or WebSocketTransport()
        self._sleep = sleep

        self.registry = SessionRegistry()
        self.catalogue = catalogue or WaveformCatalogue()
        self.dispatcher = CommandDispatcher(
            self._transport, self.registry, self.catalogue, self.settings
        )
        self.strength = StrengthController(self.dispatcher, self.registry)
        self.heartbeat = HeartbeatScheduler(
            self.dispatcher, self.strength, self.registry, self.settings, lambda: self.client_id
        )

        self._client_id = ""
        self._pending: _PendingBind | None = None
        self._lock = threading.Lock()

    # ── State ───────────────────────────────────────────────────────────────

    @property
    def client_id(self) -> str:
        """Relay-assigned id of this client ("" before the first bind)."""
        return self._client_id

    @property
    def is_connected(self) -> bool:
        return self._transport.is_open

    def settings(self) -> Settings | None:
        """Read a fresh configuration snapshot; None (logged) if unavailable."""
        try:
            return load_settings(self._config)
        except ConfigUnavailableError as exc:
            logger.error("failed to read configuration: %s", exc)
            return None

    @property
    def url(self) -> str:
        return self._url

    def pairing_url(self) -> str | None:
        """URL for the device app to scan, once a client id is assigned."""
        return pairing_url(self._client_id, self._url) if self._client_id else None

    # ── Connection lifecycle ────────────────────────────────────────────────

    def connect(self, timeout: float | None = None) -> str:
        """Open the relay connection and wait for the first bind frame.

        Args:
            timeout: Seconds to wait for the bind (None = wait indefinitely).

        Returns:
            The client id assigned by the relay.

        Raises:
            BindHandshakeError: If the socket errors, closes or times out
                before the relay sends a bind frame.
        """
        if self._transport.is_open:
            logger.warning("already connected, reconnecting")
            self.close()

        pending = _PendingBind()
        with self._lock:
            self._pending = pending
        self._transport.open(
            self._url,
            on_message=self._on_message,
            on_error=self._on_error,
            on_close=self._on_close,
        )

        if not pending.done.wait(timeout):
            self._fail_handshake()
            raise BindHandshakeError(f"relay did not send a bind frame within {timeout}s")
        if pending.error is not None:
            self._fail_handshake()
            raise BindHandshakeError(f"relay connection failed: {pending.error}") from pending.error
        return pending.client_id

    def close(self) -> None:
        """Close the socket, stop the heartbeat and unbind this client.  Idempotent."""
        self._transport.close()
        self.heartbeat.stop()
        if self._client_id:
            self.registry.unbind(self._client_id)

    def __enter__(self) -> RelayClient:
        return self

    def __exit__(self, *_: object) -> None:
        self.close()

    def _fail_handshake(self) -> None:
        with self._lock:
            self._pending = None
        self.close()

    def _resolve_pending(self, *, client_id: str = "", error: BaseException | None = None) -> None:
        with self._lock:
            pending, self._pending = self._pending, None
        if pending is None:
            return
        pending.client_id = client_id
        pending.error = error
        pending.done.set()

    # ── Transport callbacks (reader thread) ─────────────────────────────────

    def _on_message(self, payload: str) -> None:
        try:
            message = parse_relay_message(payload)
        except MalformedMessageError as exc:
            logger.warning("received non-JSON message: %s", exc.raw)
            return
        if message.is_bind:
            self._handle_bind(message)
        logger.info("received %s", message.raw)

    def _on_error(self, error: Exception) -> None:
        logger.error("WebSocket error: %s", error)
        self._resolve_pending(error=error)
        self.close()

    def _on_close(self) -> None:
        self.heartbeat.stop()
        self._resolve_pending(error=BindHandshakeError("connection closed before bind"))

    def _handle_bind(self, message: RelayMessage) -> None:
        # A bind racing a timed-out connect() arrives after close().
        if not self._transport.is_open:
            logger.warning("ignoring bind for %s on a closed connection", message.client_id)
            return
        self._client_id = message.client_id
        self._resolve_pending(client_id=message.client_id)

        settings = self.settings()
        if settings is not None:
            self.heartbeat.start(settings.heartbeat_interval_seconds)

        if not message.target_id:
            return
        self.registry.bind(message.client_id, message.target_id)
        logger.info("bound clientId=%s to targetId=%s", message.client_id, message.target_id)
        if settings is None:
            return
        if settings.strength is None:
            logger.error("base strength not configured")
            return
        self.strength.set_both(settings.strength)

    # ── High-level operations ───────────────────────────────────────────────

    def set_strength(self, channel: int, kind: int, value: int) -> bool:
        return self.strength.set_strength(channel, kind, value)

    def send_wave(self, wave: WaveSpec = ACTIVE_WAVEFORM, duration_seconds: float = 0.3) -> bool:
        """Broadcast a waveform to every bound device."""
        return self.dispatcher.broadcast_wave(wave, duration_seconds)

    def clear_waves(self) -> bool:
        return self.dispatcher.clear_all()

    def set_pulse_name(self, name: str) -> bool:
        """Change the active waveform (see :meth:`WaveformCatalogue.set_active_name`)."""
        return self.catalogue.set_active_name(name)

    def reset_ramp(self) -> None:
        self.heartbeat.reset_ramp()

    def refresh_settings(self) -> bool:
        """Re-apply configuration after the host changed it.

        Resets the ramp, pushes the base strength to both channels and, if a
        pulse name is configured, activates it and clears queued waveforms.

        Returns:
            False if no device is bound, configuration is unavailable or the
            configured pulse name was rejected.
        """
        if self.registry.is_empty():
            logger.error("no connection has been created yet")
            return False
        self.reset_ramp()
        settings = self.settings()
        if settings is None:
            return False
        logger.debug("refresh: strength=%s pulse_name=%s", settings.strength, settings.pulse_name)

        if settings.strength is not None:
            self.strength.set_both(settings.strength)
        if not settings.pulse_name:
            return True
        accepted = self.set_pulse_name(settings.pulse_name)
        self.clear_waves()
        if not accepted:
            logger.error("failed to set waveform to %s", settings.pulse_name)
        return accepted

    def fire(
        self,
        wave: WaveSpec = ACTIVE_WAVEFORM,
        extra_strength: int = 0,
        duration_seconds: float = DEFAULT_FIRE_SECONDS,
    ) -> bool:
        """Play a short burst at elevated strength, then restore the strength.

        Sequence: clear all waveforms → set both channels to
        ``strength + ramp + extra_strength`` → broadcast ``wave`` → wait
        :data:`FIRE_SETTLE_SECONDS` → set both channels back to
        ``strength + ramp`` (the value computed before the burst).

        Returns:
            True if the restore reached every session; False if the sequence
            was aborted up front or the restore could not be sent.
        """
        if self.registry.is_empty():
            logger.warning("no device connected, fire aborted")
            record_fire("aborted")
            return False
        settings = self.settings()
        if settings is None:
            record_fire("aborted")
            return False
        if settings.strength is None:
            logger.error("base strength not configured, fire aborted")
            record_fire("aborted")
            return False
        frames = self.dispatcher.resolve_wave(wave)
        if frames is None:
            record_fire("aborted")
            return False

        self.clear_waves()
        baseline = settings.strength + self.heartbeat.ramp
        target = baseline + extra_strength
        self.strength.set_both(target)
        self.dispatcher.broadcast_wave(frames, duration_seconds)
        self._sleep(FIRE_SETTLE_SECONDS)

        restored = self.strength.set_both(baseline)
        if not restored:
            logger.warning("fire: restore to strength %d was not delivered", baseline)
            record_fire("restore_dropped")
            return False
        logger.info("fire sent at strength %d, restored to %d", target, baseline)
        record_fire("restored")
        return True
