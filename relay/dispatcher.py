"""
relay/dispatcher.py — The only writer to the relay socket.

Every outbound command (heartbeats, strength changes, waveforms, clears) goes
through :meth:`CommandDispatcher.send`, which serialises it to compact JSON
and writes it iff the transport is open.  Failures are logged and reported as
``False``; nothing here raises to callers.
"""

from __future__ import annotations

import json
import logging
from collections.abc import Callable, Sequence

from core.commands import clear_commands, wave_commands
from core.errors import TransportNotOpenError, WaveformNotFoundError
from core.registry import SessionRegistry
from core.settings import Settings
from core.types import ACTIVE_WAVEFORM, JSON_SEPARATORS, OutboundMessage
from core.waveforms import WaveformCatalogue
from infrastructure.metrics import record_command_dropped, record_command_sent
from relay.transport import Transport

logger = logging.getLogger(__name__)

WaveSpec = str | Sequence[str]
"""``"this"``, a catalogue name, or literal hex frames."""


class CommandDispatcher:
    """Serialises and transmits commands; fans waveforms out per channel mode.

    Args:
        transport: Open (or opening) relay connection.
        registry:  Bound sessions to fan out to.
        catalogue: Waveform store used to resolve names.
        settings:  Returns a fresh :class:`Settings` snapshot, or None when
            configuration is unavailable.
    """

    def __init__(
        self,
        transport: Transport,
        registry: SessionRegistry,
        catalogue: WaveformCatalogue,
        settings: Callable[[], Settings | None],
    ) -> None:
        self._transport = transport
        self._registry = registry
        self._catalogue = catalogue
        self._settings = settings

    @property
    def is_open(self) -> bool:
        return self._transport.is_open

    def send(self, message: OutboundMessage) -> bool:
        """Write ``message`` to the relay.

        Returns:
            True if the frame was written, False if the transport was closed.
        """
        payload = json.dumps(message.to_dict(), ensure_ascii=False, separators=JSON_SEPARATORS)
        try:
            if not self._transport.is_open:
                raise TransportNotOpenError()
            self._transport.send(payload)
        except TransportNotOpenError as exc:
            logger.error("%s, dropped %s", exc, payload)
            record_command_dropped("transport_closed")
            return False
        logger.info("sent %s", payload)
        record_command_sent(message.kind)
        return True

    def resolve_wave(self, wave: WaveSpec | None) -> list[str] | None:
        """Turn a wave argument into encoded frames.

        ``"this"`` resolves to the active waveform, any other string is looked
        up as a catalogue name, and a sequence is taken as literal hex frames.

        Returns:
            Encoded frames, or None when nothing resolves.
        """
        try:
            if not wave:
                raise WaveformNotFoundError(repr(wave))
            if isinstance(wave, str):
                name = self._catalogue.active_name if wave == ACTIVE_WAVEFORM else wave
                frames = self._catalogue.lookup(name)
                if frames is None:
                    raise WaveformNotFoundError(name)
                return frames
            return [str(frame) for frame in wave]
        except WaveformNotFoundError as exc:
            logger.error("waveform data is empty, set a waveform name or pass frames (%s)", exc)
            return None

    def broadcast_wave(self, wave: WaveSpec | None, duration_seconds: float) -> bool:
        """Send a waveform to every session on the configured channels.

        Returns:
            False if the waveform or the configuration is unavailable.
        """
        frames = self.resolve_wave(wave)
        if frames is None:
            return False
        settings = self._settings()
        if settings is None:
            return False

        for session in self._registry.all():
            for message in wave_commands(session, frames, duration_seconds, settings.channel_mode):
                self.send(message)
        return True

    def clear_all(self) -> bool:
        """Clear queued waveforms on both channels of every session.

        Always returns True, even with no sessions.
        """
        for session in self._registry.all():
            for message in clear_commands(session):
                self.send(message)
        logger.info("cleared all waveforms")
        return True
