"""relay/strength.py — Channel strength commands.

``set_strength`` validates the channel and kind, checks that the socket is
open and at least one device is bound, then emits one command per session.
It never raises: every refusal is logged and reported as ``False``.
"""

from __future__ import annotations

import logging

from core.commands import strength_command, validate_strength_args
from core.registry import SessionRegistry
from core.types import RELATIVE_STRENGTH_KIND
from infrastructure.metrics import record_command_dropped
from relay.dispatcher import CommandDispatcher

logger = logging.getLogger(__name__)


class StrengthController:
    """Issues strength-set commands for every bound session."""

    def __init__(self, dispatcher: CommandDispatcher, registry: SessionRegistry) -> None:
        self._dispatcher = dispatcher
        self._registry = registry

    def set_strength(self, channel: int, kind: int, value: int) -> bool:
        """Set ``channel`` (1 = A, 2 = B) to ``value``.

        Args:
            channel: 1 or 2.
            kind:    1–3 for the absolute form, 4 for ``strength-<n>+2+<v>``.
            value:   Target strength.

        Returns:
            True if a command was issued for every session, False otherwise.
        """
        try:
            validate_strength_args(channel, kind)
        except ValueError as exc:
            logger.error("invalid strength command: %s", exc)
            record_command_dropped("invalid_kind")
            return False

        if not self._dispatcher.is_open:
            logger.error(
                "WebSocket is not connected, strength %d for channel %d dropped", value, channel
            )
            record_command_dropped("transport_closed")
            return False

        sessions = self._registry.all()
        if not sessions:
            logger.warning("no device connected")
            record_command_dropped("no_session")
            return False

        for session in sessions:
            self._dispatcher.send(strength_command(session, channel, kind, value))
        return True

    def set_both(self, value: int, kind: int = RELATIVE_STRENGTH_KIND) -> bool:
        """Set channels 1 and 2 to the same value; True only if both succeeded."""
        first = self.set_strength(1, kind, value)
        second = self.set_strength(2, kind, value)
        return first and second
