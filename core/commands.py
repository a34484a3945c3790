"""core/commands.py — Outbound command builders.

Each function returns one or more message objects from :mod:`core.types`
ready to be handed to :class:`relay.dispatcher.CommandDispatcher`.

Pure module: no I/O, no logging, no imports from relay/.

Strength kinds
──────────────
The relay accepts two encodings for a channel strength change, and both are
in use:

* kinds 1, 2, 3 → ``{"type": kind, "channel": n, ..., "message": "set channel",
  "strength": v}``
* kind 4 → ``{"type": 4, ..., "message": "strength-<n>+2+<v>"}``, used for
  the bind-time base strength, the heartbeat ramp and fire/restore.
"""

from __future__ import annotations

from collections.abc import Sequence

from core.types import (
    ABSOLUTE_STRENGTH_KINDS,
    RELATIVE_STRENGTH_KIND,
    Channel,
    ChannelMode,
    ClearMessage,
    HeartbeatMessage,
    Session,
    StrengthDeltaMessage,
    StrengthSetMessage,
    WaveMessage,
)

VALID_CHANNELS: frozenset[int] = frozenset({1, 2})
VALID_STRENGTH_KINDS: frozenset[int] = ABSOLUTE_STRENGTH_KINDS | {RELATIVE_STRENGTH_KIND}


def validate_strength_args(channel: int, kind: int) -> None:
    """Reject channels outside {1, 2} and kinds outside {1, 2, 3, 4}.

    Raises:
        ValueError: On an invalid channel or kind.
    """
    if channel not in VALID_CHANNELS:
        raise ValueError(f"channel must be 1 or 2, got {channel!r}")
    if kind not in VALID_STRENGTH_KINDS:
        raise ValueError(f"strength kind must be one of 1–4, got {kind!r}")


def strength_command(
    session: Session, channel: int, kind: int, value: int
) -> StrengthSetMessage | StrengthDeltaMessage:
    """Build one strength command for ``session``.

    Args:
        session: Target session.
        channel: 1 (A) or 2 (B).
        kind:    1–3 for an absolute set, 4 for the textual form.
        value:   Strength value.

    Raises:
        ValueError: If ``channel`` or ``kind`` is invalid.
    """
    validate_strength_args(channel, kind)
    if kind == RELATIVE_STRENGTH_KIND:
        return StrengthDeltaMessage(
            channel=channel,
            client_id=session.local_id,
            target_id=session.remote_id,
            value=value,
        )
    return StrengthSetMessage(
        type=kind,
        channel=channel,
        client_id=session.local_id,
        target_id=session.remote_id,
        strength=value,
    )


def wave_commands(
    session: Session, frames: Sequence[str], duration_seconds: float, mode: ChannelMode
) -> list[WaveMessage]:
    """One waveform message per channel selected by ``mode``, A before B."""
    return [
        WaveMessage(
            channel=channel,
            client_id=session.local_id,
            target_id=session.remote_id,
            frames=tuple(frames),
            time=duration_seconds,
        )
        for channel in mode.channels
    ]


def clear_commands(session: Session) -> list[ClearMessage]:
    """``clear-1`` then ``clear-2`` for ``session``."""
    return [
        ClearMessage(channel=channel.number, client_id=session.local_id, target_id=session.remote_id)
        for channel in (Channel.A, Channel.B)
    ]


def heartbeat_command(client_id: str) -> HeartbeatMessage:
    return HeartbeatMessage(client_id=client_id)
