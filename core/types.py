"""core/types.py — Value objects for the DG-LAB relay wire protocol.

Every outbound command is a frozen dataclass with a ``to_dict()`` method that
produces the exact JSON object the relay expects.  Serialisation to text (and
the single write to the socket) happens in :mod:`relay.dispatcher`.

Wire shapes
───────────
::

    heartbeat         {"type": "heartbeat", "clientId": c, "message": "200"}
    absolute strength {"type": 1|2|3, "channel": n, "clientId": c, "targetId": t,
                       "message": "set channel", "strength": v}
    relative strength {"type": 4, "clientId": c, "targetId": t,
                       "message": "strength-<n>+2+<v>"}
    waveform          {"type": "clientMsg", "channel": "A"|"B", "clientId": c,
                       "targetId": t, "message": "A:[\"0A0A...\"]", "time": s}
    clear             {"type": 4, "clientId": c, "targetId": t, "message": "clear-<n>"}
"""

from __future__ import annotations

import json
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Protocol

from core.errors import MalformedMessageError

# ---------------------------------------------------------------------------
# Constants
# ---------------------------------------------------------------------------

RELAY_URL: str = "wss://ws.dungeon-lab.cn/"
"""Fixed relay endpoint."""

PAIRING_URL_TEMPLATE: str = (
    "https://www.dungeon-lab.com/app-download.php#DGLAB-SOCKET#{relay}{client_id}"
)

ACTIVE_WAVEFORM: str = "this"
"""Sentinel wave argument meaning "the currently active waveform"."""

DEFAULT_WAVEFORM_NAME: str = "呼吸"

# Compact separators match the relay app's own JSON.stringify output.
JSON_SEPARATORS: tuple[str, str] = (",", ":")

ABSOLUTE_STRENGTH_KINDS: frozenset[int] = frozenset({1, 2, 3})
RELATIVE_STRENGTH_KIND: int = 4


# ---------------------------------------------------------------------------
# Enumerations
# ---------------------------------------------------------------------------


class Channel(str, Enum):
    """Output channels on the device."""

    A = "A"
    B = "B"

    @property
    def number(self) -> int:
        """1-based channel number used by strength and clear commands."""
        return 1 if self is Channel.A else 2


class ChannelMode(str, Enum):
    """Which channels a waveform broadcast is sent to."""

    A = "A"
    B = "B"
    AB = "AB"

    @property
    def channels(self) -> tuple[Channel, ...]:
        """Channels in emission order (A before B)."""
        if self is ChannelMode.A:
            return (Channel.A,)
        if self is ChannelMode.B:
            return (Channel.B,)
        return (Channel.A, Channel.B)


# ---------------------------------------------------------------------------
# Session
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class Session:
    """One local client bound to one remote device through the relay."""

    local_id: str
    """Client id assigned to us by the relay."""

    remote_id: str
    """Target id of the paired device app."""


# ---------------------------------------------------------------------------
# Outbound messages
# ---------------------------------------------------------------------------


class OutboundMessage(Protocol):
    """Anything the dispatcher can put on the wire."""

    @property
    def kind(self) -> str: ...

    def to_dict(self) -> dict[str, Any]: ...


@dataclass(frozen=True)
class HeartbeatMessage:
    """Keep-alive sent on every heartbeat tick."""

    client_id: str

    @property
    def kind(self) -> str:
        return "heartbeat"

    def to_dict(self) -> dict[str, Any]:
        return {"type": "heartbeat", "clientId": self.client_id, "message": "200"}


@dataclass(frozen=True)
class StrengthSetMessage:
    """Absolute channel strength command (types 1–3)."""

    type: int
    channel: int
    client_id: str
    target_id: str
    strength: int

    @property
    def kind(self) -> str:
        return "strength_set"

    def to_dict(self) -> dict[str, Any]:
        return {
            "type": self.type,
            "channel": self.channel,
            "clientId": self.client_id,
            "targetId": self.target_id,
            "message": "set channel",
            "strength": self.strength,
        }


@dataclass(frozen=True)
class StrengthDeltaMessage:
    """Textual strength command (type 4), ``strength-<channel>+2+<value>``."""

    channel: int
    client_id: str
    target_id: str
    value: int

    @property
    def kind(self) -> str:
        return "strength_delta"

    def to_dict(self) -> dict[str, Any]:
        return {
            "type": RELATIVE_STRENGTH_KIND,
            "clientId": self.client_id,
            "targetId": self.target_id,
            "message": f"strength-{self.channel}+2+{self.value}",
        }


@dataclass(frozen=True)
class WaveMessage:
    """Waveform frames for one channel, played for ``time`` seconds."""

    channel: Channel
    client_id: str
    target_id: str
    frames: tuple[str, ...]
    time: float

    @property
    def kind(self) -> str:
        return "wave"

    def to_dict(self) -> dict[str, Any]:
        body = json.dumps(list(self.frames), separators=JSON_SEPARATORS)
        return {
            "type": "clientMsg",
            "channel": self.channel.value,
            "clientId": self.client_id,
            "targetId": self.target_id,
            "message": f"{self.channel.value}:{body}",
            "time": self.time,
        }


@dataclass(frozen=True)
class ClearMessage:
    """Clear the queued waveform on one channel (1 or 2)."""

    channel: int
    client_id: str
    target_id: str

    @property
    def kind(self) -> str:
        return "clear"

    def to_dict(self) -> dict[str, Any]:
        return {
            "type": RELATIVE_STRENGTH_KIND,
            "clientId": self.client_id,
            "targetId": self.target_id,
            "message": f"clear-{self.channel}",
        }


# ---------------------------------------------------------------------------
# Inbound messages
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class RelayMessage:
    """A decoded inbound frame from the relay.

    Only ``bind`` frames drive state; every other type is logged as-is.
    """

    type: str
    client_id: str = ""
    target_id: str = ""
    message: str = ""
    raw: dict[str, Any] = field(default_factory=dict, compare=False)

    @property
    def is_bind(self) -> bool:
        return self.type == "bind"


def parse_relay_message(payload: str | bytes) -> RelayMessage:
    """Decode one inbound relay frame.

    Args:
        payload: Raw WebSocket text (or bytes) frame.

    Returns:
        :class:`RelayMessage` with missing fields defaulted to ``""``.

    Raises:
        MalformedMessageError: If the payload is not a JSON object.
    """
    text = payload.decode("utf-8", errors="replace") if isinstance(payload, bytes) else payload
    try:
        data = json.loads(text)
    except ValueError as exc:
        raise MalformedMessageError(text) from exc
    if not isinstance(data, dict):
        raise MalformedMessageError(text)

    return RelayMessage(
        type=str(data.get("type", "")),
        client_id=str(data.get("clientId") or ""),
        target_id=str(data.get("targetId") or ""),
        message=str(data.get("message") or ""),
        raw=data,
    )


def pairing_url(client_id: str, relay_url: str = RELAY_URL) -> str:
    """Return the URL the device app scans to pair with ``client_id``."""
    return PAIRING_URL_TEMPLATE.format(relay=relay_url, client_id=client_id)
