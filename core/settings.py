"""
Configuration snapshot for the relay client.

The host application owns the configuration and may change it at any time, so
the client never caches it: every operation calls :func:`load_settings` on the
configured source and works from the immutable :class:`Settings` it returns.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Protocol

from core.errors import ConfigUnavailableError
from core.types import DEFAULT_WAVEFORM_NAME, ChannelMode

logger = logging.getLogger(__name__)

DEFAULT_HEARTBEAT_INTERVAL: float = 10.0
MIN_RECOMMENDED_HEARTBEAT_INTERVAL: float = 10.0
DEFAULT_MAX_ADD_INTERVAL: int = 50
DEFAULT_CODING_MAX_FREQUENCY: int = 30

TRIGGER_DISABLED: str = "none"
"""Sentinel value that turns an event trigger off."""

# Host-facing labels for ``messageSendOption``.
CHANNEL_OPTION_LABELS: dict[str, ChannelMode] = {
    "仅A通道输出": ChannelMode.A,
    "仅B通道输出": ChannelMode.B,
    "AB一起输出": ChannelMode.AB,
    "A": ChannelMode.A,
    "B": ChannelMode.B,
    "AB": ChannelMode.AB,
}

_REQUIRED_KEYS: tuple[str, ...] = ("strength", "pulseName", "heartbeatInterval")


class ConfigSource(Protocol):
    """Anything with a mapping-style ``get``; a plain dict works."""

    def get(self, key: str, default: Any = None) -> Any: ...


@dataclass(frozen=True)
class Settings:
    """
    Immutable per-call configuration snapshot.

    Attributes:
        strength: Base channel strength, or None when the host has not set one.
        pulse_name: Waveform name the host wants active, or None.
        heartbeat_interval_seconds: Seconds between heartbeat ticks.
        max_add_interval: Cap for the automatic strength ramp.
        on_did_start_debug_session: Extra fire strength, None = disabled.
        on_did_terminate_debug_session: Extra fire strength, None = disabled.
        on_did_receive_debug_session_custom_event: Extra fire strength for
            stderr output from the debuggee, None = disabled.
        on_did_change_breakpoints: Extra fire strength, None = disabled.
        on_did_save_text_document: Extra fire strength, None = disabled.
        coding_max_frequency: Edits allowed per 20 s window before queued
            waveforms are cleared.
        channel_mode: Channels that receive waveform broadcasts.
    """

    strength: int | None = None
    pulse_name: str | None = DEFAULT_WAVEFORM_NAME
    heartbeat_interval_seconds: float = DEFAULT_HEARTBEAT_INTERVAL
    max_add_interval: int = DEFAULT_MAX_ADD_INTERVAL
    on_did_start_debug_session: int | None = None
    on_did_terminate_debug_session: int | None = None
    on_did_receive_debug_session_custom_event: int | None = None
    on_did_change_breakpoints: int | None = None
    on_did_save_text_document: int | None = None
    coding_max_frequency: int = DEFAULT_CODING_MAX_FREQUENCY
    channel_mode: ChannelMode = ChannelMode.AB

    def __post_init__(self) -> None:
        """Validate configuration parameters."""
        if self.strength is not None and self.strength < 0:
            raise ValueError(f"strength must be non-negative, got {self.strength}")
        if self.heartbeat_interval_seconds <= 0:
            raise ValueError(
                f"heartbeat_interval_seconds must be positive, got {self.heartbeat_interval_seconds}"
            )
        if self.max_add_interval < 0:
            raise ValueError(f"max_add_interval must be non-negative, got {self.max_add_interval}")
        if self.coding_max_frequency < 0:
            raise ValueError(
                f"coding_max_frequency must be non-negative, got {self.coding_max_frequency}"
            )


# ---------------------------------------------------------------------------
# Coercion helpers
# ---------------------------------------------------------------------------


def _optional_int(key: str, value: Any) -> int | None:
    if value is None or value == "":
        return None
    try:
        return int(value)
    except (TypeError, ValueError) as exc:
        raise ConfigUnavailableError(f"{key} must be an integer, got {value!r}") from exc


def _number_or_default(key: str, value: Any, default: float) -> float:
    # Zero and empty values fall back to the default, like an unset field.
    if not value:
        return default
    try:
        return float(value)
    except (TypeError, ValueError) as exc:
        raise ConfigUnavailableError(f"{key} must be a number, got {value!r}") from exc


def _trigger(key: str, value: Any) -> int | None:
    if value is None or value == "" or str(value).strip().lower() == TRIGGER_DISABLED:
        return None
    return _optional_int(key, value)


def parse_channel_mode(value: Any) -> ChannelMode:
    """Map a ``messageSendOption`` label to a :class:`ChannelMode` (default AB)."""
    if isinstance(value, ChannelMode):
        return value
    return CHANNEL_OPTION_LABELS.get(str(value).strip() if value is not None else "", ChannelMode.AB)


# ---------------------------------------------------------------------------
# Loader
# ---------------------------------------------------------------------------


def load_settings(source: ConfigSource | None) -> Settings:
    """
    Build a validated :class:`Settings` snapshot from ``source``.

    ``strength``, ``pulseName`` and ``heartbeatInterval`` must be present
    (their values may be empty).  A heartbeat interval under 10 s is accepted
    with a warning.

    Args:
        source: Mapping-like configuration provider.

    Returns:
        A fresh :class:`Settings`.

    Raises:
        ConfigUnavailableError: If the source is missing, a required key is
            absent, or a value fails validation.
    """
    if source is None:
        raise ConfigUnavailableError("no configuration source")

    _missing = object()
    try:
        missing = [key for key in _REQUIRED_KEYS if source.get(key, _missing) is _missing]
    except Exception as exc:  # noqa: BLE001
        raise ConfigUnavailableError(f"configuration source failed: {exc}") from exc
    if missing:
        raise ConfigUnavailableError(f"missing configuration keys: {', '.join(missing)}")

    heartbeat = _number_or_default(
        "heartbeatInterval", source.get("heartbeatInterval"), DEFAULT_HEARTBEAT_INTERVAL
    )
    if heartbeat < MIN_RECOMMENDED_HEARTBEAT_INTERVAL:
        logger.warning(
            "heartbeat interval %.1fs is below %.0fs, strength will ramp up quickly",
            heartbeat,
            MIN_RECOMMENDED_HEARTBEAT_INTERVAL,
        )

    pulse_name = source.get("pulseName")
    try:
        return Settings(
            strength=_optional_int("strength", source.get("strength")),
            pulse_name=str(pulse_name) if pulse_name else None,
            heartbeat_interval_seconds=heartbeat,
            max_add_interval=int(
                _number_or_default(
                    "maxAddInterval", source.get("maxAddInterval"), DEFAULT_MAX_ADD_INTERVAL
                )
            ),
            on_did_start_debug_session=_trigger(
                "onDidStartDebugSession", source.get("onDidStartDebugSession")
            ),
            on_did_terminate_debug_session=_trigger(
                "onDidTerminateDebugSession", source.get("onDidTerminateDebugSession")
            ),
            on_did_receive_debug_session_custom_event=_trigger(
                "onDidReceiveDebugSessionCustomEvent",
                source.get("onDidReceiveDebugSessionCustomEvent"),
            ),
            on_did_change_breakpoints=_trigger(
                "onDidChangeBreakpoints", source.get("onDidChangeBreakpoints")
            ),
            on_did_save_text_document=_trigger(
                "onDidSaveTextDocument", source.get("onDidSaveTextDocument")
            ),
            coding_max_frequency=int(
                _number_or_default(
                    "codingMaxFrequency",
                    source.get("codingMaxFrequency"),
                    DEFAULT_CODING_MAX_FREQUENCY,
                )
            ),
            channel_mode=parse_channel_mode(source.get("messageSendOption")),
        )
    except ValueError as exc:
        raise ConfigUnavailableError(str(exc)) from exc
