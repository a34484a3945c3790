"""core/errors.py — Exception taxonomy for the relay client.

Recoverable errors (transport closed, configuration missing, unknown waveform)
are raised by internal helpers and caught at the boundary of each public
operation, which logs them and returns ``False`` / ``None``.  Only
:class:`BindHandshakeError` escapes to callers, from ``RelayClient.connect()``,
because no session exists yet to recover into.
"""

from __future__ import annotations


class RelayError(Exception):
    """Base class for every error raised by this package."""


class WaveformLoadError(RelayError):
    """The bundled waveform catalogue is missing or malformed."""


class WaveformNotFoundError(RelayError):
    """A waveform name (or the ``"this"`` sentinel) resolved to nothing.

    Args:
        name: The name that failed to resolve.
    """

    def __init__(self, name: str) -> None:
        self.name = name
        super().__init__(f"Waveform {name!r} not found in catalogue")


class TransportNotOpenError(RelayError):
    """A command was issued while the WebSocket was not open."""

    def __init__(self, detail: str = "") -> None:
        self.detail = detail
        msg = "WebSocket is not connected"
        super().__init__(f"{msg}: {detail}" if detail else msg)


class ConfigUnavailableError(RelayError):
    """The configuration source could not produce a valid snapshot."""


class BindHandshakeError(RelayError, ConnectionError):
    """The transport failed before the relay confirmed a bind.

    Subclasses :class:`ConnectionError` so generic retry helpers treat it as a
    transient network failure.
    """


class MalformedMessageError(RelayError):
    """An inbound relay frame was not a JSON object.

    Args:
        raw: The undecodable payload, kept for logging.
    """

    def __init__(self, raw: str) -> None:
        self.raw = raw
        super().__init__(f"Malformed relay message: {raw[:200]!r}")
