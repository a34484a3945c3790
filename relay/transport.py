"""
relay/transport.py — Persistent WebSocket connection to the relay.

Connection model
────────────────
Unlike a request/response bridge, the relay pushes ``bind`` frames at any
time (the device app may pair minutes after we connect), so the socket stays
open for the lifetime of the session.  ``websocket.WebSocketApp.run_forever``
runs on a daemon reader thread and delivers frames through callbacks; writes
happen on the caller's thread.

Dependency
──────────
Requires ``websocket-client`` (``pip install websocket-client``).
"""

from __future__ import annotations

import logging
import threading
from collections.abc import Callable
from typing import Any, Protocol

import websocket

from core.errors import TransportNotOpenError

logger = logging.getLogger(__name__)

MessageHandler = Callable[[str], None]
ErrorHandler = Callable[[Exception], None]
CloseHandler = Callable[[], None]


class Transport(Protocol):
    """Minimal message-oriented connection used by the relay client."""

    @property
    def is_open(self) -> bool: ...

    def open(
        self,
        url: str,
        *,
        on_message: MessageHandler,
        on_error: ErrorHandler,
        on_close: CloseHandler,
    ) -> None: ...

    def send(self, text: str) -> None: ...

    def close(self) -> None: ...


class WebSocketTransport:
    """``websocket-client`` backed :class:`Transport`.

    Args:
        ping_interval: Seconds between WebSocket-level pings (0 disables).
    """

    def __init__(self, ping_interval: float = 0) -> None:
        self._ping_interval = ping_interval
        self._app: websocket.WebSocketApp | None = None
        self._thread: threading.Thread | None = None
        self._opened = threading.Event()

    @property
    def is_open(self) -> bool:
        app = self._app
        return (
            app is not None
            and self._opened.is_set()
            and app.sock is not None
            and bool(app.sock.connected)
        )

    def open(
        self,
        url: str,
        *,
        on_message: MessageHandler,
        on_error: ErrorHandler,
        on_close: CloseHandler,
    ) -> None:
        """Start connecting to ``url`` on a background reader thread.

        Returns immediately; the outcome arrives through the callbacks.
        """
        self._opened.clear()

        def _handle_open(_ws: Any) -> None:
            self._opened.set()
            logger.info("WebSocket connected to %s", url)

        def _handle_message(_ws: Any, message: str | bytes) -> None:
            if isinstance(message, bytes):
                message = message.decode("utf-8", errors="replace")
            on_message(message)

        def _handle_error(_ws: Any, error: Exception) -> None:
            on_error(error)

        def _handle_close(_ws: Any, status: int | None, reason: str | None) -> None:
            self._opened.clear()
            logger.info("WebSocket closed (status=%s reason=%s)", status, reason)
            on_close()

        app = websocket.WebSocketApp(
            url,
            on_open=_handle_open,
            on_message=_handle_message,
            on_error=_handle_error,
            on_close=_handle_close,
        )
        self._app = app
        self._thread = threading.Thread(
            target=app.run_forever,
            kwargs={"ping_interval": self._ping_interval},
            name="dglab-relay-reader",
            daemon=True,
        )
        self._thread.start()

    def send(self, text: str) -> None:
        """Write one text frame.

        Raises:
            TransportNotOpenError: If the socket is closed or the write fails.
        """
        app = self._app
        if app is None or not self.is_open:
            raise TransportNotOpenError()
        try:
            app.send(text)
        except (websocket.WebSocketException, OSError) as exc:
            raise TransportNotOpenError(str(exc)) from exc

    def close(self) -> None:
        """Close the socket; safe to call repeatedly or before ``open``."""
        app, thread = self._app, self._thread
        self._app = None
        self._thread = None
        self._opened.clear()
        if app is not None:
            app.close()
        if thread is not None and thread is not threading.current_thread():
            thread.join(timeout=2.0)
