"""relay — I/O layer between the pure :mod:`core` model and the DG-LAB relay.

Modules:
    transport      Persistent WebSocket connection (websocket-client).
    dispatcher     Single choke point for outbound commands; waveform fan-out.
    strength       Channel strength commands.
    heartbeat      Keep-alive timer and strength ramp.
    client         ``RelayClient`` — connection manager and high-level operations.
    reconnect      Bind handshake retried with exponential backoff.
    triggers       Editor / debugger event adapter.
    config_source  Environment (+ .env) configuration source.
    logs           Logging setup.
"""

from relay.client import RelayClient

__all__ = ["RelayClient"]
