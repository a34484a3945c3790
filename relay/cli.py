"""
Interactive command line for the relay client.

Usage:
    python -m relay --strength 5 --pulse-name 呼吸

Connects to the relay (retrying transient failures), prints the pairing URL
for the device app, then reads one command per line from stdin:

    fire [extra] [seconds]    burst at base + ramp + extra
    wave [name] [seconds]     broadcast a waveform (default: active)
    clear                     clear queued waveforms
    pulse <name>              change the active waveform
    strength <ch> <kind> <v>  raw strength command
    refresh                   re-apply configuration, reset ramp
    save | debug-start | debug-stop | stderr | breakpoint
                              simulate editor/debugger events
    status                    print connection state
    metrics                   print Prometheus metrics
    quit
"""

from __future__ import annotations

import argparse
import logging
import sys
from collections.abc import Sequence
from typing import TextIO

from core.errors import BindHandshakeError
from core.types import ACTIVE_WAVEFORM, RELAY_URL
from infrastructure.metrics import metrics_text, start_metrics_server
from relay.client import DEFAULT_FIRE_SECONDS, RelayClient
from relay.config_source import EnvConfigSource
from relay.logs import configure_logging
from relay.reconnect import connect_with_retry
from relay.triggers import EditorTriggers

logger = logging.getLogger(__name__)

_CONNECT_TIMEOUT = 15.0


def parse_args(argv: Sequence[str] | None = None) -> argparse.Namespace:
    p = argparse.ArgumentParser(description="DG-LAB relay client")
    p.add_argument("--url", default=RELAY_URL, help="Relay WebSocket URL")
    p.add_argument("--strength", type=int, default=None, help="Base channel strength")
    p.add_argument("--pulse-name", default=None, help="Initial active waveform")
    p.add_argument(
        "--heartbeat-interval", type=float, default=None, help="Seconds between heartbeats"
    )
    p.add_argument("--max-add-interval", type=int, default=None, help="Ramp cap")
    p.add_argument(
        "--channels",
        choices=["A", "B", "AB"],
        default=None,
        help="Channels that receive waveforms",
    )
    p.add_argument("--connect-attempts", type=int, default=3)
    p.add_argument(
        "--metrics-port",
        type=int,
        default=None,
        help="Serve Prometheus metrics on this port (default: disabled)",
    )
    p.add_argument("--verbose", "-v", action="store_true", help="Debug logging")
    return p.parse_args(argv)


def _overrides(args: argparse.Namespace) -> dict[str, object]:
    pairs = {
        "strength": args.strength,
        "pulseName": args.pulse_name,
        "heartbeatInterval": args.heartbeat_interval,
        "maxAddInterval": args.max_add_interval,
        "messageSendOption": args.channels,
    }
    return {k: v for k, v in pairs.items() if v is not None}


def run_command(client: RelayClient, triggers: EditorTriggers, line: str, out: TextIO) -> bool:
    """Execute one CLI command.

    Returns:
        False when the loop should stop.
    """
    parts = line.split()
    if not parts:
        return True
    cmd, args = parts[0].lower(), parts[1:]

    try:
        if cmd in ("quit", "exit"):
            return False
        if cmd == "fire":
            extra = int(args[0]) if args else 0
            seconds = float(args[1]) if len(args) > 1 else DEFAULT_FIRE_SECONDS
            ok = client.fire(ACTIVE_WAVEFORM, extra, seconds)
        elif cmd == "wave":
            wave = args[0] if args else ACTIVE_WAVEFORM
            seconds = float(args[1]) if len(args) > 1 else 0.3
            ok = client.send_wave(wave, seconds)
        elif cmd == "clear":
            ok = client.clear_waves()
        elif cmd == "pulse" and args:
            ok = client.set_pulse_name(args[0])
        elif cmd == "strength" and len(args) == 3:
            ok = client.set_strength(int(args[0]), int(args[1]), int(args[2]))
        elif cmd == "refresh":
            ok = client.refresh_settings()
        elif cmd == "save":
            ok = triggers.on_document_saved()
        elif cmd == "debug-start":
            ok = triggers.on_debug_session_started()
        elif cmd == "debug-stop":
            ok = triggers.on_debug_session_terminated()
        elif cmd == "stderr":
            ok = triggers.on_debug_output("stderr", " ".join(args))
        elif cmd == "breakpoint":
            ok = triggers.on_breakpoints_changed(added=1)
        elif cmd == "status":
            print(
                f"connected={client.is_connected} client_id={client.client_id or '-'} "
                f"devices={len(client.registry)} ramp=+{client.heartbeat.ramp} "
                f"pulse={client.catalogue.active_name}",
                file=out,
            )
            return True
        elif cmd == "metrics":
            out.write(metrics_text())
            return True
        else:
            print(f"unknown command: {line.strip()}", file=out)
            return True
    except ValueError as exc:
        print(f"bad arguments: {exc}", file=out)
        return True

    print("ok" if ok else "failed", file=out)
    return True


def main(argv: Sequence[str] | None = None) -> int:
    args = parse_args(argv)
    configure_logging(logging.DEBUG if args.verbose else logging.INFO)

    if args.metrics_port is not None:
        start_metrics_server(args.metrics_port)

    client = RelayClient(EnvConfigSource(_overrides(args)), url=args.url)
    triggers = EditorTriggers(client)

    try:
        client_id = connect_with_retry(
            client, attempts=args.connect_attempts, timeout=_CONNECT_TIMEOUT
        )
    except BindHandshakeError:
        return 1

    print(f"client id: {client_id}")
    print(f"scan to pair: {client.pairing_url()}")
    try:
        for line in sys.stdin:
            if not run_command(client, triggers, line, sys.stdout):
                break
    except KeyboardInterrupt:
        logger.info("interrupted, closing connection")
    finally:
        client.close()
    return 0
