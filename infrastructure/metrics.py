"""Prometheus metrics for the relay client.

Metrics:
    dglab_commands_sent_total       Counter of commands written to the relay, by kind
    dglab_commands_dropped_total    Counter of commands not sent, by reason
    dglab_fires_total               Counter of fire sequences, by outcome
    dglab_ramp_level                Gauge of the current heartbeat ramp step

All metrics live on a private ``CollectorRegistry`` so importing this module
never touches the global default registry.  They are exposed through
``start_metrics_server`` (the CLI's ``--metrics-port``) or printed with
``metrics_text`` (the CLI's ``metrics`` command).

Usage::

    from infrastructure.metrics import record_command_sent, record_ramp_level

    record_command_sent("heartbeat")
    record_ramp_level(3)
"""

from __future__ import annotations

import logging

from prometheus_client import (
    CONTENT_TYPE_LATEST,
    CollectorRegistry,
    Counter,
    Gauge,
    generate_latest,
    start_http_server,
)

logger = logging.getLogger(__name__)

_REGISTRY = CollectorRegistry()

commands_sent_total = Counter(
    "dglab_commands_sent_total",
    "Commands written to the relay socket",
    ["kind"],
    registry=_REGISTRY,
)

commands_dropped_total = Counter(
    "dglab_commands_dropped_total",
    "Commands dropped before reaching the socket",
    ["reason"],
    registry=_REGISTRY,
)

fires_total = Counter(
    "dglab_fires_total",
    "Fire sequences by outcome (restored / restore_dropped / aborted)",
    ["outcome"],
    registry=_REGISTRY,
)

ramp_level = Gauge(
    "dglab_ramp_level",
    "Current heartbeat ramp step added on top of the base strength",
    registry=_REGISTRY,
)


# ---------------------------------------------------------------------------
# Public helpers
# ---------------------------------------------------------------------------


def record_command_sent(kind: str) -> None:
    """Increment the sent counter for one outbound command.

    Args:
        kind: Message kind, e.g. ``"heartbeat"``, ``"wave"``, ``"clear"``.
    """
    commands_sent_total.labels(kind=kind).inc()


def record_command_dropped(reason: str) -> None:
    """Increment the dropped counter.

    Args:
        reason: Short tag such as ``"transport_closed"`` or ``"no_session"``.
    """
    commands_dropped_total.labels(reason=reason).inc()


def record_fire(outcome: str) -> None:
    fires_total.labels(outcome=outcome).inc()


def record_ramp_level(level: int) -> None:
    ramp_level.set(level)


def get_metrics_response() -> tuple[bytes, str]:
    """Generate Prometheus text exposition format.

    Returns:
        Tuple of (body_bytes, content_type_string).
    """
    return generate_latest(_REGISTRY), CONTENT_TYPE_LATEST


def metrics_text() -> str:
    """Current metrics in Prometheus text format, decoded for printing."""
    body, _ = get_metrics_response()
    return body.decode("utf-8")


def start_metrics_server(port: int, addr: str = "127.0.0.1") -> None:
    """Serve ``/metrics`` for this registry on a background thread.

    Args:
        port: TCP port to listen on.
        addr: Bind address (default: loopback only).
    """
    start_http_server(port, addr=addr, registry=_REGISTRY)
    logger.info("metrics exporter listening on http://%s:%d/metrics", addr, port)
