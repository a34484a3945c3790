"""Tests for infrastructure/metrics.py — Prometheus counter recording.

Counters are cumulative within the module's registry, so every test reads
the value before and after the call and asserts on the difference.
"""

from __future__ import annotations

from unittest.mock import patch

from infrastructure import metrics as metrics_module

# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _value(name: str, **labels: str) -> float:
    value = metrics_module._REGISTRY.get_sample_value(name, labels)
    return value or 0.0


# ---------------------------------------------------------------------------
# Direct helpers
# ---------------------------------------------------------------------------


class TestCounterIncrements:
    def test_record_command_sent(self) -> None:
        before = _value("dglab_commands_sent_total", kind="wave")
        metrics_module.record_command_sent("wave")
        assert _value("dglab_commands_sent_total", kind="wave") - before == 1.0

    def test_record_command_dropped_labels_separate(self) -> None:
        before_closed = _value("dglab_commands_dropped_total", reason="transport_closed")
        before_session = _value("dglab_commands_dropped_total", reason="no_session")

        metrics_module.record_command_dropped("no_session")

        assert _value("dglab_commands_dropped_total", reason="transport_closed") == before_closed
        assert _value("dglab_commands_dropped_total", reason="no_session") - before_session == 1.0

    def test_record_fire(self) -> None:
        before = _value("dglab_fires_total", outcome="aborted")
        metrics_module.record_fire("aborted")
        metrics_module.record_fire("aborted")
        assert _value("dglab_fires_total", outcome="aborted") - before == 2.0

    def test_ramp_gauge_tracks_last_value(self) -> None:
        metrics_module.record_ramp_level(7)
        assert _value("dglab_ramp_level") == 7.0
        metrics_module.record_ramp_level(0)
        assert _value("dglab_ramp_level") == 0.0


# ---------------------------------------------------------------------------
# Recording through the client
# ---------------------------------------------------------------------------


class TestClientRecording:
    def test_heartbeat_counted(self, paired_client) -> None:
        before = _value("dglab_commands_sent_total", kind="heartbeat")
        paired_client.heartbeat.tick()
        assert _value("dglab_commands_sent_total", kind="heartbeat") - before == 1.0
        assert _value("dglab_ramp_level") == 1.0

    def test_fire_outcome_restored(self, paired_client) -> None:
        before = _value("dglab_fires_total", outcome="restored")
        assert paired_client.fire("this", 2)
        assert _value("dglab_fires_total", outcome="restored") - before == 1.0

    def test_fire_outcome_restore_dropped(self, paired_client, sleeper) -> None:
        sleeper.hook = paired_client.close
        before = _value("dglab_fires_total", outcome="restore_dropped")
        paired_client.fire("this", 2)
        assert _value("dglab_fires_total", outcome="restore_dropped") - before == 1.0

    def test_strength_without_device_counted_as_dropped(self, client) -> None:
        client.connect(timeout=1.0)
        before = _value("dglab_commands_dropped_total", reason="no_session")
        assert client.set_strength(1, 4, 5) is False
        assert _value("dglab_commands_dropped_total", reason="no_session") - before == 1.0


# ---------------------------------------------------------------------------
# Exposition
# ---------------------------------------------------------------------------


class TestGetMetricsResponse:
    def test_returns_bytes_and_content_type(self) -> None:
        body, content_type = metrics_module.get_metrics_response()
        assert isinstance(body, bytes)
        assert "text/plain" in content_type

    def test_body_contains_metric_names(self) -> None:
        metrics_module.record_command_sent("clear")
        body, _ = metrics_module.get_metrics_response()
        text = body.decode()
        for name in (
            "dglab_commands_sent_total",
            "dglab_commands_dropped_total",
            "dglab_fires_total",
            "dglab_ramp_level",
        ):
            assert name in text

    def test_metrics_text_is_decoded_exposition(self) -> None:
        metrics_module.record_fire("restored")
        text = metrics_module.metrics_text()
        assert isinstance(text, str)
        assert 'dglab_fires_total{outcome="restored"}' in text


class TestMetricsServer:
    def test_serves_private_registry(self) -> None:
        with patch("infrastructure.metrics.start_http_server") as start:
            metrics_module.start_metrics_server(9464)
        start.assert_called_once_with(9464, addr="127.0.0.1", registry=metrics_module._REGISTRY)

    def test_custom_bind_address(self) -> None:
        with patch("infrastructure.metrics.start_http_server") as start:
            metrics_module.start_metrics_server(9000, addr="0.0.0.0")
        assert start.call_args.kwargs["addr"] == "0.0.0.0"
