"""Infrastructure layer — cross-cutting helpers for the relay client.

Modules:
    rate_limiter  In-memory sliding-window limiter (editor activity bursts).
    metrics       Prometheus metrics registry and exporter.
"""
