"""core — Pure model of the DG-LAB relay session.

This package contains zero network calls. Types, settings snapshots, the
session registry, command builders, and the waveform catalogue are all
deterministic functions of their inputs; the only file access is the one-time
read of the bundled ``waves.json`` catalogue.

Transport I/O (WebSocket to the relay) lives in :mod:`relay`.
"""
