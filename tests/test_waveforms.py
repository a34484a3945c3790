"""Tests for core/waveforms.py — encoding, lazy loading and the active name."""

from __future__ import annotations

import json
from pathlib import Path

import pytest

from core.errors import WaveformLoadError
from core.types import DEFAULT_WAVEFORM_NAME
from core.waveforms import WaveformCatalogue, encode_frames

# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _write_catalogue(tmp_path: Path, waves: dict) -> Path:
    path = tmp_path / "waves.json"
    path.write_text(json.dumps({"PULSE_DATA": waves}, ensure_ascii=False), encoding="utf-8")
    return path


# ---------------------------------------------------------------------------
# encode_frames
# ---------------------------------------------------------------------------


class TestEncodeFrames:
    def test_single_frame(self) -> None:
        assert encode_frames([[[1, 2]]]) == ["0102"]

    def test_uppercase_and_padding(self) -> None:
        assert encode_frames([[[10, 10, 10, 10], [0, 0, 0, 255]]]) == ["0A0A0A0A000000FF"]

    def test_one_string_per_frame(self) -> None:
        assert encode_frames([[[1]], [[171]]]) == ["01", "AB"]

    def test_empty_matrix(self) -> None:
        assert encode_frames([]) == []

    def test_out_of_range_raises(self) -> None:
        with pytest.raises(ValueError, match="0–255"):
            encode_frames([[[256]]])

    def test_catalogue_encode_matches_function(self) -> None:
        matrix = [[[10, 10, 10, 10], [0, 0, 0, 0]]]
        assert WaveformCatalogue.encode(matrix) == encode_frames(matrix) == ["0A0A0A0A00000000"]


# ---------------------------------------------------------------------------
# Loading
# ---------------------------------------------------------------------------


class TestLoad:
    def test_bundled_catalogue_contains_default(self) -> None:
        cat = WaveformCatalogue()
        assert DEFAULT_WAVEFORM_NAME in cat.names()

    def test_bundled_default_encodes_to_v3_frames(self) -> None:
        frames = WaveformCatalogue().lookup(DEFAULT_WAVEFORM_NAME)
        assert frames is not None
        assert frames[0] == "0A0A0A0A00000000"
        assert all(len(f) == 16 for f in frames)

    def test_missing_file_raises(self, tmp_path: Path) -> None:
        cat = WaveformCatalogue(tmp_path / "nope.json")
        with pytest.raises(WaveformLoadError):
            cat.load()
        assert not cat.loaded

    def test_malformed_json_raises(self, tmp_path: Path) -> None:
        path = tmp_path / "bad.json"
        path.write_text("{not json", encoding="utf-8")
        with pytest.raises(WaveformLoadError):
            WaveformCatalogue(path).load()

    def test_missing_pulse_data_key_raises(self, tmp_path: Path) -> None:
        path = tmp_path / "w.json"
        path.write_text('{"OTHER": {}}', encoding="utf-8")
        with pytest.raises(WaveformLoadError, match="PULSE_DATA"):
            WaveformCatalogue(path).load()

    def test_load_twice_is_noop(self, tmp_path: Path) -> None:
        path = _write_catalogue(tmp_path, {"x": [[[1]]]})
        cat = WaveformCatalogue(path)
        cat.load()
        path.unlink()
        cat.load()  # already loaded; file no longer needed
        assert cat.lookup("x") == ["01"]


# ---------------------------------------------------------------------------
# Lookup and active name
# ---------------------------------------------------------------------------


class TestLookup:
    def test_unknown_name_returns_none(self, tmp_path: Path) -> None:
        cat = WaveformCatalogue(_write_catalogue(tmp_path, {"x": [[[1]]]}))
        assert cat.lookup("missing") is None

    def test_lookup_loads_lazily(self, tmp_path: Path) -> None:
        cat = WaveformCatalogue(_write_catalogue(tmp_path, {"x": [[[1, 2]]]}))
        assert not cat.loaded
        assert cat.lookup("x") == ["0102"]
        assert cat.loaded

    def test_lookup_with_unloadable_catalogue_returns_none(self, tmp_path: Path) -> None:
        assert WaveformCatalogue(tmp_path / "nope.json").lookup("x") is None


class TestSetActiveName:
    def test_first_call_loads_without_validating(self, tmp_path: Path) -> None:
        cat = WaveformCatalogue(_write_catalogue(tmp_path, {"x": [[[1]]]}))
        assert cat.set_active_name("not-a-wave") is True
        assert cat.loaded
        assert cat.active_name == DEFAULT_WAVEFORM_NAME

    def test_known_name_after_load(self, tmp_path: Path) -> None:
        cat = WaveformCatalogue(_write_catalogue(tmp_path, {"x": [[[1]]]}))
        cat.load()
        assert cat.set_active_name("x") is True
        assert cat.active_name == "x"

    def test_unknown_name_after_load_is_rejected(self, tmp_path: Path) -> None:
        cat = WaveformCatalogue(_write_catalogue(tmp_path, {"x": [[[1]]]}))
        cat.load()
        assert cat.set_active_name("y") is False
        assert cat.active_name == DEFAULT_WAVEFORM_NAME

    def test_failed_load_reports_false(self, tmp_path: Path) -> None:
        cat = WaveformCatalogue(tmp_path / "nope.json")
        assert cat.set_active_name("x") is False
