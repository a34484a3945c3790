"""
core/waveforms.py — Named pulse waveform catalogue and hex encoding.

The catalogue is a bundled JSON resource (``core/waves.json``) of the form::

    {"PULSE_DATA": {"呼吸": [[[10, 10, 10, 10], [0, 0, 0, 0]], ...], ...}}

Each waveform is a list of frames; each frame is a list of byte groups.  On
the wire a frame is flattened and written as two uppercase hex digits per
byte, so ``[[10, 10, 10, 10], [0, 0, 0, 0]]`` becomes ``"0A0A0A0A00000000"``.

The catalogue is read once, lazily, and is immutable afterwards.  The active
waveform name is the only mutable state and changes only through
:meth:`WaveformCatalogue.set_active_name`.
"""

from __future__ import annotations

import importlib.resources
import json
import logging
import threading
from collections.abc import Sequence
from pathlib import Path
from types import MappingProxyType
from typing import TYPE_CHECKING, Any

from core.errors import WaveformLoadError
from core.types import DEFAULT_WAVEFORM_NAME

if TYPE_CHECKING:
    from importlib.resources.abc import Traversable

logger = logging.getLogger(__name__)

_CATALOGUE_KEY = "PULSE_DATA"
_RESOURCE_NAME = "waves.json"

Frame = Sequence[Sequence[int]]
WaveformMatrix = Sequence[Frame]


# ---------------------------------------------------------------------------
# Encoding
# ---------------------------------------------------------------------------


def encode_frames(matrix: WaveformMatrix) -> list[str]:
    """Encode a waveform matrix into its wire form.

    Args:
        matrix: Frames → byte groups → byte values (0–255).

    Returns:
        One uppercase hex string per frame, two digits per byte.

    Raises:
        ValueError: If any value is outside 0–255.

    Example:
        >>> encode_frames([[[1, 2]]])
        ['0102']
    """
    encoded: list[str] = []
    for frame in matrix:
        parts: list[str] = []
        for group in frame:
            for value in group:
                byte = int(value)
                if not 0 <= byte <= 255:
                    raise ValueError(f"waveform byte out of range 0–255: {value!r}")
                parts.append(f"{byte:02X}")
        encoded.append("".join(parts))
    return encoded


def _validate_catalogue(data: Any) -> dict[str, list[list[list[int]]]]:
    if not isinstance(data, dict) or not isinstance(data.get(_CATALOGUE_KEY), dict):
        raise WaveformLoadError(f"waveform resource has no {_CATALOGUE_KEY!r} object")
    catalogue: dict[str, list[list[list[int]]]] = {}
    for name, matrix in data[_CATALOGUE_KEY].items():
        if not isinstance(matrix, list) or not all(
            isinstance(frame, list) and all(isinstance(group, list) for group in frame)
            for frame in matrix
        ):
            raise WaveformLoadError(f"waveform {name!r} is not a frame matrix")
        catalogue[str(name)] = matrix
    return catalogue


# ---------------------------------------------------------------------------
# Catalogue
# ---------------------------------------------------------------------------


class WaveformCatalogue:
    """Lazy, load-once waveform store plus the active waveform name.

    Args:
        resource: Path to a catalogue JSON file.  Defaults to the bundled
            ``core/waves.json``.
    """

    def __init__(self, resource: Path | Traversable | None = None) -> None:
        self._resource = resource
        self._data: MappingProxyType[str, Any] | None = None
        self._active_name = DEFAULT_WAVEFORM_NAME
        self._lock = threading.Lock()

    @property
    def loaded(self) -> bool:
        return self._data is not None

    @property
    def active_name(self) -> str:
        return self._active_name

    def names(self) -> list[str]:
        """Sorted waveform names (loads the catalogue if needed)."""
        self.load()
        assert self._data is not None
        return sorted(self._data)

    def load(self) -> None:
        """Read and validate the catalogue resource once.

        Raises:
            WaveformLoadError: If the resource is missing or malformed.
        """
        with self._lock:
            if self._data is not None:
                return
            resource = self._resource or importlib.resources.files("core") / _RESOURCE_NAME
            try:
                text = resource.read_text(encoding="utf-8")
                data = json.loads(text)
            except (OSError, ValueError) as exc:
                logger.error("failed to load waveform catalogue from %s: %s", resource, exc)
                raise WaveformLoadError(f"cannot read waveform catalogue: {exc}") from exc
            catalogue = _validate_catalogue(data)
            self._data = MappingProxyType(catalogue)
            logger.info("loaded %d waveforms", len(catalogue))

    def set_active_name(self, name: str) -> bool:
        """Make ``name`` the active waveform.

        When the catalogue has not been loaded yet this only triggers the load
        and reports success without checking ``name``; the active name is left
        unchanged.  Once loaded, unknown names return False.

        Returns:
            True on success, False for an unknown name or a failed load.
        """
        if self._data is None:
            logger.warning("waveform catalogue not loaded yet, loading now")
            try:
                self.load()
            except WaveformLoadError:
                return False
            return True

        if name in self._data:
            self._active_name = name
            logger.info("active waveform set to %s", name)
            return True

        logger.error("waveform %s does not exist", name)
        return False

    @staticmethod
    def encode(matrix: WaveformMatrix) -> list[str]:
        """Wire form of ``matrix``; see :func:`encode_frames`."""
        return encode_frames(matrix)

    def lookup(self, name: str) -> list[str] | None:
        """Return the encoded frames for ``name``, or None if unknown."""
        try:
            self.load()
        except WaveformLoadError:
            return None
        assert self._data is not None
        matrix = self._data.get(name)
        if matrix is None:
            logger.warning("waveform not found: %s", name)
            return None
        return encode_frames(matrix)
