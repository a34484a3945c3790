"""Environment-backed configuration source.

Reads ``DGLAB_*`` variables (``pulseName`` → ``DGLAB_PULSE_NAME``) after
loading a ``.env`` file with python-dotenv.  Values are looked up on every
``get`` so edits to ``os.environ`` are picked up by the next operation.

Explicit overrides (e.g. CLI flags) win over the environment, and
:data:`ENV_DEFAULTS` fills the keys the client requires.
"""

from __future__ import annotations

import os
import re
from collections.abc import Mapping, MutableMapping
from pathlib import Path
from typing import Any

from dotenv import load_dotenv

ENV_PREFIX = "DGLAB_"

ENV_DEFAULTS: dict[str, Any] = {
    "strength": "",
    "pulseName": "呼吸",
    "heartbeatInterval": "10",
}

_CAMEL_BOUNDARY = re.compile(r"(?<!^)(?=[A-Z])")


def env_name(key: str, prefix: str = ENV_PREFIX) -> str:
    """``heartbeatInterval`` → ``DGLAB_HEARTBEAT_INTERVAL``."""
    return prefix + _CAMEL_BOUNDARY.sub("_", key).upper()


class EnvConfigSource:
    """Mapping-style ``get`` over overrides, environment and defaults.

    Args:
        overrides: Values that take precedence over the environment.
        dotenv_path: ``.env`` file to load (default: search from cwd).
        environ: Environment mapping (default: ``os.environ``).
        prefix: Variable name prefix.
    """

    def __init__(
        self,
        overrides: Mapping[str, Any] | None = None,
        *,
        dotenv_path: str | Path | None = None,
        environ: MutableMapping[str, str] | None = None,
        prefix: str = ENV_PREFIX,
    ) -> None:
        self._overrides = dict(overrides or {})
        self._environ = os.environ if environ is None else environ
        self._prefix = prefix
        if environ is None:
            load_dotenv(dotenv_path)

    def get(self, key: str, default: Any = None) -> Any:
        if key in self._overrides:
            return self._overrides[key]
        name = env_name(key, self._prefix)
        if name in self._environ:
            return self._environ[name]
        return ENV_DEFAULTS.get(key, default)
