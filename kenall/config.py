"""Runtime configuration: normalize defaults and logging, read from the environment."""

import os

from .rules import SOURCE_ENCODING as _DEFAULT_SOURCE_ENCODING


def _env_flag(name: str, default: bool) -> bool:
    value = os.environ.get(name)
    if value is None or value.strip() == "":
        return default
    return value.strip().lower() not in ("0", "false", "no", "off")


# Normalize options (all on by default)
DEFAULT_TRIM = _env_flag("KENALL_TRIM", True)
DEFAULT_WIDTH = _env_flag("KENALL_WIDTH", True)
DEFAULT_UTF8 = _env_flag("KENALL_UTF8", True)

# Encoding of uploaded / input files; "auto" lets charset-normalizer guess
DEFAULT_SOURCE_ENCODING = os.environ.get("KENALL_SOURCE_ENCODING", _DEFAULT_SOURCE_ENCODING)

LOG_LEVEL = os.environ.get("KENALL_LOG_LEVEL", "WARNING").upper()
