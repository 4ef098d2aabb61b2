"""Shared utility functions for the render service.

Contains:
- env_* helpers: read typed values from the environment with fallbacks
- sanitize_filename / base_name_without_extension: safe download names
- clamp_number: range clamping with a fallback for non-finite input
- remove_tree: best-effort temp directory cleanup
"""

import logging
import math
import os
import re
import shutil
from pathlib import Path, PurePosixPath
from typing import Optional, Union

logger = logging.getLogger(__name__)

_UNSAFE_FILENAME_CHARS = re.compile(r"[^a-zA-Z0-9._-]")


def env_bool(name: str, default: bool) -> bool:
    raw = os.environ.get(name)
    if raw is None:
        return default
    return raw.strip().lower() in ("1", "true", "yes")


def env_int(name: str, default: int, minimum: Optional[int] = None) -> int:
    raw = os.environ.get(name)
    if raw is None:
        return default
    try:
        value = int(raw)
    except ValueError:
        logger.warning("[settings] Invalid %s=%s; using %s", name, raw, default)
        return default
    if minimum is not None and value < minimum:
        logger.warning("[settings] %s=%s below minimum %s; using %s", name, raw, minimum, default)
        return default
    return value


def env_str(name: str, default: str) -> str:
    raw = (os.environ.get(name) or "").strip()
    return raw or default


def _basename(name: str) -> str:
    return PurePosixPath(name.replace("\\", "/")).name


def sanitize_filename(name: Optional[str], fallback: str = "file") -> str:
    """Reduce a name to its basename with only [A-Za-z0-9._-] characters."""
    base = _basename(name or fallback)
    cleaned = _UNSAFE_FILENAME_CHARS.sub("_", base)
    return cleaned or fallback


def base_name_without_extension(name: Optional[str], fallback: str = "download") -> str:
    """Sanitized basename of ``name`` with its last extension removed."""
    base = _basename(name or fallback)
    stem, dot, _ext = base.rpartition(".")
    if dot and stem:
        base = stem
    return sanitize_filename(base, fallback)


def clamp_number(value: Union[int, float, None], minimum: float, maximum: float, fallback):
    """Clamp ``value`` into [minimum, maximum]; non-numeric or non-finite → fallback."""
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return fallback
    # Python ints are always finite; only floats can be inf or nan.
    if isinstance(value, float) and not math.isfinite(value):
        return fallback
    return min(max(value, minimum), maximum)


def remove_tree(path: Optional[Path]) -> None:
    """Remove a temp directory, logging (not raising) on failure."""
    if path is None:
        return
    try:
        shutil.rmtree(path, ignore_errors=False)
    except FileNotFoundError:
        return
    except OSError as e:
        logger.error(f"Cleanup error for {path}: {e}")
