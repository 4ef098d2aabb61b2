"""Runtime bootstrap for process-wide resources."""

from __future__ import annotations

import atexit
import threading

from java_printer.config import RuntimeConfig
from java_printer.engine.browser import close_shared_browser
from java_printer.services import render_service

_bootstrap_lock = threading.Lock()
_bootstrap_started = False


def bootstrap_runtime(runtime_config: RuntimeConfig) -> None:
    """Log the config snapshot and register browser shutdown once per process."""
    global _bootstrap_started
    with _bootstrap_lock:
        if _bootstrap_started:
            return

        render_service.log_effective_config(runtime_config)
        atexit.register(close_shared_browser)
        _bootstrap_started = True


def is_bootstrapped() -> bool:
    """Expose runtime bootstrap state for diagnostics/tests."""
    return _bootstrap_started
