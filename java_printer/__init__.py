"""Java archive to PDF render service."""

__all__ = ["create_app"]


def create_app(*args, **kwargs):
    """Lazily import app factory to avoid import-time side effects."""
    from java_printer.factory import create_app as _create_app

    return _create_app(*args, **kwargs)
