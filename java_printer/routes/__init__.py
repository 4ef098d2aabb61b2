"""Route blueprints."""

from java_printer.routes.api_routes import api_bp
from java_printer.routes.web_routes import web_bp

__all__ = ["api_bp", "web_bp"]
