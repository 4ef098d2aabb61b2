"""Health routes."""

from flask import Blueprint

from java_printer.services import render_service

web_bp = Blueprint("web", __name__)


@web_bp.get("/api/health")
def health():
    return render_service.health()
