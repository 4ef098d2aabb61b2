"""API routes."""

from flask import Blueprint

from java_printer.services import render_service

api_bp = Blueprint("api", __name__, url_prefix="/api")

api_bp.add_url_rule(
    "/render",
    endpoint="render_direct",
    view_func=render_service.render_direct,
    methods=["POST"],
)
api_bp.add_url_rule(
    "/render/start",
    endpoint="render_start",
    view_func=render_service.render_start,
    methods=["POST"],
)
api_bp.add_url_rule(
    "/render/progress/<job_id>",
    endpoint="render_progress",
    view_func=render_service.render_progress,
    methods=["GET"],
)
api_bp.add_url_rule(
    "/render/download/<job_id>",
    endpoint="render_download",
    view_func=render_service.render_download,
    methods=["GET"],
)
