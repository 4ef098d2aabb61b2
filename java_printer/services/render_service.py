"""Flask views for rendering Java archives to PDF, sync and via queued jobs."""

import json
import logging
import sys
from dataclasses import dataclass
from typing import Iterator

from flask import Response, current_app, jsonify, request
from werkzeug.datastructures import FileStorage
from werkzeug.exceptions import HTTPException, NotFound, RequestEntityTooLarge

from java_printer.config import RuntimeConfig
from java_printer.core.exceptions import UserError
from java_printer.core.models import OutputArtifact
from java_printer.core.settings import parse_settings
from java_printer.core.utils import remove_tree
from java_printer.engine.archive import save_upload_to_temp
from java_printer.engine.render import PdfEngine
from java_printer.services import pipeline
from java_printer.workers.job_queue import Event, JobManager, RenderJob

# Config
logging.basicConfig(
    level=logging.INFO,
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s',
    stream=sys.stdout,
)
logger = logging.getLogger(__name__)

EXTENSION_KEY = "java_printer"
ZIP_FIELD = "zip"
SETTINGS_FIELD = "settings"
INTERNAL_ERROR_MESSAGE = "Internal server error."


@dataclass
class RenderRuntime:
    """Per-app collaborators stored on ``app.extensions``."""

    config: RuntimeConfig
    manager: JobManager
    engine: PdfEngine


def build_job_runner(config: RuntimeConfig, engine: PdfEngine):
    """Adapt the render pipeline to the job queue's runner signature."""

    def run_job(job: RenderJob, on_start, on_progress) -> OutputArtifact:
        return pipeline.run_render(
            job.upload,
            job.settings,
            config,
            engine,
            on_start=on_start,
            on_progress=on_progress,
            label=job.job_id,
        )

    return run_job


def _runtime() -> RenderRuntime:
    return current_app.extensions[EXTENSION_KEY]


_BOX_LABEL_WIDTH = 24
_BOX_VALUE_WIDTH = 40


def _box(title: str, rows: list[tuple[str, str]]) -> list[str]:
    inner = _BOX_LABEL_WIDTH + _BOX_VALUE_WIDTH + 5
    lines = [f"+{'-' * inner}+", f"| {title.ljust(inner - 2)} |", f"+{'-' * inner}+"]
    for label, value in rows:
        value = value if len(value) <= _BOX_VALUE_WIDTH else value[: _BOX_VALUE_WIDTH - 3] + "..."
        lines.append(f"| {label.ljust(_BOX_LABEL_WIDTH)} | {value.ljust(_BOX_VALUE_WIDTH)} |")
    lines.append(f"+{'-' * inner}+")
    return lines


def log_effective_config(config: RuntimeConfig) -> None:
    rows_concurrency = [
        ("RENDER_CONCURRENCY", str(config.render_concurrency)),
        ("MAX_ACTIVE_JOBS", str(config.max_active_jobs)),
        ("MAX_QUEUED_JOBS", str(config.max_queued_jobs)),
        ("JOB_TTL_SECONDS", str(config.job_ttl_seconds)),
    ]
    rows_limits = [
        ("MAX_ZIP_BYTES", str(config.max_zip_bytes)),
        ("MAX_TOTAL_BYTES", str(config.max_total_bytes)),
        ("MAX_FILE_BYTES", str(config.max_file_bytes)),
        ("MAX_UMZ_BYTES", str(config.max_umz_bytes)),
        ("MAX_FILE_COUNT", str(config.max_file_count)),
    ]
    rows_runtime = [
        ("HOST:PORT", f"{config.host}:{config.port}"),
        ("TMP_PREFIX", config.temp_prefix),
        ("CHROMIUM_NO_SANDBOX", str(config.chromium_no_sandbox)),
        ("FONTS_DIR", str(config.fonts_dir)),
    ]
    lines = ["[ CONFIG SNAPSHOT (startup) ]"]
    lines += _box("Concurrency", rows_concurrency)
    lines += _box("Limits", rows_limits)
    lines += _box("Runtime", rows_runtime)
    logger.info("\n%s", "\n".join(lines))


def configure_app(app, config: RuntimeConfig) -> None:
    """Apply Flask app config values required by this service layer."""
    app.config["MAX_CONTENT_LENGTH"] = config.max_content_length


def register_error_handlers(app) -> None:
    """Register HTTP and framework error handlers."""
    app.register_error_handler(RequestEntityTooLarge, handle_large_file)
    app.register_error_handler(UserError, handle_user_error)
    app.register_error_handler(HTTPException, handle_http_exception)
    app.register_error_handler(Exception, handle_error)


def create_error_response(message: str, error_type: str, status_code: int):
    return jsonify({
        "success": False,
        "error": message,
        "error_type": error_type,
        "error_message": message,
    }), status_code


# Error handlers
def handle_large_file(e):
    max_mb = _runtime().config.max_zip_bytes / (1024 * 1024)
    return create_error_response(f"File too large (max {max_mb:.0f}MB)", "FileTooLarge", 413)


def handle_user_error(e: UserError):
    logger.info("%s %s rejected (%s): %s", request.method, request.path, e.status_code, e.message)
    return create_error_response(e.message, e.error_type, e.status_code)


def handle_http_exception(e):
    if isinstance(e, NotFound):
        logger.info("404 %s %s", request.method, request.path)
    else:
        logger.warning("HTTP %s on %s %s: %s", e.code, request.method, request.path, e.description)
    return create_error_response(e.description or e.name, e.name.replace(" ", ""), e.code or 400)


def handle_error(e):
    logger.exception("Unhandled error")
    return create_error_response(INTERNAL_ERROR_MESSAGE, "InternalError", 500)


def _zip_from_request() -> FileStorage:
    uploads = request.files.getlist(ZIP_FIELD)
    if len(uploads) > 1:
        raise UserError.multiple_zips()
    if not uploads or not uploads[0].filename:
        raise UserError.zip_required()
    return uploads[0]


def _artifact_response(artifact: OutputArtifact) -> Response:
    response = Response(artifact.data, mimetype=artifact.content_type)
    response.headers["Content-Disposition"] = f'attachment; filename="{artifact.filename}"'
    response.headers["Content-Length"] = str(len(artifact.data))
    return response


def format_sse(event: Event) -> str:
    return f"event: {event.name}\ndata: {json.dumps(event.data)}\n\n"


# Routes
def health():
    runtime = _runtime()
    browser_running = getattr(runtime.engine, "is_running", None)
    return jsonify({
        "status": "ok",
        "jobs": runtime.manager.stats(),
        "browser_running": bool(browser_running) if browser_running is not None else None,
    })


def render_direct():
    """
    Render an uploaded zip synchronously.

    Accepts multipart/form-data with a 'zip' file and an optional 'settings'
    JSON field. Blocks until the PDF (or zip of PDFs) is ready.
    """
    runtime = _runtime()
    upload_file = _zip_from_request()
    settings = parse_settings(request.form.get(SETTINGS_FIELD))

    with runtime.manager.direct_slot():
        upload = save_upload_to_temp(upload_file, runtime.config)
        try:
            artifact = pipeline.run_render(upload, settings, runtime.config, runtime.engine)
        finally:
            remove_tree(upload.temp_dir)

    return _artifact_response(artifact)


def render_start():
    """
    Queue an uploaded zip for rendering.

    Returns 202 with a job id; progress streams from /api/render/progress/<job_id>.
    """
    runtime = _runtime()
    upload_file = _zip_from_request()
    settings = parse_settings(request.form.get(SETTINGS_FIELD))

    upload = save_upload_to_temp(upload_file, runtime.config)
    job_id = runtime.manager.submit(upload, settings)
    return jsonify({"jobId": job_id}), 202


def render_progress(job_id: str):
    """Server-sent event stream of a job's progress and final outcome."""
    subscription = _runtime().manager.subscribe(job_id)

    def _stream() -> Iterator[str]:
        try:
            for event in subscription:
                yield format_sse(event)
        finally:
            subscription.close()

    return Response(
        _stream(),
        mimetype="text/event-stream",
        headers={"Cache-Control": "no-cache", "X-Accel-Buffering": "no"},
    )


def render_download(job_id: str):
    """Serve a finished job's artifact exactly once."""
    artifact = _runtime().manager.take_output(job_id)
    return _artifact_response(artifact)

