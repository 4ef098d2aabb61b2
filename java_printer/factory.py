"""Flask app factory."""

from __future__ import annotations

from typing import Optional

from flask import Flask

from java_printer import bootstrap
from java_printer.config import RuntimeConfig, load_runtime_config
from java_printer.engine.browser import get_shared_browser
from java_printer.engine.render import PdfEngine
from java_printer.routes.api_routes import api_bp
from java_printer.routes.web_routes import web_bp
from java_printer.services import render_service
from java_printer.workers.job_queue import JobManager


def create_app(
    runtime_config: Optional[RuntimeConfig] = None,
    engine: Optional[PdfEngine] = None,
) -> Flask:
    """Create and configure the Flask application.

    ``engine`` defaults to the process-wide headless browser.
    """
    app = Flask(__name__)

    runtime_config = runtime_config or load_runtime_config()
    engine = engine or get_shared_browser(no_sandbox=runtime_config.chromium_no_sandbox)
    manager = JobManager(
        max_active_jobs=runtime_config.max_active_jobs,
        max_queued_jobs=runtime_config.max_queued_jobs,
        runner=render_service.build_job_runner(runtime_config, engine),
        ttl_seconds=runtime_config.job_ttl_seconds,
    )
    app.extensions[render_service.EXTENSION_KEY] = render_service.RenderRuntime(
        config=runtime_config,
        manager=manager,
        engine=engine,
    )
    render_service.configure_app(app, runtime_config)

    app.register_blueprint(web_bp)
    app.register_blueprint(api_bp)
    render_service.register_error_handlers(app)

    bootstrap.bootstrap_runtime(runtime_config)
    return app
