import importlib

from flask import Flask

from java_printer import bootstrap
from java_printer.config import RuntimeConfig
from java_printer.factory import create_app
from java_printer.services.render_service import EXTENSION_KEY
from tests.helpers import FakeEngine


def test_create_app_registers_expected_routes(monkeypatch):
    monkeypatch.setattr("java_printer.factory.bootstrap.bootstrap_runtime", lambda runtime_config: None)
    app = create_app(RuntimeConfig(), engine=FakeEngine())

    rules = {rule.rule for rule in app.url_map.iter_rules()}
    expected = {
        "/api/health",
        "/api/render",
        "/api/render/start",
        "/api/render/progress/<job_id>",
        "/api/render/download/<job_id>",
    }
    assert expected.issubset(rules)


def test_create_app_stores_runtime(monkeypatch):
    monkeypatch.setattr("java_printer.factory.bootstrap.bootstrap_runtime", lambda runtime_config: None)
    engine = FakeEngine()
    config = RuntimeConfig(max_active_jobs=3, max_zip_bytes=10)
    app = create_app(config, engine=engine)

    runtime = app.extensions[EXTENSION_KEY]
    assert runtime.engine is engine
    assert runtime.config is config
    assert runtime.manager.max_active_jobs == 3
    assert app.config["MAX_CONTENT_LENGTH"] == config.max_content_length


def test_bootstrap_runtime_is_idempotent(monkeypatch):
    calls = {"log_config": 0, "atexit": 0}

    def _log_config(*args, **kwargs):
        del args, kwargs
        calls["log_config"] += 1

    def _register(*args, **kwargs):
        del args, kwargs
        calls["atexit"] += 1

    monkeypatch.setattr(bootstrap, "_bootstrap_started", False)
    monkeypatch.setattr(bootstrap.render_service, "log_effective_config", _log_config)
    monkeypatch.setattr(bootstrap.atexit, "register", _register)

    bootstrap.bootstrap_runtime(RuntimeConfig())
    bootstrap.bootstrap_runtime(RuntimeConfig())

    assert calls["log_config"] == 1
    assert calls["atexit"] == 1
    assert bootstrap.is_bootstrapped()


def test_root_app_shim_exposes_gunicorn_app():
    app_module = importlib.import_module("app")
    assert hasattr(app_module, "app")
    assert isinstance(app_module.app, Flask)
