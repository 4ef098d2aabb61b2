"""WSGI entrypoint for gunicorn and local runs."""

from java_printer.config import load_runtime_config
from java_printer.factory import create_app

runtime_config = load_runtime_config()
app = create_app(runtime_config)


if __name__ == "__main__":
    app.run(host=runtime_config.host, port=runtime_config.port, threaded=True, debug=False)
