"""Application configuration loading."""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path

from java_printer.core.utils import env_bool, env_int, env_str

MB = 1024 * 1024
DEFAULT_FONTS_DIR = Path(__file__).resolve().parent / "assets" / "fonts"


@dataclass(frozen=True)
class RuntimeConfig:
    """Runtime configuration values consumed by the Flask app and render pipeline."""

    host: str = "127.0.0.1"
    port: int = 3001
    render_concurrency: int = 2
    max_active_jobs: int = 2
    max_queued_jobs: int = 10
    job_ttl_seconds: int = 300
    max_zip_bytes: int = 50 * MB
    max_total_bytes: int = 50 * MB
    max_file_bytes: int = 2 * MB
    max_umz_bytes: int = 20 * MB
    max_file_count: int = 2000
    temp_prefix: str = "java-printer-"
    chromium_no_sandbox: bool = False
    fonts_dir: Path = field(default=DEFAULT_FONTS_DIR)

    @property
    def max_content_length(self) -> int:
        # Multipart overhead (settings field, boundaries) on top of the zip itself.
        return self.max_zip_bytes + MB


def load_runtime_config() -> RuntimeConfig:
    """Load runtime configuration from environment variables."""
    d = RuntimeConfig()
    return RuntimeConfig(
        host=env_str("HOST", d.host),
        port=env_int("PORT", d.port, minimum=1),
        render_concurrency=env_int("RENDER_CONCURRENCY", d.render_concurrency, minimum=1),
        max_active_jobs=env_int("MAX_ACTIVE_JOBS", d.max_active_jobs, minimum=1),
        max_queued_jobs=env_int("MAX_QUEUED_JOBS", d.max_queued_jobs, minimum=0),
        job_ttl_seconds=env_int("JOB_TTL_SECONDS", d.job_ttl_seconds, minimum=1),
        max_zip_bytes=env_int("MAX_ZIP_BYTES", d.max_zip_bytes, minimum=1),
        max_total_bytes=env_int("MAX_TOTAL_BYTES", d.max_total_bytes, minimum=1),
        max_file_bytes=env_int("MAX_FILE_BYTES", d.max_file_bytes, minimum=1),
        max_umz_bytes=env_int("MAX_UMZ_BYTES", d.max_umz_bytes, minimum=1),
        max_file_count=env_int("MAX_FILE_COUNT", d.max_file_count, minimum=1),
        temp_prefix=env_str("TMP_PREFIX", d.temp_prefix),
        chromium_no_sandbox=env_bool("CHROMIUM_NO_SANDBOX", d.chromium_no_sandbox),
        fonts_dir=Path(env_str("FONTS_DIR", str(d.fonts_dir))),
    )
