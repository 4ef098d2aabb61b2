import io
import re
import threading
import time
import zipfile

from PyPDF2 import PdfWriter

_PAGES_RE = re.compile(r"pages:(\d+)")


def make_pdf(pages: int, width: float = 200, height: float = 300) -> bytes:
    writer = PdfWriter()
    for _ in range(pages):
        writer.add_blank_page(width=width, height=height)
    buffer = io.BytesIO()
    writer.write(buffer)
    return buffer.getvalue()


def make_zip(entries) -> bytes:
    """Zip bytes from a {path: text-or-bytes} mapping."""
    buffer = io.BytesIO()
    with zipfile.ZipFile(buffer, "w") as archive:
        for path, content in entries.items():
            archive.writestr(path, content)
    return buffer.getvalue()


def wait_for(predicate, timeout: float = 5.0) -> bool:
    deadline = time.time() + timeout
    while time.time() < deadline:
        if predicate():
            return True
        time.sleep(0.01)
    return predicate()


class FakeEngine:
    """PDF engine stand-in: a source containing ``pages:N`` renders N blank pages."""

    def __init__(self, gate: threading.Event = None):
        self.gate = gate
        self.calls = []
        self._lock = threading.Lock()

    def render_pdf(self, html, options=None):
        if self.gate is not None:
            self.gate.wait(timeout=10)
        with self._lock:
            self.calls.append((html, options))
        match = _PAGES_RE.search(html)
        return make_pdf(int(match.group(1)) if match else 1)
