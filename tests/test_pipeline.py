import io
import zipfile
from dataclasses import replace

import pytest
from PyPDF2 import PdfReader

from java_printer.core.exceptions import UserError
from java_printer.core.models import Project, SourceFile, UploadInfo
from java_printer.core.settings import DEFAULT_SETTINGS, OUTPUT_PER_PROJECT, OUTPUT_SINGLE
from java_printer.engine.merge import count_pages
from java_printer.engine.render import create_render_context
from java_printer.services import pipeline
from tests.helpers import make_zip


def _file(project, name, pages):
    return SourceFile(name=name, path=f"{project}/{name}", content=f"class X {{}} // pages:{pages}")


def _projects():
    return [
        Project("projA", (_file("projA", "A1.java", 3), _file("projA", "A2.java", 2))),
        Project("projB", (_file("projB", "B1.java", 1),)),
    ]


def _render(settings, engine, runtime_config, projects=None, on_progress=None):
    context = create_render_context(settings, runtime_config)
    return pipeline.render_projects(
        projects or _projects(),
        settings,
        context,
        engine,
        concurrency=2,
        output_name="upload.zip",
        on_progress=on_progress,
    )


def test_single_output_pads_between_projects(fake_engine, runtime_config):
    settings = replace(DEFAULT_SETTINGS, output_mode=OUTPUT_SINGLE, page_break_multiple=4)
    artifact = _render(settings, fake_engine, runtime_config)

    assert artifact.filename == "upload.pdf"
    assert artifact.content_type == pipeline.PDF_CONTENT_TYPE
    # projA: 5 pages padded to 8, projB: 1 page with no trailing padding.
    assert count_pages(artifact.data) == 9


def test_single_output_without_padding(fake_engine, runtime_config):
    settings = replace(DEFAULT_SETTINGS, output_mode=OUTPUT_SINGLE)
    artifact = _render(settings, fake_engine, runtime_config)
    assert count_pages(artifact.data) == 6


def test_per_project_zip(fake_engine, runtime_config):
    settings = replace(DEFAULT_SETTINGS, output_mode=OUTPUT_PER_PROJECT, page_break_multiple=4)
    artifact = _render(settings, fake_engine, runtime_config)

    assert artifact.filename == "upload.zip"
    assert artifact.content_type == pipeline.ZIP_CONTENT_TYPE
    with zipfile.ZipFile(io.BytesIO(artifact.data)) as archive:
        assert archive.namelist() == ["projA.pdf", "projB.pdf"]
        assert count_pages(archive.read("projA.pdf")) == 5
        assert count_pages(archive.read("projB.pdf")) == 1


def test_per_project_entry_names_are_unique(fake_engine, runtime_config):
    projects = [
        Project("a b", (_file("a b", "A.java", 1),)),
        Project("a?b", (_file("a?b", "B.java", 1),)),
    ]
    artifact = _render(DEFAULT_SETTINGS, fake_engine, runtime_config, projects=projects)
    with zipfile.ZipFile(io.BytesIO(artifact.data)) as archive:
        assert archive.namelist() == ["a_b.pdf", "a_b-2.pdf"]


def test_merge_keeps_file_order(fake_engine, runtime_config):
    settings = replace(DEFAULT_SETTINGS, output_mode=OUTPUT_SINGLE)
    artifact = _render(settings, fake_engine, runtime_config)
    reader = PdfReader(io.BytesIO(artifact.data))
    assert len(reader.pages) == 6
    assert len(fake_engine.calls) == 3


def test_progress_reports_each_file(fake_engine, runtime_config):
    updates = []
    _render(DEFAULT_SETTINGS, fake_engine, runtime_config, on_progress=lambda c, t: updates.append((c, t)))
    assert updates == [(1, 3), (2, 3), (3, 3)]


def test_engine_failure_propagates(runtime_config):
    class BrokenEngine:
        def render_pdf(self, html, options=None):
            raise RuntimeError("browser crashed")

    with pytest.raises(RuntimeError):
        _render(DEFAULT_SETTINGS, BrokenEngine(), runtime_config)


def test_run_render_end_to_end(tmp_path, fake_engine, runtime_config):
    zip_path = tmp_path / "classwork.zip"
    zip_path.write_bytes(make_zip({
        "projA/Foo.java": "class Foo {} // pages:2",
        "projB/Bar.java": "class Bar {}",
    }))
    upload = UploadInfo(temp_dir=tmp_path, zip_path=zip_path, original_name="classwork.zip")
    started = []

    artifact = pipeline.run_render(upload, DEFAULT_SETTINGS, runtime_config, fake_engine, on_start=started.append)

    assert started == [2]
    assert artifact.filename == "classwork.zip"
    with zipfile.ZipFile(io.BytesIO(artifact.data)) as archive:
        assert archive.namelist() == ["projA.pdf", "projB.pdf"]
        assert count_pages(archive.read("projA.pdf")) == 2


def test_run_render_validates_before_rendering(tmp_path, fake_engine, runtime_config):
    zip_path = tmp_path / "empty.zip"
    zip_path.write_bytes(make_zip({"proj/notes.txt": "nothing here"}))
    upload = UploadInfo(temp_dir=tmp_path, zip_path=zip_path, original_name="empty.zip")

    with pytest.raises(UserError) as excinfo:
        pipeline.run_render(upload, DEFAULT_SETTINGS, runtime_config, fake_engine)

    assert excinfo.value.status_code == 422
    assert fake_engine.calls == []
