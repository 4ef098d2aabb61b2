import pytest

from java_printer.config import RuntimeConfig
from tests.helpers import FakeEngine


@pytest.fixture
def runtime_config(tmp_path):
    return RuntimeConfig(fonts_dir=tmp_path / "fonts")


@pytest.fixture
def fake_engine():
    return FakeEngine()
