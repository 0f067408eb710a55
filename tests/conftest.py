import importlib
from pathlib import Path

import pytest

from api_collection_gen.config import GeneratorConfig
from api_collection_gen.sources.base import RouteDescriptor

FIXTURES = Path(__file__).parent / "fixtures"


@pytest.fixture
def sample_app(monkeypatch):
    """The fixtures/sample_app.py module, importable as ``sample_app``."""
    monkeypatch.syspath_prepend(str(FIXTURES))
    return importlib.import_module("sample_app")


@pytest.fixture
def config():
    return GeneratorConfig(collection_name="Test API Collection", base_url="http://api.test")


@pytest.fixture
def make_route():
    def _make(method: str, uri: str, **kwargs) -> RouteDescriptor:
        return RouteDescriptor(method=method, uri=uri, **kwargs)
    return _make
