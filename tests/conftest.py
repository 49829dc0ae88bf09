"""
Pytest configuration and shared fixtures for the test suite.
"""

import json
import logging
import os
import tempfile
from typing import Callable, List

import httpx
import pytest

from binding_lookup.config import SystemConfig, APIConfig, SearchConfig, LoggingConfig, set_config
from binding_lookup.errors import set_error_handler


TEST_API_CONFIG = APIConfig(
    pubchem_base_url="https://pubchem.test/rest/pug/",
    pubchem_image_url="https://pubchem.test/image/imagefly.cgi",
    rcsb_data_base_url="https://data.rcsb.test/rest/v1/",
    rcsb_search_url="https://search.rcsb.test/rcsbsearch/v2/query",
    rcsb_files_base_url="https://files.rcsb.test/download/",
    request_timeout=5,
    connection_timeout=5
)


class RecordingTransport:
    """
    Upstream double built on httpx.MockTransport.

    ``handler`` maps a request to a response; every request is kept for
    call-count and body assertions.
    """

    def __init__(self, handler: Callable[[httpx.Request], httpx.Response]):
        self.handler = handler
        self.requests: List[httpx.Request] = []
        self.transport = httpx.MockTransport(self._handle)

    def _handle(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        return self.handler(request)

    def client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(transport=self.transport)

    def paths(self) -> List[str]:
        return [request.url.path for request in self.requests]


@pytest.fixture
def recording_transport():
    """Factory for RecordingTransport instances."""
    return RecordingTransport


@pytest.fixture
def mock_logger():
    """A real logger whose records are collected in a list."""
    logger = logging.getLogger("binding_lookup.tests")
    logger.setLevel(logging.DEBUG)
    records: List[logging.LogRecord] = []

    class ListHandler(logging.Handler):
        def emit(self, record):
            records.append(record)

    handler = ListHandler()
    logger.addHandler(handler)
    logger.records = records

    yield logger

    logger.removeHandler(handler)


@pytest.fixture
def temp_config_file():
    """Create a temporary configuration file for testing."""
    config_data = {
        "api": {
            "pubchem_base_url": "https://pubchem.example/rest/pug/",
            "request_timeout": 12
        },
        "search": {
            "evalue_cutoff": 0.001,
            "identity_cutoff": 50.0
        },
        "logging": {
            "level": "DEBUG",
            "format": "text"
        },
        "unknown_section": {"ignored": True}
    }

    with tempfile.NamedTemporaryFile(mode='w', suffix='.json', delete=False) as f:
        json.dump(config_data, f)
        temp_file = f.name

    yield temp_file

    os.unlink(temp_file)


@pytest.fixture
def mock_env_vars(monkeypatch):
    """Set up mock environment variables for testing."""
    env_vars = {
        "PUBCHEM_BASE_URL": "https://pubchem.env/rest/pug/",
        "RCSB_SEARCH_URL": "https://search.env/query",
        "REQUEST_TIMEOUT": "45",
        "SEARCH_EVALUE_CUTOFF": "0.5",
        "SEARCH_IDENTITY_CUTOFF": "90",
        "SEARCH_MAX_RESULTS": "25",
        "LOG_LEVEL": "DEBUG"
    }

    for key, value in env_vars.items():
        monkeypatch.setenv(key, value)

    return env_vars


@pytest.fixture(autouse=True)
def setup_test_config():
    """Automatically set up test configuration for all tests."""
    test_config = SystemConfig(
        api=APIConfig(**TEST_API_CONFIG.__dict__),
        search=SearchConfig(),
        logging=LoggingConfig(level="DEBUG", format="text")
    )

    set_config(test_config)

    yield test_config

    set_config(None)
    set_error_handler(None)
