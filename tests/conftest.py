"""
Global pytest configuration and fixtures for HookBridge tests
"""

import logging
import sys
from pathlib import Path

import pytest

# Add the src directory to Python path
project_root = Path(__file__).parent.parent
sys.path.insert(0, str(project_root / "src"))

# Configure logging for tests
logging.basicConfig(
    level=logging.INFO,
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s',
)

# Suppress noisy logs during testing
logging.getLogger('aiohttp').setLevel(logging.WARNING)


@pytest.fixture(autouse=True)
def clean_environment(monkeypatch):
    """Keep HookBridge environment variables from leaking into tests"""
    for name in (
        "HOOKBRIDGE_ENGINE_URL",
        "HOOKBRIDGE_REQUEST_TIMEOUT",
        "HOOKBRIDGE_TRIGGER_TIMEOUT",
        "HOOKBRIDGE_HOST",
        "HOOKBRIDGE_PORT",
        "HOOKBRIDGE_CORS_ORIGINS",
        "LOG_LEVEL",
    ):
        monkeypatch.delenv(name, raising=False)


# Custom markers for test categorization
def pytest_configure(config):
    """Configure custom pytest markers"""
    config.addinivalue_line("markers", "unit: Unit tests")
    config.addinivalue_line("markers", "integration: Integration tests")


# Test data fixtures
@pytest.fixture
def widget_payload():
    """Caller payload used across tests"""
    return {"title": "Widget"}


@pytest.fixture
def engine_result():
    """Result body as the workflow engine delivers it"""
    return {
        "timestamp": "2024-01-01T00:00:00Z",
        "status": "success",
        "data": {
            "seo_meta": {
                "title": "Widget - Premium Quality Product",
                "description": "Discover our top-rated widget.",
                "keywords": "widget, premium quality",
            },
        },
    }
