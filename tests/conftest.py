"""
Pytest configuration and shared fixtures for HTTP-RPC tests.

Provides the fake transport, an engine wired to it and quiet test logging.
"""

import os
import sys
from pathlib import Path

import pytest

# Add src to path for imports
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

# Configure test environment
os.environ['ENVIRONMENT'] = 'test'

from infrastructure.logging.factory import LoggerFactory
from infrastructure.logging.structs import LoggingConfig, ConsoleBackendConfig

from config.structs import ClientSettings
from config.property_source import DictPropertySource
from httprpc import RpcEngine

from tests.helpers import FakeTransport


def pytest_configure(config):
    """Set up test-appropriate logging configuration before collection."""
    LoggerFactory.configure(LoggingConfig(
        environment="test",
        console=ConsoleBackendConfig(enabled=True, min_level="WARNING")
    ))


@pytest.fixture
def transport():
    """Fake transport answering 200 with an empty JSON object."""
    fake = FakeTransport()
    yield fake
    fake.close()


@pytest.fixture
def properties():
    return DictPropertySource({
        "services": {
            "user": {"url": "http://users.local/api/users"},
        },
    })


@pytest.fixture
def engine(transport, properties):
    """Engine over the fake transport."""
    return RpcEngine(transport=transport, settings=ClientSettings(), property_source=properties)
