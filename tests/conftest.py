"""Test configuration and fixtures."""

import asyncio
import os
import socket

import pytest
import pytest_asyncio

from registry_image_tools import check_registry_connectivity, parse_reference
from registry_image_tools.core.types import RegistryConfig
from tests.fakes import FakeRegistryClient


def is_port_open(host, port):
    """Check if a port is open."""
    try:
        with socket.socket(socket.AF_INET, socket.SOCK_STREAM) as sock:
            sock.settimeout(1)
            result = sock.connect_ex((host, port))
            return result == 0
    except OSError:
        return False


@pytest.fixture
def fake_client():
    """In-memory registry client."""
    return FakeRegistryClient()


@pytest.fixture
def source_ref():
    return parse_reference("registry.example.com/team/app:v1")


@pytest.fixture
def target_ref():
    return parse_reference("mirror.example.com/team/app:v1")


@pytest.fixture(scope="session")
def registry_port():
    """Get registry port for testing."""
    return int(os.getenv("REGISTRY_PORT", "15000"))


@pytest_asyncio.fixture
async def registry_host(registry_port):
    """Get registry host and ensure it's available."""
    host = f"localhost:{registry_port}"
    config = RegistryConfig(timeout=10)

    # Wait for registry to be available (for CI)
    max_attempts = 30
    for attempt in range(max_attempts):
        if is_port_open("localhost", registry_port):
            try:
                if await check_registry_connectivity(host, config):
                    return host
            except Exception:
                pass

        if attempt < max_attempts - 1:
            await asyncio.sleep(1)

    # Skip if registry not available
    pytest.skip(f"Registry not available at {host}")


# Pytest configuration
def pytest_configure(config):
    """Configure pytest markers and settings."""
    config.addinivalue_line(
        "markers", "integration: mark test as integration test requiring registry"
    )
    config.addinivalue_line("markers", "unit: mark test as unit test (default)")


def pytest_collection_modifyitems(config, items):
    """Modify test collection."""
    # Skip integration tests if no registry
    skip_integration = pytest.mark.skip(reason="Registry not available")

    for item in items:
        if (
            "integration" in item.keywords
            and os.getenv("REGISTRY_AVAILABLE", "false").lower() != "true"
        ):
            item.add_marker(skip_integration)
