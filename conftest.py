"""Shared pytest fixtures."""

import pytest

from domain_checker_mcp import rdap_bootstrap


@pytest.fixture
def anyio_backend():
    return "asyncio"


@pytest.fixture(autouse=True)
def reset_bootstrap():
    """Each test starts without a cached RDAP bootstrap."""
    rdap_bootstrap.clear()
    yield
    rdap_bootstrap.clear()
