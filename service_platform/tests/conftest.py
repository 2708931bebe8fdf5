"""
Shared fixtures for Platform Access tests.
"""

import httpx
import pytest
import pytest_asyncio

from shared.config import PlatformConfig
from shared.metrics import ExecutorMetrics
from service_platform.app.executor import create_executor
from service_platform.tests.fakes import BASE_URL, FakePlatform


@pytest.fixture
def platform():
    """Fake upstream issuing 'abc'."""
    return FakePlatform()


@pytest.fixture
def config():
    """Platform configuration pointing at the fake upstream."""
    return PlatformConfig(url=BASE_URL, password="s3cret")


@pytest.fixture
def metrics():
    """Metrics on a private registry."""
    return ExecutorMetrics()


@pytest_asyncio.fixture
async def client(platform):
    """HTTP client routed to the fake upstream."""
    client = httpx.AsyncClient(
        base_url=BASE_URL,
        headers={"Content-Type": "application/json", "x-namespace": "captain"},
        transport=platform.transport(),
    )
    yield client
    await client.aclose()


@pytest_asyncio.fixture
async def executor(platform, config, metrics):
    """Executor wired to the fake upstream."""
    executor = create_executor(config, transport=platform.transport(), metrics=metrics)
    yield executor
    await executor.close()
