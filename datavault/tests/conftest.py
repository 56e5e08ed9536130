"""
Pytest configuration for datavault tests.

Why: Force AnyIO to use the asyncio backend; the controller schedules its
fetches with asyncio tasks and is not meant to run under Trio.
"""
import sys
from pathlib import Path

import pytest

REPO_ROOT = Path(__file__).resolve().parents[2]
TESTS_DIR = REPO_ROOT / "datavault" / "tests"
for p in (str(REPO_ROOT), str(TESTS_DIR)):
    if p not in sys.path:
        sys.path.insert(0, p)

from fake_backend import FakeVault  # noqa: E402

from datavault.config import Settings  # noqa: E402


@pytest.fixture
def anyio_backend():
    return "asyncio"


@pytest.fixture
def settings() -> Settings:
    return Settings(
        environment="test",
        api_url="http://test/api",
        http_timeout_seconds=5,
        backdrop_interval_seconds=3,
    )


@pytest.fixture
def vault() -> FakeVault:
    return FakeVault.seeded()
