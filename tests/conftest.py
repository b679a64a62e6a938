"""
Pytest configuration and shared fixtures for runner-coordinator tests.
"""

import io
import json
import logging
import sys
from collections.abc import AsyncGenerator, Callable, Generator
from pathlib import Path
from typing import Any

import pytest
import pytest_asyncio

# Add src to path for imports
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from runner_coordinator.client import ServerClient  # noqa: E402
from runner_coordinator.logging import CoordinatorLogger, LogConfig  # noqa: E402
from runner_coordinator.telemetry import reset_metrics  # noqa: E402
from runner_coordinator.types import LogFormat, LogLevel, RetryConfig  # noqa: E402

from tests.mocks import (  # noqa: E402
    BASE_URL,
    FakeRunnerServer,
    RecordingSleep,
    StaticTokenStore,
)


# =============================================================================
# Path Fixtures
# =============================================================================


@pytest.fixture(scope="session")
def project_root() -> Path:
    """Return the project root directory."""
    return Path(__file__).parent.parent


@pytest.fixture
def identity_path(tmp_path: Path) -> Path:
    """Identity file location on a per-test 'volume'."""
    return tmp_path / "volume" / "identity.yaml"


# =============================================================================
# Server Fixtures
# =============================================================================


@pytest.fixture
def fake_server() -> FakeRunnerServer:
    """Fresh in-memory runner server."""
    return FakeRunnerServer()


@pytest_asyncio.fixture
async def server_client(fake_server: FakeRunnerServer) -> AsyncGenerator[ServerClient, None]:
    """ServerClient wired to the fake server."""
    async with ServerClient(BASE_URL, transport=fake_server.transport()) as client:
        yield client


@pytest.fixture
def token_store() -> StaticTokenStore:
    """Token store holding the token the fake server accepts."""
    return StaticTokenStore("good-token")


@pytest.fixture
def recording_sleep() -> RecordingSleep:
    """Backoff sleep that returns immediately and records delays."""
    return RecordingSleep()


@pytest.fixture
def fast_retry() -> RetryConfig:
    """Default backoff curve; delays are recorded, never slept."""
    return RetryConfig(initial_delay_seconds=1.0, max_delay_seconds=60.0, multiplier=2.0)


# =============================================================================
# Logging / Metrics Fixtures
# =============================================================================


@pytest.fixture
def log_output() -> io.StringIO:
    """Buffer capturing event logger output."""
    return io.StringIO()


@pytest.fixture
def event_logger(log_output: io.StringIO) -> CoordinatorLogger:
    """JSON event logger at DEBUG writing into log_output."""
    return CoordinatorLogger(
        LogConfig(level=LogLevel.DEBUG, format=LogFormat.JSON, output=log_output)
    )


@pytest.fixture
def logged_events(log_output: io.StringIO) -> Callable[[], list[dict[str, Any]]]:
    """Parse the JSON lines written so far."""

    def _read() -> list[dict[str, Any]]:
        return [json.loads(line) for line in log_output.getvalue().splitlines() if line]

    return _read


@pytest.fixture(autouse=True)
def _reset_metrics() -> Generator[None, None, None]:
    """Isolate the process-wide metrics singleton."""
    reset_metrics()
    yield
    reset_metrics()


@pytest.fixture(autouse=True)
def _restore_package_logger() -> Generator[None, None, None]:
    """Undo configure_logging() calls made by a test."""
    root = logging.getLogger("runner_coordinator")
    handlers, level, propagate = list(root.handlers), root.level, root.propagate
    yield
    root.handlers[:] = handlers
    root.setLevel(level)
    root.propagate = propagate


# =============================================================================
# Pytest Configuration
# =============================================================================


def pytest_configure(config: pytest.Config) -> None:
    """Configure custom markers."""
    config.addinivalue_line("markers", "unit: Unit tests")
    config.addinivalue_line("markers", "property: Property-based tests")
