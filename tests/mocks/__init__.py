"""Test mocks for runner-coordinator.

Provides fakes for testing:
- FakeRunnerServer: In-memory central server behind httpx.MockTransport
- StaticTokenStore: Token store with scripted unavailability
- RecordingSleep: asyncio.sleep stand-in that records backoff delays
"""

from .fake_server import (
    BASE_URL,
    FakeRunnerServer,
    RecordedCall,
    RecordingSleep,
    StaticTokenStore,
)

__all__ = [
    "BASE_URL",
    "FakeRunnerServer",
    "RecordedCall",
    "RecordingSleep",
    "StaticTokenStore",
]
