"""Property-based tests for registration backoff and reconcile idempotence."""

import asyncio
from datetime import UTC, datetime

import pytest
from hypothesis import given, settings
from hypothesis import strategies as st

from runner_coordinator.client import DesiredState, RegistrationClient, ServerClient
from runner_coordinator.identity import RunnerIdentity
from runner_coordinator.reconcile import RunnerStateReconciler
from runner_coordinator.types import RetryConfig, calculate_retry_delay

from tests.mocks import BASE_URL, FakeRunnerServer, RecordingSleep, StaticTokenStore

# =============================================================================
# Strategies
# =============================================================================

retry_configs = st.builds(
    RetryConfig,
    initial_delay_seconds=st.floats(min_value=0.01, max_value=10.0),
    max_delay_seconds=st.floats(min_value=10.0, max_value=300.0),
    multiplier=st.floats(min_value=1.1, max_value=4.0),
)

transient_failures = st.lists(
    st.sampled_from(["timeout", "refused", 429, 500, 502, 503]),
    max_size=12,
)

hostnames = st.from_regex(r"^[a-z][a-z0-9-]{0,20}$", fullmatch=True)

IDENTITY = RunnerIdentity(
    stable_id="r-001",
    hostname="runner-001",
    pod_name="runner-001-5d8f",
    created_at=datetime(2024, 1, 1, tzinfo=UTC),
)


@pytest.mark.property
class TestBackoffCurve:
    """Property tests for calculate_retry_delay."""

    @given(retry_configs, st.integers(min_value=1, max_value=60))
    @settings(max_examples=100)
    def test_never_exceeds_cap(self, config, attempt):
        assert 0 < calculate_retry_delay(attempt, config) <= config.max_delay_seconds

    @given(retry_configs, st.integers(min_value=1, max_value=60))
    @settings(max_examples=100)
    def test_non_decreasing(self, config, attempt):
        assert calculate_retry_delay(attempt, config) <= calculate_retry_delay(attempt + 1, config)

    @given(retry_configs)
    def test_first_delay_is_initial(self, config):
        assert calculate_retry_delay(1, config) == min(
            config.initial_delay_seconds, config.max_delay_seconds
        )


@pytest.mark.property
class TestRegistrationRetries:
    """Property tests for the registration handshake under transient failures."""

    @given(transient_failures, retry_configs)
    @settings(max_examples=40, deadline=None)
    def test_eventually_registers_once(self, failures, retry):
        """Any run of transient failures ends in one record and capped delays."""

        async def scenario():
            server = FakeRunnerServer()
            server.fail("register", *failures)
            sleep = RecordingSleep()
            async with ServerClient(BASE_URL, transport=server.transport()) as client:
                registration = RegistrationClient(
                    client, StaticTokenStore(), retry=retry, sleep=sleep
                )
                record = await registration.register(IDENTITY, DesiredState(hostname="runner-001"))
            return server, sleep, record

        server, sleep, record = asyncio.run(scenario())

        assert record.stable_id == "r-001"
        assert list(server.records) == ["r-001"]
        assert len(server.calls_to("register")) == len(failures) + 1
        assert sleep.delays == [calculate_retry_delay(n, retry) for n in range(1, len(failures) + 1)]
        assert all(d <= retry.max_delay_seconds for d in sleep.delays)


@pytest.mark.property
class TestReconcileIdempotence:
    """Property tests for reconcile passes."""

    @given(st.booleans(), st.one_of(st.just(""), hostnames), st.booleans(), hostnames)
    @settings(max_examples=50, deadline=None)
    def test_at_most_one_patch_then_none(self, enabled, hostname, want_enabled, want_hostname):
        """The first pass patches at most once; the second never patches."""

        async def scenario():
            server = FakeRunnerServer()
            server.seed("r-001", enabled=enabled, hostname=hostname)
            desired = DesiredState(hostname=want_hostname, enabled=want_enabled)
            async with ServerClient(BASE_URL, transport=server.transport()) as client:
                reconciler = RunnerStateReconciler(client, StaticTokenStore())
                first = await reconciler.reconcile(IDENTITY, desired)
                patches_after_first = len(server.calls_to("patch"))
                second = await reconciler.reconcile(IDENTITY, desired)
            return server, first, second, patches_after_first

        server, first, second, patches_after_first = asyncio.run(scenario())

        expected = int(enabled != want_enabled or hostname != want_hostname)
        assert patches_after_first == expected
        assert len(server.calls_to("patch")) == expected
        assert first.converged and second.converged
        assert server.records["r-001"]["enabled"] is want_enabled
        assert server.records["r-001"]["hostname"] == want_hostname
