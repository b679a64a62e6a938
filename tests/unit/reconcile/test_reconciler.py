"""Unit tests for RunnerStateReconciler."""

from datetime import UTC, datetime
from unittest.mock import MagicMock

import pytest

from runner_coordinator.client import DesiredState, RunnerRecord
from runner_coordinator.errors import AuthError
from runner_coordinator.identity import RunnerIdentity
from runner_coordinator.reconcile import (
    Divergence,
    RunnerStateReconciler,
    diff_record,
)
from runner_coordinator.types import ReconcileOutcome

from tests.mocks import StaticTokenStore


@pytest.fixture
def identity():
    return RunnerIdentity(
        stable_id="r-001",
        hostname="runner-001",
        pod_name="runner-001-5d8f",
        created_at=datetime(2024, 1, 1, tzinfo=UTC),
    )


@pytest.fixture
def desired():
    return DesiredState(hostname="runner-001", enabled=True)


@pytest.fixture
def metrics():
    return MagicMock()


@pytest.fixture
def reconciler(server_client, token_store, event_logger, metrics):
    return RunnerStateReconciler(server_client, token_store, logger=event_logger, metrics=metrics)


class TestDiffRecord:
    """Tests for diff_record."""

    def test_no_divergence(self, desired):
        record = RunnerRecord(stable_id="r-001", enabled=True, hostname="runner-001")
        assert diff_record(record, desired) == []

    def test_fresh_registration_diverges_on_both(self, desired):
        record = RunnerRecord(stable_id="r-001")
        assert diff_record(record, desired) == [
            Divergence(field="enabled", observed=False, desired=True),
            Divergence(field="hostname", observed="", desired="runner-001"),
        ]

    def test_hostname_only(self, desired):
        record = RunnerRecord(stable_id="r-001", enabled=True, hostname="old-pod")
        divergences = diff_record(record, desired)
        assert [d.field for d in divergences] == ["hostname"]

    def test_desired_disabled(self):
        record = RunnerRecord(stable_id="r-001", enabled=True, hostname="h")
        divergences = diff_record(record, DesiredState(hostname="h", enabled=False))
        assert divergences == [Divergence(field="enabled", observed=True, desired=False)]


class TestReconcile:
    """Tests for a reconcile pass against the fake server."""

    @pytest.mark.asyncio
    async def test_corrects_fresh_record(self, reconciler, identity, desired, fake_server):
        """One patch fixes both fields; the next pass issues none."""
        fake_server.seed("r-001")

        first = await reconciler.reconcile(identity, desired)

        assert first.outcome == ReconcileOutcome.CORRECTED
        assert first.patched is True
        assert first.converged is True
        assert first.record.enabled is True
        assert first.record.hostname == "runner-001"
        assert fake_server.calls_to("patch")[0].body == {"enabled": True, "hostname": "runner-001"}

        second = await reconciler.reconcile(identity, desired)

        assert second.outcome == ReconcileOutcome.CONVERGED
        assert second.patched is False
        assert len(fake_server.calls_to("patch")) == 1

    @pytest.mark.asyncio
    async def test_converged_issues_no_patch(self, reconciler, identity, desired, fake_server):
        fake_server.seed("r-001", enabled=True, hostname="runner-001")

        result = await reconciler.reconcile(identity, desired)

        assert result.outcome == ReconcileOutcome.CONVERGED
        assert result.divergences == []
        assert fake_server.calls_to("patch") == []

    @pytest.mark.asyncio
    async def test_patches_only_diverging_field(self, reconciler, identity, desired, fake_server):
        fake_server.seed("r-001", enabled=False, hostname="runner-001")

        await reconciler.reconcile(identity, desired)

        assert fake_server.calls_to("patch")[0].body == {"enabled": True}

    @pytest.mark.asyncio
    async def test_external_drift_corrected(self, reconciler, identity, desired, fake_server):
        """A record disabled out of band is re-enabled on the next pass."""
        fake_server.seed("r-001", enabled=True, hostname="runner-001")
        await reconciler.reconcile(identity, desired)

        fake_server.records["r-001"]["enabled"] = False
        result = await reconciler.reconcile(identity, desired)

        assert result.outcome == ReconcileOutcome.CORRECTED
        assert fake_server.records["r-001"]["enabled"] is True

    @pytest.mark.asyncio
    async def test_missing_record(self, reconciler, identity, desired):
        result = await reconciler.reconcile(identity, desired)

        assert result.outcome == ReconcileOutcome.MISSING
        assert result.converged is False

    @pytest.mark.asyncio
    async def test_fetch_failure_absorbed(self, reconciler, identity, desired, fake_server):
        fake_server.seed("r-001")
        fake_server.fail("fetch", "timeout")

        result = await reconciler.reconcile(identity, desired)

        assert result.outcome == ReconcileOutcome.FAILED
        assert result.error is not None
        assert fake_server.calls_to("patch") == []

    @pytest.mark.asyncio
    async def test_patch_failure_keeps_divergence(self, reconciler, identity, desired, fake_server):
        """A failed patch is reported and retried on the next pass."""
        fake_server.seed("r-001")
        fake_server.fail("patch", 503)

        failed = await reconciler.reconcile(identity, desired)

        assert failed.outcome == ReconcileOutcome.FAILED
        assert [d.field for d in failed.divergences] == ["enabled", "hostname"]
        assert fake_server.records["r-001"]["enabled"] is False

        retried = await reconciler.reconcile(identity, desired)

        assert retried.outcome == ReconcileOutcome.CORRECTED
        assert len(fake_server.calls_to("patch")) == 2

    @pytest.mark.asyncio
    async def test_token_unavailable_absorbed(self, server_client, identity, desired, fake_server):
        fake_server.seed("r-001")
        reconciler = RunnerStateReconciler(server_client, StaticTokenStore(unavailable=1))

        result = await reconciler.reconcile(identity, desired)

        assert result.outcome == ReconcileOutcome.FAILED
        assert fake_server.calls == []

    @pytest.mark.asyncio
    async def test_auth_rejected_raises(self, server_client, identity, desired, fake_server):
        fake_server.seed("r-001")
        reconciler = RunnerStateReconciler(server_client, StaticTokenStore("revoked"))

        with pytest.raises(AuthError):
            await reconciler.reconcile(identity, desired)


class TestReconcileObservability:
    """Tests for logs and metrics emitted by a pass."""

    @pytest.mark.asyncio
    async def test_divergence_events(self, reconciler, identity, desired, fake_server, logged_events):
        fake_server.seed("r-001")

        await reconciler.reconcile(identity, desired)

        events = logged_events()
        divergences = [e for e in events if e["event"] == "reconcile_divergence"]
        assert [(e["field"], e["observed"], e["desired"]) for e in divergences] == [
            ("enabled", False, True),
            ("hostname", "", "runner-001"),
        ]
        corrected = [e for e in events if e["event"] == "reconcile_corrected"]
        assert corrected[0]["fields"] == ["enabled", "hostname"]

    @pytest.mark.asyncio
    async def test_metrics(self, reconciler, identity, desired, fake_server, metrics):
        fake_server.seed("r-001")

        await reconciler.reconcile(identity, desired)
        await reconciler.reconcile(identity, desired)

        metrics.record_patch.assert_called_once_with("r-001")
        assert [c.args[1] for c in metrics.record_reconcile.call_args_list] == [
            "corrected",
            "converged",
        ]
        metrics.record_reconcile.assert_any_call("r-001", "corrected", ["enabled", "hostname"])
