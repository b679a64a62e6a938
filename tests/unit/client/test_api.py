"""Unit tests for ServerClient."""

import json

import httpx
import pytest

from runner_coordinator.client import RecordPatch, ServerClient
from runner_coordinator.errors import AuthError, RegistrationError
from runner_coordinator.types import RecordStatus

from tests.mocks import BASE_URL


def _client(handler) -> ServerClient:
    return ServerClient(BASE_URL, transport=httpx.MockTransport(handler))


class TestRegister:
    """Tests for the registration call."""

    @pytest.mark.asyncio
    async def test_new_registration(self, server_client, fake_server):
        result = await server_client.register("r-001", "runner-001", "good-token")

        assert result.already_registered is False
        assert result.record.stable_id == "r-001"
        assert result.record.enabled is False
        assert result.record.hostname == ""
        call = fake_server.calls_to("register")[0]
        assert call.body == {
            "stable_id": "r-001",
            "hostname": "runner-001",
            "registration_token": "good-token",
        }

    @pytest.mark.asyncio
    async def test_conflict_with_record(self, server_client, fake_server):
        """409 is reported as already registered, not as an error."""
        fake_server.seed("r-001", enabled=True, hostname="runner-001")

        result = await server_client.register("r-001", "runner-001", "good-token")

        assert result.already_registered is True
        assert result.record.enabled is True

    @pytest.mark.asyncio
    async def test_conflict_without_record(self, fake_server):
        fake_server.conflict_body = False
        fake_server.seed("r-001")

        async with ServerClient(BASE_URL, transport=fake_server.transport()) as client:
            result = await client.register("r-001", "runner-001", "good-token")

        assert result.already_registered is True
        assert result.record is None

    @pytest.mark.asyncio
    @pytest.mark.parametrize("status", [401, 403])
    async def test_auth_rejected(self, status):
        async with _client(lambda request: httpx.Response(status)) as client:
            with pytest.raises(AuthError) as exc_info:
                await client.register("r-001", "runner-001", "bad-token")

        assert exc_info.value.status_code == status
        assert exc_info.value.retryable is False
        assert exc_info.value.stable_id == "r-001"

    @pytest.mark.asyncio
    @pytest.mark.parametrize("status", [429, 500, 502, 503])
    async def test_retryable_status(self, status):
        async with _client(lambda request: httpx.Response(status, text="busy")) as client:
            with pytest.raises(RegistrationError) as exc_info:
                await client.register("r-001", "runner-001", "good-token")

        assert exc_info.value.code == "REGISTRATION_FAILED"
        assert exc_info.value.retryable is True
        assert f"HTTP {status}" in exc_info.value.detail

    @pytest.mark.asyncio
    @pytest.mark.parametrize("status", [400, 404, 422])
    async def test_rejected_status(self, status):
        async with _client(lambda request: httpx.Response(status)) as client:
            with pytest.raises(RegistrationError) as exc_info:
                await client.register("r-001", "runner-001", "good-token")

        assert exc_info.value.code == "REGISTRATION_REJECTED"
        assert exc_info.value.retryable is False
        assert not isinstance(exc_info.value, AuthError)

    @pytest.mark.asyncio
    async def test_timeout(self, server_client, fake_server):
        fake_server.fail("register", "timeout")

        with pytest.raises(RegistrationError) as exc_info:
            await server_client.register("r-001", "runner-001", "good-token")

        assert exc_info.value.retryable is True
        assert "timed out" in exc_info.value.detail

    @pytest.mark.asyncio
    async def test_connection_refused(self, server_client, fake_server):
        fake_server.fail("register", "refused")

        with pytest.raises(RegistrationError) as exc_info:
            await server_client.register("r-001", "runner-001", "good-token")

        assert exc_info.value.retryable is True
        assert exc_info.value.stable_id == "r-001"

    @pytest.mark.asyncio
    async def test_malformed_body(self):
        async with _client(lambda request: httpx.Response(201, text="<html>")) as client:
            with pytest.raises(RegistrationError) as exc_info:
                await client.register("r-001", "runner-001", "good-token")

        assert exc_info.value.code == "RESPONSE_INVALID"
        assert exc_info.value.retryable is True


class TestFetchRecord:
    """Tests for reading a record."""

    @pytest.mark.asyncio
    async def test_fetch(self, server_client, fake_server):
        fake_server.seed("r-001", enabled=True, hostname="runner-001", status="active")

        record = await server_client.fetch_record("r-001", "good-token")

        assert record.enabled is True
        assert record.hostname == "runner-001"
        assert record.status == RecordStatus.ACTIVE

    @pytest.mark.asyncio
    async def test_missing_record(self, server_client):
        assert await server_client.fetch_record("r-404", "good-token") is None

    @pytest.mark.asyncio
    async def test_sends_bearer_token(self):
        seen = {}

        def handler(request):
            seen["auth"] = request.headers.get("Authorization")
            return httpx.Response(200, json={"stable_id": "r-001"})

        async with _client(handler) as client:
            await client.fetch_record("r-001", "good-token")

        assert seen["auth"] == "Bearer good-token"

    @pytest.mark.asyncio
    async def test_null_hostname(self):
        body = {"stable_id": "r-001", "enabled": False, "hostname": None}
        async with _client(lambda request: httpx.Response(200, json=body)) as client:
            record = await client.fetch_record("r-001", "good-token")

        assert record.hostname == ""

    @pytest.mark.asyncio
    async def test_unknown_fields_ignored(self):
        body = {"stable_id": "r-001", "project_id": 7, "webhook": "x"}
        async with _client(lambda request: httpx.Response(200, json=body)) as client:
            record = await client.fetch_record("r-001", "good-token")

        assert record.stable_id == "r-001"

    @pytest.mark.asyncio
    async def test_auth_rejected(self, server_client, fake_server):
        fake_server.seed("r-001")

        with pytest.raises(AuthError):
            await server_client.fetch_record("r-001", "wrong-token")


class TestPatchRecord:
    """Tests for partial updates."""

    @pytest.mark.asyncio
    async def test_sends_only_set_fields(self, server_client, fake_server):
        fake_server.seed("r-001", hostname="runner-001")

        record = await server_client.patch_record(
            "r-001", "good-token", RecordPatch(enabled=True)
        )

        assert record.enabled is True
        assert record.hostname == "runner-001"
        assert fake_server.calls_to("patch")[0].body == {"enabled": True}

    @pytest.mark.asyncio
    async def test_patch_body_is_json(self):
        seen = {}

        def handler(request):
            seen["method"] = request.method
            seen["body"] = json.loads(request.content)
            return httpx.Response(200, json={"stable_id": "r-001", **seen["body"]})

        async with _client(handler) as client:
            await client.patch_record(
                "r-001", "good-token", RecordPatch(enabled=True, hostname="runner-001")
            )

        assert seen["method"] == "PATCH"
        assert seen["body"] == {"enabled": True, "hostname": "runner-001"}

    @pytest.mark.asyncio
    async def test_server_error(self, server_client, fake_server):
        fake_server.seed("r-001")
        fake_server.fail("patch", 500)

        with pytest.raises(RegistrationError) as exc_info:
            await server_client.patch_record("r-001", "good-token", RecordPatch(enabled=True))

        assert exc_info.value.retryable is True
        assert fake_server.records["r-001"]["enabled"] is False
