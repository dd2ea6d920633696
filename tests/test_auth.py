"""Unit tests for the auth session and providers (forge.auth).

Tests cover:
- AuthSession.begin_login success / failure and log entries
- User and credential are set and cleared together
- Idempotent logout and restore
- SimulatedAuthProvider
- GitHubDeviceFlowProvider with a mocked httpx client
"""

from __future__ import annotations

import asyncio
from pathlib import Path
from unittest.mock import AsyncMock, MagicMock, patch

import httpx
import pytest

from forge.auth import AuthSession, GitHubDeviceFlowProvider, SimulatedAuthProvider
from forge.errors import AuthenticationError
from forge.log_stream import LogStream
from forge.models import AuthResult, Severity, UserIdentity
from forge.storage import JsonStateStorage
from forge.store import ConfigurationStore


# ---------------------------------------------------------------------------
# AuthSession
# ---------------------------------------------------------------------------

class TestBeginLogin:
    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_success_sets_user_and_credential(self, session: AuthSession, log: LogStream):
        result = await session.begin_login()

        assert result is True
        assert session.is_authenticated
        assert session.user.handle == "octocat"
        assert session.credential == "gho_test_token"
        assert log.last().severity is Severity.SUCCESS
        assert "octocat" in log.last().message

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_announces_start(self, session: AuthSession, log: LogStream):
        await session.begin_login()
        first = log.entries()[0]
        assert first.severity is Severity.INFO
        assert "OAuth" in first.message

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_failure_leaves_state_unchanged(self, failing_auth_provider, log: LogStream):
        session = AuthSession(failing_auth_provider, log)

        result = await session.begin_login()

        assert result is False
        assert session.user is None
        assert session.credential is None
        assert log.last().severity is Severity.ERROR
        assert "access_denied" in log.last().message

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_failure_keeps_previous_identity(
        self, auth_provider_factory, log: LogStream
    ):
        provider = auth_provider_factory()
        session = AuthSession(provider, log)
        await session.begin_login()

        provider.error = RuntimeError("network down")
        assert await session.begin_login() is False
        assert session.user.handle == "octocat"
        assert session.credential == "gho_test_token"

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_concurrent_logins_each_call_provider(self, session, auth_provider):
        results = await asyncio.gather(session.begin_login(), session.begin_login())
        assert results == [True, True]
        assert auth_provider.calls == 2
        assert session.is_authenticated

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_notifies_subscribers(self, session: AuthSession):
        seen = []
        session.subscribe(lambda s: seen.append((s.user, s.credential)))
        await session.begin_login()
        assert len(seen) == 1
        assert seen[0][1] == "gho_test_token"

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_unwritable_state_is_reported(
        self, session: AuthSession, log: LogStream, tmp_path: Path
    ):
        blocker = tmp_path / "blocker"
        blocker.write_text("not a directory", encoding="utf-8")
        ConfigurationStore(storage=JsonStateStorage(blocker / "state.json"), session=session)

        assert await session.begin_login() is False

        assert session.user is None
        assert session.credential is None
        assert log.last().severity is Severity.ERROR
        assert "cannot write state record" in log.last().message

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_empty_credential_is_rejected(self, log: LogStream):
        class EmptyTokenProvider:
            async def login(self) -> AuthResult:
                return AuthResult(handle="a", credential="")

        session = AuthSession(EmptyTokenProvider(), log)

        assert await session.begin_login() is False
        assert session.user is None
        assert session.credential is None
        assert log.last().severity is Severity.ERROR


class TestLogout:
    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_logout_clears_both(self, session: AuthSession):
        await session.begin_login()
        session.logout()
        assert session.user is None
        assert session.credential is None

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_logout_twice_equals_once(self, session: AuthSession):
        await session.begin_login()
        session.logout()
        session.logout()
        assert session.user is None
        assert session.credential is None

    @pytest.mark.unit
    def test_logout_when_anonymous_is_noop(self, session: AuthSession, log: LogStream):
        seen = []
        session.subscribe(seen.append)
        session.logout()
        assert seen == []
        assert len(log) == 0


class TestRestore:
    @pytest.mark.unit
    def test_restore_pair(self, session: AuthSession):
        session.restore(UserIdentity(handle="a"), "tok")
        assert session.user.handle == "a"
        assert session.credential == "tok"

    @pytest.mark.unit
    @pytest.mark.parametrize(
        "user, credential",
        [(None, "tok"), (UserIdentity(handle="a"), None), (UserIdentity(handle="a"), "")],
    )
    def test_restore_discards_half_pair(self, session: AuthSession, user, credential):
        session.restore(user, credential)
        assert session.user is None
        assert session.credential is None


# ---------------------------------------------------------------------------
# SimulatedAuthProvider
# ---------------------------------------------------------------------------

class TestSimulatedAuthProvider:
    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_returns_demo_identity(self):
        result = await SimulatedAuthProvider(delay=0).login()
        assert result.handle == "BEMNET_ADMIN"
        assert result.credential == "ghp_mock_token_12345"
        assert result.profile_ref == "https://github.com/bemnet"


# ---------------------------------------------------------------------------
# GitHubDeviceFlowProvider
# ---------------------------------------------------------------------------

def _response(payload: dict) -> MagicMock:
    response = MagicMock()
    response.status_code = 200
    response.json.return_value = payload
    response.raise_for_status = MagicMock()
    return response


def _mock_client(post_payloads: list[dict], user_payload: dict | None = None) -> AsyncMock:
    client = AsyncMock()
    client.post = AsyncMock(side_effect=[_response(p) for p in post_payloads])
    client.get = AsyncMock(return_value=_response(user_payload or {}))
    client.__aenter__ = AsyncMock(return_value=client)
    client.__aexit__ = AsyncMock(return_value=False)
    return client


_DEVICE = {
    "device_code": "dev-123",
    "user_code": "ABCD-1234",
    "verification_uri": "https://github.com/login/device",
    "expires_in": 900,
    "interval": 0,
}

_USER = {
    "login": "octocat",
    "avatar_url": "https://avatars.githubusercontent.com/u/583231",
    "html_url": "https://github.com/octocat",
}


class TestGitHubDeviceFlowProvider:
    @pytest.mark.unit
    def test_requires_client_id(self):
        with pytest.raises(AuthenticationError):
            GitHubDeviceFlowProvider(client_id="")

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_successful_flow(self):
        client = _mock_client(
            [
                _DEVICE,
                {"error": "authorization_pending"},
                {"access_token": "gho_real", "token_type": "bearer"},
            ],
            _USER,
        )
        codes = []

        with patch("httpx.AsyncClient", return_value=client):
            provider = GitHubDeviceFlowProvider(
                client_id="Iv1.abc", on_user_code=lambda url, code: codes.append((url, code))
            )
            result = await provider.login()

        assert result.handle == "octocat"
        assert result.credential == "gho_real"
        assert result.profile_ref == "https://github.com/octocat"
        assert codes == [("https://github.com/login/device", "ABCD-1234")]
        assert client.post.call_count == 3
        headers = client.get.call_args[1]["headers"]
        assert headers["Authorization"] == "Bearer gho_real"

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_async_user_code_callback(self):
        client = _mock_client([_DEVICE, {"access_token": "t"}], _USER)
        callback = AsyncMock()

        with patch("httpx.AsyncClient", return_value=client):
            await GitHubDeviceFlowProvider(client_id="id", on_user_code=callback).login()

        callback.assert_awaited_once_with("https://github.com/login/device", "ABCD-1234")

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_access_denied(self):
        client = _mock_client(
            [_DEVICE, {"error": "access_denied", "error_description": "The user denied"}]
        )
        with patch("httpx.AsyncClient", return_value=client):
            with pytest.raises(AuthenticationError, match="denied"):
                await GitHubDeviceFlowProvider(client_id="id").login()

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_connect_error(self):
        client = _mock_client([])
        client.post = AsyncMock(side_effect=httpx.ConnectError("refused"))
        with patch("httpx.AsyncClient", return_value=client):
            with pytest.raises(AuthenticationError, match="Cannot connect"):
                await GitHubDeviceFlowProvider(client_id="id").login()

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_session_reports_provider_error(self, log: LogStream):
        client = _mock_client([{"error": "unauthorized_client"}])
        with patch("httpx.AsyncClient", return_value=client):
            session = AuthSession(GitHubDeviceFlowProvider(client_id="id"), log)
            assert await session.begin_login() is False

        assert session.user is None
        assert log.last().severity is Severity.ERROR

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_slow_down_raises_interval(self):
        client = _mock_client(
            [
                {**_DEVICE, "interval": 5},
                {"error": "slow_down", "interval": 10},
                {"error": "slow_down"},
                {"access_token": "gho_slow"},
            ],
            _USER,
        )
        sleep = AsyncMock()

        with patch("httpx.AsyncClient", return_value=client), patch(
            "forge.auth.asyncio.sleep", sleep
        ):
            result = await GitHubDeviceFlowProvider(client_id="id").login()

        assert result.credential == "gho_slow"
        assert [c.args[0] for c in sleep.await_args_list] == [10.0, 15.0]

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_device_code_expiry(self):
        client = _mock_client(
            [{**_DEVICE, "expires_in": 10}, {"error": "authorization_pending"}]
        )
        clock = MagicMock()
        clock.monotonic.side_effect = [0.0, 0.0, 11.0]

        with patch("httpx.AsyncClient", return_value=client), patch(
            "forge.auth.asyncio.sleep", AsyncMock()
        ), patch("forge.auth.time", clock):
            with pytest.raises(AuthenticationError, match="expired"):
                await GitHubDeviceFlowProvider(client_id="id").login()

        assert client.post.call_count == 2

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_missing_login_is_an_error(self):
        client = _mock_client([_DEVICE, {"access_token": "t"}], {"login": ""})
        with patch("httpx.AsyncClient", return_value=client):
            with pytest.raises(AuthenticationError, match="account login"):
                await GitHubDeviceFlowProvider(client_id="id").login()
