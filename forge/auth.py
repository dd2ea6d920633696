"""Authentication session and identity providers.

``AuthSession`` owns the user/credential pair and guarantees that the two
are only ever set or cleared together. The providers are the external
collaborators that actually talk to an identity service:

* ``SimulatedAuthProvider`` returns a fixed demo identity after a delay.
* ``GitHubDeviceFlowProvider`` runs the GitHub OAuth device flow over httpx.
"""

from __future__ import annotations

import asyncio
import time
from collections.abc import Awaitable, Callable
from typing import Optional, Protocol

import httpx

from forge.errors import AuthenticationError, ForgeError
from forge.log_stream import LogStream
from forge.models import AuthResult, UserIdentity

SessionCallback = Callable[["AuthSession"], None]


class AuthProvider(Protocol):
    """External identity service."""

    async def login(self) -> AuthResult: ...


# ---------------------------------------------------------------------------
# Session
# ---------------------------------------------------------------------------


class AuthSession:
    """Identity and credential state resulting from an ``AuthProvider``.

    Attributes:
        provider: The provider invoked by ``begin_login``.
        log: Stream that receives login progress and outcome entries.
    """

    def __init__(self, provider: AuthProvider, log: LogStream) -> None:
        self.provider = provider
        self.log = log
        self._user: Optional[UserIdentity] = None
        self._credential: Optional[str] = None
        self._subscribers: list[SessionCallback] = []

    @property
    def user(self) -> Optional[UserIdentity]:
        return self._user

    @property
    def credential(self) -> Optional[str]:
        return self._credential

    @property
    def is_authenticated(self) -> bool:
        return self._user is not None

    # -- Mutations ---------------------------------------------------------

    async def begin_login(self) -> bool:
        """Invoke the provider and adopt its identity on success.

        Never raises: provider failures, and failures to persist the new
        identity, leave the session unchanged and are reported as an error
        entry. Concurrent calls each re-issue the provider call; the last
        one to succeed wins.
        """
        self.log.info("Initiating GitHub OAuth flow...")
        try:
            result = await self.provider.login()
        except Exception as exc:
            self.log.error(f"Authentication Error: {exc}")
            return False

        previous = (self._user, self._credential)
        try:
            self._set(result.identity(), result.credential)
        except ForgeError as exc:
            self._user, self._credential = previous
            self.log.error(f"Authentication Error: {exc}")
            return False
        self.log.success(f"GitHub Authentication Successful. Signed in as {result.handle}.")
        return True

    def logout(self) -> None:
        """Clear identity and credential. Calling it while signed out is a no-op."""
        if self._user is None and self._credential is None:
            return
        self._set(None, None)

    def restore(self, user: Optional[UserIdentity], credential: Optional[str]) -> None:
        """Adopt previously persisted state; a half-present pair is discarded."""
        if user is None or not credential:
            user, credential = None, None
        self._user = user
        self._credential = credential

    def _set(self, user: Optional[UserIdentity], credential: Optional[str]) -> None:
        self._user = user
        self._credential = credential
        for callback in list(self._subscribers):
            callback(self)

    # -- Observation -------------------------------------------------------

    def subscribe(self, callback: SessionCallback) -> Callable[[], None]:
        self._subscribers.append(callback)

        def _unsubscribe() -> None:
            if callback in self._subscribers:
                self._subscribers.remove(callback)

        return _unsubscribe


# ---------------------------------------------------------------------------
# Providers
# ---------------------------------------------------------------------------


class SimulatedAuthProvider:
    """Demo provider that signs in a fixed identity after ``delay`` seconds."""

    def __init__(
        self,
        delay: float = 1.5,
        result: Optional[AuthResult] = None,
    ) -> None:
        self.delay = delay
        self.result = result or AuthResult(
            handle="BEMNET_ADMIN",
            avatar_ref="https://github.com/identicons/bemnet.png",
            profile_ref="https://github.com/bemnet",
            credential="ghp_mock_token_12345",
        )

    async def login(self) -> AuthResult:
        await asyncio.sleep(self.delay)
        return self.result


class GitHubDeviceFlowProvider:
    """GitHub OAuth device-flow login.

    The flow has three legs: request a device code, poll for the access token
    while the user approves the code in a browser, then fetch the account
    profile with the new token. ``on_user_code`` is invoked with the
    verification URL and the code to display.
    """

    DEVICE_CODE_URL = "https://github.com/login/device/code"
    ACCESS_TOKEN_URL = "https://github.com/login/oauth/access_token"
    USER_URL = "https://api.github.com/user"
    GRANT_TYPE = "urn:ietf:params:oauth:grant-type:device_code"

    def __init__(
        self,
        client_id: str,
        scope: str = "repo read:user",
        on_user_code: Optional[Callable[[str, str], Awaitable[None] | None]] = None,
        timeout: float = 30.0,
    ) -> None:
        if not client_id:
            raise AuthenticationError("A GitHub OAuth client id is required")
        self.client_id = client_id
        self.scope = scope
        self.on_user_code = on_user_code
        self.timeout = timeout

    def _client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(
            timeout=httpx.Timeout(self.timeout, connect=10.0),
            headers={"Accept": "application/json"},
        )

    async def login(self) -> AuthResult:
        try:
            async with self._client() as client:
                device = await self._request_device_code(client)
                if self.on_user_code is not None:
                    maybe = self.on_user_code(device["verification_uri"], device["user_code"])
                    if asyncio.iscoroutine(maybe):
                        await maybe
                token = await self._poll_for_token(client, device)
                return await self._fetch_identity(client, token)
        except httpx.ConnectError as exc:
            raise AuthenticationError(f"Cannot connect to GitHub: {exc}") from exc
        except httpx.TimeoutException as exc:
            raise AuthenticationError("Request to GitHub timed out.") from exc
        except httpx.HTTPStatusError as exc:
            raise AuthenticationError(
                f"GitHub returned HTTP {exc.response.status_code}"
            ) from exc

    async def _request_device_code(self, client: httpx.AsyncClient) -> dict:
        response = await client.post(
            self.DEVICE_CODE_URL,
            data={"client_id": self.client_id, "scope": self.scope},
        )
        response.raise_for_status()
        data = response.json()
        if "device_code" not in data:
            raise AuthenticationError(data.get("error_description", "No device code issued"))
        return data

    async def _poll_for_token(self, client: httpx.AsyncClient, device: dict) -> str:
        interval = float(device.get("interval", 5))
        deadline = time.monotonic() + float(device.get("expires_in", 900))

        while time.monotonic() < deadline:
            response = await client.post(
                self.ACCESS_TOKEN_URL,
                data={
                    "client_id": self.client_id,
                    "device_code": device["device_code"],
                    "grant_type": self.GRANT_TYPE,
                },
            )
            response.raise_for_status()
            data = response.json()

            if data.get("access_token"):
                return data["access_token"]

            error = data.get("error")
            if error == "authorization_pending":
                pass
            elif error == "slow_down":
                interval = float(data.get("interval", interval + 5))
            else:
                raise AuthenticationError(data.get("error_description", error or "unknown error"))

            await asyncio.sleep(interval)

        raise AuthenticationError("Device code expired before authorization completed")

    async def _fetch_identity(self, client: httpx.AsyncClient, token: str) -> AuthResult:
        response = await client.get(
            self.USER_URL,
            headers={"Authorization": f"Bearer {token}"},
        )
        response.raise_for_status()
        data = response.json()
        if not data.get("login"):
            raise AuthenticationError("GitHub did not return an account login")
        return AuthResult(
            handle=data["login"],
            avatar_ref=data.get("avatar_url", ""),
            profile_ref=data.get("html_url", ""),
            credential=token,
        )
