"""Shared pytest fixtures for the Forge test suite.

Provides reusable fixtures for:
- Temporary state files
- A recording backend with optional failure injection and gating
- Stub auth providers
- Fully wired stores, sessions and orchestrators
"""

from __future__ import annotations

import asyncio
from pathlib import Path
from typing import Optional
from unittest.mock import AsyncMock, MagicMock

import pytest

from forge.auth import AuthSession
from forge.config import ForgeSettings, SimulationConfig
from forge.errors import AuthenticationError, BackendError
from forge.log_stream import LogStream
from forge.models import AuthResult, FeatureFlag, GenerationRequest, TemplateId
from forge.orchestrator import GenerationOrchestrator
from forge.storage import JsonStateStorage
from forge.store import ConfigurationStore


# ---------------------------------------------------------------------------
# Collaborator doubles
# ---------------------------------------------------------------------------

class RecordingBackend:
    """Backend double that records every call.

    ``fail_on`` names a step (``"template"`` or a feature flag value) that
    raises ``BackendError``. When ``gate`` is set, template initialisation
    waits for it, which keeps a run in the running state for as long as the
    test needs.
    """

    def __init__(self, fail_on: Optional[str] = None, gate: Optional[asyncio.Event] = None) -> None:
        self.fail_on = fail_on
        self.gate = gate
        self.calls: list[tuple[str, str]] = []
        self.requests: list[GenerationRequest] = []

    async def initialize_template(self, template_id: TemplateId, request: GenerationRequest) -> None:
        self.calls.append(("template", template_id.value))
        self.requests.append(request)
        if self.gate is not None:
            await self.gate.wait()
        if self.fail_on == "template":
            raise BackendError("template", "template service unavailable")

    async def apply_feature(self, flag: FeatureFlag, request: GenerationRequest) -> None:
        self.calls.append(("feature", flag.value))
        self.requests.append(request)
        await asyncio.sleep(0)
        if self.fail_on == flag.value:
            raise BackendError(flag.value, f"{flag.value} step exploded")


class StubAuthProvider:
    """Auth provider double returning a fixed result or raising."""

    def __init__(self, result: Optional[AuthResult] = None, error: Optional[Exception] = None) -> None:
        self.result = result or AuthResult(
            handle="octocat",
            avatar_ref="https://avatars.example/octocat.png",
            profile_ref="https://github.com/octocat",
            credential="gho_test_token",
        )
        self.error = error
        self.calls = 0

    async def login(self) -> AuthResult:
        self.calls += 1
        await asyncio.sleep(0)
        if self.error is not None:
            raise self.error
        return self.result


# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------

@pytest.fixture
def state_path(tmp_path: Path) -> Path:
    """Location of the persisted state file (not created)."""
    return tmp_path / "state" / "forge-storage.json"


@pytest.fixture
def storage(state_path: Path) -> JsonStateStorage:
    return JsonStateStorage(state_path)


@pytest.fixture
def log() -> LogStream:
    return LogStream()


@pytest.fixture
def auth_provider() -> StubAuthProvider:
    return StubAuthProvider()


@pytest.fixture
def failing_auth_provider() -> StubAuthProvider:
    return StubAuthProvider(error=AuthenticationError("access_denied"))


@pytest.fixture
def session(auth_provider: StubAuthProvider, log: LogStream) -> AuthSession:
    return AuthSession(auth_provider, log)


@pytest.fixture
def store(storage: JsonStateStorage, session: AuthSession) -> ConfigurationStore:
    return ConfigurationStore(storage=storage, session=session)


@pytest.fixture
def backend() -> RecordingBackend:
    return RecordingBackend()


@pytest.fixture
def orchestrator(
    store: ConfigurationStore,
    backend: RecordingBackend,
    log: LogStream,
    session: AuthSession,
) -> GenerationOrchestrator:
    return GenerationOrchestrator(store=store, backend=backend, log=log, session=session)


@pytest.fixture
def fast_settings(state_path: Path) -> ForgeSettings:
    """Settings with zero simulation delays and a temporary state file."""
    return ForgeSettings(
        state_path=state_path,
        simulation=SimulationConfig(startup_delay=0, template_delay=0, login_delay=0),
    )


@pytest.fixture
def backend_factory():
    """The ``RecordingBackend`` class, for tests that need custom instances."""
    return RecordingBackend


@pytest.fixture
def auth_provider_factory():
    """The ``StubAuthProvider`` class, for tests that need custom instances."""
    return StubAuthProvider


# ---------------------------------------------------------------------------
# Mock Subprocess
# ---------------------------------------------------------------------------

@pytest.fixture
def mock_subprocess():
    """Factory for mock asyncio subprocesses.

    Usage:
        def test_command(mock_subprocess):
            proc = mock_subprocess(stdout="output", returncode=0)
            with patch("asyncio.create_subprocess_exec", return_value=proc):
                ...
    """
    def factory(
        stdout: str = "",
        stderr: str = "",
        returncode: int = 0,
    ) -> AsyncMock:
        mock_proc = AsyncMock()
        mock_proc.communicate = AsyncMock(
            return_value=(stdout.encode("utf-8"), stderr.encode("utf-8"))
        )
        mock_proc.returncode = returncode
        mock_proc.pid = 99999
        mock_proc.kill = MagicMock()
        mock_proc.wait = AsyncMock(return_value=returncode)
        return mock_proc

    return factory
