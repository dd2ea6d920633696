"""Integration-style tests for the assembled core (forge.app).

Tests cover:
- Wiring from settings (backend / provider selection, log capacity)
- Start-up entry and persisted state restoration
- End-to-end submit through the router with the simulated backend
- End-to-end local generation
"""

from __future__ import annotations

from pathlib import Path
from unittest.mock import patch

import pytest

from forge.app import READY_MESSAGE, ForgeApp, build_auth_provider, build_backend
from forge.auth import GitHubDeviceFlowProvider, SimulatedAuthProvider
from forge.backends import LocalBackend, SimulatedBackend
from forge.commands import SUBMIT
from forge.config import ForgeSettings
from forge.errors import AuthenticationError
from forge.models import RunStatus, Severity, TemplateId


class TestWiring:
    @pytest.mark.unit
    def test_ready_entry(self, fast_settings: ForgeSettings):
        app = ForgeApp(fast_settings)
        assert [e.message for e in app.log.entries()] == [READY_MESSAGE]
        assert app.orchestrator.status is RunStatus.IDLE

    @pytest.mark.unit
    def test_components_share_state(self, fast_settings: ForgeSettings):
        app = ForgeApp(fast_settings)
        assert app.orchestrator.store is app.store
        assert app.orchestrator.log is app.log
        assert app.session.log is app.log
        assert app.store.session is app.session
        assert app.router.orchestrator is app.orchestrator

    @pytest.mark.unit
    def test_log_capacity_from_settings(self, fast_settings: ForgeSettings):
        app = ForgeApp(fast_settings.model_copy(update={"log_capacity": 3}))
        assert app.log.capacity == 3

    @pytest.mark.unit
    def test_build_backend(self, fast_settings: ForgeSettings):
        simulated = build_backend(fast_settings)
        assert isinstance(simulated, SimulatedBackend)
        assert simulated.startup_delay == 0
        local = build_backend(fast_settings.model_copy(update={"backend": "local"}))
        assert isinstance(local, LocalBackend)

    @pytest.mark.unit
    def test_build_auth_provider(self, fast_settings: ForgeSettings):
        assert isinstance(build_auth_provider(fast_settings), SimulatedAuthProvider)
        github = build_auth_provider(
            fast_settings.model_copy(
                update={"auth_provider": "github", "github_client_id": "Iv1.x"}
            )
        )
        assert isinstance(github, GitHubDeviceFlowProvider)

    @pytest.mark.unit
    def test_github_without_client_id(self, fast_settings: ForgeSettings):
        with pytest.raises(AuthenticationError):
            ForgeApp(fast_settings.model_copy(update={"auth_provider": "github"}))


class TestRestart:
    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_state_survives_restart(self, fast_settings: ForgeSettings):
        app = ForgeApp(fast_settings)
        app.store.set_project_name("restart-me")
        app.store.set_template("microservice")
        app.store.set_container(True)
        assert await app.session.begin_login() is True

        restarted = ForgeApp(fast_settings)

        assert restarted.store.config.project_name == "restart-me"
        assert restarted.store.config.template_id is TemplateId.MICROSERVICE
        assert restarted.store.config.features.container is False
        assert restarted.session.user.handle == "BEMNET_ADMIN"
        assert restarted.session.credential == "ghp_mock_token_12345"
        # Logs and run status are volatile.
        assert [e.message for e in restarted.log.entries()] == [READY_MESSAGE]
        assert restarted.orchestrator.status is RunStatus.IDLE


class TestEndToEnd:
    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_router_submit_simulated(self, fast_settings: ForgeSettings):
        app = ForgeApp(fast_settings)
        app.store.set_dry_run(True)

        task = app.router.handle(SUBMIT)
        assert await task is True

        last = app.log.last()
        assert last.severity is Severity.SUCCESS
        assert last.message == (
            "DRY RUN of GENESIS-ALPHA completed successfully at /root/projects/forge"
        )

    @pytest.mark.integration
    @pytest.mark.asyncio
    async def test_local_generation(
        self, fast_settings: ForgeSettings, tmp_path: Path, mock_subprocess
    ):
        app = ForgeApp(fast_settings.model_copy(update={"backend": "local"}))
        app.store.set_destination_path(str(tmp_path / "out"))
        app.store.set_project_name("shop")
        app.store.set_template("fullstack")
        app.store.set_container(True)
        app.store.set_ci(True)

        proc = mock_subprocess(returncode=0)
        with patch("asyncio.create_subprocess_exec", return_value=proc):
            assert await app.orchestrator.submit() is True

        root = tmp_path / "out" / "shop"
        assert (root / "README.md").exists()
        assert (root / "Dockerfile").exists()
        assert (root / ".github" / "workflows" / "ci.yml").exists()
        assert str(tmp_path / "out") in app.log.last().message
