"""Application wiring.

``ForgeApp`` owns one instance of every core component and connects them;
nothing in Forge is a module-level singleton.
"""

from __future__ import annotations

from collections.abc import Awaitable, Callable
from typing import Optional

from forge.auth import AuthProvider, AuthSession, GitHubDeviceFlowProvider, SimulatedAuthProvider
from forge.backends import ProjectBackend, create_backend
from forge.commands import CommandRouter
from forge.config import ForgeSettings
from forge.log_stream import LogStream
from forge.orchestrator import GenerationOrchestrator
from forge.storage import JsonStateStorage
from forge.store import ConfigurationStore

READY_MESSAGE = "System Ready. Waiting for forge command..."


class ForgeApp:
    """The assembled Forge core.

    Attributes:
        settings: Settings the components were built from.
        log: Shared log stream.
        session: Authentication session.
        store: Configuration store, restored from ``settings.state_path``.
        orchestrator: Generation orchestrator.
        router: Key-chord router driving the orchestrator and store.
    """

    def __init__(
        self,
        settings: ForgeSettings,
        *,
        backend: Optional[ProjectBackend] = None,
        auth_provider: Optional[AuthProvider] = None,
        confirm: Callable[[str], bool] = lambda _prompt: False,
        close_overlays: Callable[[], None] = lambda: None,
        show_help: Callable[[], None] = lambda: None,
        on_user_code: Optional[Callable[[str, str], Awaitable[None] | None]] = None,
    ) -> None:
        self.settings = settings
        self.log = LogStream(capacity=settings.log_capacity)
        self.session = AuthSession(
            auth_provider or build_auth_provider(settings, on_user_code), self.log
        )
        self.storage = JsonStateStorage(settings.resolved_state_path)
        self.store = ConfigurationStore.load(self.storage, self.session)
        self.orchestrator = GenerationOrchestrator(
            store=self.store,
            backend=backend or build_backend(settings),
            log=self.log,
            session=self.session,
        )
        self.router = CommandRouter(
            self.orchestrator,
            self.store,
            confirm=confirm,
            close_overlays=close_overlays,
            show_help=show_help,
        )
        self.log.info(READY_MESSAGE)


def build_backend(settings: ForgeSettings) -> ProjectBackend:
    if settings.backend == "simulated":
        return create_backend(
            "simulated",
            startup_delay=settings.simulation.startup_delay,
            template_delay=settings.simulation.template_delay,
        )
    return create_backend(settings.backend)


def build_auth_provider(
    settings: ForgeSettings,
    on_user_code: Optional[Callable[[str, str], Awaitable[None] | None]] = None,
) -> AuthProvider:
    if settings.auth_provider == "github":
        return GitHubDeviceFlowProvider(
            client_id=settings.github_client_id,
            scope=settings.github_scope,
            on_user_code=on_user_code,
        )
    return SimulatedAuthProvider(delay=settings.simulation.login_delay)
