"""Generation orchestrator.

Turns a ``ProjectConfiguration`` into an ordered sequence of backend calls
and log entries:

1. admit the run, unless another one is already running (silently),
2. validate the project name (no state change on failure),
3. initialise the template,
4. apply each enabled feature in the order git, container, ci_workflow,
5. report the destination,

and always return to idle afterwards. Every failure is converted into a log
entry plus a ``False`` result; ``submit`` never raises.
"""

from __future__ import annotations

from collections.abc import Callable
from typing import Optional

from forge.auth import AuthSession
from forge.backends.base import ProjectBackend
from forge.errors import AdmissionRejected, ProjectValidationError
from forge.log_stream import LogStream
from forge.models import (
    FeatureFlag,
    GenerationRequest,
    ProjectConfiguration,
    RunStatus,
)
from forge.store import ConfigurationStore

StatusCallback = Callable[[RunStatus], None]

FEATURE_MESSAGES: dict[FeatureFlag, str] = {
    FeatureFlag.GIT: "Git repository initialized.",
    FeatureFlag.CONTAINER: "Docker configuration added.",
    FeatureFlag.CI_WORKFLOW: "GitHub Actions workflow generated.",
}


def validate_configuration(config: ProjectConfiguration) -> None:
    """Check the preconditions for a generation run.

    Only the project name is enforced; the destination path is the
    backend's concern.

    Raises:
        ProjectValidationError: If the project name has disallowed characters.
    """
    if not config.has_valid_name:
        raise ProjectValidationError(
            "project_name", "Project name contains invalid characters."
        )


class GenerationOrchestrator:
    """Single-flight executor for project generation.

    At most one run is in flight at a time. The guard is the ``status``
    flag, checked before the first ``await`` of a run, so no lock is needed
    on a single event loop.

    Attributes:
        store: Source of the configuration when ``submit`` gets none.
        backend: Collaborator performing the generation steps.
        log: Stream receiving every progress and outcome entry.
        session: Optional auth session whose credential is passed along.
        runs_started: Number of runs admitted so far.
    """

    def __init__(
        self,
        store: ConfigurationStore,
        backend: ProjectBackend,
        log: LogStream,
        session: Optional[AuthSession] = None,
    ) -> None:
        self.store = store
        self.backend = backend
        self.log = log
        self.session = session
        self.runs_started = 0
        self._status = RunStatus.IDLE
        self._subscribers: list[StatusCallback] = []

    # ------------------------------------------------------------------
    # Status
    # ------------------------------------------------------------------

    @property
    def status(self) -> RunStatus:
        return self._status

    @property
    def is_running(self) -> bool:
        return self._status is RunStatus.RUNNING

    def subscribe(self, callback: StatusCallback) -> Callable[[], None]:
        """Register *callback* for idle/running transitions."""
        self._subscribers.append(callback)

        def _unsubscribe() -> None:
            if callback in self._subscribers:
                self._subscribers.remove(callback)

        return _unsubscribe

    def _set_status(self, status: RunStatus) -> None:
        if status is self._status:
            return
        self._status = status
        for callback in list(self._subscribers):
            callback(status)

    # ------------------------------------------------------------------
    # Submission
    # ------------------------------------------------------------------

    async def submit(self, config: Optional[ProjectConfiguration] = None) -> bool:
        """Run a generation for *config* (the store's current one by default).

        Returns:
            ``True`` if every step completed, ``False`` if the request was
            rejected as busy, failed validation, or a backend step raised.
        """
        try:
            self._admit()
        except AdmissionRejected:
            return False

        config = config or self.store.config
        try:
            validate_configuration(config)
        except ProjectValidationError as exc:
            self.log.error(f"Error: {exc}")
            return False

        credential = self.session.credential if self.session else None
        request = GenerationRequest.from_configuration(config, credential=credential)

        self._set_status(RunStatus.RUNNING)
        self.runs_started += 1
        try:
            await self._execute(config, request)
        except Exception as exc:
            self.log.error(f"Critical Error: {exc}")
            return False
        finally:
            self._set_status(RunStatus.IDLE)
        return True

    def _admit(self) -> None:
        if self.is_running:
            raise AdmissionRejected("A generation is already running")

    async def _execute(
        self, config: ProjectConfiguration, request: GenerationRequest
    ) -> None:
        mode = request.mode_label
        self.log.info(f"Starting {mode} for {request.project_name}...")

        await self.backend.initialize_template(request.template_id, request)
        self.log.info(f"Initialized {config.template.name} ({request.template_id.value}) template.")

        # No rollback: a failure here leaves earlier steps in place.
        for flag in config.features.enabled():
            await self.backend.apply_feature(flag, request)
            self.log.success(FEATURE_MESSAGES[flag])

        self.log.success(
            f"{mode} of {request.project_name} completed successfully "
            f"at {request.destination_path}"
        )
