"""Editable project configuration with persistence and change notification.

``ConfigurationStore`` is the single owner of the ``ProjectConfiguration``.
Every setter replaces exactly one field, notifies subscribers, and writes the
persisted subset (identity fields of the configuration plus the auth session)
to storage. Feature flags and the dry-run toggle are deliberately volatile.
"""

from __future__ import annotations

from collections.abc import Callable
from typing import Any, Optional

from forge.auth import AuthSession
from forge.errors import StorageError
from forge.models import (
    FeatureFlag,
    FeatureFlags,
    PersistedState,
    ProjectConfiguration,
    TemplateId,
)
from forge.storage import JsonStateStorage
from forge.utils import print_warning

ConfigCallback = Callable[[ProjectConfiguration], None]


class ConfigurationStore:
    """Holds the current ``ProjectConfiguration``.

    No validation happens here beyond the template fallback; the project
    name is checked by the orchestrator when a generation is submitted.

    Attributes:
        storage: Durable record for the persisted subset, or ``None`` for an
            in-memory store.
        session: Auth session whose fields are persisted alongside.
    """

    def __init__(
        self,
        storage: Optional[JsonStateStorage] = None,
        session: Optional[AuthSession] = None,
        initial: Optional[ProjectConfiguration] = None,
    ) -> None:
        self.storage = storage
        self.session = session
        self._config = initial or ProjectConfiguration()
        self._subscribers: list[ConfigCallback] = []
        if session is not None:
            session.subscribe(lambda _session: self.persist())

    @classmethod
    def load(
        cls,
        storage: JsonStateStorage,
        session: Optional[AuthSession] = None,
    ) -> "ConfigurationStore":
        """Build a store from whatever *storage* holds.

        A missing record yields defaults; an unreadable one is reported and
        also yields defaults. The session, when given, is restored from the
        same record.
        """
        state: Optional[PersistedState] = None
        try:
            state = storage.load()
        except StorageError as exc:
            print_warning(f"Ignoring persisted state: {exc}")

        initial = ProjectConfiguration()
        if state is not None:
            initial = initial.model_copy(
                update={
                    "project_name": state.project_name,
                    "destination_path": state.destination_path,
                    "template_id": state.template_id,
                }
            )
            if session is not None:
                session.restore(state.user, state.credential)

        return cls(storage=storage, session=session, initial=initial)

    # ------------------------------------------------------------------
    # Reading
    # ------------------------------------------------------------------

    @property
    def config(self) -> ProjectConfiguration:
        return self._config

    def snapshot(self) -> PersistedState:
        """The persisted subset of the current state."""
        return PersistedState(
            credential=self.session.credential if self.session else None,
            user=self.session.user if self.session else None,
            project_name=self._config.project_name,
            destination_path=self._config.destination_path,
            template_id=self._config.template_id,
        )

    # ------------------------------------------------------------------
    # Setters
    # ------------------------------------------------------------------

    def set_project_name(self, name: str) -> None:
        self._update(project_name=name)

    def set_destination_path(self, path: str) -> None:
        self._update(destination_path=path)

    def set_template(self, template_id: TemplateId | str) -> None:
        self._update(template_id=TemplateId.coerce(template_id))

    def set_feature(self, flag: FeatureFlag | str, enabled: bool) -> None:
        flag = FeatureFlag(flag)
        features = self._config.features.model_copy(update={flag.value: bool(enabled)})
        self._update(features=features)

    def set_git(self, enabled: bool) -> None:
        self.set_feature(FeatureFlag.GIT, enabled)

    def set_container(self, enabled: bool) -> None:
        self.set_feature(FeatureFlag.CONTAINER, enabled)

    def set_ci(self, enabled: bool) -> None:
        self.set_feature(FeatureFlag.CI_WORKFLOW, enabled)

    def set_dry_run(self, enabled: bool) -> None:
        self._update(dry_run=bool(enabled))

    def reset(self) -> None:
        """Restore name, path, template and feature flags. ``dry_run`` is kept."""
        defaults = ProjectConfiguration()
        self._update(
            project_name=defaults.project_name,
            destination_path=defaults.destination_path,
            template_id=defaults.template_id,
            features=FeatureFlags(),
        )

    # ------------------------------------------------------------------
    # Persistence & notification
    # ------------------------------------------------------------------

    def persist(self) -> None:
        if self.storage is not None:
            self.storage.save(self.snapshot())

    def subscribe(self, callback: ConfigCallback) -> Callable[[], None]:
        """Register *callback* for every configuration change."""
        self._subscribers.append(callback)

        def _unsubscribe() -> None:
            if callback in self._subscribers:
                self._subscribers.remove(callback)

        return _unsubscribe

    def _update(self, **changes: Any) -> None:
        self._config = self._config.model_copy(update=changes)
        self.persist()
        for callback in list(self._subscribers):
            callback(self._config)
