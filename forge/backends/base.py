"""The ``ProjectBackend`` contract consumed by the orchestrator."""

from __future__ import annotations

from typing import Protocol

from forge.models import FeatureFlag, GenerationRequest, TemplateId


class ProjectBackend(Protocol):
    """Performs the actual project work for a generation run.

    Each call may fail independently by raising; idempotence and retries are
    the backend's own concern. ``request.dry_run`` tells the backend to
    simulate instead of producing side effects.
    """

    async def initialize_template(
        self, template_id: TemplateId, request: GenerationRequest
    ) -> None: ...

    async def apply_feature(
        self, flag: FeatureFlag, request: GenerationRequest
    ) -> None: ...
