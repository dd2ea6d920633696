"""Timer-driven backend that performs no side effects."""

from __future__ import annotations

import asyncio

from forge.models import FeatureFlag, GenerationRequest, TemplateId


class SimulatedBackend:
    """Stands in for a real backend by sleeping.

    ``startup_delay`` models the connection to the generation service and
    ``template_delay`` the template initialisation itself. Feature steps are
    instantaneous.
    """

    def __init__(
        self,
        startup_delay: float = 2.0,
        template_delay: float = 1.0,
        feature_delay: float = 0.0,
    ) -> None:
        self.startup_delay = startup_delay
        self.template_delay = template_delay
        self.feature_delay = feature_delay

    async def initialize_template(
        self, template_id: TemplateId, request: GenerationRequest
    ) -> None:
        await asyncio.sleep(self.startup_delay)
        await asyncio.sleep(self.template_delay)

    async def apply_feature(self, flag: FeatureFlag, request: GenerationRequest) -> None:
        if self.feature_delay:
            await asyncio.sleep(self.feature_delay)
