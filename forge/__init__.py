"""Forge -- project synthesis orchestration.

Configures a project template, validates it, and drives a single-flight
generation against a pluggable backend while reporting progress through a
bounded log stream.

Quick usage::

    from forge import ForgeApp, ForgeSettings

    app = ForgeApp(ForgeSettings())
    app.store.set_project_name("my-service")
    ok = await app.orchestrator.submit()
"""

from forge.app import ForgeApp
from forge.config import ForgeSettings
from forge.log_stream import LogStream
from forge.models import FeatureFlag, ProjectConfiguration, RunStatus, Severity, TemplateId
from forge.orchestrator import GenerationOrchestrator
from forge.store import ConfigurationStore

__all__ = [
    "ConfigurationStore",
    "FeatureFlag",
    "ForgeApp",
    "ForgeSettings",
    "GenerationOrchestrator",
    "LogStream",
    "ProjectConfiguration",
    "RunStatus",
    "Severity",
    "TemplateId",
]
