"""Pydantic v2 models shared by every Forge component.

Defines the project configuration, the template catalog, authentication
records, log entries and the persisted state layout.
"""

from __future__ import annotations

import re
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator


PROJECT_NAME_PATTERN = re.compile(r"^[A-Za-z0-9_-]+$")

DEFAULT_PROJECT_NAME = "GENESIS-ALPHA"
DEFAULT_DESTINATION_PATH = "/root/projects/forge"


# ---------------------------------------------------------------------------
# Enumerations
# ---------------------------------------------------------------------------

class TemplateId(str, Enum):
    """Project archetypes the generator knows about."""
    FULLSTACK = "fullstack"
    MOBILE = "mobile"
    MICROSERVICE = "microservice"
    API = "api"
    FRONTEND = "frontend"
    BACKEND = "backend"

    @classmethod
    def coerce(cls, value: Any) -> "TemplateId":
        """Return the matching template, or ``FULLSTACK`` for unknown values."""
        if isinstance(value, cls):
            return value
        try:
            return cls(str(value).strip().lower())
        except ValueError:
            return DEFAULT_TEMPLATE


DEFAULT_TEMPLATE = TemplateId.FULLSTACK


class FeatureFlag(str, Enum):
    """Optional generation steps. Declaration order is execution order."""
    GIT = "git"
    CONTAINER = "container"
    CI_WORKFLOW = "ci_workflow"


class Severity(str, Enum):
    """Display classification of a log entry."""
    INFO = "info"
    SUCCESS = "success"
    ERROR = "error"


class RunStatus(str, Enum):
    """Lifecycle of the (single) generation run."""
    IDLE = "idle"
    RUNNING = "running"


# ---------------------------------------------------------------------------
# Template catalog
# ---------------------------------------------------------------------------

class TemplateSpec(BaseModel):
    """Display metadata for a template."""
    model_config = ConfigDict(frozen=True)

    id: TemplateId
    name: str
    stack: str


TEMPLATE_CATALOG: dict[TemplateId, TemplateSpec] = {
    TemplateId.FULLSTACK: TemplateSpec(
        id=TemplateId.FULLSTACK, name="Fullstack App", stack="React + Node.js + MongoDB"
    ),
    TemplateId.MOBILE: TemplateSpec(
        id=TemplateId.MOBILE, name="Mobile Native", stack="React Native + Expo"
    ),
    TemplateId.MICROSERVICE: TemplateSpec(
        id=TemplateId.MICROSERVICE, name="Microservice", stack="Kubernetes + Docker"
    ),
    TemplateId.API: TemplateSpec(
        id=TemplateId.API, name="API Service", stack="REST / GraphQL"
    ),
    TemplateId.FRONTEND: TemplateSpec(
        id=TemplateId.FRONTEND, name="Frontend Kit", stack="Vite + Tailwind"
    ),
    TemplateId.BACKEND: TemplateSpec(
        id=TemplateId.BACKEND, name="Backend Core", stack="Rust / Go"
    ),
}


# ---------------------------------------------------------------------------
# Project configuration
# ---------------------------------------------------------------------------

class FeatureFlags(BaseModel):
    """Independent feature toggles."""
    model_config = ConfigDict(frozen=True)

    git: bool = Field(default=True, description="Initialise a git repository")
    container: bool = Field(default=False, description="Add container configuration")
    ci_workflow: bool = Field(default=False, description="Generate a CI workflow")

    def is_enabled(self, flag: FeatureFlag) -> bool:
        return bool(getattr(self, flag.value))

    def enabled(self) -> list[FeatureFlag]:
        """Enabled flags in execution order."""
        return [flag for flag in FeatureFlag if self.is_enabled(flag)]


class ProjectConfiguration(BaseModel):
    """The editable project configuration.

    Instances are immutable; the store replaces them wholesale on every
    mutation so observers always receive a consistent snapshot.
    """
    model_config = ConfigDict(frozen=True)

    project_name: str = Field(default=DEFAULT_PROJECT_NAME)
    destination_path: str = Field(default=DEFAULT_DESTINATION_PATH)
    template_id: TemplateId = Field(default=DEFAULT_TEMPLATE)
    features: FeatureFlags = Field(default_factory=FeatureFlags)
    dry_run: bool = Field(default=False)

    @field_validator("template_id", mode="before")
    @classmethod
    def _fallback_template(cls, value: Any) -> TemplateId:
        return TemplateId.coerce(value)

    @property
    def has_valid_name(self) -> bool:
        return PROJECT_NAME_PATTERN.fullmatch(self.project_name) is not None

    @property
    def template(self) -> TemplateSpec:
        return TEMPLATE_CATALOG[self.template_id]


# ---------------------------------------------------------------------------
# Authentication
# ---------------------------------------------------------------------------

class UserIdentity(BaseModel):
    """Identity returned by the authentication provider."""
    model_config = ConfigDict(frozen=True)

    handle: str = Field(..., min_length=1, description="Account login name")
    avatar_ref: str = Field(default="", description="Avatar image URL")
    profile_ref: str = Field(default="", description="Profile page URL")


class AuthResult(BaseModel):
    """Successful outcome of ``AuthProvider.login``."""
    model_config = ConfigDict(frozen=True)

    handle: str = Field(..., min_length=1)
    avatar_ref: str = ""
    profile_ref: str = ""
    credential: str = Field(..., min_length=1)

    def identity(self) -> UserIdentity:
        return UserIdentity(
            handle=self.handle,
            avatar_ref=self.avatar_ref,
            profile_ref=self.profile_ref,
        )


# ---------------------------------------------------------------------------
# Log entries
# ---------------------------------------------------------------------------

def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class LogEntry(BaseModel):
    """A single time-stamped event in the log stream."""
    model_config = ConfigDict(frozen=True)

    timestamp: datetime = Field(default_factory=_utcnow)
    message: str
    severity: Severity = Severity.INFO


# ---------------------------------------------------------------------------
# Generation
# ---------------------------------------------------------------------------

class GenerationRequest(BaseModel):
    """Context handed to every backend call of a single run."""
    model_config = ConfigDict(frozen=True)

    project_name: str
    destination_path: str
    template_id: TemplateId
    dry_run: bool = False
    credential: Optional[str] = None

    @classmethod
    def from_configuration(
        cls, config: ProjectConfiguration, credential: Optional[str] = None
    ) -> "GenerationRequest":
        return cls(
            project_name=config.project_name,
            destination_path=config.destination_path,
            template_id=config.template_id,
            dry_run=config.dry_run,
            credential=credential,
        )

    @property
    def mode_label(self) -> str:
        return "DRY RUN" if self.dry_run else "SYNTHESIS"


# ---------------------------------------------------------------------------
# Persistence
# ---------------------------------------------------------------------------

class PersistedState(BaseModel):
    """The durable subset of application state."""

    credential: Optional[str] = None
    user: Optional[UserIdentity] = None
    project_name: str = DEFAULT_PROJECT_NAME
    destination_path: str = DEFAULT_DESTINATION_PATH
    template_id: TemplateId = DEFAULT_TEMPLATE

    @field_validator("template_id", mode="before")
    @classmethod
    def _fallback_template(cls, value: Any) -> TemplateId:
        return TemplateId.coerce(value)
