"""Forge settings.

Typed application settings built on Pydantic v2 so they are validated at
construction time and can be serialised to/from JSON or read from the
environment.
"""

from __future__ import annotations

import os
from pathlib import Path
from typing import Any, Literal

from pydantic import BaseModel, Field

from forge.log_stream import DEFAULT_CAPACITY


class SimulationConfig(BaseModel):
    """Delays used by the simulated backend and auth provider, in seconds."""

    startup_delay: float = Field(default=2.0, ge=0)
    template_delay: float = Field(default=1.0, ge=0)
    login_delay: float = Field(default=1.5, ge=0)


class ForgeSettings(BaseModel):
    """Global Forge settings.

    Created once by the CLI (usually via ``from_env``) and handed to
    ``ForgeApp``, which builds every component from it.
    """

    state_path: Path = Field(default=Path("~/.forge/forge-storage.json"))
    log_capacity: int = Field(default=DEFAULT_CAPACITY, ge=1)
    backend: Literal["simulated", "local"] = Field(default="simulated")
    auth_provider: Literal["simulated", "github"] = Field(default="simulated")
    github_client_id: str = Field(default="")
    github_scope: str = Field(default="repo read:user")
    simulation: SimulationConfig = Field(default_factory=SimulationConfig)

    @property
    def resolved_state_path(self) -> Path:
        return self.state_path.expanduser()

    # ------------------------------------------------------------------
    # Serialisation helpers
    # ------------------------------------------------------------------

    def save(self, path: Path) -> Path:
        """Persist the settings to a JSON file and return its path."""
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(self.model_dump_json(indent=2), encoding="utf-8")
        return path

    @classmethod
    def load(cls, path: Path) -> "ForgeSettings":
        raw = Path(path).read_text(encoding="utf-8")
        return cls.model_validate_json(raw)

    @classmethod
    def from_env(cls) -> "ForgeSettings":
        """Build settings from environment variables.

        Recognised variables (all optional):
            FORGE_STATE_PATH, FORGE_LOG_CAPACITY, FORGE_BACKEND,
            FORGE_AUTH_PROVIDER, FORGE_GITHUB_CLIENT_ID, FORGE_GITHUB_SCOPE,
            FORGE_STARTUP_DELAY, FORGE_TEMPLATE_DELAY, FORGE_LOGIN_DELAY.
        """
        kwargs: dict[str, Any] = {}
        if os.environ.get("FORGE_STATE_PATH"):
            kwargs["state_path"] = Path(os.environ["FORGE_STATE_PATH"])
        if os.environ.get("FORGE_LOG_CAPACITY"):
            kwargs["log_capacity"] = int(os.environ["FORGE_LOG_CAPACITY"])
        if os.environ.get("FORGE_BACKEND"):
            kwargs["backend"] = os.environ["FORGE_BACKEND"]
        if os.environ.get("FORGE_AUTH_PROVIDER"):
            kwargs["auth_provider"] = os.environ["FORGE_AUTH_PROVIDER"]
        if os.environ.get("FORGE_GITHUB_CLIENT_ID"):
            kwargs["github_client_id"] = os.environ["FORGE_GITHUB_CLIENT_ID"]
        if os.environ.get("FORGE_GITHUB_SCOPE"):
            kwargs["github_scope"] = os.environ["FORGE_GITHUB_SCOPE"]

        simulation_kwargs: dict[str, Any] = {}
        for env_name, field in (
            ("FORGE_STARTUP_DELAY", "startup_delay"),
            ("FORGE_TEMPLATE_DELAY", "template_delay"),
            ("FORGE_LOGIN_DELAY", "login_delay"),
        ):
            if os.environ.get(env_name):
                simulation_kwargs[field] = float(os.environ[env_name])

        return cls(simulation=SimulationConfig(**simulation_kwargs), **kwargs)
