"""Filesystem backend that writes a minimal project skeleton.

Template initialisation renders ``README.md`` and ``.gitignore`` into the
destination; feature steps run ``git init``, write a ``Dockerfile``, or write a
GitHub Actions workflow. In dry-run mode every step is recorded in
``actions`` but nothing touches the filesystem.
"""

from __future__ import annotations

import json
from datetime import datetime, timezone
from pathlib import Path
from typing import Any

from forge.backends.renderer import TemplateRenderer
from forge.errors import BackendError
from forge.models import TEMPLATE_CATALOG, FeatureFlag, GenerationRequest, TemplateId
from forge.utils import run_command


# Per-template build details used by the Dockerfile and CI templates.
_PROFILES: dict[TemplateId, dict[str, Any]] = {
    TemplateId.FULLSTACK: {
        "directories": ["client", "server", "docs"],
        "ignore_patterns": ["node_modules/", "dist/"],
        "base_image": "node:20-alpine",
        "build_command": "npm ci && npm run build",
        "run_command": ["npm", "start"],
        "ci_steps": [
            {"name": "Install", "run": "npm ci"},
            {"name": "Test", "run": "npm test"},
        ],
    },
    TemplateId.MOBILE: {
        "directories": ["app", "assets", "docs"],
        "ignore_patterns": ["node_modules/", ".expo/"],
        "base_image": "node:20-alpine",
        "build_command": "npm ci",
        "run_command": ["npx", "expo", "start"],
        "ci_steps": [
            {"name": "Install", "run": "npm ci"},
            {"name": "Test", "run": "npm test"},
        ],
    },
    TemplateId.MICROSERVICE: {
        "directories": ["service", "deploy", "docs"],
        "ignore_patterns": ["bin/", "*.kubeconfig"],
        "base_image": "golang:1.22-alpine",
        "build_command": "go build -o /app/bin/service ./service",
        "run_command": ["/app/bin/service"],
        "ci_steps": [
            {"name": "Build", "run": "go build ./..."},
            {"name": "Test", "run": "go test ./..."},
        ],
    },
    TemplateId.API: {
        "directories": ["api", "tests", "docs"],
        "ignore_patterns": ["__pycache__/", ".venv/"],
        "base_image": "python:3.12-slim",
        "build_command": "pip install --no-cache-dir -r requirements.txt",
        "run_command": ["uvicorn", "api.main:app", "--host", "0.0.0.0"],
        "ci_steps": [
            {"name": "Install", "run": "pip install -r requirements.txt"},
            {"name": "Test", "run": "pytest"},
        ],
    },
    TemplateId.FRONTEND: {
        "directories": ["src", "public"],
        "ignore_patterns": ["node_modules/", "dist/"],
        "base_image": "node:20-alpine",
        "build_command": "npm ci && npm run build",
        "run_command": ["npx", "vite", "preview", "--host"],
        "ci_steps": [
            {"name": "Install", "run": "npm ci"},
            {"name": "Build", "run": "npm run build"},
        ],
    },
    TemplateId.BACKEND: {
        "directories": ["src", "tests"],
        "ignore_patterns": ["target/"],
        "base_image": "rust:1.78-slim",
        "build_command": "cargo build --release",
        "run_command": ["cargo", "run", "--release"],
        "ci_steps": [
            {"name": "Build", "run": "cargo build"},
            {"name": "Test", "run": "cargo test"},
        ],
    },
}


class LocalBackend:
    """Writes project files below ``request.destination_path``.

    Attributes:
        renderer: Jinja2 renderer for the bundled templates.
        actions: Human-readable record of every step performed (or planned
            during a dry run), in call order.
    """

    def __init__(self, renderer: TemplateRenderer | None = None, git_timeout: int = 60) -> None:
        self.renderer = renderer or TemplateRenderer()
        self.git_timeout = git_timeout
        self.actions: list[str] = []

    # ------------------------------------------------------------------
    # ProjectBackend
    # ------------------------------------------------------------------

    async def initialize_template(
        self, template_id: TemplateId, request: GenerationRequest
    ) -> None:
        root = self._project_root(request)
        context = self._context(request)

        if request.dry_run:
            self.actions.append(f"would render README.md and .gitignore into {root}")
            return

        try:
            root.mkdir(parents=True, exist_ok=True)
            await self.renderer.render_to_file("README.md.j2", root / "README.md", context)
            await self.renderer.render_to_file("gitignore.j2", root / ".gitignore", context)
            for directory in context["directories"]:
                (root / directory).mkdir(exist_ok=True)
        except OSError as exc:
            raise BackendError("template", f"cannot write to {root}: {exc}") from exc
        self.actions.append(f"rendered {template_id.value} template into {root}")

    async def apply_feature(self, flag: FeatureFlag, request: GenerationRequest) -> None:
        handlers = {
            FeatureFlag.GIT: self._init_git,
            FeatureFlag.CONTAINER: self._write_dockerfile,
            FeatureFlag.CI_WORKFLOW: self._write_workflow,
        }
        await handlers[flag](request)

    # ------------------------------------------------------------------
    # Feature steps
    # ------------------------------------------------------------------

    async def _init_git(self, request: GenerationRequest) -> None:
        root = self._project_root(request)
        if request.dry_run:
            self.actions.append(f"would run git init in {root}")
            return
        if (root / ".git").exists():
            self.actions.append(f"git repository already present in {root}")
            return

        returncode, _, stderr = await run_command(
            ["git", "init"], cwd=root, timeout=self.git_timeout
        )
        if returncode != 0:
            raise BackendError("git", stderr or f"git init exited with {returncode}")
        self.actions.append(f"initialised git repository in {root}")

    async def _write_dockerfile(self, request: GenerationRequest) -> None:
        await self._render_feature(request, "Dockerfile.j2", "Dockerfile", "container")

    async def _write_workflow(self, request: GenerationRequest) -> None:
        await self._render_feature(
            request, "ci.yml.j2", ".github/workflows/ci.yml", "ci_workflow"
        )

    async def _render_feature(
        self, request: GenerationRequest, template: str, relative: str, step: str
    ) -> None:
        target = self._project_root(request) / relative
        if request.dry_run:
            self.actions.append(f"would write {target}")
            return
        try:
            await self.renderer.render_to_file(template, target, self._context(request))
        except OSError as exc:
            raise BackendError(step, f"cannot write {target}: {exc}") from exc
        self.actions.append(f"wrote {target}")

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    @staticmethod
    def _project_root(request: GenerationRequest) -> Path:
        return Path(request.destination_path).expanduser() / request.project_name

    @staticmethod
    def _context(request: GenerationRequest) -> dict[str, Any]:
        spec = TEMPLATE_CATALOG[request.template_id]
        profile = _PROFILES[request.template_id]
        return {
            "project_name": request.project_name,
            "template_name": spec.name,
            "stack": spec.stack,
            "generated_at": datetime.now(timezone.utc).strftime("%Y-%m-%d"),
            **profile,
            "run_command": json.dumps(profile["run_command"]),
        }
