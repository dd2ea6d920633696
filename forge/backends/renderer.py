"""Jinja2 template rendering for the local backend.

Loads ``*.j2`` files from ``forge/backends/templates/`` and renders them with
a context built from the ``GenerationRequest``.
"""

from __future__ import annotations

import asyncio
import re
from pathlib import Path
from typing import Any

from jinja2 import Environment, FileSystemLoader, StrictUndefined, select_autoescape


_DEFAULT_TEMPLATE_DIR = Path(__file__).parent / "templates"


class TemplateRenderer:
    """Renders Jinja2 templates for project skeletons."""

    def __init__(self, template_dir: str | Path | None = None) -> None:
        if template_dir is None:
            template_dir = _DEFAULT_TEMPLATE_DIR
        self.template_dir = Path(template_dir)
        self.env = Environment(
            loader=FileSystemLoader(str(self.template_dir)),
            autoescape=select_autoescape([]),
            undefined=StrictUndefined,
            keep_trailing_newline=True,
            trim_blocks=True,
            lstrip_blocks=True,
        )
        self.env.filters["slugify"] = _slugify_filter

    def render(self, template_path: str, context: dict[str, Any]) -> str:
        """Render a single template, e.g. ``"README.md.j2"``."""
        template = self.env.get_template(template_path)
        return template.render(**context)

    async def render_to_file(
        self,
        template_path: str,
        output_path: str | Path,
        context: dict[str, Any],
    ) -> Path:
        """Render a template and write the result to *output_path*.

        Parent directories are created automatically.
        """
        content = self.render(template_path, context)
        out = Path(output_path)
        await asyncio.to_thread(_write_file, out, content)
        return out


def _slugify_filter(value: str) -> str:
    """Convert a string to a filename-safe lowercase slug."""
    slug = re.sub(r"[^a-z0-9]+", "-", value.lower().strip())
    return slug.strip("-")


def _write_file(path: Path, content: str) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(content, encoding="utf-8")
