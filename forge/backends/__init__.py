"""Project backends invoked by the generation orchestrator.

Quick usage::

    from forge.backends import create_backend

    backend = create_backend("local")
    await backend.initialize_template(TemplateId.API, request)
"""

from forge.backends.base import ProjectBackend
from forge.backends.local import LocalBackend
from forge.backends.renderer import TemplateRenderer
from forge.backends.simulated import SimulatedBackend

BACKEND_KINDS = ("simulated", "local")


def create_backend(kind: str, **options) -> ProjectBackend:
    """Instantiate a backend by name (``"simulated"`` or ``"local"``)."""
    if kind == "simulated":
        return SimulatedBackend(**options)
    if kind == "local":
        return LocalBackend(**options)
    raise ValueError(f"Unknown backend {kind!r}; expected one of {', '.join(BACKEND_KINDS)}")


__all__ = [
    "BACKEND_KINDS",
    "LocalBackend",
    "ProjectBackend",
    "SimulatedBackend",
    "TemplateRenderer",
    "create_backend",
]
