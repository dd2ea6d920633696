"""Exception hierarchy for Forge."""

from __future__ import annotations

from pathlib import Path


class ForgeError(Exception):
    """Base class for every error raised by Forge."""


class ProjectValidationError(ForgeError):
    """Raised when a configuration is not acceptable for generation."""

    def __init__(self, field: str, message: str) -> None:
        self.field = field
        super().__init__(message)


class AdmissionRejected(ForgeError):
    """Raised when a generation is requested while another one is running."""


class BackendError(ForgeError):
    """Raised by a ``ProjectBackend`` when a generation step fails."""

    def __init__(self, step: str, message: str) -> None:
        self.step = step
        super().__init__(f"{step}: {message}")


class AuthenticationError(ForgeError):
    """Raised by an ``AuthProvider`` when login does not complete."""


class StorageError(ForgeError):
    """Raised when persisted state cannot be read or written."""

    def __init__(self, path: Path, message: str) -> None:
        self.path = path
        super().__init__(f"{path}: {message}")
