from __future__ import annotations

from dataclasses import dataclass


@dataclass
class AppError(Exception):
    """A deterministic application error dispatched to the error controller."""

    detail: str
    code: str = "error"
    status_code: int = 400

    def __str__(self) -> str:  # pragma: no cover
        return f"{self.code}: {self.detail}"


@dataclass
class ConfigurationError(AppError):
    """Raised at startup when a required collaborator is missing."""

    code: str = "configuration_error"
    status_code: int = 500
