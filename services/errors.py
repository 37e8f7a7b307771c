# services/errors.py
from __future__ import annotations

from typing import Any


class DashboardError(Exception):
    """Base class for domain errors raised by the service layer."""

    def __init__(self, message: str, *, details: Any = None):
        super().__init__(message)
        self.message = message
        self.details = details


class ValidationError(DashboardError):
    """Input is missing required fields; nothing was written."""


class ExtractionError(DashboardError):
    """The text-to-JSON extractor failed or returned unparsable output."""


class PerItemPersistenceError(DashboardError):
    """Persisting a single batch item failed. Never escapes the batch driver."""

    def __init__(self, message: str, *, kind: str, key: str | None = None, details: Any = None):
        super().__init__(message, details=details)
        self.kind = kind
        self.key = key


class NotFoundError(DashboardError):
    pass


class ConflictError(DashboardError):
    pass
