"""Domain error taxonomy.

Services raise these instead of calling ``abort`` so they stay usable outside a
request (cart controller, scripts). The app-level error handler renders them in
the same ``{"error": {...}}`` shape as werkzeug HTTP errors.
"""
from __future__ import annotations
from typing import Optional


class DomainError(Exception):
    status = 500
    title = 'Internal Server Error'

    def __init__(self, detail: Optional[str] = None):
        super().__init__(detail or self.title)
        self.detail = detail or self.title


class ValidationError(DomainError):
    """Malformed or missing field; the detail is shown to the user verbatim."""
    status = 400
    title = 'Bad Request'


class NoFieldsProvided(ValidationError):
    def __init__(self, detail: Optional[str] = None):
        super().__init__(detail or 'Nenhum campo para atualizar')


class InvalidReference(ValidationError):
    """An order was requested against a catalog that does not exist."""


class NotFound(DomainError):
    status = 404
    title = 'Not Found'


class Unauthorized(DomainError):
    status = 401
    title = 'Unauthorized'


class ImportAbortedError(DomainError):
    """A bulk import failed mid-transaction and was rolled back entirely."""
    status = 500
    title = 'Import Aborted'


class TransientSyncError(DomainError):
    """Background cart sync failed. Logged and swallowed, never rendered."""
    status = 503
    title = 'Sync Unavailable'


__all__ = [
    'DomainError', 'ValidationError', 'NoFieldsProvided', 'InvalidReference',
    'NotFound', 'Unauthorized', 'ImportAbortedError', 'TransientSyncError',
]
