"""Domain error hierarchy for clean exception handling."""
from __future__ import annotations


class DomainError(Exception):
    """Base for all domain errors."""


class NotFoundError(DomainError):
    """Resource not found."""


class ValidationError(DomainError):
    """Invalid input or state."""


class ConflictError(DomainError):
    """Resource conflict (e.g., design already bootstrapped)."""


class AuthenticationError(DomainError):
    """Connection or request could not be authenticated."""


class TooManyRequestsError(DomainError):
    """Rate limit exceeded for the subject."""


class StorageError(DomainError):
    """Durable store refused or failed a write."""
