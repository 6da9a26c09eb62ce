"""
Exception hierarchy for the encounter engine.

Every fatal condition of a generation request is reported to the caller as
one of these types. None of them are retried by the engine itself; retry
(for example re-fetching the catalog) is the caller's policy.
"""

from __future__ import annotations

from typing import Any


class EncounterEngineError(Exception):
    """Base exception for all encounter engine errors.

    Attributes:
        message: Human-readable error message
        details: Optional dictionary of additional error context
    """

    def __init__(self, message: str, details: dict[str, Any] | None = None):
        super().__init__(message)
        self.message = message
        self.details = details or {}


class CatalogUnusableError(EncounterEngineError):
    """The creature catalog has nothing usable to search.

    Raised when normalization leaves no eligible creatures.
    """
    pass


class CatalogFetchError(CatalogUnusableError):
    """Fetching the creature catalog from the remote source failed."""
    pass


class InvalidPartyError(EncounterEngineError, ValueError):
    """Party parameters fall outside the fixed XP tables."""
    pass


class ThemeLockError(EncounterEngineError):
    """The themed pool is too small and the theme is locked."""

    def __init__(self, theme: str, theme_pool_size: int, minimum: int):
        super().__init__(
            "No valid encounter found for this theme with current constraints.",
            details={"theme": theme, "theme_pool_size": theme_pool_size, "minimum": minimum},
        )
        self.theme = theme
        self.theme_pool_size = theme_pool_size
        self.minimum = minimum


class StyleLockError(EncounterEngineError):
    """No trial matched the requested style while the style was locked."""

    def __init__(self, style: str, attempts: int):
        super().__init__(
            "No encounter meets the selected style requirements.",
            details={"style": style, "attempts": attempts},
        )
        self.style = style
        self.attempts = attempts


class SearchExhaustedError(EncounterEngineError):
    """The search finished without producing a single valid trial."""

    def __init__(self, message: str | None = None, details: dict[str, Any] | None = None):
        super().__init__(
            message or "Could not generate a suitable encounter from the available monster pool.",
            details,
        )


class IncompatibleDocumentError(EncounterEngineError):
    """An encounter document failed import validation.

    Attributes:
        reason: Short machine-readable reason (e.g. 'newer_version', 'invalid_json')
    """

    GENERIC_MESSAGE = "Invalid or incompatible encounter file."
    NEWER_VERSION_MESSAGE = (
        "Invalid or incompatible encounter file. "
        "This file was exported by a newer version of the encounter engine."
    )

    def __init__(self, reason: str, details: dict[str, Any] | None = None):
        message = self.NEWER_VERSION_MESSAGE if reason == "newer_version" else self.GENERIC_MESSAGE
        super().__init__(message, details)
        self.reason = reason
