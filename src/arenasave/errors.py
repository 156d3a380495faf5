from __future__ import annotations


class SaveError(Exception):
    """Base exception for save/load errors."""


class BackendUnavailable(SaveError):
    """Raised when the storage device cannot be read or written."""


class DecodeFailure(SaveError):
    """Raised when stored bytes exist but parse neither as plain nor compressed JSON."""


class ValidationFailure(SaveError):
    """Raised when a parsed record is missing required sub-trees."""


class MigrationFailure(SaveError):
    """Raised when a migration step cannot upgrade a record."""


class InvalidSlotError(SaveError, ValueError):
    """Raised when a slot number is outside the configured range."""

    def __init__(self, slot: object, max_slots: int) -> None:
        self.slot = slot
        self.max_slots = max_slots
        super().__init__(f"Slot must be an integer between 1 and {max_slots}, got {slot!r}")


class ConfigError(SaveError):
    """Raised when store configuration values are invalid."""
