"""
PegVault Exceptions - Error taxonomy for the processing core.

Every failure raised by the core derives from PegVaultError and carries a
human-readable message plus optional structured details.
"""

from __future__ import annotations

from enum import Enum


class PegVaultError(Exception):
    """Base exception for all PegVault errors."""

    def __init__(self, message: str, details: dict | None = None):
        self.message = message
        self.details = details or {}
        super().__init__(message)

    def __str__(self) -> str:
        if self.details:
            return f"{self.message} | Details: {self.details}"
        return self.message


class ValidationReason(Enum):
    """Why a path, peg or name was rejected."""
    # Input file
    NOT_FOUND = "NOT_FOUND"
    NOT_REGULAR = "NOT_REGULAR"
    EMPTY = "EMPTY"
    EXTENSION_NOT_ALLOWED = "EXTENSION_NOT_ALLOWED"

    # Output file
    SAME_AS_INPUT = "SAME_AS_INPUT"
    PARENT_MISSING = "PARENT_MISSING"
    PARENT_NOT_DIR = "PARENT_NOT_DIR"
    NOT_WRITABLE = "NOT_WRITABLE"
    OUTPUT_EXISTS = "OUTPUT_EXISTS"

    # Parameters
    PEG_OUT_OF_RANGE = "PEG_OUT_OF_RANGE"
    INVALID_NAME = "INVALID_NAME"


class ValidationError(PegVaultError, ValueError):
    """Raised when a path, peg or name fails validation."""

    def __init__(self, reason: ValidationReason, message: str, details: dict | None = None):
        self.reason = reason
        super().__init__(message, details)


class TransformIOError(PegVaultError, OSError):
    """Raised when opening, reading or writing fails during a transform."""

    def __init__(self, phase: str, message: str, details: dict | None = None):
        self.phase = phase  # "open", "read" or "write"
        super().__init__(message, details)


class CollisionError(PegVaultError):
    """Raised when a vault name is taken or a file is already encrypted."""

    pass


class HashError(PegVaultError):
    """Raised when a digest cannot be computed."""

    pass


class ConfigError(PegVaultError):
    """Raised when the on-disk layout contradicts the configuration."""

    pass


class VaultFailure(Enum):
    """Why a vault operation failed."""
    NOT_A_VAULT = "NOT_A_VAULT"
    SOURCE_INVALID = "SOURCE_INVALID"
    MOVE_FAILED = "MOVE_FAILED"
    NOT_FOUND = "NOT_FOUND"
    DESTINATION_INVALID = "DESTINATION_INVALID"
    COPY_FAILED = "COPY_FAILED"


class VaultError(PegVaultError):
    """Raised when a vault move or retrieval fails."""

    def __init__(self, failure: VaultFailure, message: str, details: dict | None = None):
        self.failure = failure
        super().__init__(message, details)


class VaultCollisionError(CollisionError):
    """Raised when the vault already holds a file with the same base name."""

    pass


class AccessDenied(PegVaultError):
    """Raised when the admin gate rejects a passphrase."""

    pass
