"""
Utils module - Validation and path helpers.
"""

from pegvault.utils.paths import (
    derive_encrypted_path,
    has_encrypted_prefix,
    is_path_within_directory,
)
from pegvault.utils.validators import (
    DEFAULT_FLAGS,
    NO_INPUT_CHECK_FLAGS,
    OperationParams,
    PathValidator,
    ValidationFlags,
)

__all__ = [
    "derive_encrypted_path",
    "has_encrypted_prefix",
    "is_path_within_directory",
    "DEFAULT_FLAGS",
    "NO_INPUT_CHECK_FLAGS",
    "OperationParams",
    "PathValidator",
    "ValidationFlags",
]
