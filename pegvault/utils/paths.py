"""
Path Utilities
==============

Naming helpers for encrypted artifacts and vault containment checks.
"""

from __future__ import annotations

from pathlib import Path

from pegvault.security.constants import ENCRYPTED_PREFIX


def derive_encrypted_path(source: Path | str, prefix: str = ENCRYPTED_PREFIX) -> Path:
    """
    Name the encrypted artifact for source: same directory, prefixed name.

    Example:
        derive_encrypted_path("docs/notes.txt") -> docs/enc_notes.txt
    """
    source = Path(source)
    return source.with_name(prefix + source.name)


def has_encrypted_prefix(path: Path | str, prefix: str = ENCRYPTED_PREFIX) -> bool:
    """Check if the base filename carries the encrypted marker."""
    return Path(path).name.startswith(prefix)


def is_path_within_directory(path: Path, directory: Path) -> bool:
    """
    Check if a path is safely within a directory (prevents path traversal).

    Args:
        path: The path to check
        directory: The containing directory

    Returns:
        True if path is safely within directory
    """
    try:
        resolved_path = path.resolve()
        resolved_dir = directory.resolve()
        return resolved_path.is_relative_to(resolved_dir)
    except (ValueError, RuntimeError):
        return False
