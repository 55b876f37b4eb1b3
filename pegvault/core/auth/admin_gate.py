"""
Admin Passphrase Gate
=====================

Guards the privileged operations (viewing the history, retrieving
originals from the vault) behind an admin passphrase.

The passphrase is never stored. An Argon2id encoded hash is kept in a
small file next to the history; verification is constant-time and done by
argon2-cffi.

Fail-closed: without a hash file every passphrase is rejected.
"""

from __future__ import annotations

import logging
import os
from pathlib import Path
from typing import Final, Optional

from argon2 import PasswordHasher
from argon2.exceptions import InvalidHashError, VerificationError, VerifyMismatchError

from pegvault.core.exceptions import AccessDenied, ConfigError
from pegvault.security.audit import EventCategory, OperationLog


# Argon2id parameters (argon2-cffi RFC 9106 low-memory profile)
ARGON2_TIME_COST: Final[int] = 3
ARGON2_MEMORY_COST: Final[int] = 65536  # KiB
ARGON2_PARALLELISM: Final[int] = 4

MIN_PASSPHRASE_LENGTH: Final[int] = 8


class AdminGate:
    """
    Argon2id-backed admin check.

    Usage:
        gate = AdminGate(Path("admin.hash"), history)
        gate.set_passphrase("correct horse battery")
        gate.require("correct horse battery")   # raises AccessDenied on mismatch
    """

    __slots__ = ("_hash_file", "_history", "_hasher", "_log")

    def __init__(
        self,
        hash_file: Path,
        history: Optional[OperationLog] = None,
        hasher: Optional[PasswordHasher] = None,
    ) -> None:
        """
        Args:
            hash_file: File holding the encoded Argon2id hash
            history: Receives ACCESS_DENIED events
            hasher: Pre-configured PasswordHasher (tests use cheap parameters)
        """
        self._hash_file = Path(hash_file)
        self._history = history
        self._hasher = hasher or PasswordHasher(
            time_cost=ARGON2_TIME_COST,
            memory_cost=ARGON2_MEMORY_COST,
            parallelism=ARGON2_PARALLELISM,
        )
        self._log = logging.getLogger("pegvault.auth")

    @property
    def is_configured(self) -> bool:
        return self._hash_file.is_file()

    def set_passphrase(self, passphrase: str) -> None:
        """
        Hash passphrase and store it, replacing any previous one.

        The file is written under a temporary name and renamed into place.

        Raises:
            ValueError: If the passphrase is too short
        """
        if len(passphrase) < MIN_PASSPHRASE_LENGTH:
            raise ValueError(
                f"Admin passphrase must be at least {MIN_PASSPHRASE_LENGTH} characters"
            )

        encoded = self._hasher.hash(passphrase)
        self._hash_file.parent.mkdir(parents=True, exist_ok=True)

        tmp = self._hash_file.with_suffix(".tmp")
        fd = os.open(tmp, os.O_WRONLY | os.O_CREAT | os.O_TRUNC, 0o600)
        with os.fdopen(fd, "w", encoding="utf-8") as f:
            f.write(encoded + "\n")
        os.replace(tmp, self._hash_file)

        self._log.info("Admin passphrase updated")

    def verify(self, passphrase: str) -> bool:
        """
        Check passphrase against the stored hash.

        Returns:
            True on match; False on mismatch or when no hash is configured

        Raises:
            ConfigError: If the hash file exists but is unreadable or corrupt
        """
        if not self.is_configured:
            self._log.warning("Admin access requested but no admin passphrase is configured")
            return False

        try:
            encoded = self._hash_file.read_text(encoding="utf-8").strip()
        except OSError as e:
            raise ConfigError(
                f"Could not read admin hash file '{self._hash_file}'.",
                {"path": str(self._hash_file), "error": str(e)},
            ) from e

        try:
            self._hasher.verify(encoded, passphrase)
        except VerifyMismatchError:
            return False
        except InvalidHashError as e:
            raise ConfigError(
                f"Admin hash file '{self._hash_file}' is corrupt.",
                {"path": str(self._hash_file)},
            ) from e
        except VerificationError:
            return False

        if self._hasher.check_needs_rehash(encoded):
            self.set_passphrase(passphrase)

        return True

    def require(self, passphrase: str, action: str = "admin operation") -> None:
        """
        Raise unless passphrase is correct.

        Raises:
            AccessDenied: On mismatch or when no hash is configured
        """
        if self.verify(passphrase):
            return

        if self._history is not None:
            self._history.log_event(EventCategory.ACCESS_DENIED, f"Admin access denied for {action}")
        raise AccessDenied(
            "Incorrect admin password." if self.is_configured
            else "No admin password is configured.",
            {"action": action},
        )
