"""
Private Vault Store
===================

Owns the private vault directory: originals are moved in after a
successful encryption and copied back out on request.

Rules:
- The vault is a flat directory; base filenames are unique within it
- Moving in is a rename, so the original path stops existing
- An occupied name is never overwritten
- Retrieval copies; the vault copy is never modified or removed
"""

from __future__ import annotations

import logging
import os
import shutil
from dataclasses import dataclass
from datetime import datetime
from pathlib import Path
from typing import List, Optional

from pegvault.core.exceptions import (
    ConfigError,
    ValidationError,
    VaultCollisionError,
    VaultError,
    VaultFailure,
)
from pegvault.security.audit import EventCategory, OperationLog
from pegvault.utils.paths import is_path_within_directory
from pegvault.utils.validators import PathValidator


@dataclass(frozen=True)
class VaultEntry:
    name: str
    path: Path
    size: int
    modified: datetime


class VaultStore:
    """
    Move/retrieve protocol for the private vault.

    Usage:
        store = VaultStore(Path(".private_vault"), PathValidator(), history)
        store.move_to_vault(Path("notes.txt"))
        store.retrieve_from_vault("notes.txt", Path("restored/notes.txt"))

    Single-writer: two processes moving files into the same vault at once
    may race between the collision check and the rename.
    """

    def __init__(
        self,
        vault_dir: Path,
        validator: PathValidator,
        history: Optional[OperationLog] = None,
    ) -> None:
        self._vault_dir = Path(vault_dir)
        self._validator = validator
        self._history = history
        self._log = logging.getLogger("pegvault.vault")

    @property
    def path(self) -> Path:
        return self._vault_dir

    def ensure_vault_exists(self) -> Path:
        """
        Create the vault directory if needed. Idempotent.

        Raises:
            ConfigError: If the vault path exists but is not a directory
            VaultError: NOT_A_VAULT if the directory cannot be created
        """
        if self._vault_dir.is_dir():
            return self._vault_dir

        if self._vault_dir.exists() or self._vault_dir.is_symlink():
            self._event(
                EventCategory.CONFIG_ERROR,
                f"Vault path '{self._vault_dir}' exists but is not a directory",
            )
            raise ConfigError(
                f"Vault path '{self._vault_dir}' exists but is not a directory.",
                {"path": str(self._vault_dir)},
            )

        try:
            self._vault_dir.mkdir(mode=0o700, parents=True)
        except FileExistsError:
            if not self._vault_dir.is_dir():
                raise ConfigError(
                    f"Vault path '{self._vault_dir}' exists but is not a directory.",
                    {"path": str(self._vault_dir)},
                )
        except OSError as e:
            self._event(
                EventCategory.CONFIG_ERROR,
                f"Could not create private vault directory '{self._vault_dir}': {e}",
            )
            raise VaultError(
                VaultFailure.NOT_A_VAULT,
                f"Could not create private vault directory '{self._vault_dir}'.",
                {"path": str(self._vault_dir), "error": str(e)},
            ) from e

        self._log.info("Private vault directory created: %s", self._vault_dir)
        return self._vault_dir

    def path_for(self, name: str) -> Path:
        """
        Location of name inside the vault (it need not exist).

        Raises:
            ValidationError: If name is not a bare filename
        """
        self._validator.validate_vault_name(name)
        return self._vault_dir / name

    def contains(self, name: str) -> bool:
        try:
            return self.path_for(name).is_file()
        except ValidationError:
            return False

    def list_entries(self) -> List[VaultEntry]:
        """List vaulted files sorted by name. An absent vault is empty."""
        if not self._vault_dir.is_dir():
            return []

        entries = []
        for child in sorted(self._vault_dir.iterdir()):
            if not child.is_file():
                continue
            stat = child.stat()
            entries.append(VaultEntry(
                name=child.name,
                path=child,
                size=stat.st_size,
                modified=datetime.fromtimestamp(stat.st_mtime),
            ))
        return entries

    def move_to_vault(self, original_path: Path | str) -> Path:
        """
        Move a file into the vault under its base name.

        Args:
            original_path: The file to relocate

        Returns:
            The file's new path inside the vault

        Raises:
            VaultError: NOT_A_VAULT, SOURCE_INVALID or MOVE_FAILED
            VaultCollisionError: If the vault already holds that name
        """
        original_path = Path(original_path)

        try:
            self.ensure_vault_exists()
        except ConfigError as e:
            self._fail_move(original_path, e.message)
            raise VaultError(VaultFailure.NOT_A_VAULT, e.message, e.details) from e

        if not original_path.is_file():
            message = f"Source '{original_path}' is not a valid file to move."
            self._fail_move(original_path, message)
            raise VaultError(
                VaultFailure.SOURCE_INVALID, message, {"path": str(original_path)}
            )

        if is_path_within_directory(original_path, self._vault_dir):
            message = f"Source '{original_path}' is already inside the vault."
            self._fail_move(original_path, message)
            raise VaultError(
                VaultFailure.SOURCE_INVALID, message, {"path": str(original_path)}
            )

        destination = self._vault_dir / original_path.name
        if destination.exists() or destination.is_symlink():
            message = f"A file with the name '{original_path.name}' already exists in the vault."
            self._fail_move(original_path, message)
            raise VaultCollisionError(message, {"name": original_path.name})

        try:
            os.rename(original_path, destination)
        except OSError as e:
            message = f"Failed to move '{original_path}'. Check permissions."
            self._fail_move(original_path, f"{message} ({e})")
            raise VaultError(
                VaultFailure.MOVE_FAILED,
                message,
                {"path": str(original_path), "error": str(e)},
            ) from e

        self._event(EventCategory.VAULT_STORE, f"Moved to vault: {original_path.name}")
        self._log.info("Moved %s into the vault", original_path.name)
        return destination

    def retrieve_from_vault(self, vault_filename: str, destination_path: Path | str) -> Path:
        """
        Copy a vaulted file out to destination_path.

        An existing destination file is overwritten. The vault copy is left
        untouched.

        Args:
            vault_filename: Base name of the file inside the vault
            destination_path: Where to write the copy

        Returns:
            The destination path

        Raises:
            VaultError: NOT_FOUND, DESTINATION_INVALID or COPY_FAILED
        """
        destination_path = Path(destination_path)

        if not self._vault_dir.is_dir():
            message = "Private vault does not exist."
            self._fail_retrieve(vault_filename, destination_path, message)
            raise VaultError(VaultFailure.NOT_FOUND, message, {"path": str(self._vault_dir)})

        try:
            source = self.path_for(vault_filename)
        except ValidationError as e:
            self._fail_retrieve(vault_filename, destination_path, e.message)
            raise VaultError(VaultFailure.NOT_FOUND, e.message, e.details) from e

        if not source.is_file():
            message = f"File '{vault_filename}' not found in the vault."
            self._fail_retrieve(vault_filename, destination_path, message)
            raise VaultError(VaultFailure.NOT_FOUND, message, {"name": vault_filename})

        try:
            self._validator.validate_output(destination_path, compare_to=source)
        except ValidationError as e:
            self._fail_retrieve(vault_filename, destination_path, e.message)
            raise VaultError(
                VaultFailure.DESTINATION_INVALID,
                e.message,
                {**e.details, "reason": e.reason.value},
            ) from e

        try:
            shutil.copyfile(source, destination_path)
        except OSError as e:
            message = f"Failed to copy file from vault to '{destination_path}'."
            self._fail_retrieve(vault_filename, destination_path, f"{message} ({e})")
            raise VaultError(
                VaultFailure.COPY_FAILED,
                message,
                {"name": vault_filename, "destination": str(destination_path), "error": str(e)},
            ) from e

        self._event(
            EventCategory.VAULT_RETRIEVE,
            f"{vault_filename} retrieved to {destination_path}",
        )
        self._log.info("Retrieved %s to %s", vault_filename, destination_path)
        return destination_path

    def _fail_move(self, original_path: Path, message: str) -> None:
        self._log.warning("Vault move failed: %s", message)
        self._event(EventCategory.VAULT_FAIL, f"Failed to move {original_path} to vault: {message}")

    def _fail_retrieve(self, name: str, destination: Path, message: str) -> None:
        self._log.warning("Vault retrieval failed: %s", message)
        self._event(
            EventCategory.RETRIEVE_FAIL,
            f"Failed retrieval of {name} to {destination}: {message}",
        )

    def _event(self, category: EventCategory, details: str) -> None:
        if self._history is not None:
            self._history.log_event(category, details)
