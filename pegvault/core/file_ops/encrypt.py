"""
File Encryption Workflow
========================

validate → transform → vault → log.

Encryption Flow:
1. Reject inputs already carrying the encrypted marker, or recorded in
   the history as an encryption output (by path or content fingerprint)
2. Validate extension, input, derived output and peg
3. Stream the input into <parent>/enc_<name> and record its fingerprint
4. Move the original into the private vault

A vault failure after step 3 does not undo the encryption: the encrypted
file stands, the original stays where it was, and the failure is recorded
as a VAULT_FAIL event.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

from pegvault.core.cipher.stream_cipher import CipherMode, StreamCipher
from pegvault.core.exceptions import (
    CollisionError,
    PegVaultError,
    TransformIOError,
    ValidationError,
)
from pegvault.core.files.vault_store import VaultStore
from pegvault.core.integrity.verifier import sha256_file
from pegvault.security.audit import EventCategory, OperationLog
from pegvault.security.constants import ENCRYPTED_PREFIX
from pegvault.utils.paths import derive_encrypted_path, has_encrypted_prefix
from pegvault.utils.validators import OperationParams


@dataclass(frozen=True)
class EncryptionOutcome:
    """
    Result of a successful encryption.

    vault_path is None when the original could not be moved into the
    vault; vault_error then says why.
    """
    source: Path
    output: Path
    bytes_written: int
    vault_path: Optional[Path] = None
    vault_error: Optional[str] = None

    @property
    def vaulted(self) -> bool:
        return self.vault_path is not None


class FileEncryptor:
    """
    Encrypt a file next to itself and vault the original.

    Usage:
        encryptor = FileEncryptor(cipher, vault, history)
        outcome = encryptor.encrypt(Path("notes.txt"), peg=5)
        outcome.output      # notes.txt's sibling enc_notes.txt
        outcome.vaulted     # True once notes.txt is in the vault
    """

    __slots__ = ("_cipher", "_vault", "_history", "_prefix", "_log")

    def __init__(
        self,
        cipher: StreamCipher,
        vault: VaultStore,
        history: Optional[OperationLog] = None,
        prefix: str = ENCRYPTED_PREFIX,
    ) -> None:
        self._cipher = cipher
        self._vault = vault
        self._history = history
        self._prefix = prefix
        self._log = logging.getLogger("pegvault.encrypt")

    def is_already_encrypted(self, path: Path) -> bool:
        """
        True if path carries the marker or is a recorded encryption output.

        A recorded output is recognised by location, or by content
        fingerprint when it has since been renamed or copied.
        """
        if has_encrypted_prefix(path, self._prefix):
            return True
        if self._history is None:
            return False
        if self._history.was_encryption_output(path):
            return True
        recorded = self._history.encryption_output_digests()
        if not recorded or not path.is_file():
            return False
        try:
            digest = sha256_file(path, self._cipher.chunk_size)
        except OSError as e:
            self._log.warning("Could not fingerprint %s: %s", path, e)
            return False
        return digest in recorded

    def encrypt(self, input_path: Path | str, peg: int) -> EncryptionOutcome:
        """
        Encrypt input_path with peg and move the original into the vault.

        Args:
            input_path: Plaintext file
            peg: Shift key

        Returns:
            EncryptionOutcome describing the output and vault result

        Raises:
            CollisionError: If the input is already encrypted
            ValidationError: If a path, extension or peg check fails
            TransformIOError: If the transform fails mid-stream
        """
        input_path = Path(input_path)

        if self.is_already_encrypted(input_path):
            self._event(EventCategory.ENCRYPT_FAIL, f"Attempted to re-encrypt file: {input_path}")
            raise CollisionError(
                f"File '{input_path}' appears to be already encrypted "
                f"(name starts with '{self._prefix}' or it is a recorded encryption output).",
                {"path": str(input_path)},
            )

        output_path = derive_encrypted_path(input_path, self._prefix)
        params = OperationParams(input_path, output_path, peg)

        try:
            self._cipher.validator.validate_extension(input_path)
            written = self._cipher.process_file(params, CipherMode.ENCRYPT)
        except ValidationError as e:
            self._event(EventCategory.VALIDATION_FAIL, f"Encrypt rejected for {input_path}: {e.message}")
            raise
        except TransformIOError as e:
            self._event(EventCategory.ENCRYPT_FAIL, f"Core processing failed for: {input_path} ({e.message})")
            raise

        self._record_fingerprint(output_path)

        try:
            vault_path = self._vault.move_to_vault(input_path)
        except PegVaultError as e:
            self._log.warning(
                "Encryption succeeded, but failed to move original file to the vault: %s",
                e.message,
            )
            return EncryptionOutcome(
                source=input_path,
                output=output_path,
                bytes_written=written,
                vault_error=e.message,
            )

        return EncryptionOutcome(
            source=input_path,
            output=output_path,
            bytes_written=written,
            vault_path=vault_path,
        )

    def _record_fingerprint(self, output_path: Path) -> None:
        if self._history is None:
            return
        try:
            digest = sha256_file(output_path, self._cipher.chunk_size)
        except OSError as e:
            self._log.warning("Could not fingerprint encrypted output %s: %s", output_path, e)
            return
        self._history.log_encryption_output(output_path.resolve(), digest)

    def _event(self, category: EventCategory, details: str) -> None:
        if self._history is not None:
            self._history.log_event(category, details)


def encrypt_file(
    input_path: Path | str,
    peg: int,
    cipher: StreamCipher,
    vault: VaultStore,
    history: Optional[OperationLog] = None,
) -> EncryptionOutcome:
    """
    Convenience function to encrypt a file.

    Returns:
        EncryptionOutcome
    """
    return FileEncryptor(cipher, vault, history).encrypt(input_path, peg)
