"""
File Decryption Workflow
========================

Reverses the peg shift into an explicit or derived output path.

Decryption never touches the vault: the encrypted file is left in place
and the plaintext is written alongside it.

A derived output (the input name without its marker) must not exist yet;
an existing file is only overwritten when the caller names it as the
output.
"""

from __future__ import annotations

from pathlib import Path
from typing import Optional

from pegvault.core.cipher.stream_cipher import CipherMode, StreamCipher
from pegvault.core.exceptions import TransformIOError, ValidationError, ValidationReason
from pegvault.security.audit import EventCategory, OperationLog
from pegvault.security.constants import ENCRYPTED_PREFIX
from pegvault.utils.validators import DEFAULT_FLAGS, OperationParams, ValidationFlags


class FileDecryptor:
    """
    Decrypt a peg-shifted file.

    Usage:
        decryptor = FileDecryptor(cipher, history)
        decryptor.decrypt(Path("enc_notes.txt"), peg=5)               # -> notes.txt
        decryptor.decrypt(Path("enc_notes.txt"), 5, Path("out.txt"))  # -> out.txt
    """

    __slots__ = ("_cipher", "_history", "_prefix")

    def __init__(
        self,
        cipher: StreamCipher,
        history: Optional[OperationLog] = None,
        prefix: str = ENCRYPTED_PREFIX,
    ) -> None:
        self._cipher = cipher
        self._history = history
        self._prefix = prefix

    def derive_output_path(self, input_path: Path) -> Path:
        """
        Strip the encrypted marker: docs/enc_notes.txt -> docs/notes.txt.

        Raises:
            ValidationError: INVALID_NAME if input_path has no marker
        """
        name = input_path.name
        if not name.startswith(self._prefix) or len(name) == len(self._prefix):
            raise ValidationError(
                ValidationReason.INVALID_NAME,
                f"Cannot derive an output name for '{name}'; pass an output path.",
                {"path": str(input_path)},
            )
        return input_path.with_name(name[len(self._prefix):])

    @staticmethod
    def _check_derived_output(output_path: Path) -> None:
        if output_path.exists() or output_path.is_symlink():
            raise ValidationError(
                ValidationReason.OUTPUT_EXISTS,
                f"'{output_path}' already exists; pass an output path to overwrite it.",
                {"path": str(output_path)},
            )

    def decrypt(
        self,
        input_path: Path | str,
        peg: int,
        output_path: Optional[Path | str] = None,
        flags: ValidationFlags = DEFAULT_FLAGS,
    ) -> Path:
        """
        Decrypt input_path with peg.

        Args:
            input_path: Encrypted file
            peg: Shift key used for encryption
            output_path: Destination (default: input name without marker,
                which must not already exist)
            flags: Validation checks to apply

        Returns:
            The output path

        Raises:
            ValidationError: If a path or peg check fails, or the derived
                output already exists (OUTPUT_EXISTS)
            TransformIOError: If the transform fails mid-stream
        """
        input_path = Path(input_path)

        try:
            if output_path is None:
                output_path = self.derive_output_path(input_path)
                self._check_derived_output(output_path)
            params = OperationParams(input_path, Path(output_path), peg)
            self._cipher.process_file(params, CipherMode.DECRYPT, flags)
        except ValidationError as e:
            self._event(EventCategory.VALIDATION_FAIL, f"Decrypt rejected for {input_path}: {e.message}")
            raise
        except TransformIOError as e:
            self._event(EventCategory.DECRYPT_FAIL, f"Core processing failed for: {input_path} ({e.message})")
            raise

        return Path(output_path)

    def _event(self, category: EventCategory, details: str) -> None:
        if self._history is not None:
            self._history.log_event(category, details)


def decrypt_file(
    input_path: Path | str,
    peg: int,
    cipher: StreamCipher,
    output_path: Optional[Path | str] = None,
    history: Optional[OperationLog] = None,
) -> Path:
    """
    Convenience function to decrypt a file.

    Returns:
        Path to the decrypted output
    """
    return FileDecryptor(cipher, history).decrypt(input_path, peg, output_path)
