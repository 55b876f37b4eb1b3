"""
Streaming Byte-Shift Transform
==============================

Reversible additive shift over the full byte alphabet.

    encrypt: out[i] = (in[i] + k) mod 256
    decrypt: out[i] = (in[i] - k + 256) mod 256

Each byte is shifted independently by the constant peg k. There is no
diffusion and no keystream: this is byte-rotation obfuscation, NOT a
cryptographic cipher, and must not be relied on to protect data from
anyone who can read the output.

Files are processed in bounded chunks so memory use does not grow with
file size. The in-memory variant works on bytes and is used by the
integrity verifier to avoid writing temporary files.
"""

from __future__ import annotations

import logging
from enum import Enum
from functools import lru_cache
from pathlib import Path
from typing import Iterable, Iterator, Optional

from pegvault.core.exceptions import TransformIOError
from pegvault.security.audit import EventCategory, OperationLog
from pegvault.security.constants import BUFFER_SIZE, BYTE_ALPHABET
from pegvault.utils.validators import (
    DEFAULT_FLAGS,
    OperationParams,
    PathValidator,
    ValidationFlags,
)


class CipherMode(Enum):
    """Transform direction."""
    ENCRYPT = "ENCRYPT"
    DECRYPT = "DECRYPT"


@lru_cache(maxsize=2 * BYTE_ALPHABET)
def shift_table(peg: int, mode: CipherMode) -> bytes:
    """
    Build the 256-entry translation table for bytes.translate.

    The table is total over 0-255 for any integer peg, so encrypt and
    decrypt tables for the same peg are exact inverses.
    """
    offset = peg if mode is CipherMode.ENCRYPT else -peg
    return bytes((value + offset) % BYTE_ALPHABET for value in range(BYTE_ALPHABET))


class StreamCipher:
    """
    Chunked byte-shift transform over files and buffers.

    Usage:
        cipher = StreamCipher(PathValidator(), history)
        cipher.encrypt_file(Path("notes.txt"), Path("enc_notes.txt"), 5)
        plain = cipher.decrypt_bytes(cipher.encrypt_bytes(b"abc", 5), 5)

    Contract:
        - Paths and peg are validated before the output is opened
        - Every chunk read is fully transformed and written before the next read
        - A write failure aborts with TransformIOError(phase="write")
        - A read failure aborts with TransformIOError(phase="read"); the
          partial output is left on disk and the failure is recorded
    """

    __slots__ = ("_validator", "_history", "_chunk_size", "_log")

    def __init__(
        self,
        validator: PathValidator,
        history: Optional[OperationLog] = None,
        chunk_size: int = BUFFER_SIZE,
    ) -> None:
        """
        Args:
            validator: Gate applied before every file transform
            history: Receives operation and IO failure records
            chunk_size: Bytes read per step
        """
        if chunk_size < 1:
            raise ValueError("chunk_size must be at least 1 byte")
        self._validator = validator
        self._history = history
        self._chunk_size = chunk_size
        self._log = logging.getLogger("pegvault.cipher")

    @property
    def validator(self) -> PathValidator:
        return self._validator

    @property
    def chunk_size(self) -> int:
        return self._chunk_size

    # --- In-memory ---

    def transform_bytes(self, data: bytes, peg: int, mode: CipherMode) -> bytes:
        """Shift every byte of data. The peg is validated first."""
        self._validator.validate_peg(peg)
        return bytes(data).translate(shift_table(peg, mode))

    def encrypt_bytes(self, data: bytes, peg: int) -> bytes:
        return self.transform_bytes(data, peg, CipherMode.ENCRYPT)

    def decrypt_bytes(self, data: bytes, peg: int) -> bytes:
        return self.transform_bytes(data, peg, CipherMode.DECRYPT)

    def iter_transform(self, chunks: Iterable[bytes], peg: int, mode: CipherMode) -> Iterator[bytes]:
        """Lazily shift a stream of chunks."""
        self._validator.validate_peg(peg)
        table = shift_table(peg, mode)
        for chunk in chunks:
            yield chunk.translate(table)

    # --- Files ---

    def encrypt_file(self, input_path: Path | str, output_path: Path | str, peg: int) -> int:
        params = OperationParams(Path(input_path), Path(output_path), peg)
        return self.process_file(params, CipherMode.ENCRYPT)

    def decrypt_file(self, input_path: Path | str, output_path: Path | str, peg: int) -> int:
        params = OperationParams(Path(input_path), Path(output_path), peg)
        return self.process_file(params, CipherMode.DECRYPT)

    def process_file(
        self,
        params: OperationParams,
        mode: CipherMode,
        flags: ValidationFlags = DEFAULT_FLAGS,
    ) -> int:
        """
        Validate, then stream input through the transform into output.

        The output file is truncated if it exists.

        Args:
            params: Input, output and peg
            mode: ENCRYPT or DECRYPT
            flags: Which validation checks to apply; the peg check always runs

        Returns:
            Number of bytes written

        Raises:
            ValidationError: If validation fails (nothing is opened)
            TransformIOError: If opening, reading or writing fails
        """
        self._validator.validate_operation(params, flags)
        if not flags.check_peg:
            self._validator.validate_peg(params.peg)

        input_path = params.input_path
        output_path = params.output_path
        table = shift_table(params.peg, mode)

        self._log.info("%s %s -> %s", mode.value, input_path, output_path)

        try:
            src = open(input_path, "rb")
        except OSError as e:
            self._record_io_failure("open", input_path, output_path, 0, e)
            raise TransformIOError(
                "open",
                f"Could not open input file: {input_path}",
                {"path": str(input_path), "error": str(e)},
            ) from e

        written = 0
        with src:
            try:
                dst = open(output_path, "wb")
            except OSError as e:
                self._record_io_failure("open", input_path, output_path, 0, e)
                raise TransformIOError(
                    "open",
                    f"Could not open output file: {output_path}",
                    {"path": str(output_path), "error": str(e)},
                ) from e

            with dst:
                while True:
                    try:
                        chunk = src.read(self._chunk_size)
                    except OSError as e:
                        self._record_io_failure("read", input_path, output_path, written, e)
                        raise TransformIOError(
                            "read",
                            f"A read error occurred on input file {input_path}.",
                            {"path": str(input_path), "bytes_written": written, "error": str(e)},
                        ) from e

                    if not chunk:
                        break

                    try:
                        dst.write(chunk.translate(table))
                    except OSError as e:
                        self._record_io_failure("write", input_path, output_path, written, e)
                        raise TransformIOError(
                            "write",
                            f"A write error occurred while writing {output_path}.",
                            {"path": str(output_path), "bytes_written": written, "error": str(e)},
                        ) from e

                    written += len(chunk)

                try:
                    dst.flush()
                except OSError as e:
                    self._record_io_failure("write", input_path, output_path, written, e)
                    raise TransformIOError(
                        "write",
                        f"A write error occurred while writing {output_path}.",
                        {"path": str(output_path), "bytes_written": written, "error": str(e)},
                    ) from e

        if self._history is not None:
            self._history.log_operation(
                mode.value, input_path.resolve(), output_path.resolve(), params.peg
            )
        self._log.info("File processing complete (%d bytes)", written)
        return written

    def _record_io_failure(
        self,
        phase: str,
        input_path: Path,
        output_path: Path,
        written: int,
        error: OSError,
    ) -> None:
        if phase == "open":
            self._log.error("Could not open %s -> %s: %s", input_path, output_path, error)
            details = f"open failure processing {input_path} -> {output_path}: {error}"
        else:
            self._log.error(
                "%s failure after %d bytes; partial output left at %s: %s",
                phase, written, output_path, error,
            )
            details = (
                f"{phase} failure processing {input_path} -> {output_path} "
                f"after {written} bytes; partial output left in place"
            )
        if self._history is not None:
            self._history.log_event(EventCategory.IO_ERROR, details)
