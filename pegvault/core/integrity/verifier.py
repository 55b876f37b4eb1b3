"""
Integrity Verification Module
=============================

Digests and byte-level comparisons between files, plus the vault
verification workflow.

Verification Flow:
1. Load the vaulted original
2. Apply the peg shift in memory (no temporary file is written)
3. Compare the result byte-for-byte with an externally held artifact

Comparison functions never raise for unreadable or missing files; they
report a degraded result with a per-side error message instead.
"""

from __future__ import annotations

import hmac
import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Final, Optional

from cryptography.exceptions import AlreadyFinalized, UnsupportedAlgorithm
from cryptography.hazmat.primitives import hashes

from pegvault.core.cipher.stream_cipher import StreamCipher
from pegvault.core.exceptions import HashError
from pegvault.core.files.vault_store import VaultStore
from pegvault.security.audit import EventCategory, OperationLog
from pegvault.security.constants import BUFFER_SIZE, DEFAULT_COMPARE_MAX_BYTES


_FULL_MATCH: Final[float] = 100.0


@dataclass
class TextCompareResult:
    """
    Outcome of a byte-by-byte comparison.

    first_diff_offset is -1 when the contents are identical. When the
    shared prefix matches but lengths differ it is the shorter length.
    """
    readable: bool = False
    content_a: bytes = b""
    content_b: bytes = b""
    match_percentage: float = 0.0
    first_diff_offset: int = -1
    error: str = ""

    @property
    def identical(self) -> bool:
        return self.readable and self.first_diff_offset == -1

    def __repr__(self) -> str:
        return (
            f"TextCompareResult(readable={self.readable}, "
            f"match={self.match_percentage:.1f}%, first_diff={self.first_diff_offset})"
        )


@dataclass
class BinaryCompareResult:
    """Outcome of a size-and-digest comparison."""
    exists_a: bool = False
    exists_b: bool = False
    size_a: int = 0
    size_b: int = 0
    digest_a: str = ""
    digest_b: str = ""
    sizes_match: bool = False
    digests_match: bool = False
    error_a: str = ""
    error_b: str = ""

    @property
    def identical(self) -> bool:
        return self.sizes_match and self.digests_match


@dataclass
class _SideInfo:
    exists: bool = False
    size: int = 0
    digest: str = ""
    error: str = ""

    @property
    def read_ok(self) -> bool:
        return self.exists and not self.error


def sha256_file(path: Path | str, chunk_size: int = BUFFER_SIZE) -> str:
    """
    Stream a file through SHA-256 and return the lowercase hex digest.

    Raises:
        OSError: If the file cannot be opened or read
        UnsupportedAlgorithm: If the backend has no SHA-256
    """
    hasher = hashes.Hash(hashes.SHA256())
    with open(path, "rb") as f:
        while chunk := f.read(chunk_size):
            hasher.update(chunk)
    return hasher.finalize().hex()


def compare_contents(content_a: bytes, content_b: bytes) -> TextCompareResult:
    """
    Compare two buffers position by position over their shared prefix.

    match_percentage = matches / max(len_a, len_b) * 100, with two empty
    buffers counting as a full match.
    """
    len_a = len(content_a)
    len_b = len(content_b)
    min_len = min(len_a, len_b)
    max_len = max(len_a, len_b)

    matches = 0
    first_diff = -1
    for offset, (a, b) in enumerate(zip(content_a, content_b)):
        if a == b:
            matches += 1
        elif first_diff == -1:
            first_diff = offset

    if max_len > 0:
        percentage = matches / max_len * 100.0
    else:
        percentage = _FULL_MATCH

    if len_a != len_b and first_diff == -1:
        first_diff = min_len

    return TextCompareResult(
        readable=True,
        content_a=content_a,
        content_b=content_b,
        match_percentage=percentage,
        first_diff_offset=first_diff,
    )


class IntegrityVerifier:
    """
    Digests, comparisons and vault verification.

    Usage:
        verifier = IntegrityVerifier(cipher, vault, history)
        verifier.digest(Path("notes.txt"))
        verifier.compare_binary(Path("a.bin"), Path("b.bin"))
        result = verifier.verify_against_external("notes.txt", Path("enc_notes.txt"), 5)
        if result.match_percentage == 100.0:
            ...
    """

    __slots__ = ("_cipher", "_vault", "_history", "_chunk_size", "_default_max_bytes", "_log")

    def __init__(
        self,
        cipher: StreamCipher,
        vault: VaultStore,
        history: Optional[OperationLog] = None,
        default_max_bytes: int = DEFAULT_COMPARE_MAX_BYTES,
        chunk_size: int = BUFFER_SIZE,
    ) -> None:
        """
        Args:
            cipher: Supplies the in-memory transform
            vault: Locates vaulted originals by name
            history: Receives comparison and hash failure records
            default_max_bytes: compare_text load limit when none is given
            chunk_size: Bytes per digest update
        """
        self._cipher = cipher
        self._vault = vault
        self._history = history
        self._default_max_bytes = default_max_bytes
        self._chunk_size = chunk_size
        self._log = logging.getLogger("pegvault.integrity")

    # --- Digests ---

    def digest(self, path: Path | str) -> str:
        """
        Stream a file through SHA-256.

        An empty file yields the digest of the empty string, so an empty
        result is never returned on success.

        Returns:
            Lowercase hex digest

        Raises:
            HashError: If the file cannot be opened or read, or the hash
                engine fails
        """
        path = Path(path)

        try:
            return sha256_file(path, self._chunk_size)
        except UnsupportedAlgorithm as e:
            self._hash_failure(path, f"SHA-256 setup failed: {e}")
            raise HashError("SHA-256 is not available", {"path": str(path)}) from e
        except OSError as e:
            self._hash_failure(path, f"Could not read file for hashing: {e}")
            raise HashError(
                f"Could not read '{path}' for hashing.",
                {"path": str(path), "error": str(e)},
            ) from e
        except AlreadyFinalized as e:
            self._hash_failure(path, "Digest finalization failed")
            raise HashError("Digest finalization failed", {"path": str(path)}) from e

    # --- Comparisons ---

    def compare_binary(self, path_a: Path | str, path_b: Path | str) -> BinaryCompareResult:
        """
        Compare two files by size and SHA-256 digest.

        Each side is examined independently. sizes_match and digests_match
        are only set when both sides were read successfully.
        """
        side_a = self._inspect(Path(path_a))
        side_b = self._inspect(Path(path_b))

        result = BinaryCompareResult(
            exists_a=side_a.exists,
            exists_b=side_b.exists,
            size_a=side_a.size,
            size_b=side_b.size,
            digest_a=side_a.digest,
            digest_b=side_b.digest,
            error_a=side_a.error,
            error_b=side_b.error,
        )

        if side_a.read_ok and side_b.read_ok:
            result.sizes_match = side_a.size == side_b.size
            result.digests_match = hmac.compare_digest(side_a.digest, side_b.digest)

        self._event(EventCategory.COMPARE_BINARY, f"Compared {path_a} with {path_b}")
        return result

    def _inspect(self, path: Path) -> _SideInfo:
        info = _SideInfo(exists=path.is_file())
        if not info.exists:
            info.error = f"File not found or is not a regular file: {path}"
            return info

        try:
            info.size = path.stat().st_size
        except OSError as e:
            info.error = f"Could not read size of '{path}': {e}"
            return info

        try:
            info.digest = self.digest(path)
        except HashError as e:
            info.error = f"Failed to calculate SHA-256 hash for '{path}': {e.message}"

        return info

    def load_content(self, path: Path | str, max_bytes: Optional[int] = None) -> bytes:
        """
        Read up to max_bytes from a file (all of it when max_bytes is None).

        Raises:
            OSError: If the file cannot be opened or read
        """
        with open(path, "rb") as f:
            if max_bytes is None:
                return f.read()
            return f.read(max_bytes)

    def compare_text(
        self,
        path_a: Path | str,
        path_b: Path | str,
        max_bytes: Optional[int] = None,
    ) -> TextCompareResult:
        """
        Load up to max_bytes of each file and compare them byte by byte.

        Args:
            path_a: First file
            path_b: Second file
            max_bytes: Load limit per side (default: the configured limit)

        Returns:
            TextCompareResult; readable is False with error set if either
            file is missing or unreadable
        """
        if max_bytes is None:
            max_bytes = self._default_max_bytes

        contents = []
        for label, path in (("File 1", Path(path_a)), ("File 2", Path(path_b))):
            content, error = self._load_side(label, path, max_bytes)
            if error:
                return TextCompareResult(error=error)
            contents.append(content)

        result = compare_contents(contents[0], contents[1])
        self._event(
            EventCategory.COMPARE_TEXT,
            f"Compared {path_a} with {path_b} ({result.match_percentage:.2f}% match)",
        )
        return result

    def _load_side(self, label: str, path: Path, max_bytes: Optional[int]) -> tuple[bytes, str]:
        if not path.is_file():
            error = f"{label} not found or is not a regular file: {path}"
            self._event(EventCategory.LOAD_FAIL, error)
            return b"", error

        try:
            return self.load_content(path, max_bytes), ""
        except OSError as e:
            error = f"Error reading {label.lower()} '{path}': {e}"
            self._event(EventCategory.LOAD_FAIL, error)
            return b"", error

    # --- Verification ---

    def verify_against_external(
        self,
        vault_filename: str,
        external_encrypted_path: Path | str,
        peg: int,
        max_bytes: Optional[int] = None,
    ) -> TextCompareResult:
        """
        Check that an external artifact is the peg-shift of a vaulted original.

        The vaulted file is encrypted in memory and compared with the
        external file; nothing is written to disk. A match percentage of
        100.0 means the external file equals encrypt(original, peg).

        Args:
            vault_filename: Base name of the original inside the vault
            external_encrypted_path: Artifact to check
            peg: Shift key the artifact is claimed to use
            max_bytes: Load limit per side (default: whole files)

        Returns:
            TextCompareResult comparing encrypt(original) with the artifact

        Raises:
            ValidationError: If the peg is out of range or the vault
                filename is not a bare name
        """
        self._cipher.validator.validate_peg(peg)
        vault_path = self._vault.path_for(vault_filename)
        external_path = Path(external_encrypted_path)

        original, error = self._load_side("Vault file", vault_path, max_bytes)
        if error:
            return TextCompareResult(error=error)

        external, error = self._load_side("External file", external_path, max_bytes)
        if error:
            return TextCompareResult(error=error)

        in_memory = self._cipher.encrypt_bytes(original, peg)
        result = compare_contents(in_memory, external)

        self._event(
            EventCategory.VERIFY,
            f"Verified vault file {vault_filename} against {external_path} "
            f"(pegs: {peg}): {result.match_percentage:.2f}% match",
        )
        self._log.info(
            "Verification of %s: %.2f%% match", vault_filename, result.match_percentage
        )
        return result

    def _hash_failure(self, path: Path, details: str) -> None:
        self._log.error("Hash failure for %s: %s", path, details)
        self._event(EventCategory.HASH_ERROR, f"{details}: {path}")

    def _event(self, category: EventCategory, details: str) -> None:
        if self._history is not None:
            self._history.log_event(category, details)
