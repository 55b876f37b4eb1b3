"""
Validation Utilities
====================

Gatekeeping checks run before any transform, vault move or retrieval.

Every check either returns normally or raises ValidationError carrying a
ValidationReason, so callers learn both that and why a request was
rejected before anything on disk changes.
"""

from __future__ import annotations

import os
import tempfile
from dataclasses import dataclass
from pathlib import Path
from typing import Final, Optional, Sequence

from pegvault.core.exceptions import ValidationError, ValidationReason
from pegvault.security.constants import MAX_PEG, MIN_PEG


@dataclass(frozen=True, slots=True)
class OperationParams:
    """Inputs of one transform request."""
    input_path: Path
    output_path: Path
    peg: int


@dataclass(frozen=True, slots=True)
class ValidationFlags:
    """Selects which checks validate_operation applies."""
    check_input_file: bool = True
    check_output_file: bool = True
    check_peg: bool = True
    ensure_output_differs: bool = True


DEFAULT_FLAGS: Final[ValidationFlags] = ValidationFlags()
NO_INPUT_CHECK_FLAGS: Final[ValidationFlags] = ValidationFlags(check_input_file=False)


def _same_file(a: Path, b: Path) -> bool:
    """True if a and b name the same file, following links."""
    try:
        if a.exists() and b.exists():
            return os.path.samefile(a, b)
    except OSError:
        pass  # fall through to the lexical comparison
    return a.resolve() == b.resolve()


class PathValidator:
    """
    Path, peg and name validation.

    Usage:
        validator = PathValidator(min_peg=1, max_peg=255)
        validator.validate_input(Path("notes.txt"))
        validator.validate_output(Path("enc_notes.txt"), compare_to=Path("notes.txt"))
        validator.validate_peg(5)
    """

    __slots__ = ("_min_peg", "_max_peg", "_allowed_extensions")

    def __init__(
        self,
        min_peg: int = MIN_PEG,
        max_peg: int = MAX_PEG,
        allowed_extensions: Sequence[str] = (),
    ) -> None:
        """
        Args:
            min_peg: Lowest accepted peg (inclusive)
            max_peg: Highest accepted peg (inclusive)
            allowed_extensions: Accepted input suffixes such as ".txt";
                empty accepts any file
        """
        self._min_peg = min_peg
        self._max_peg = max_peg
        self._allowed_extensions = tuple(ext.lower() for ext in allowed_extensions)

    @classmethod
    def from_config(cls, config) -> PathValidator:
        cipher = config.cipher
        return cls(
            min_peg=cipher.min_peg,
            max_peg=cipher.max_peg,
            allowed_extensions=cipher.allowed_extensions,
        )

    @property
    def peg_range(self) -> tuple[int, int]:
        return self._min_peg, self._max_peg

    def validate_input(self, path: str | Path) -> Path:
        """
        Check that path is an existing, non-empty regular file.

        Returns:
            The path as a Path object

        Raises:
            ValidationError: NOT_FOUND, NOT_REGULAR or EMPTY
        """
        path = Path(path)

        if not path.exists():
            raise ValidationError(
                ValidationReason.NOT_FOUND,
                f"File '{path}' does not exist.",
                {"path": str(path)},
            )

        if not path.is_file():
            raise ValidationError(
                ValidationReason.NOT_REGULAR,
                f"'{path}' is not a regular file.",
                {"path": str(path)},
            )

        if path.stat().st_size == 0:
            raise ValidationError(
                ValidationReason.EMPTY,
                f"File '{path}' is empty.",
                {"path": str(path)},
            )

        return path

    def validate_extension(self, path: str | Path) -> Path:
        """
        Check the input suffix against the configured allow-list.

        Raises:
            ValidationError: EXTENSION_NOT_ALLOWED
        """
        path = Path(path)
        if self._allowed_extensions and path.suffix.lower() not in self._allowed_extensions:
            raise ValidationError(
                ValidationReason.EXTENSION_NOT_ALLOWED,
                f"'{path.name}' does not have an allowed extension "
                f"({', '.join(self._allowed_extensions)}).",
                {"path": str(path)},
            )
        return path

    def validate_output(self, path: str | Path, compare_to: Optional[str | Path] = None) -> Path:
        """
        Check that path can be written and does not alias compare_to.

        Writability is checked by creating and deleting a temporary file in
        the parent directory, since permission bits alone are unreliable
        across platforms.

        Args:
            path: Intended output file
            compare_to: Input the output must not coincide with

        Returns:
            The path as a Path object

        Raises:
            ValidationError: SAME_AS_INPUT, PARENT_MISSING, PARENT_NOT_DIR,
                NOT_REGULAR or NOT_WRITABLE
        """
        path = Path(path)

        if compare_to is not None and _same_file(path, Path(compare_to)):
            raise ValidationError(
                ValidationReason.SAME_AS_INPUT,
                "Output file cannot be the same as the input file.",
                {"path": str(path), "input": str(compare_to)},
            )

        parent = path.parent
        if not parent.exists():
            raise ValidationError(
                ValidationReason.PARENT_MISSING,
                f"Directory '{parent}' does not exist.",
                {"path": str(path)},
            )

        if not parent.is_dir():
            raise ValidationError(
                ValidationReason.PARENT_NOT_DIR,
                f"'{parent}' is not a directory.",
                {"path": str(path)},
            )

        if path.is_dir():
            raise ValidationError(
                ValidationReason.NOT_REGULAR,
                f"Output path '{path}' is a directory.",
                {"path": str(path)},
            )

        try:
            with tempfile.NamedTemporaryFile(dir=parent, prefix=".write_check", suffix=".tmp"):
                pass
        except OSError as e:
            raise ValidationError(
                ValidationReason.NOT_WRITABLE,
                f"Cannot write to directory '{parent}'. Check permissions.",
                {"path": str(path), "error": str(e)},
            ) from e

        return path

    def validate_peg(self, peg: int) -> int:
        """
        Check that peg lies in the configured inclusive range.

        Raises:
            ValidationError: PEG_OUT_OF_RANGE
        """
        if isinstance(peg, bool) or not isinstance(peg, int):
            raise ValidationError(
                ValidationReason.PEG_OUT_OF_RANGE,
                f"Peg value {peg!r} is not an integer.",
                {"peg": repr(peg)},
            )

        if not self._min_peg <= peg <= self._max_peg:
            raise ValidationError(
                ValidationReason.PEG_OUT_OF_RANGE,
                f"Peg value {peg} is out of range ({self._min_peg}-{self._max_peg}).",
                {"peg": peg, "min": self._min_peg, "max": self._max_peg},
            )

        return peg

    def validate_vault_name(self, name: str) -> str:
        """
        Check that name is a bare filename that stays inside the vault.

        Raises:
            ValidationError: INVALID_NAME
        """
        if (
            not name
            or name in (".", "..")
            or "/" in name
            or "\\" in name
            or "\x00" in name
            or Path(name).name != name
        ):
            raise ValidationError(
                ValidationReason.INVALID_NAME,
                f"'{name}' is not a valid vault filename.",
                {"name": name},
            )
        return name

    def validate_operation(
        self,
        params: OperationParams,
        flags: ValidationFlags = DEFAULT_FLAGS,
    ) -> OperationParams:
        """
        Apply the checks selected by flags, stopping at the first failure.

        Order: input file, output file, peg.

        Raises:
            ValidationError: The first failing check
        """
        if flags.check_input_file:
            self.validate_input(params.input_path)

        if flags.check_output_file:
            self.validate_output(
                params.output_path,
                compare_to=params.input_path if flags.ensure_output_differs else None,
            )

        if flags.check_peg:
            self.validate_peg(params.peg)

        return params
