"""
Operation History
=================

Append-only history of transforms, vault moves and failures.

The history file is plain text, one record per line:

    ENCRYPT: notes.txt -> enc_notes.txt (pegs: 5) | 2024-05-01 12:00:00
    EVENT (ENCRYPT_OUTPUT): sha256=9f86d0... /docs/enc_notes.txt | 2024-05-01 12:00:00
    EVENT (VAULT_STORE): Moved to vault: notes.txt | 2024-05-01 12:00:00

Each ENCRYPT is followed by an ENCRYPT_OUTPUT event carrying the SHA-256
of the file it produced, so an encrypted artifact is still recognised
after it has been renamed.

Paths that are not valid UTF-8 (undecodable POSIX file names) are written
with backslash escapes.

Lines are only ever appended. Appends within one process are serialised by
a lock; concurrent writers in separate processes are not supported.
"""

from __future__ import annotations

import logging
import os
import re
import threading
from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from pathlib import Path
from typing import Final, Iterator, List, Optional, Set, Union

from pegvault.security.constants import HISTORY_TIMESTAMP_FORMAT


class OperationKind(Enum):
    """State-changing transforms recorded as operation lines."""
    ENCRYPT = "ENCRYPT"
    DECRYPT = "DECRYPT"


class EventCategory(Enum):
    """Categories recorded as event lines."""
    # Vault
    VAULT_STORE = "VAULT_STORE"
    VAULT_RETRIEVE = "VAULT_RETRIEVE"
    VAULT_FAIL = "VAULT_FAIL"
    RETRIEVE_FAIL = "RETRIEVE_FAIL"

    # Transforms
    ENCRYPT_FAIL = "ENCRYPT_FAIL"
    DECRYPT_FAIL = "DECRYPT_FAIL"
    VALIDATION_FAIL = "VALIDATION_FAIL"
    IO_ERROR = "IO_ERROR"
    ENCRYPT_OUTPUT = "ENCRYPT_OUTPUT"

    # Integrity
    HASH_ERROR = "HASH_ERROR"
    LOAD_FAIL = "LOAD_FAIL"
    COMPARE_TEXT = "COMPARE_TEXT"
    COMPARE_BINARY = "COMPARE_BINARY"
    VERIFY = "VERIFY"

    # Configuration and access
    CONFIG_ERROR = "CONFIG_ERROR"
    ACCESS_DENIED = "ACCESS_DENIED"


_OPERATION_LINE: Final[re.Pattern[str]] = re.compile(
    r"^(?P<kind>[A-Z_]+): (?P<input>.*) -> (?P<output>.*) \(pegs: (?P<peg>-?\d+)\) \| (?P<ts>[\d\- :]+)$"
)
_EVENT_LINE: Final[re.Pattern[str]] = re.compile(
    r"^EVENT \((?P<category>[A-Z_]+)\): (?P<details>.*) \| (?P<ts>[\d\- :]+)$"
)
_DIGEST_TAG: Final[str] = "sha256="


@dataclass(frozen=True)
class OperationRecord:
    """A recorded transform."""
    kind: str
    input_path: str
    output_path: str
    peg: int
    timestamp: datetime

    def to_line(self) -> str:
        return (
            f"{self.kind}: {self.input_path} -> {self.output_path} "
            f"(pegs: {self.peg}) | {self.timestamp.strftime(HISTORY_TIMESTAMP_FORMAT)}"
        )


@dataclass(frozen=True)
class EventRecord:
    """A recorded event or failure."""
    category: str
    details: str
    timestamp: datetime

    def to_line(self) -> str:
        return (
            f"EVENT ({self.category}): {self.details} "
            f"| {self.timestamp.strftime(HISTORY_TIMESTAMP_FORMAT)}"
        )


LogRecord = Union[OperationRecord, EventRecord]


def parse_record(line: str) -> Optional[LogRecord]:
    """
    Parse one history line.

    Returns None for lines that match neither format (blank lines, or
    anything appended by hand).
    """
    line = line.rstrip("\r\n")

    match = _EVENT_LINE.match(line)
    if match:
        return EventRecord(
            category=match["category"],
            details=match["details"],
            timestamp=datetime.strptime(match["ts"].strip(), HISTORY_TIMESTAMP_FORMAT),
        )

    match = _OPERATION_LINE.match(line)
    if match:
        return OperationRecord(
            kind=match["kind"],
            input_path=match["input"],
            output_path=match["output"],
            peg=int(match["peg"]),
            timestamp=datetime.strptime(match["ts"].strip(), HISTORY_TIMESTAMP_FORMAT),
        )

    return None


def _single_line(text: str) -> str:
    # A record must never span lines
    return text.replace("\r", " ").replace("\n", " ")


class OperationLog:
    """
    Append-only history recorder.

    Features:
    - One human-readable line per record
    - Append-only (never rewritten or truncated)
    - fsync after every append
    - Typed read-back for history views and re-encryption checks

    Usage:
        history = OperationLog(Path("history.md"))
        history.log_operation(OperationKind.ENCRYPT, "a.txt", "enc_a.txt", 5)
        history.log_event(EventCategory.VAULT_STORE, "Moved to vault: a.txt")
    """

    def __init__(self, log_path: Path):
        self._log_path = Path(log_path)
        self._lock = threading.Lock()
        self._log = logging.getLogger("pegvault.history")

    @property
    def path(self) -> Path:
        return self._log_path

    def log_operation(
        self,
        kind: OperationKind | str,
        input_path: str | Path,
        output_path: str | Path,
        peg: int,
    ) -> bool:
        """
        Record a completed transform.

        Returns:
            True if the line was written
        """
        record = OperationRecord(
            kind=kind.value if isinstance(kind, OperationKind) else str(kind),
            input_path=_single_line(str(input_path)),
            output_path=_single_line(str(output_path)),
            peg=peg,
            timestamp=datetime.now(),
        )
        return self._append(record.to_line())

    def log_event(self, category: EventCategory | str, details: str) -> bool:
        """
        Record an event or failure.

        Returns:
            True if the line was written
        """
        record = EventRecord(
            category=category.value if isinstance(category, EventCategory) else str(category),
            details=_single_line(details),
            timestamp=datetime.now(),
        )
        return self._append(record.to_line())

    def log_encryption_output(self, output_path: str | Path, digest: str) -> bool:
        """Record the SHA-256 fingerprint of an encryption output."""
        return self.log_event(EventCategory.ENCRYPT_OUTPUT, f"{_DIGEST_TAG}{digest} {output_path}")

    def _append(self, line: str) -> bool:
        """
        Append one line.

        A history file that cannot be opened or written is reported on the
        diagnostic logger and does not abort the operation being recorded.
        """
        with self._lock:
            try:
                with open(self._log_path, "a", encoding="utf-8", errors="backslashreplace") as f:
                    f.write(line + "\n")
                    f.flush()
                    os.fsync(f.fileno())
            except (OSError, UnicodeError) as e:
                self._log.warning(
                    "Could not write history file %s: %s", self._log_path, e
                )
                return False
        return True

    def read_text(self) -> str:
        """
        Return the raw history, or an empty string if none exists yet.

        Raises:
            OSError: If the file exists but cannot be read
        """
        if not self._log_path.exists():
            return ""
        return self._log_path.read_text(encoding="utf-8", errors="replace")

    def iter_records(self) -> Iterator[LogRecord]:
        """Yield parsed records in file order, skipping unparseable lines."""
        if not self._log_path.exists():
            return

        with open(self._log_path, "r", encoding="utf-8", errors="replace") as f:
            for line in f:
                record = parse_record(line)
                if record is not None:
                    yield record

    def get_records(
        self,
        since: Optional[datetime] = None,
        kind: Optional[OperationKind] = None,
        category: Optional[EventCategory] = None,
        limit: Optional[int] = None,
    ) -> List[LogRecord]:
        """
        Get filtered records (read-only).

        Passing kind restricts the result to operation records; passing
        category restricts it to event records.
        """
        records: List[LogRecord] = []

        for record in self.iter_records():
            if since and record.timestamp < since:
                continue

            if kind is not None:
                if not isinstance(record, OperationRecord) or record.kind != kind.value:
                    continue

            if category is not None:
                if not isinstance(record, EventRecord) or record.category != category.value:
                    continue

            records.append(record)

            if limit is not None and len(records) >= limit:
                break

        return records

    def encryption_output_digests(self) -> Set[str]:
        """Fingerprints of every recorded encryption output."""
        digests: Set[str] = set()
        for record in self.get_records(category=EventCategory.ENCRYPT_OUTPUT):
            token = record.details.split(" ", 1)[0]
            if token.startswith(_DIGEST_TAG):
                digests.add(token[len(_DIGEST_TAG):])
        return digests

    def was_encryption_output(self, path: str | Path, digest: Optional[str] = None) -> bool:
        """
        Check whether the history records path as the output of an ENCRYPT.

        Paths are compared after resolving, so relative and absolute
        spellings of the same file match. When digest is given, a file
        whose content fingerprint matches a recorded output also counts,
        whatever it is now called.
        """
        target = Path(path).resolve()
        for record in self.get_records(kind=OperationKind.ENCRYPT):
            if Path(record.output_path).resolve() == target:
                return True
        if digest is not None:
            return digest in self.encryption_output_digests()
        return False
