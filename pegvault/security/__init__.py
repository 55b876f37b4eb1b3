"""
Security module - Operation history and fixed constants.
"""

from pegvault.security.audit import (
    EventCategory,
    EventRecord,
    OperationKind,
    OperationLog,
    OperationRecord,
    parse_record,
)
from pegvault.security.constants import (
    ENCRYPTED_PREFIX,
    MAX_PEG,
    MIN_PEG,
)

__all__ = [
    "EventCategory",
    "EventRecord",
    "OperationKind",
    "OperationLog",
    "OperationRecord",
    "parse_record",
    "ENCRYPTED_PREFIX",
    "MAX_PEG",
    "MIN_PEG",
]
