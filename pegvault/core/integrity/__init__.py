"""
Integrity verification - digests, comparisons and vault verification.
"""

from pegvault.core.integrity.verifier import (
    BinaryCompareResult,
    IntegrityVerifier,
    TextCompareResult,
    compare_contents,
    sha256_file,
)

__all__ = [
    "BinaryCompareResult",
    "IntegrityVerifier",
    "TextCompareResult",
    "compare_contents",
    "sha256_file",
]
