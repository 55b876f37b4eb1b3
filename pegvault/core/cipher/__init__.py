"""
PegVault Byte Transform
=======================

Reversible peg-shift transform over files and in-memory buffers.

WARNING: The transform is byte-rotation obfuscation, not encryption in
         any cryptographic sense.
"""

from pegvault.core.cipher.stream_cipher import CipherMode, StreamCipher, shift_table

__all__ = [
    "CipherMode",
    "StreamCipher",
    "shift_table",
]
