"""
PegVault File Operations Module
===============================

Encrypt and decrypt workflows built on the stream cipher and vault.

Components:
- encrypt.py: encrypt next to the input, then vault the original
- decrypt.py: reverse the shift into an explicit or derived output
"""

from pegvault.core.file_ops.encrypt import (
    EncryptionOutcome,
    FileEncryptor,
    encrypt_file,
)
from pegvault.core.file_ops.decrypt import (
    FileDecryptor,
    decrypt_file,
)

__all__ = [
    "EncryptionOutcome",
    "FileEncryptor",
    "encrypt_file",
    "FileDecryptor",
    "decrypt_file",
]
