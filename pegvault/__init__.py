"""
PegVault - Peg-Shift File Processing Core
=========================================

Streaming byte-shift transform, integrity verification and a private
vault for originals.

Notice:
- The peg shift is obfuscation, not cryptography
- The vault and history assume a single writer at a time
- Admin passphrases are only ever stored as Argon2id hashes
"""

from pegvault.core.config import PegVaultConfig
from pegvault.core.logging import get_secure_logger
from pegvault.core.workspace import Workspace

__version__ = "0.1.0"

__all__ = ["PegVaultConfig", "Workspace", "get_secure_logger", "__version__"]
