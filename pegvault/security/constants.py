"""
Processing Constants
====================

Defines the fixed values shared by the validator, cipher, vault and
history components. Anything a deployment may want to change is also
exposed through PegVaultConfig; these are the defaults.
"""

from typing import Final

# Peg (shift key) range
MIN_PEG: Final[int] = 1
MAX_PEG: Final[int] = 255
BYTE_ALPHABET: Final[int] = 256

# Streaming
BUFFER_SIZE: Final[int] = 4096  # bytes per chunk

# Naming
ENCRYPTED_PREFIX: Final[str] = "enc_"

# Well-known locations (relative to the working directory)
PRIVATE_VAULT_DIR: Final[str] = ".private_vault"
HISTORY_FILE: Final[str] = "history.md"
ADMIN_HASH_FILE: Final[str] = "admin.hash"

# History line formats
HISTORY_TIMESTAMP_FORMAT: Final[str] = "%Y-%m-%d %H:%M:%S"

# Comparison limits
DEFAULT_COMPARE_MAX_BYTES: Final[int] = 100_000
