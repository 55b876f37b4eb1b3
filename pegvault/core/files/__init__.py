"""
Vault storage - the private directory holding moved-aside originals.
"""

from pegvault.core.files.vault_store import VaultEntry, VaultStore

__all__ = ["VaultEntry", "VaultStore"]
