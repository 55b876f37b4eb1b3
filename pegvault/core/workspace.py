"""
Component wiring.

A Workspace builds every core component from one PegVaultConfig so callers
(the CLI, a GUI, tests) share a single validator, history and vault.
"""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Optional

from argon2 import PasswordHasher

from pegvault.core.auth.admin_gate import AdminGate
from pegvault.core.cipher.stream_cipher import StreamCipher
from pegvault.core.config import PegVaultConfig
from pegvault.core.file_ops.decrypt import FileDecryptor
from pegvault.core.file_ops.encrypt import EncryptionOutcome, FileEncryptor
from pegvault.core.files.vault_store import VaultStore
from pegvault.core.integrity.verifier import IntegrityVerifier, TextCompareResult
from pegvault.security.audit import OperationLog
from pegvault.utils.validators import PathValidator


@dataclass
class Workspace:
    config: PegVaultConfig
    validator: PathValidator
    history: OperationLog
    cipher: StreamCipher
    vault: VaultStore
    verifier: IntegrityVerifier
    encryptor: FileEncryptor
    decryptor: FileDecryptor
    admin: AdminGate

    @classmethod
    def from_config(
        cls,
        config: Optional[PegVaultConfig] = None,
        hasher: Optional[PasswordHasher] = None,
    ) -> Workspace:
        config = config or PegVaultConfig.get_instance()
        cipher_config = config.cipher

        validator = PathValidator.from_config(config)
        history = OperationLog(config.paths.history_file)
        cipher = StreamCipher(validator, history, chunk_size=cipher_config.chunk_size)
        vault = VaultStore(config.paths.vault_dir, validator, history)
        verifier = IntegrityVerifier(
            cipher,
            vault,
            history,
            default_max_bytes=cipher_config.compare_max_bytes,
            chunk_size=cipher_config.chunk_size,
        )

        return cls(
            config=config,
            validator=validator,
            history=history,
            cipher=cipher,
            vault=vault,
            verifier=verifier,
            encryptor=FileEncryptor(cipher, vault, history, prefix=cipher_config.encrypted_prefix),
            decryptor=FileDecryptor(cipher, history, prefix=cipher_config.encrypted_prefix),
            admin=AdminGate(config.paths.admin_hash_file, history, hasher=hasher),
        )

    # Thin pass-throughs for callers that only need the common path

    def encrypt(self, input_path: Path | str, peg: int) -> EncryptionOutcome:
        return self.encryptor.encrypt(input_path, peg)

    def decrypt(self, input_path: Path | str, peg: int, output_path: Optional[Path | str] = None) -> Path:
        return self.decryptor.decrypt(input_path, peg, output_path)

    def retrieve(self, vault_filename: str, destination: Path | str, passphrase: str) -> Path:
        self.admin.require(passphrase, action=f"retrieve {vault_filename}")
        return self.vault.retrieve_from_vault(vault_filename, destination)

    def read_history(self, passphrase: str) -> str:
        self.admin.require(passphrase, action="view history")
        return self.history.read_text()

    def verify(self, vault_filename: str, external_path: Path | str, peg: int) -> TextCompareResult:
        return self.verifier.verify_against_external(vault_filename, external_path, peg)
