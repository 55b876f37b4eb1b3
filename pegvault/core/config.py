"""
PegVault Configuration Module
=============================

Provides immutable, environment-aware configuration for the processing core.

Every component receives its settings from a PegVaultConfig value at
construction time, so tests can point the vault, history file and admin
hash at a temporary directory without touching global state.

Features:
- Immutable configuration after initialization
- Environment variable override support (PEGVAULT_ prefix)
- No secrets read from the environment
- Working-directory defaults matching the on-disk layout
"""

from __future__ import annotations

import hashlib
import os
import platform
from dataclasses import dataclass, field
from pathlib import Path
from typing import Final, Any, Optional

from pegvault.security.constants import (
    ADMIN_HASH_FILE,
    BUFFER_SIZE,
    BYTE_ALPHABET,
    DEFAULT_COMPARE_MAX_BYTES,
    ENCRYPTED_PREFIX,
    HISTORY_FILE,
    MAX_PEG,
    MIN_PEG,
    PRIVATE_VAULT_DIR,
)


_SENSITIVE_KEYS: Final[frozenset[str]] = frozenset({
    "password", "secret", "key", "token", "api_key",
    "private", "credential", "auth", "salt"
})


def _is_sensitive_key(key: str) -> bool:
    """Check if a configuration key might contain sensitive data."""
    key_lower = key.lower()
    return any(sensitive in key_lower for sensitive in _SENSITIVE_KEYS)


def _default_vault_dir() -> Path:
    return Path.cwd() / PRIVATE_VAULT_DIR


def _default_history_file() -> Path:
    return Path.cwd() / HISTORY_FILE


def _default_admin_hash_file() -> Path:
    return Path.cwd() / ADMIN_HASH_FILE


@dataclass(frozen=True, slots=True)
class PathConfig:
    """Immutable path configuration."""

    vault_dir: Path = field(default_factory=_default_vault_dir)
    history_file: Path = field(default_factory=_default_history_file)
    admin_hash_file: Path = field(default_factory=_default_admin_hash_file)
    log_dir: Optional[Path] = None

    def __post_init__(self) -> None:
        """Validate paths after initialization."""
        for field_name in ["vault_dir", "history_file", "admin_hash_file"]:
            path = getattr(self, field_name)
            if not path.is_absolute():
                raise ValueError(f"{field_name} must be an absolute path: {path}")
        if self.log_dir is not None and not self.log_dir.is_absolute():
            raise ValueError(f"log_dir must be an absolute path: {self.log_dir}")
        if self.history_file.parent == self.vault_dir:
            raise ValueError("history_file cannot live inside the vault directory")


@dataclass(frozen=True, slots=True)
class CipherConfig:
    """Immutable transform and validation settings."""

    min_peg: int = MIN_PEG
    max_peg: int = MAX_PEG
    chunk_size: int = BUFFER_SIZE
    encrypted_prefix: str = ENCRYPTED_PREFIX
    allowed_extensions: tuple[str, ...] = ()  # empty = any extension
    compare_max_bytes: int = DEFAULT_COMPARE_MAX_BYTES

    def __post_init__(self) -> None:
        """Validate cipher settings."""
        if not 0 <= self.min_peg <= self.max_peg < BYTE_ALPHABET:
            raise ValueError(
                f"Peg bounds must satisfy 0 <= min_peg <= max_peg <= {BYTE_ALPHABET - 1}"
            )
        if self.chunk_size < 1:
            raise ValueError("chunk_size must be at least 1 byte")
        if not self.encrypted_prefix:
            raise ValueError("encrypted_prefix cannot be empty")
        if any(sep in self.encrypted_prefix for sep in ("/", "\\")):
            raise ValueError("encrypted_prefix cannot contain path separators")
        if self.compare_max_bytes < 0:
            raise ValueError("compare_max_bytes cannot be negative")
        for ext in self.allowed_extensions:
            if not ext.startswith("."):
                raise ValueError(f"Extensions must start with a dot: {ext!r}")


@dataclass(frozen=True, slots=True)
class LoggingConfig:
    """Immutable diagnostic logging configuration."""

    level: str = "INFO"
    max_file_size_bytes: int = 10 * 1024 * 1024  # 10 MB
    backup_count: int = 5
    enable_console: bool = True
    enable_file: bool = False

    def __post_init__(self) -> None:
        """Validate logging settings."""
        valid_levels = {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}
        if self.level.upper() not in valid_levels:
            raise ValueError(f"Invalid log level: {self.level}")


class PegVaultConfig:
    """
    Centralized, immutable configuration with environment override support.

    Usage:
        config = PegVaultConfig.load()
        vault_dir = config.paths.vault_dir
        lowest = config.cipher.min_peg
    """

    __slots__ = ("_paths", "_cipher", "_logging", "_frozen", "_config_hash")

    _instance: Optional[PegVaultConfig] = None

    def __init__(
        self,
        paths: Optional[PathConfig] = None,
        cipher: Optional[CipherConfig] = None,
        logging: Optional[LoggingConfig] = None,
    ) -> None:
        """Initialize configuration. Use PegVaultConfig.load() for standard initialization."""
        object.__setattr__(self, "_frozen", False)
        object.__setattr__(self, "_paths", paths or PathConfig())
        object.__setattr__(self, "_cipher", cipher or CipherConfig())
        object.__setattr__(self, "_logging", logging or LoggingConfig())
        object.__setattr__(self, "_config_hash", self._compute_hash())
        object.__setattr__(self, "_frozen", True)

    @classmethod
    def for_directory(cls, base_dir: Path | str, **cipher_overrides: Any) -> PegVaultConfig:
        """
        Build a configuration rooted at a single directory.

        The vault, history file and admin hash are placed directly under
        base_dir, mirroring the working-directory defaults.
        """
        base = Path(base_dir).resolve()
        paths = PathConfig(
            vault_dir=base / PRIVATE_VAULT_DIR,
            history_file=base / HISTORY_FILE,
            admin_hash_file=base / ADMIN_HASH_FILE,
        )
        cipher = CipherConfig(**cipher_overrides) if cipher_overrides else None
        return cls(paths=paths, cipher=cipher)

    def _compute_hash(self) -> str:
        """Compute a short fingerprint of the configuration."""
        config_str = f"{self._paths}|{self._cipher}|{self._logging}"
        return hashlib.sha256(config_str.encode()).hexdigest()[:16]

    @property
    def paths(self) -> PathConfig:
        """Get path configuration."""
        return self._paths

    @property
    def cipher(self) -> CipherConfig:
        """Get cipher configuration."""
        return self._cipher

    @property
    def logging(self) -> LoggingConfig:
        """Get logging configuration."""
        return self._logging

    @property
    def config_hash(self) -> str:
        """Get configuration fingerprint."""
        return self._config_hash

    @classmethod
    def load(cls, env_prefix: str = "PEGVAULT", base_dir: Optional[Path | str] = None) -> PegVaultConfig:
        """
        Load configuration with environment variable overrides.

        Environment variables are prefixed with PEGVAULT_ and use double
        underscores for nested values.

        Examples:
            PEGVAULT_PATHS__VAULT_DIR=/srv/pegvault/.private_vault
            PEGVAULT_CIPHER__MIN_PEG=0
            PEGVAULT_CIPHER__ALLOWED_EXTENSIONS=.txt,.md
            PEGVAULT_LOGGING__LEVEL=DEBUG

        Args:
            env_prefix: Prefix for environment variables (default: PEGVAULT)
            base_dir: Root the vault, history file and admin hash here.
                Their PATHS overrides are then ignored; cipher, logging
                and log_dir overrides still apply.

        Returns:
            Configured PegVaultConfig instance
        """
        env_overrides = cls._parse_env_overrides(env_prefix)

        paths_kwargs: dict[str, Any] = {}
        if base_dir is not None:
            base = Path(base_dir).resolve()
            paths_kwargs.update(
                vault_dir=base / PRIVATE_VAULT_DIR,
                history_file=base / HISTORY_FILE,
                admin_hash_file=base / ADMIN_HASH_FILE,
            )
        for key in ("vault_dir", "history_file", "admin_hash_file", "log_dir"):
            if key not in paths_kwargs and f"paths.{key}" in env_overrides:
                paths_kwargs[key] = Path(env_overrides[f"paths.{key}"]).resolve()

        cipher_kwargs: dict[str, Any] = {}
        for key in ("min_peg", "max_peg", "chunk_size", "compare_max_bytes"):
            if f"cipher.{key}" in env_overrides:
                cipher_kwargs[key] = int(env_overrides[f"cipher.{key}"])
        if "cipher.encrypted_prefix" in env_overrides:
            cipher_kwargs["encrypted_prefix"] = env_overrides["cipher.encrypted_prefix"]
        if "cipher.allowed_extensions" in env_overrides:
            cipher_kwargs["allowed_extensions"] = tuple(
                ext.strip() for ext in env_overrides["cipher.allowed_extensions"].split(",")
                if ext.strip()
            )

        logging_kwargs: dict[str, Any] = {}
        if "logging.level" in env_overrides:
            logging_kwargs["level"] = env_overrides["logging.level"]
        if "logging.enable_console" in env_overrides:
            logging_kwargs["enable_console"] = env_overrides["logging.enable_console"].lower() == "true"
        if "logging.enable_file" in env_overrides:
            logging_kwargs["enable_file"] = env_overrides["logging.enable_file"].lower() == "true"

        return cls(
            paths=PathConfig(**paths_kwargs) if paths_kwargs else None,
            cipher=CipherConfig(**cipher_kwargs) if cipher_kwargs else None,
            logging=LoggingConfig(**logging_kwargs) if logging_kwargs else None,
        )

    @staticmethod
    def _parse_env_overrides(prefix: str) -> dict[str, str]:
        """Parse environment variables with the given prefix."""
        overrides: dict[str, str] = {}
        prefix_upper = f"{prefix.upper()}_"

        for key, value in os.environ.items():
            if key.startswith(prefix_upper):
                # PEGVAULT_SECTION__KEY -> section.key
                config_key = key[len(prefix_upper):].lower().replace("__", ".")

                if _is_sensitive_key(config_key):
                    continue

                overrides[config_key] = value

        return overrides

    @classmethod
    def get_instance(cls) -> PegVaultConfig:
        """
        Get or create the singleton configuration instance.

        Returns:
            The global PegVaultConfig instance
        """
        if cls._instance is None:
            cls._instance = cls.load()
        return cls._instance

    @classmethod
    def reset_instance(cls) -> None:
        """Reset the singleton instance. Use only for testing."""
        cls._instance = None

    def ensure_directories(self) -> None:
        """Create the directories holding the history file, admin hash and logs."""
        import stat

        directories = [
            self._paths.history_file.parent,
            self._paths.admin_hash_file.parent,
        ]
        if self._paths.log_dir is not None:
            directories.append(self._paths.log_dir)

        for directory in directories:
            directory.mkdir(parents=True, exist_ok=True)

        # The log directory is private; the others may be the user's cwd
        if self._paths.log_dir is not None and platform.system().lower() != "windows":
            self._paths.log_dir.chmod(stat.S_IRWXU)

    def __repr__(self) -> str:
        return f"PegVaultConfig(hash={self._config_hash}, vault={self._paths.vault_dir})"

    def __setattr__(self, name: str, value: Any) -> None:
        """Prevent modification after initialization."""
        if hasattr(self, "_frozen") and self._frozen:
            raise AttributeError("PegVaultConfig is immutable after initialization")
        super().__setattr__(name, value)
