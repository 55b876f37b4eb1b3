"""
Configuration and diagnostic logging tests.
"""

import logging
from pathlib import Path

import pytest

from pegvault.core.config import CipherConfig, LoggingConfig, PathConfig, PegVaultConfig
from pegvault.core.exceptions import ValidationError, ValidationReason
from pegvault.core.logging import SecureLogFilter, configure_package_logger, get_secure_logger
from pegvault.core.workspace import Workspace


# ============================================================================
# Defaults and construction
# ============================================================================

def test_defaults(temp_dir: Path, monkeypatch):
    monkeypatch.chdir(temp_dir)
    config = PegVaultConfig.load()

    assert config.paths.vault_dir == temp_dir / ".private_vault"
    assert config.paths.history_file == temp_dir / "history.md"
    assert config.cipher.min_peg == 1
    assert config.cipher.max_peg == 255
    assert config.cipher.chunk_size == 4096
    assert config.cipher.encrypted_prefix == "enc_"


def test_for_directory_with_cipher_overrides(temp_dir: Path):
    config = PegVaultConfig.for_directory(temp_dir, min_peg=0, allowed_extensions=(".txt",))
    assert config.paths.admin_hash_file == temp_dir / "admin.hash"
    assert config.cipher.min_peg == 0
    assert config.cipher.allowed_extensions == (".txt",)


def test_config_is_immutable(config):
    with pytest.raises(AttributeError):
        config._cipher = CipherConfig()
    with pytest.raises(AttributeError):
        config.cipher.min_peg = 0


def test_config_hash_tracks_content(temp_dir: Path):
    a = PegVaultConfig.for_directory(temp_dir)
    b = PegVaultConfig.for_directory(temp_dir)
    c = PegVaultConfig.for_directory(temp_dir, max_peg=100)
    assert a.config_hash == b.config_hash
    assert a.config_hash != c.config_hash


@pytest.mark.parametrize(
    "kwargs",
    [
        {"min_peg": 10, "max_peg": 5},
        {"max_peg": 256},
        {"min_peg": -1},
        {"chunk_size": 0},
        {"encrypted_prefix": ""},
        {"encrypted_prefix": "enc/"},
        {"allowed_extensions": ("txt",)},
    ],
)
def test_invalid_cipher_config(kwargs):
    with pytest.raises(ValueError):
        CipherConfig(**kwargs)


def test_relative_paths_rejected():
    with pytest.raises(ValueError):
        PathConfig(vault_dir=Path("relative/vault"))


def test_history_inside_vault_rejected(temp_dir: Path):
    with pytest.raises(ValueError):
        PathConfig(
            vault_dir=temp_dir / "vault",
            history_file=temp_dir / "vault" / "history.md",
            admin_hash_file=temp_dir / "admin.hash",
        )


def test_invalid_log_level():
    with pytest.raises(ValueError):
        LoggingConfig(level="CHATTY")


# ============================================================================
# Environment overrides
# ============================================================================

def test_env_overrides(temp_dir: Path, monkeypatch):
    monkeypatch.setenv("PEGVAULT_PATHS__VAULT_DIR", str(temp_dir / "elsewhere"))
    monkeypatch.setenv("PEGVAULT_CIPHER__MIN_PEG", "0")
    monkeypatch.setenv("PEGVAULT_CIPHER__MAX_PEG", "128")
    monkeypatch.setenv("PEGVAULT_CIPHER__ALLOWED_EXTENSIONS", ".txt, .md")
    monkeypatch.setenv("PEGVAULT_LOGGING__LEVEL", "DEBUG")

    config = PegVaultConfig.load()

    assert config.paths.vault_dir == temp_dir / "elsewhere"
    assert config.cipher.min_peg == 0
    assert config.cipher.max_peg == 128
    assert config.cipher.allowed_extensions == (".txt", ".md")
    assert config.logging.level == "DEBUG"


def test_base_dir_keeps_cipher_and_logging_env_overrides(temp_dir: Path, monkeypatch):
    monkeypatch.setenv("PEGVAULT_PATHS__VAULT_DIR", str(temp_dir / "elsewhere"))
    monkeypatch.setenv("PEGVAULT_CIPHER__MIN_PEG", "0")
    monkeypatch.setenv("PEGVAULT_LOGGING__LEVEL", "DEBUG")

    config = PegVaultConfig.load(base_dir=temp_dir / "project")

    assert config.paths.vault_dir == temp_dir / "project" / ".private_vault"
    assert config.paths.history_file == temp_dir / "project" / "history.md"
    assert config.paths.admin_hash_file == temp_dir / "project" / "admin.hash"
    assert config.cipher.min_peg == 0
    assert config.logging.level == "DEBUG"


def test_sensitive_env_keys_are_ignored(monkeypatch):
    monkeypatch.setenv("PEGVAULT_ADMIN__PASSWORD", "hunter2hunter2")
    monkeypatch.setenv("PEGVAULT_AUTH__TOKEN", "abc")
    overrides = PegVaultConfig._parse_env_overrides("PEGVAULT")
    assert "admin.password" not in overrides
    assert "auth.token" not in overrides


def test_singleton_and_reset(temp_dir: Path, monkeypatch):
    monkeypatch.chdir(temp_dir)
    first = PegVaultConfig.get_instance()
    assert PegVaultConfig.get_instance() is first
    PegVaultConfig.reset_instance()
    assert PegVaultConfig.get_instance() is not first


def test_configured_peg_range_reaches_validation(temp_dir: Path, fast_hasher, make_file):
    config = PegVaultConfig.for_directory(temp_dir, min_peg=0)
    workspace = Workspace.from_config(config, hasher=fast_hasher)
    assert workspace.validator.peg_range == (0, 255)

    outcome = workspace.encrypt(make_file("input.txt", b"same"), 0)
    assert outcome.output.read_bytes() == b"same"


def test_extension_allow_list_reaches_encrypt(temp_dir: Path, fast_hasher, make_file):
    config = PegVaultConfig.for_directory(temp_dir, allowed_extensions=(".txt",))
    workspace = Workspace.from_config(config, hasher=fast_hasher)

    with pytest.raises(ValidationError) as exc:
        workspace.encrypt(make_file("image.png"), 5)
    assert exc.value.reason is ValidationReason.EXTENSION_NOT_ALLOWED


# ============================================================================
# Diagnostic logging
# ============================================================================

def _record(msg: str, *args) -> logging.LogRecord:
    return logging.LogRecord("pegvault.test", logging.INFO, __file__, 1, msg, args, None)


def test_filter_redacts_passphrases_and_hashes():
    log_filter = SecureLogFilter()
    record = _record("login passphrase=hunter2 hash $argon2id$v=19$m=8,t=1,p=1$abc$def")
    assert log_filter.filter(record)
    assert "hunter2" not in record.msg
    assert "$argon2id$" not in record.msg
    assert "[REDACTED]" in record.msg


def test_filter_redacts_arguments():
    log_filter = SecureLogFilter()
    record = _record("value %s", "password: swordfish")
    log_filter.filter(record)
    assert "swordfish" not in record.getMessage()


def test_filter_leaves_ordinary_messages():
    log_filter = SecureLogFilter()
    record = _record("ENCRYPT %s -> %s", "a.txt", "enc_a.txt")
    log_filter.filter(record)
    assert record.getMessage() == "ENCRYPT a.txt -> enc_a.txt"


def test_secure_logger_writes_file(temp_dir: Path):
    logger = get_secure_logger(
        "pegvault.tests.file", log_dir=temp_dir / "logs", enable_console=False
    )
    try:
        logger.info("token=abcdef written")
        for handler in logger.handlers:
            handler.flush()
        text = (temp_dir / "logs" / "pegvault_tests_file.log").read_text(encoding="utf-8")
        assert "written" in text
        assert "abcdef" not in text
    finally:
        for handler in list(logger.handlers):
            handler.close()
            logger.removeHandler(handler)


def test_configure_package_logger(temp_dir: Path):
    config = PegVaultConfig(
        paths=PathConfig(
            vault_dir=temp_dir / ".private_vault",
            history_file=temp_dir / "history.md",
            admin_hash_file=temp_dir / "admin.hash",
            log_dir=temp_dir / "logs",
        ),
        logging=LoggingConfig(level="WARNING", enable_console=False, enable_file=True),
    )
    logger = configure_package_logger(config)
    try:
        assert logger.name == "pegvault"
        assert logger.level == logging.WARNING
        logging.getLogger("pegvault.vault").warning("child message")
        for handler in logger.handlers:
            handler.flush()
        assert "child message" in (temp_dir / "logs" / "pegvault.log").read_text(encoding="utf-8")
    finally:
        for handler in list(logger.handlers):
            handler.close()
            logger.removeHandler(handler)


def test_ensure_directories(temp_dir: Path):
    config = PegVaultConfig(
        paths=PathConfig(
            vault_dir=temp_dir / "data" / ".private_vault",
            history_file=temp_dir / "data" / "history.md",
            admin_hash_file=temp_dir / "secrets" / "admin.hash",
            log_dir=temp_dir / "logs",
        )
    )
    config.ensure_directories()

    assert (temp_dir / "data").is_dir()
    assert (temp_dir / "secrets").is_dir()
    assert (temp_dir / "logs").is_dir()
    # The vault itself is created lazily by VaultStore
    assert not (temp_dir / "data" / ".private_vault").exists()
