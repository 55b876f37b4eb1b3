"""
Test fixtures for PegVault tests.

Every test gets its own temporary directory holding the vault, history
file and admin hash, so nothing touches the real working directory.
"""

import tempfile
from pathlib import Path
from typing import Generator

import pytest
from argon2 import PasswordHasher

from pegvault.core.config import PegVaultConfig
from pegvault.core.workspace import Workspace


@pytest.fixture
def temp_dir() -> Generator[Path, None, None]:
    """Create a temporary directory for tests."""
    with tempfile.TemporaryDirectory() as tmpdir:
        yield Path(tmpdir).resolve()


@pytest.fixture
def config(temp_dir: Path) -> PegVaultConfig:
    """Configuration rooted at the temporary directory."""
    return PegVaultConfig.for_directory(temp_dir)


@pytest.fixture
def fast_hasher() -> PasswordHasher:
    """Argon2id with minimal cost so admin tests stay quick."""
    return PasswordHasher(time_cost=1, memory_cost=8, parallelism=1)


@pytest.fixture
def workspace(config: PegVaultConfig, fast_hasher: PasswordHasher) -> Workspace:
    """Fully wired components for the temporary directory."""
    return Workspace.from_config(config, hasher=fast_hasher)


@pytest.fixture(autouse=True)
def reset_config_singleton() -> Generator[None, None, None]:
    PegVaultConfig.reset_instance()
    yield
    PegVaultConfig.reset_instance()


@pytest.fixture
def make_file(temp_dir: Path):
    """Factory creating a file under temp_dir with the given content."""

    def _make(name: str, content: bytes = b"hello world\n") -> Path:
        path = temp_dir / name
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_bytes(content)
        return path

    return _make
