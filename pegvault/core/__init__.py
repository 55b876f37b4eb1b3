"""
Core module - Configuration, logging, errors and the processing components.
"""

from pegvault.core.config import PegVaultConfig
from pegvault.core.exceptions import PegVaultError
from pegvault.core.logging import get_secure_logger, SecureLogFilter

__all__ = ["PegVaultConfig", "PegVaultError", "get_secure_logger", "SecureLogFilter"]
