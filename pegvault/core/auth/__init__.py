"""
Admin access control for privileged vault operations.
"""

from pegvault.core.auth.admin_gate import AdminGate

__all__ = ["AdminGate"]
