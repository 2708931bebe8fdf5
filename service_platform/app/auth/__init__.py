"""
Session credential helpers for the platform-management API.
"""

from .credentials import CredentialManager

__all__ = [
    "CredentialManager",
]
