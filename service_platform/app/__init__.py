"""
Authenticated request executor for the platform-management API.
"""

from .executor import AuthenticatedRequestExecutor, Deadline, create_executor
from .models import Method

__all__ = [
    "AuthenticatedRequestExecutor",
    "Deadline",
    "Method",
    "create_executor",
]
