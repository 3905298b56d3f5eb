"""
Built-in policy sets.

Used when no ``AUTH_POLICY_FILE`` is configured.
"""

from ..interfaces import SubjectPolicies
from ..registry import PolicyRegistry
from .file import FILE_POLICIES, FILE_SUBJECT
from .user import USER_POLICIES, USER_SUBJECT


def default_registry() -> PolicyRegistry:
    """Registry holding the built-in User and File policies."""
    return PolicyRegistry([
        SubjectPolicies(USER_SUBJECT, USER_POLICIES),
        SubjectPolicies(FILE_SUBJECT, FILE_POLICIES),
    ])


__all__ = [
    "default_registry",
    "USER_POLICIES",
    "USER_SUBJECT",
    "FILE_POLICIES",
    "FILE_SUBJECT",
]
