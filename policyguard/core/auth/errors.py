"""
Authorization errors.

Ordinary denials are never raised - guards return ``False`` and the caller
decides how to surface it. These exceptions cover configuration problems
that must stop the process at startup.
"""


class PolicyGuardError(Exception):
    """Base class for policyguard errors."""


class PolicyConfigError(PolicyGuardError):
    """Raised when a policy registry cannot be loaded or fails validation."""
