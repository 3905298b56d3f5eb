"""
policyguard - policy-based authorization for Python services.

See ``policyguard.core.auth`` for the public API.
"""

__version__ = "0.1.0"
