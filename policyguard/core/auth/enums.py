"""
Authorization enumerations.

All enums mix in ``str`` so members compare equal to their wire values
(``Action.READ == "read"``). Roles and actions coming from headers or
config files stay plain strings and still match.
"""

from enum import Enum


class Role(str, Enum):
    """Roles carried by a principal."""
    ADMIN = "Admin"
    USER = "User"


class Action(str, Enum):
    """
    Actions a policy can grant or deny.

    ``MANAGE`` is a wildcard: a rule holding it matches every action on
    its subject.
    """
    MANAGE = "manage"
    CREATE = "create"
    READ = "read"
    UPDATE = "update"
    DELETE = "delete"


class Effect(str, Enum):
    """Policy effect."""
    ALLOW = "allow"
    DENY = "deny"


# Subject matched by every query subject.
ALL_SUBJECTS = "all"
