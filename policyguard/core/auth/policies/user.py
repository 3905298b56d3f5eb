"""
Default policies for the ``User`` subject.

A user may read and update their own record.
"""

from ..enums import Action
from ..interfaces import Policy

USER_SUBJECT = "User"

USER_POLICIES: tuple[Policy, ...] = (
    Policy.allow(
        {Action.READ, Action.UPDATE},
        {USER_SUBJECT},
        conditions={"id": "{{id}}"},
    ),
)
