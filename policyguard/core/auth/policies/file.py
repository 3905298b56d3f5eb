"""
Default policies for the ``File`` subject.

A user may create, read and update files they own.
"""

from ..enums import Action
from ..interfaces import Policy

FILE_SUBJECT = "File"

FILE_POLICIES: tuple[Policy, ...] = (
    Policy.allow(
        {Action.CREATE, Action.READ, Action.UPDATE},
        {FILE_SUBJECT},
        conditions={"userId": "{{id}}"},
    ),
)
