"""
Ability - the compiled, per-request rule set.

An Ability is built by :class:`AbilityFactory` for one principal and
answers ``can(action, subject[, field])`` queries:

    ability.can(Action.READ, "User")
    ability.can(Action.READ, "User", "email")
    ability.can(Action.UPDATE, subject("User", {"id": "u1"}))

Decisions combine with deny-overrides: a query is granted when at least
one allow rule matches and no deny rule does. Override rules (the admin
grant) are checked first and cannot be restricted.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Iterable, Mapping

from .enums import ALL_SUBJECTS, Action
from .interfaces import SubjectInstance, thaw
from .interpolation import lookup

_MANAGE = Action.MANAGE.value

# Operators accepted as condition values, e.g. {"status": {"$in": [...]}}.
_OPERATORS = {
    "$eq": lambda actual, expected: actual == expected,
    "$ne": lambda actual, expected: actual != expected,
    "$in": lambda actual, expected: _contains(expected, actual),
    "$nin": lambda actual, expected: not _contains(expected, actual),
}


def deny_overrides(allow_match: bool, deny_match: bool) -> bool:
    """Combine rule matches: granted only if something allows and nothing denies."""
    return allow_match and not deny_match


def _contains(candidates: Any, actual: Any) -> bool:
    if not isinstance(candidates, list):
        return False
    if isinstance(actual, list):
        return any(item in candidates for item in actual)
    return actual in candidates


def _is_operator_block(expected: Any) -> bool:
    return isinstance(expected, Mapping) and bool(expected) and all(
        isinstance(key, str) and key.startswith("$") for key in expected
    )


def matches_condition(data: Mapping[str, Any], key: str, expected: Any) -> bool:
    """Check one resolved condition against subject instance data."""
    actual = thaw(lookup(data, key, None))
    expected = thaw(expected)

    if _is_operator_block(expected):
        for operator, operand in expected.items():
            check = _OPERATORS.get(operator)
            if check is None or not check(actual, operand):
                return False
        return True

    return actual == expected


# ============================================================
# RULE
# ============================================================

@dataclass(frozen=True)
class Rule:
    """
    A compiled permission statement.

    Field and condition checks apply only when the query carries a field
    or a subject instance; otherwise the rule matches on action and
    subject alone, for deny rules as well as allow rules.

    Attributes:
        actions: Actions covered (MANAGE covers all)
        subject: Subject name, or "all"
        fields: Fields it is limited to (None = every field)
        conditions: Resolved conditions (None = unconditional). Always a
            fresh dict owned by this rule; excluded from the hash.
        inverted: True for deny rules
    """
    actions: frozenset[str]
    subject: str
    fields: frozenset[str] | None = None
    conditions: dict[str, Any] | None = field(default=None, hash=False)
    inverted: bool = False

    def matches_action(self, action: str) -> bool:
        return action in self.actions or _MANAGE in self.actions

    def matches_subject(self, subject_name: str) -> bool:
        return self.subject == ALL_SUBJECTS or self.subject == subject_name

    def matches_field(self, field_name: str | None) -> bool:
        if not self.fields or field_name is None:
            return True
        return field_name in self.fields

    def matches_conditions(self, instance: SubjectInstance | None) -> bool:
        if not self.conditions or instance is None:
            return True
        return all(
            matches_condition(instance.data, key, expected)
            for key, expected in self.conditions.items()
        )

    def matches(
        self,
        action: str,
        subject_name: str,
        field: str | None = None,
        instance: SubjectInstance | None = None,
    ) -> bool:
        return (
            self.matches_subject(subject_name)
            and self.matches_action(action)
            and self.matches_field(field)
            and self.matches_conditions(instance)
        )


# ============================================================
# ABILITY
# ============================================================

class Ability:
    """
    Queryable rule set for one principal and one request.

    Never cache or share an Ability across requests: its conditions are
    bound to the principal it was compiled for.
    """

    def __init__(
        self,
        allow_rules: Iterable[Rule] = (),
        deny_rules: Iterable[Rule] = (),
        override_rules: Iterable[Rule] = (),
    ):
        self.allow_rules: tuple[Rule, ...] = tuple(allow_rules)
        self.deny_rules: tuple[Rule, ...] = tuple(deny_rules)
        self.override_rules: tuple[Rule, ...] = tuple(override_rules)

    @property
    def rules(self) -> tuple[Rule, ...]:
        """All rules: overrides, then allow rules, then deny rules."""
        return self.override_rules + self.allow_rules + self.deny_rules

    def can(
        self,
        action: Action | str,
        subject: SubjectInstance | str,
        field: str | None = None,
    ) -> bool:
        """
        Check if ``action`` is permitted on ``subject``.

        Args:
            action: Action to check
            subject: Subject name for a type-level check, or a
                SubjectInstance to also match rule conditions
            field: Optional field to check field-level access

        Returns:
            True when granted. No matching rule means denied.
        """
        action, subject_name, instance = _query(action, subject)

        if any(rule.matches(action, subject_name, field, instance) for rule in self.override_rules):
            return True

        allow_match = any(rule.matches(action, subject_name, field, instance) for rule in self.allow_rules)
        deny_match = any(rule.matches(action, subject_name, field, instance) for rule in self.deny_rules)
        return deny_overrides(allow_match, deny_match)

    def cannot(
        self,
        action: Action | str,
        subject: SubjectInstance | str,
        field: str | None = None,
    ) -> bool:
        return not self.can(action, subject, field)

    def rules_for(
        self,
        action: Action | str,
        subject: SubjectInstance | str,
        field: str | None = None,
    ) -> list[Rule]:
        """Return every rule that matches the query (for debugging)."""
        action, subject_name, instance = _query(action, subject)
        return [rule for rule in self.rules if rule.matches(action, subject_name, field, instance)]

    def __repr__(self) -> str:
        return (
            f"Ability(allow={len(self.allow_rules)}, deny={len(self.deny_rules)}, "
            f"override={len(self.override_rules)})"
        )


def _query(action: Action | str, subject: SubjectInstance | str) -> tuple[str, str, SubjectInstance | None]:
    action_value = action.value if isinstance(action, Enum) else action
    if isinstance(subject, SubjectInstance):
        return action_value, subject.name, subject
    return action_value, subject, None
