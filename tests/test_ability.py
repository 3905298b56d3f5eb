"""
Tests for compiled abilities and the deny-overrides combinator.
"""

import pytest

from policyguard.core.auth import Ability, Action, Rule, deny_overrides, subject


def allow(actions, subject_name, **kwargs) -> Rule:
    return Rule(actions=frozenset(actions), subject=subject_name, **kwargs)


def deny(actions, subject_name, **kwargs) -> Rule:
    return Rule(actions=frozenset(actions), subject=subject_name, inverted=True, **kwargs)


@pytest.mark.parametrize(
    "allow_match, deny_match, expected",
    [
        (False, False, False),
        (True, False, True),
        (False, True, False),
        (True, True, False),
    ],
)
def test_deny_overrides(allow_match, deny_match, expected):
    assert deny_overrides(allow_match, deny_match) is expected


def test_empty_ability_denies():
    ability = Ability()
    assert ability.can(Action.READ, "User") is False
    assert ability.cannot(Action.READ, "User") is True


def test_allow_rule_grants_only_its_actions():
    ability = Ability(allow_rules=[allow({"read"}, "User")])

    assert ability.can(Action.READ, "User")
    assert ability.can("read", "User")
    assert not ability.can(Action.DELETE, "User")
    assert not ability.can(Action.READ, "File")


def test_manage_covers_every_action():
    ability = Ability(allow_rules=[allow({"manage"}, "File")])

    for action in Action:
        assert ability.can(action, "File")
    assert not ability.can(Action.READ, "User")


def test_all_subject_matches_every_subject():
    ability = Ability(allow_rules=[allow({"read"}, "all")])
    assert ability.can(Action.READ, "User")
    assert ability.can(Action.READ, "Invoice")


def test_deny_overrides_allow():
    ability = Ability(
        allow_rules=[allow({"delete"}, "User")],
        deny_rules=[deny({"delete"}, "User")],
    )
    assert not ability.can(Action.DELETE, "User")


def test_override_rules_beat_deny_rules():
    ability = Ability(
        deny_rules=[deny({"manage"}, "all")],
        override_rules=[allow({"manage"}, "all")],
    )
    assert ability.can(Action.DELETE, "User")


class TestFieldScoping:
    """Rules limited to fields."""

    def test_allow_limited_to_fields(self):
        ability = Ability(allow_rules=[allow({"read"}, "User", fields=frozenset({"email"}))])

        assert ability.can(Action.READ, "User", "email")
        assert not ability.can(Action.READ, "User", "password")

    def test_unrestricted_allow_covers_every_field(self):
        ability = Ability(allow_rules=[allow({"read"}, "User")])

        assert ability.can(Action.READ, "User", "email")
        assert ability.can(Action.READ, "User", "password")

    def test_field_limited_deny(self):
        ability = Ability(
            allow_rules=[allow({"read"}, "User")],
            deny_rules=[deny({"read"}, "User", fields=frozenset({"password"}))],
        )

        assert not ability.can(Action.READ, "User", "password")
        assert ability.can(Action.READ, "User", "email")
        # A field-less query still hits the field-limited deny
        assert not ability.can(Action.READ, "User")


class TestConditions:
    """Rules carrying resolved conditions."""

    def test_condition_must_match_instance(self):
        ability = Ability(allow_rules=[allow({"update"}, "User", conditions={"id": "u1"})])

        assert ability.can(Action.UPDATE, subject("User", {"id": "u1"}))
        assert not ability.can(Action.UPDATE, subject("User", {"id": "u2"}))
        assert not ability.can(Action.UPDATE, subject("User", {}))

    def test_conditional_allow_applies_to_type_level_query(self):
        ability = Ability(allow_rules=[allow({"update"}, "User", conditions={"id": "u1"})])
        assert ability.can(Action.UPDATE, "User")

    def test_conditional_deny_applies_to_type_level_query(self):
        ability = Ability(
            allow_rules=[allow({"read"}, "File")],
            deny_rules=[deny({"read"}, "File", conditions={"secret": True})],
        )

        assert not ability.can(Action.READ, "File")
        assert ability.can(Action.READ, subject("File", {"secret": False}))
        assert not ability.can(Action.READ, subject("File", {"secret": True}))

    def test_dot_path_condition_key(self):
        ability = Ability(allow_rules=[allow({"read"}, "File", conditions={"owner.id": "u1"})])

        assert ability.can(Action.READ, subject("File", {"owner": {"id": "u1"}}))
        assert not ability.can(Action.READ, subject("File", {"owner": {"id": "u2"}}))

    def test_nested_condition_value(self):
        ability = Ability(allow_rules=[allow({"read"}, "File", conditions={"tags": ["a", "b"]})])

        assert ability.can(Action.READ, subject("File", {"tags": ["a", "b"]}))
        assert ability.can(Action.READ, subject("File", {"tags": ("a", "b")}))
        assert not ability.can(Action.READ, subject("File", {"tags": ["a"]}))

    @pytest.mark.parametrize(
        "condition, data, expected",
        [
            ({"status": {"$eq": "open"}}, {"status": "open"}, True),
            ({"status": {"$ne": "closed"}}, {"status": "open"}, True),
            ({"status": {"$ne": "closed"}}, {"status": "closed"}, False),
            ({"status": {"$in": ["open", "draft"]}}, {"status": "draft"}, True),
            ({"status": {"$in": ["open", "draft"]}}, {"status": "closed"}, False),
            ({"status": {"$nin": ["closed"]}}, {"status": "open"}, True),
            ({"status": {"$nin": ["closed"]}}, {"status": "closed"}, False),
            ({"tags": {"$in": ["x"]}}, {"tags": ["y", "x"]}, True),
            ({"status": {"$regex": "^o"}}, {"status": "open"}, False),
        ],
    )
    def test_operators(self, condition, data, expected):
        ability = Ability(allow_rules=[allow({"read"}, "Ticket", conditions=condition)])
        assert ability.can(Action.READ, subject("Ticket", data)) is expected


def test_rules_ordering_and_rules_for():
    override = allow({"manage"}, "all")
    allow_rule = allow({"read"}, "User")
    deny_rule = deny({"read"}, "User", fields=frozenset({"password"}))
    ability = Ability([allow_rule], [deny_rule], [override])

    assert ability.rules == (override, allow_rule, deny_rule)
    assert ability.rules_for(Action.READ, "User", "password") == [override, allow_rule, deny_rule]
    assert ability.rules_for(Action.DELETE, "File") == [override]
    assert "allow=1" in repr(ability)


def test_rules_with_conditions_are_hashable():
    rule = allow({"update"}, "User", conditions={"id": "u1"})
    same = allow({"update"}, "User", conditions={"id": "u1"})

    assert hash(rule) == hash(same)
    assert len({rule, same}) == 1
