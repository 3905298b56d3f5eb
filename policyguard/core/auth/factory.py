"""
Ability factory - compiles a policy registry for one principal.

Usage:
    factory = AbilityFactory()
    ability = factory.compile(registry, principal)

    if ability.can(Action.UPDATE, subject("User", {"id": principal.id})):
        ...
"""

from typing import Any, Iterable, Mapping

import structlog

from .ability import Ability, Rule
from .enums import ALL_SUBJECTS, Action, Role
from .interfaces import Policy
from .interpolation import interpolate
from .principal import Principal
from .registry import PolicyRegistry

logger = structlog.get_logger()


class AbilityFactory:
    """
    Builds an Ability from the registry and a principal.

    Compilation is pure: the same registry and principal always produce
    the same rules, and nothing is cached between calls.

    Configuration:
        admin_roles: Roles that get unrestricted access (default: Admin)
    """

    def __init__(self, admin_roles: Iterable[Role | str] = (Role.ADMIN,)):
        self.admin_roles = frozenset(getattr(role, "value", role) for role in admin_roles)

    def compile(
        self,
        registry: PolicyRegistry,
        principal: Principal | Mapping[str, Any],
    ) -> Ability:
        """
        Compile the rules that apply to ``principal``.

        - Admins get a ``manage``/``all`` override rule that deny rules
          cannot restrict.
        - Every policy becomes one rule with its conditions resolved
          against the principal. Policies limited to roles the principal
          lacks are skipped.
        - Allow rules are kept most-recent-first, deny rules in registry
          order.
        """
        roles, values = _principal_view(principal)

        override_rules: list[Rule] = []
        if not roles.isdisjoint(self.admin_roles):
            override_rules.append(Rule(actions=frozenset({Action.MANAGE.value}), subject=ALL_SUBJECTS))

        allow_rules: list[Rule] = []
        deny_rules: list[Rule] = []
        for subject_name, policy in registry:
            if policy.roles and roles.isdisjoint(policy.roles):
                continue

            rule = self.build_rule(subject_name, policy, values)
            if rule.inverted:
                deny_rules.append(rule)
            else:
                allow_rules.insert(0, rule)

        logger.debug(
            "ability_compiled",
            principal_id=values.get("id"),
            allow_rules=len(allow_rules),
            deny_rules=len(deny_rules),
            admin=bool(override_rules),
        )
        return Ability(allow_rules, deny_rules, override_rules)

    # Name used by guards and by callers coming from the decorator API.
    define_ability = compile

    @staticmethod
    def build_rule(subject_name: str, policy: Policy, values: Mapping[str, Any]) -> Rule:
        """Turn one policy into a rule bound to ``values``."""
        return Rule(
            actions=policy.actions,
            subject=subject_name,
            fields=policy.fields or None,
            conditions=interpolate(policy.conditions, values) if policy.conditions else None,
            inverted=policy.is_deny,
        )


def _principal_view(principal: Principal | Mapping[str, Any]) -> tuple[frozenset[str], dict[str, Any]]:
    if isinstance(principal, Principal):
        return principal.roles, principal.as_values()

    values = dict(principal)
    roles = values.get("roles") or ()
    if isinstance(roles, str):
        roles = (roles,)
    return frozenset(getattr(role, "value", role) for role in roles), values
