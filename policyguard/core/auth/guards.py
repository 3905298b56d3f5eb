"""
Request-time enforcement points.

Guards turn static requirement metadata, the principal header and the
operation's arguments into a grant/deny decision. They return booleans
and never raise for ordinary denial; the transport layer decides how to
surface ``False`` (401, 403, GraphQL error...).

Usage:
    guard = PermissionGuard(registry)
    allowed = guard.authorize(
        [PermissionRequirement(Action.UPDATE, "User", {"id": "{{id}}"})],
        request.headers.get("user"),
        {"id": "u1"},
    )

    RoleGuard().authorize_by_role({Role.ADMIN}, request.headers.get("user"))
"""

from typing import Any, Iterable, Mapping

import structlog

from .ability import Ability
from .factory import AbilityFactory
from .interfaces import PermissionRequirement, RoleRequirement, subject, thaw
from .interpolation import interpolate
from .principal import Principal, parse_principal
from .registry import PolicyRegistry

logger = structlog.get_logger()

PrincipalHeader = str | bytes | Mapping[str, Any] | Principal | None


class AuthGuard:
    """Authentication-only check: is there a valid principal?"""

    def authenticate(self, principal_header: PrincipalHeader) -> bool:
        return parse_principal(principal_header) is not None


class PermissionGuard:
    """
    Evaluates an operation's PermissionRequirements.

    A fresh Ability is compiled on every call; nothing computed for one
    request is visible to another.
    """

    def __init__(
        self,
        registry: PolicyRegistry,
        factory: AbilityFactory | None = None,
    ):
        self.registry = registry
        self.factory = factory or AbilityFactory()

    def authorize(
        self,
        requirements: Iterable[PermissionRequirement | Mapping[str, Any]] | None,
        principal_header: PrincipalHeader,
        operation_args: Mapping[str, Any] | None = None,
    ) -> bool:
        """
        Check every requirement (logical AND).

        Args:
            requirements: Requirements declared on the operation. Empty
                means the operation is not protected by this guard.
            principal_header: Raw principal header (JSON) from upstream auth
            operation_args: The operation's input arguments, used to bind
                requirement condition placeholders

        Returns:
            True if the operation may run
        """
        requirements = [PermissionRequirement.coerce(r) for r in requirements or ()]
        if not requirements:
            return True

        principal = parse_principal(principal_header)
        if principal is None:
            logger.info("authorization_denied", reason="unauthenticated")
            return False

        ability = self.factory.define_ability(self.registry, principal)
        args = operation_args or {}

        for requirement in requirements:
            if not self.check(ability, requirement, args):
                logger.info(
                    "authorization_denied",
                    reason="missing_permission",
                    principal_id=principal.id,
                    action=requirement.action,
                    subject=requirement.subject,
                )
                return False

        logger.debug(
            "authorization_granted",
            principal_id=principal.id,
            requirements=len(requirements),
        )
        return True

    @staticmethod
    def check(
        ability: Ability,
        requirement: PermissionRequirement,
        operation_args: Mapping[str, Any],
    ) -> bool:
        """Evaluate one requirement against a compiled ability."""
        if requirement.conditions:
            concrete = interpolate(thaw(requirement.conditions), operation_args)
            return ability.can(requirement.action, subject(requirement.subject, concrete))
        return ability.can(requirement.action, requirement.subject)


class RoleGuard:
    """Coarse check: does the caller hold any of the required roles?"""

    def authorize_by_role(
        self,
        required_roles: RoleRequirement | Iterable[Any] | None,
        principal_header: PrincipalHeader,
    ) -> bool:
        """
        Args:
            required_roles: Roles of which one is needed. Empty or None
                means no role check.
            principal_header: Raw principal header (JSON)

        Returns:
            True if no roles are required or the principal holds one
        """
        if not isinstance(required_roles, RoleRequirement):
            required_roles = RoleRequirement(required_roles or frozenset())
        if not required_roles.roles:
            return True

        principal = parse_principal(principal_header)
        if principal is None:
            logger.info("role_check_denied", reason="unauthenticated")
            return False

        if principal.has_any_role(required_roles.roles):
            return True

        logger.info(
            "role_check_denied",
            reason="missing_role",
            principal_id=principal.id,
            required=sorted(required_roles.roles),
        )
        return False
