"""
Authorization module - policy-based access control.

Decides per request whether the caller (a Principal forwarded by an
upstream auth layer) may perform an Action on a Subject, combining static
allow/deny policies with conditions bound from the principal and from the
operation's arguments.

Usage Levels:
=============

Level 1: Role Check
-------------------
    from policyguard.core.auth import require_roles, Role

    @router.get("/reports", dependencies=[Depends(require_roles(Role.ADMIN))])
    async def reports():
        ...

Level 2: Type-Level Permission
------------------------------
    @router.get("/files", dependencies=[Depends(require_permissions(
        PermissionRequirement(Action.READ, "File"),
    ))])
    async def list_files():
        ...

Level 3: Conditions Bound From Arguments
----------------------------------------
    # Policy (User subject): allow update where {"id": "{{id}}"}  <- principal
    # Requirement:           update User where {"id": "{{id}}"}   <- path param
    @router.patch("/users/{id}", dependencies=[Depends(require_permissions(
        {"action": "update", "subject": "User", "conditions": {"id": "{{id}}"}},
    ))])
    async def update_user(id: str):
        ...

Level 4: Declared Metadata
--------------------------
    router = APIRouter(dependencies=[Depends(enforce_declared)])

    @router.delete("/users/{id}")
    @roles(Role.ADMIN)
    async def delete_user(id: str):
        ...

Level 5: Direct Use (no FastAPI)
--------------------------------
    guard = PermissionGuard(PolicyRegistry.from_file("policies.yaml"))
    guard.authorize(requirements, headers.get("user"), args)

    ability = AbilityFactory().compile(registry, principal)
    ability.can(Action.READ, "User", "email")

Configuration:
==============

Environment variables (or in config):
- AUTH_PRINCIPAL_HEADER: "user" (default)
- AUTH_ADMIN_ROLE: "Admin" (default)
- AUTH_POLICY_FILE: YAML/JSON policy file (built-in policies when unset)
- AUTH_WARN_UNRESOLVED_PLACEHOLDERS: true (default)
"""

# Enums
from .enums import ALL_SUBJECTS, Action, Effect, Role

# Data types
from .interfaces import (
    PermissionRequirement,
    Policy,
    RoleRequirement,
    SubjectInstance,
    SubjectPolicies,
    subject,
)

# Errors
from .errors import PolicyConfigError, PolicyGuardError

# Principal
from .principal import Principal, parse_principal

# Engine
from .interpolation import find_placeholders, interpolate
from .ability import Ability, Rule, deny_overrides
from .registry import PolicyRegistry
from .factory import AbilityFactory
from .policies import default_registry

# Guards
from .guards import AuthGuard, PermissionGuard, RoleGuard

# Decorators (metadata only)
from .decorators import (
    check_permissions,
    get_required_permissions,
    get_required_roles,
    roles,
)

# Dependencies (what you'll use in routes)
from .dependencies import (
    CurrentPrincipal,
    OptionalPrincipal,
    enforce_declared,
    get_ability_factory,
    get_current_principal,
    get_current_principal_optional,
    get_permission_guard,
    get_policy_registry,
    get_role_guard,
    require_permissions,
    require_roles,
)

__all__ = [
    # Enums
    "ALL_SUBJECTS",
    "Action",
    "Effect",
    "Role",
    # Data types
    "PermissionRequirement",
    "Policy",
    "RoleRequirement",
    "SubjectInstance",
    "SubjectPolicies",
    "subject",
    # Errors
    "PolicyConfigError",
    "PolicyGuardError",
    # Principal
    "Principal",
    "parse_principal",
    # Engine
    "find_placeholders",
    "interpolate",
    "Ability",
    "Rule",
    "deny_overrides",
    "PolicyRegistry",
    "AbilityFactory",
    "default_registry",
    # Guards
    "AuthGuard",
    "PermissionGuard",
    "RoleGuard",
    # Decorators
    "check_permissions",
    "get_required_permissions",
    "get_required_roles",
    "roles",
    # Dependencies
    "CurrentPrincipal",
    "OptionalPrincipal",
    "enforce_declared",
    "get_ability_factory",
    "get_current_principal",
    "get_current_principal_optional",
    "get_permission_guard",
    "get_policy_registry",
    "get_role_guard",
    "require_permissions",
    "require_roles",
]
