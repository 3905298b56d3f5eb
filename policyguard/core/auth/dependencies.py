"""
FastAPI dependencies for authorization.

The upstream auth layer forwards the caller as a JSON header (``user`` by
default, see ``AUTH_PRINCIPAL_HEADER``). These dependencies parse it, run
the guards and turn a denial into 401 (no valid principal) or 403.

Usage:
    from policyguard.core.auth import CurrentPrincipal, require_permissions, require_roles

    @router.patch(
        "/users/{id}",
        dependencies=[Depends(require_permissions(
            PermissionRequirement(Action.UPDATE, "User", {"id": "{{id}}"}),
        ))],
    )
    async def update_user(id: str, principal: CurrentPrincipal):
        ...

    @router.get("/admin", dependencies=[Depends(require_roles(Role.ADMIN))])
    async def admin_only():
        ...

    # Or declare on the handler and enforce router-wide:
    router = APIRouter(dependencies=[Depends(enforce_declared)])

    @router.delete("/files/{userId}")
    @check_permissions({"action": "delete", "subject": "File", "conditions": {"userId": "{{userId}}"}})
    async def delete_file(userId: str):
        ...
"""

from functools import lru_cache
from typing import Annotated, Any, Iterable, Mapping

from fastapi import Depends, HTTPException, Request, status

from policyguard.core.config import Settings, get_settings

from .decorators import get_required_permissions, get_required_roles
from .factory import AbilityFactory
from .guards import PermissionGuard, RoleGuard
from .interfaces import PermissionRequirement, RoleRequirement
from .policies import default_registry
from .principal import Principal, parse_principal
from .registry import PolicyRegistry

_BODY_METHODS = frozenset({"POST", "PUT", "PATCH", "DELETE"})


# ============================================================
# COMPONENT FACTORIES
# ============================================================

@lru_cache
def get_policy_registry() -> PolicyRegistry:
    """
    Get the configured policy registry.

    Reads AUTH_POLICY_FILE; falls back to the built-in User/File policies.
    """
    auth = get_settings().auth
    if auth.policy_file:
        return PolicyRegistry.from_file(
            auth.policy_file,
            check_placeholders=auth.warn_unresolved_placeholders,
        )
    return default_registry()


@lru_cache
def get_ability_factory() -> AbilityFactory:
    """Get the ability factory (admin role from AUTH_ADMIN_ROLE)."""
    return AbilityFactory(admin_roles=(get_settings().auth.admin_role,))


@lru_cache
def get_permission_guard() -> PermissionGuard:
    return PermissionGuard(get_policy_registry(), get_ability_factory())


@lru_cache
def get_role_guard() -> RoleGuard:
    return RoleGuard()


# ============================================================
# REQUEST HELPERS
# ============================================================

def get_principal_header(
    request: Request,
    settings: Settings = Depends(get_settings),
) -> str | None:
    """Raw principal header, or None when absent."""
    return request.headers.get(settings.auth.principal_header)


async def gather_operation_args(request: Request) -> dict[str, Any]:
    """
    Collect the operation's raw arguments.

    Query params, then the JSON object body, then path params; later
    sources win on key collisions.
    """
    args: dict[str, Any] = dict(request.query_params)

    if request.method in _BODY_METHODS and await request.body():
        try:
            body = await request.json()
        except ValueError:
            body = None
        if isinstance(body, Mapping):
            args.update(body)

    args.update(request.path_params)
    return args


# ============================================================
# PRINCIPAL DEPENDENCIES
# ============================================================

async def get_current_principal(
    header: str | None = Depends(get_principal_header),
) -> Principal:
    """
    Get the authenticated principal.

    Raises:
        HTTPException 401: If the header is missing or invalid
    """
    principal = parse_principal(header)
    if principal is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Not authenticated",
        )
    return principal


async def get_current_principal_optional(
    header: str | None = Depends(get_principal_header),
) -> Principal | None:
    """Get the principal if authenticated, None otherwise."""
    return parse_principal(header)


# ============================================================
# ENFORCEMENT
# ============================================================

def _check_roles(
    required: RoleRequirement | None,
    principal: Principal | None,
    guard: RoleGuard,
) -> None:
    if required is None or not required.roles:
        return
    if principal is None:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Not authenticated")
    if not guard.authorize_by_role(required, principal):
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail=f"One of these roles required: {sorted(required.roles)}",
        )


async def _check_permissions(
    requirements: Iterable[PermissionRequirement],
    principal: Principal | None,
    guard: PermissionGuard,
    request: Request,
) -> None:
    requirements = tuple(requirements)
    if not requirements:
        return
    if principal is None:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Not authenticated")

    args = await gather_operation_args(request)
    if not guard.authorize(requirements, principal, args):
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Permission denied",
        )


def require_permissions(*requirements: PermissionRequirement | Mapping[str, Any]):
    """
    Dependency factory: every requirement must pass.

    Usage:
        @router.get("/files/{id}", dependencies=[Depends(require_permissions(
            {"action": "read", "subject": "File"},
        ))])
    """
    declared = tuple(PermissionRequirement.coerce(r) for r in requirements)

    async def dependency(
        request: Request,
        principal: Principal | None = Depends(get_current_principal_optional),
        guard: PermissionGuard = Depends(get_permission_guard),
    ) -> None:
        await _check_permissions(declared, principal, guard, request)

    return dependency


def require_roles(*roles: Any):
    """Dependency factory: the caller needs at least one of ``roles``."""
    declared = RoleRequirement(frozenset(roles))

    async def dependency(
        principal: Principal | None = Depends(get_current_principal_optional),
        guard: RoleGuard = Depends(get_role_guard),
    ) -> None:
        _check_roles(declared, principal, guard)

    return dependency


async def enforce_declared(
    request: Request,
    principal: Principal | None = Depends(get_current_principal_optional),
    permission_guard: PermissionGuard = Depends(get_permission_guard),
    role_guard: RoleGuard = Depends(get_role_guard),
) -> None:
    """
    Enforce ``@roles`` / ``@check_permissions`` declared on the matched endpoint.

    Undecorated endpoints pass through.
    """
    endpoint = request.scope.get("endpoint")
    _check_roles(get_required_roles(endpoint), principal, role_guard)
    await _check_permissions(get_required_permissions(endpoint), principal, permission_guard, request)


# ============================================================
# TYPE ALIASES FOR CLEAN SIGNATURES
# ============================================================

# Authenticated principal (required)
CurrentPrincipal = Annotated[Principal, Depends(get_current_principal)]

# Authenticated principal (optional)
OptionalPrincipal = Annotated[Principal | None, Depends(get_current_principal_optional)]
