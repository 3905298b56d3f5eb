"""
Requirement declaration decorators.

These only attach metadata; enforcement happens in the guards (or in the
``enforce_declared`` dependency for FastAPI routes).

Usage:
    from policyguard.core.auth import check_permissions, roles

    @router.patch("/users/{id}", dependencies=[Depends(enforce_declared)])
    @check_permissions({"action": "update", "subject": "User", "conditions": {"id": "{{id}}"}})
    async def update_user(id: str):
        ...

    @router.get("/reports")
    @roles(Role.ADMIN)
    async def reports():
        ...

    @roles(Role.USER)  # class-level default, handler metadata wins
    class FileHandlers:
        @check_permissions(PermissionRequirement(Action.READ, "File"))
        def read(self, id: str):
            ...
"""

from typing import Any, Callable, Mapping, TypeVar

from .interfaces import PermissionRequirement, RoleRequirement

PERMISSIONS_ATTR = "_required_permissions"
ROLES_ATTR = "_required_roles"

T = TypeVar("T")


def check_permissions(*requirements: PermissionRequirement | Mapping[str, Any]) -> Callable[[T], T]:
    """
    Declare the permissions a handler (or every handler of a class) needs.

    All listed requirements must pass (AND). Dict requirements are coerced
    at decoration time, so malformed declarations fail on import.
    """
    declared = tuple(PermissionRequirement.coerce(r) for r in requirements)

    def decorator(target: T) -> T:
        setattr(target, PERMISSIONS_ATTR, declared)
        return target
    return decorator


def roles(*required: Any) -> Callable[[T], T]:
    """Declare roles of which the caller needs at least one (OR)."""
    declared = RoleRequirement(frozenset(required))

    def decorator(target: T) -> T:
        setattr(target, ROLES_ATTR, declared)
        return target
    return decorator


def get_required_permissions(handler: Any, owner: Any = None) -> tuple[PermissionRequirement, ...]:
    """
    Read declared permissions.

    Handler-level metadata overrides class-level metadata on ``owner``.
    Returns an empty tuple when nothing is declared.
    """
    return _metadata(PERMISSIONS_ATTR, handler, owner) or ()


def get_required_roles(handler: Any, owner: Any = None) -> RoleRequirement | None:
    """Read declared roles (handler first, then ``owner``)."""
    return _metadata(ROLES_ATTR, handler, owner)


def _metadata(attr: str, handler: Any, owner: Any) -> Any:
    value = getattr(handler, attr, None)
    if value is None and owner is not None:
        value = getattr(owner, attr, None)
    return value
