"""
Pytest fixtures for testing.

Provides:
- Policy registries (built-in and end-to-end)
- Principal payloads and their JSON headers
- A FastAPI app wired with the authorization dependencies
- Async test client
"""

import json
from typing import Any, AsyncGenerator

import pytest
import pytest_asyncio
from fastapi import APIRouter, Depends, FastAPI
from httpx import ASGITransport, AsyncClient
from pydantic import BaseModel

from policyguard.core.auth import (
    Action,
    CurrentPrincipal,
    OptionalPrincipal,
    PermissionGuard,
    PermissionRequirement,
    Policy,
    PolicyRegistry,
    Role,
    SubjectPolicies,
    check_permissions,
    default_registry,
    enforce_declared,
    get_permission_guard,
    require_permissions,
    require_roles,
    roles,
)


def make_header(**claims: Any) -> str:
    """Encode a principal the way the upstream auth layer forwards it."""
    return json.dumps(claims)


# ============ Registries ============


@pytest.fixture
def registry() -> PolicyRegistry:
    """Built-in User/File policies."""
    return default_registry()


@pytest.fixture
def scenario_registry() -> PolicyRegistry:
    """Anyone may read users; a user may update only themselves."""
    return PolicyRegistry([
        SubjectPolicies("User", (
            Policy.allow({Action.READ}, {"User"}),
            Policy.allow({Action.UPDATE}, {"User"}, conditions={"id": "{{id}}"}),
        )),
    ])


@pytest.fixture
def guard(scenario_registry: PolicyRegistry) -> PermissionGuard:
    return PermissionGuard(scenario_registry)


# ============ Principals ============


@pytest.fixture
def user_claims() -> dict[str, Any]:
    return {"id": "u1", "email": "u1@example.com", "roles": ["User"]}


@pytest.fixture
def admin_claims() -> dict[str, Any]:
    return {"id": "admin", "email": "admin@example.com", "roles": ["Admin"]}


@pytest.fixture
def user_header(user_claims: dict[str, Any]) -> str:
    return make_header(**user_claims)


@pytest.fixture
def admin_header(admin_claims: dict[str, Any]) -> str:
    return make_header(**admin_claims)


@pytest.fixture
def header_for():
    """Build a principal header from keyword claims."""
    return make_header


# ============ App ============


class FileIn(BaseModel):
    userId: str
    name: str


def build_app() -> FastAPI:
    """Small API exercising every enforcement style."""
    app = FastAPI()

    @app.get(
        "/users/{id}",
        dependencies=[Depends(require_permissions(
            {"action": "read", "subject": "User", "conditions": {"id": "{{id}}"}},
        ))],
    )
    async def read_user(id: str):
        return {"id": id}

    @app.patch(
        "/users/{id}",
        dependencies=[Depends(require_permissions(
            PermissionRequirement(Action.UPDATE, "User", {"id": "{{id}}"}),
        ))],
    )
    async def update_user(id: str):
        return {"id": id, "updated": True}

    @app.post(
        "/files",
        status_code=201,
        dependencies=[Depends(require_permissions(
            PermissionRequirement(Action.CREATE, "File", {"userId": "{{userId}}"}),
        ))],
    )
    async def create_file(file: FileIn):
        return file.model_dump()

    @app.get("/admin", dependencies=[Depends(require_roles(Role.ADMIN))])
    async def admin_only():
        return {"ok": True}

    @app.get("/me")
    async def me(principal: CurrentPrincipal):
        return {"id": principal.id, "roles": sorted(principal.roles)}

    @app.get("/whoami")
    async def whoami(principal: OptionalPrincipal):
        return {"id": principal.id if principal else None}

    declared = APIRouter(prefix="/declared", dependencies=[Depends(enforce_declared)])

    @declared.get("/users/{id}")
    @check_permissions({"action": "read", "subject": "User", "conditions": {"id": "{{id}}"}})
    async def declared_read_user(id: str):
        return {"id": id}

    @declared.delete("/users/{id}")
    @roles(Role.ADMIN)
    async def declared_delete_user(id: str):
        return {"id": id, "deleted": True}

    @declared.get("/public")
    async def declared_public():
        return {"public": True}

    app.include_router(declared)
    return app


@pytest.fixture
def app(registry: PolicyRegistry) -> FastAPI:
    app = build_app()
    app.dependency_overrides[get_permission_guard] = lambda: PermissionGuard(registry)
    return app


@pytest_asyncio.fixture(scope="function")
async def client(app: FastAPI) -> AsyncGenerator[AsyncClient, None]:
    """Test client against the in-process app."""
    async with AsyncClient(
        transport=ASGITransport(app=app),
        base_url="http://test",
    ) as client:
        yield client

    app.dependency_overrides.clear()
