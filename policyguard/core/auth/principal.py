"""
Principal - the authenticated caller for one request.

An upstream authentication layer decodes the caller's credentials and
forwards the result as a JSON header:

    {"id": "u1", "email": "a@b.c", "roles": ["User"], "department": "Eng"}

This module only parses and validates that header. It never verifies
credentials.
"""

import json
from typing import Any, Iterable, Mapping

import structlog
from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

logger = structlog.get_logger()

# Header values the upstream layer emits when nobody is logged in.
_UNAUTHENTICATED_VALUES = frozenset({"", "undefined", "null"})


class Principal(BaseModel):
    """
    Caller identity and roles.

    Extra claims in the header are kept so condition templates can
    reference them (e.g. ``{{organizationId}}``).
    """

    model_config = ConfigDict(extra="allow", frozen=True, coerce_numbers_to_str=True)

    id: str = Field(min_length=1)
    email: str | None = None
    roles: frozenset[str]
    department: str | None = None
    clearance: str | None = None

    @field_validator("roles", mode="before")
    @classmethod
    def validate_roles(cls, v: Any) -> Any:
        if v is None:
            raise ValueError("roles is required")
        if isinstance(v, str):
            return [v]
        return v

    def has_any_role(self, roles: Iterable[str]) -> bool:
        """Check if the principal holds at least one of ``roles``."""
        return not self.roles.isdisjoint(_role_values(roles))

    def as_values(self) -> dict[str, Any]:
        """Plain dict used as the placeholder source for policy conditions."""
        values = self.model_dump()
        values["roles"] = sorted(self.roles)
        return values


def _role_values(roles: Iterable[Any]) -> set[str]:
    return {getattr(role, "value", role) for role in roles}


def parse_principal(header: str | bytes | Mapping[str, Any] | Principal | None) -> Principal | None:
    """
    Parse a principal header.

    Returns None (unauthenticated) for a missing header, the literal strings
    "undefined"/"null", malformed or too deeply nested JSON, non-object
    JSON, or a payload missing required fields. Never raises for bad input.
    """
    if header is None:
        return None
    if isinstance(header, Principal):
        return header

    payload: Any = header
    if isinstance(header, (str, bytes)):
        try:
            text = header.decode("utf-8") if isinstance(header, bytes) else header
        except UnicodeDecodeError:
            logger.debug("principal_header_rejected", reason="undecodable")
            return None

        text = text.strip()
        if text in _UNAUTHENTICATED_VALUES:
            return None

        try:
            payload = json.loads(text)
        except (ValueError, RecursionError):
            logger.debug("principal_header_rejected", reason="malformed_json")
            return None

    if not isinstance(payload, Mapping):
        logger.debug("principal_header_rejected", reason="not_an_object")
        return None

    try:
        return Principal.model_validate(dict(payload))
    except ValidationError as e:
        logger.debug(
            "principal_header_rejected",
            reason="invalid_identity",
            errors=[".".join(str(p) for p in err["loc"]) for err in e.errors()],
        )
        return None
