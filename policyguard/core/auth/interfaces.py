"""
Authorization data types.

Static configuration (policies, requirements) is modelled as frozen
dataclasses whose collections are frozensets, tuples and read-only
mappings, so a registry loaded at startup can be shared by every request
without locking.

Usage:
    policy = Policy(
        effect=Effect.ALLOW,
        actions={Action.UPDATE},
        subjects={"User"},
        conditions={"id": "{{id}}"},
    )

    requirement = PermissionRequirement(
        action=Action.UPDATE,
        subject="User",
        conditions={"id": "{{id}}"},
    )

    ability.can(Action.UPDATE, subject("User", {"id": "u1"}))
"""

from dataclasses import dataclass, field
from enum import Enum
from types import MappingProxyType
from typing import Any, Iterable, Mapping

from .enums import Action, Effect


def freeze(value: Any) -> Any:
    """Return a read-only deep copy of a condition template."""
    if isinstance(value, Mapping):
        return MappingProxyType({key: freeze(item) for key, item in value.items()})
    if isinstance(value, (list, tuple)):
        return tuple(freeze(item) for item in value)
    return value


def thaw(value: Any) -> Any:
    """Return a mutable deep copy (dicts and lists) of a frozen template."""
    if isinstance(value, Mapping):
        return {key: thaw(item) for key, item in value.items()}
    if isinstance(value, (list, tuple)):
        return [thaw(item) for item in value]
    return value


def _strings(values: Iterable[Any] | None) -> frozenset[str]:
    if values is None:
        return frozenset()
    if isinstance(values, str):
        return frozenset({values})
    return frozenset(_value(item) for item in values)


def _value(item: Any) -> str:
    return item.value if isinstance(item, Enum) else str(item)


# ============================================================
# POLICIES
# ============================================================

@dataclass(frozen=True)
class Policy:
    """
    A static allow/deny statement for one subject type.

    Attributes:
        effect: ALLOW or DENY
        actions: Actions this policy covers (MANAGE covers all)
        subjects: Subject names the statement was written for
        fields: Field names it is limited to (empty = every field)
        conditions: Condition template, may hold {{path}} placeholders
            resolved against the principal
        roles: Roles it applies to (empty = every principal)
    """
    effect: Effect
    actions: frozenset[str]
    subjects: frozenset[str] = frozenset()
    fields: frozenset[str] = frozenset()
    conditions: Mapping[str, Any] = field(default_factory=lambda: MappingProxyType({}))
    roles: frozenset[str] = frozenset()

    def __post_init__(self) -> None:
        object.__setattr__(self, "effect", Effect(self.effect))
        object.__setattr__(self, "actions", _strings(self.actions))
        object.__setattr__(self, "subjects", _strings(self.subjects))
        object.__setattr__(self, "fields", _strings(self.fields))
        object.__setattr__(self, "conditions", freeze(self.conditions or {}))
        object.__setattr__(self, "roles", _strings(self.roles))

    @property
    def is_deny(self) -> bool:
        return self.effect is Effect.DENY

    @classmethod
    def allow(cls, actions: Iterable[Action | str], subjects: Iterable[str] = (), **kwargs: Any) -> "Policy":
        return cls(effect=Effect.ALLOW, actions=actions, subjects=subjects, **kwargs)

    @classmethod
    def deny(cls, actions: Iterable[Action | str], subjects: Iterable[str] = (), **kwargs: Any) -> "Policy":
        return cls(effect=Effect.DENY, actions=actions, subjects=subjects, **kwargs)


@dataclass(frozen=True)
class SubjectPolicies:
    """One registry entry: every policy configured for a subject type."""
    subject: str
    policies: tuple[Policy, ...] = ()

    def __post_init__(self) -> None:
        object.__setattr__(self, "policies", tuple(self.policies))


# ============================================================
# REQUIREMENTS (declared per operation)
# ============================================================

@dataclass(frozen=True)
class PermissionRequirement:
    """
    Permission an operation needs before it may run.

    Conditions are templates resolved against the operation's arguments,
    e.g. ``{"id": "{{id}}"}`` binds the ``id`` argument.
    """
    action: str
    subject: str
    conditions: Mapping[str, Any] | None = None

    def __post_init__(self) -> None:
        object.__setattr__(self, "action", _value(self.action))
        if self.conditions:
            object.__setattr__(self, "conditions", freeze(self.conditions))
        else:
            object.__setattr__(self, "conditions", None)

    @classmethod
    def coerce(cls, value: "PermissionRequirement | Mapping[str, Any]") -> "PermissionRequirement":
        """Accept a requirement or its dict form ``{action, subject, conditions?}``."""
        if isinstance(value, cls):
            return value
        if isinstance(value, Mapping):
            return cls(
                action=value["action"],
                subject=value["subject"],
                conditions=value.get("conditions"),
            )
        raise TypeError(f"Cannot build a PermissionRequirement from {type(value).__name__}")


@dataclass(frozen=True)
class RoleRequirement:
    """Roles of which the caller must hold at least one."""
    roles: frozenset[str] = frozenset()

    def __post_init__(self) -> None:
        object.__setattr__(self, "roles", _strings(self.roles))


# ============================================================
# SUBJECT INSTANCES (query side)
# ============================================================

@dataclass(frozen=True)
class SubjectInstance:
    """A subject type paired with concrete attributes for condition matching."""
    name: str
    data: Mapping[str, Any] = field(default_factory=dict)


def subject(name: str, data: Mapping[str, Any] | None = None) -> SubjectInstance:
    """Tag ``data`` as an instance of subject ``name``."""
    return SubjectInstance(name=name, data=dict(data or {}))
