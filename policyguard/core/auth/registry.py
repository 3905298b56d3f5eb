"""
Policy registry.

Read-only mapping from subject name to its ordered policies. Built once
at process start and handed to the AbilityFactory; nothing mutates it
afterwards, so it is safe to share between concurrent requests.

Usage:
    registry = PolicyRegistry([
        SubjectPolicies("User", (Policy.allow({Action.READ}, {"User"}),)),
    ])

    # Or from config (validated at load time):
    registry = PolicyRegistry.from_file("policies.yaml")

File format (YAML or JSON):

    - subject: User
      policies:
        - effect: allow
          actions: [read, update]
          subjects: [User]
          conditions:
            id: "{{id}}"
"""

import json
import logging
from pathlib import Path
from types import MappingProxyType
from typing import Any, Iterable, Iterator, Mapping

import yaml
from pydantic import BaseModel, ConfigDict, Field, TypeAdapter, ValidationError, field_validator

from .enums import Action, Effect
from .errors import PolicyConfigError
from .interfaces import Policy, SubjectPolicies
from .interpolation import find_placeholders
from .principal import Principal

logger = logging.getLogger(__name__)

_YAML_EXTS = frozenset({".yaml", ".yml"})


# ============================================================
# LOAD-TIME SCHEMA
# ============================================================

class PolicySchema(BaseModel):
    """Shape of one policy in a config file."""

    model_config = ConfigDict(extra="forbid")

    effect: Effect
    actions: list[Action] = Field(min_length=1)
    subjects: list[str] = Field(default_factory=list)
    fields: list[str] = Field(default_factory=list)
    conditions: dict[str, Any] = Field(default_factory=dict)
    roles: list[str] = Field(default_factory=list)

    @field_validator("effect", mode="before")
    @classmethod
    def normalize_effect(cls, v: Any) -> Any:
        return v.lower() if isinstance(v, str) else v

    @field_validator("actions", mode="before")
    @classmethod
    def normalize_actions(cls, v: Any) -> Any:
        if isinstance(v, str):
            v = [v]
        if isinstance(v, list):
            return [item.lower() if isinstance(item, str) else item for item in v]
        return v

    def to_policy(self) -> Policy:
        return Policy(
            effect=self.effect,
            actions=self.actions,
            subjects=self.subjects,
            fields=self.fields,
            conditions=self.conditions,
            roles=self.roles,
        )


class SubjectPoliciesSchema(BaseModel):
    """Shape of one registry entry in a config file."""

    model_config = ConfigDict(extra="forbid")

    subject: str = Field(min_length=1)
    policies: list[PolicySchema] = Field(default_factory=list)


_ENTRIES_ADAPTER = TypeAdapter(list[SubjectPoliciesSchema])


# ============================================================
# REGISTRY
# ============================================================

class PolicyRegistry:
    """
    Immutable subject -> policies mapping.

    Entries for the same subject are merged in the order given. Iterating
    yields ``(subject, policy)`` pairs in processing order.
    """

    __slots__ = ("_entries",)

    def __init__(self, entries: Iterable[SubjectPolicies] = ()):
        merged: dict[str, list[Policy]] = {}
        for entry in entries:
            merged.setdefault(entry.subject, []).extend(entry.policies)
        self._entries: Mapping[str, tuple[Policy, ...]] = MappingProxyType(
            {name: tuple(policies) for name, policies in merged.items()}
        )

    def __iter__(self) -> Iterator[tuple[str, Policy]]:
        for name, policies in self._entries.items():
            for policy in policies:
                yield name, policy

    def __len__(self) -> int:
        return sum(len(policies) for policies in self._entries.values())

    def __contains__(self, subject_name: object) -> bool:
        return subject_name in self._entries

    def __repr__(self) -> str:
        return f"PolicyRegistry(subjects={list(self._entries)}, policies={len(self)})"

    @property
    def entries(self) -> tuple[SubjectPolicies, ...]:
        return tuple(SubjectPolicies(name, policies) for name, policies in self._entries.items())

    def subjects(self) -> tuple[str, ...]:
        """List configured subject names."""
        return tuple(self._entries)

    def get(self, subject_name: str) -> tuple[Policy, ...]:
        """Get policies for a subject (empty if not configured)."""
        return self._entries.get(subject_name, ())

    # ============================================================
    # LOADING
    # ============================================================

    @classmethod
    def from_data(cls, data: Any, *, check_placeholders: bool = True) -> "PolicyRegistry":
        """
        Build a registry from decoded config data.

        Accepts a list of ``{subject, policies}`` entries, or a mapping of
        subject name to policy list.

        Raises:
            PolicyConfigError: If the data does not match the schema
        """
        if isinstance(data, Mapping):
            data = [{"subject": name, "policies": policies} for name, policies in data.items()]

        try:
            schemas = _ENTRIES_ADAPTER.validate_python(data)
        except ValidationError as e:
            raise PolicyConfigError(f"Invalid policy configuration:\n{e}") from e

        registry = cls(
            SubjectPolicies(schema.subject, tuple(p.to_policy() for p in schema.policies))
            for schema in schemas
        )
        registry.validate(check_placeholders=check_placeholders)
        return registry

    from_dict = from_data

    @classmethod
    def from_file(cls, path: str | Path, *, check_placeholders: bool = True) -> "PolicyRegistry":
        """
        Load a registry from a YAML or JSON file.

        Raises:
            PolicyConfigError: On I/O, parse or validation errors
        """
        path = Path(path)
        try:
            text = path.read_text(encoding="utf-8")
        except OSError as e:
            raise PolicyConfigError(f"Cannot read policy file {path}: {e}") from e

        try:
            if path.suffix.lower() in _YAML_EXTS:
                data = yaml.safe_load(text)
            else:
                data = json.loads(text)
        except (yaml.YAMLError, ValueError) as e:
            raise PolicyConfigError(f"Cannot parse policy file {path}: {e}") from e

        registry = cls.from_data(data or [], check_placeholders=check_placeholders)
        logger.info(f"Loaded {len(registry)} policies for {len(registry.subjects())} subjects from {path}")
        return registry

    def validate(self, *, check_placeholders: bool = True) -> None:
        """
        Log configuration smells that are legal but probably unintended.

        - a policy whose ``subjects`` does not name the entry it sits under
        - a condition placeholder whose root is not a known Principal field
          (it only resolves if the upstream header carries that extra claim)
        """
        known_roots = set(Principal.model_fields)
        for name, policy in self:
            if policy.subjects and name not in policy.subjects:
                logger.warning(
                    f"Policy under subject '{name}' lists subjects {sorted(policy.subjects)}; "
                    f"rules are compiled for '{name}'"
                )
            if not check_placeholders:
                continue
            for path in find_placeholders(policy.conditions):
                if path.split(".", 1)[0] not in known_roots:
                    logger.warning(
                        f"Policy condition on '{name}' references '{{{{{path}}}}}', "
                        f"which is not a Principal field; it stays literal unless the header carries it"
                    )
