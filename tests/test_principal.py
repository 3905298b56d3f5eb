"""
Tests for principal header parsing.
"""

import json

import pytest
from pydantic import ValidationError

from policyguard.core.auth import Principal, Role, parse_principal


def test_parse_json_header(user_header):
    principal = parse_principal(user_header)

    assert isinstance(principal, Principal)
    assert principal.id == "u1"
    assert principal.email == "u1@example.com"
    assert principal.roles == frozenset({"User"})


def test_parse_bytes_and_mapping(user_claims):
    assert parse_principal(json.dumps(user_claims).encode()).id == "u1"
    assert parse_principal(user_claims).id == "u1"


def test_principal_instance_passes_through(user_header):
    principal = parse_principal(user_header)
    assert parse_principal(principal) is principal


@pytest.mark.parametrize(
    "header",
    [
        None,
        "",
        "   ",
        "undefined",
        "null",
        " undefined ",
        "{not json",
        "[1, 2]",
        "42",
        '"just a string"',
        b"\xff\xfe",
        '{"roles": ["User"]}',
        '{"id": "", "roles": ["User"]}',
        '{"id": "u1"}',
        '{"id": "u1", "roles": null}',
    ],
)
def test_unauthenticated_headers(header):
    assert parse_principal(header) is None


def test_optional_fields_and_extra_claims():
    principal = parse_principal(json.dumps({
        "id": "u1",
        "roles": ["User"],
        "department": "Eng",
        "clearance": "secret",
        "organizationId": "org-1",
    }))

    assert principal.email is None
    assert principal.department == "Eng"
    assert principal.clearance == "secret"
    assert principal.as_values()["organizationId"] == "org-1"


def test_roles_normalization():
    assert parse_principal('{"id": "u1", "roles": "User"}').roles == frozenset({"User"})
    assert parse_principal('{"id": "u1", "roles": []}').roles == frozenset()


def test_numeric_id_is_coerced():
    assert parse_principal('{"id": 42, "roles": ["User"]}').id == "42"


def test_has_any_role():
    principal = parse_principal('{"id": "u1", "roles": ["User", "Auditor"]}')

    assert principal.has_any_role([Role.USER])
    assert principal.has_any_role(["Auditor", "Admin"])
    assert not principal.has_any_role([Role.ADMIN])
    assert not principal.has_any_role([])


def test_as_values_lists_roles_sorted():
    principal = parse_principal('{"id": "u1", "roles": ["User", "Auditor"]}')
    assert principal.as_values()["roles"] == ["Auditor", "User"]


def test_principal_is_immutable(user_header):
    principal = parse_principal(user_header)
    with pytest.raises(ValidationError):
        principal.id = "someone-else"


def test_deeply_nested_json_is_unauthenticated():
    header = "[" * 200_000 + "]" * 200_000
    assert parse_principal(header) is None
    assert parse_principal('{"id": "u1", "roles": ["User"], "extra": ' + "[" * 200_000 + "]" * 200_000 + "}") is None
