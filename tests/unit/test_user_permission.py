from __future__ import annotations

import pytest
from pydantic import ValidationError

from permission_store.domain.entities.resources import Account, Application, ResourceType
from permission_store.domain.entities.user_permission import UserPermission


def test_duplicate_names_within_a_type_rejected() -> None:
    with pytest.raises(ValidationError):
        UserPermission(
            id="u1",
            accounts={Account(name="a"), Account(name="a", requiredGroupMembership=["g"])},
        )


def test_same_name_across_types_allowed() -> None:
    p = UserPermission(id="u1", accounts={Account(name="x")}, applications={Application(name="x")})
    assert len(p.all_resources()) == 2


def test_empty_id_rejected() -> None:
    with pytest.raises(ValidationError):
        UserPermission(id="")


def test_is_empty() -> None:
    assert UserPermission(id="u1").is_empty()
    assert not UserPermission(id="u1", accounts={Account(name="a")}).is_empty()


def test_add_resource_routes_by_type_and_replaces_same_name() -> None:
    p = UserPermission(id="u1", accounts={Account(name="a")})
    p2 = p.add_resources([Account(name="a", requiredGroupMembership=["g"]), Application(name="app")])

    assert p2.resources(ResourceType.ACCOUNT) == {Account(name="a", requiredGroupMembership=["g"])}
    assert p2.resources(ResourceType.APPLICATION) == {Application(name="app")}
    # original untouched
    assert p.resources(ResourceType.APPLICATION) == frozenset()


def test_merge() -> None:
    a = UserPermission(id="u1", accounts={Account(name="a")})
    b = UserPermission(id="u1", applications={Application(name="app")})
    merged = a.merge(b)
    assert merged == UserPermission(
        id="u1", accounts={Account(name="a")}, applications={Application(name="app")}
    )


def test_view_is_sorted_and_json_ready() -> None:
    p = UserPermission(
        id="u1",
        accounts={Account(name="b"), Account(name="a", requiredGroupMembership=["g"])},
    )
    assert p.view() == {
        "name": "u1",
        "accounts": [
            {"name": "a", "requiredGroupMembership": ["g"]},
            {"name": "b", "requiredGroupMembership": []},
        ],
        "applications": [],
    }


def test_resource_type_parse() -> None:
    assert ResourceType.parse("Accounts") is ResourceType.ACCOUNT
    with pytest.raises(ValueError):
        ResourceType.parse("pipelines")
