from __future__ import annotations

from typing import Any, Iterable

from pydantic import BaseModel, ConfigDict, Field, model_validator

from permission_store.domain.entities.resources import (
    Account,
    Application,
    Resource,
    ResourceType,
)


class UserPermission(BaseModel):
    """
    Everything one principal is allowed to touch, grouped by resource type.

    Field names match `ResourceType` values so per-type access stays generic.
    """

    model_config = ConfigDict(frozen=True)

    id: str = Field(min_length=1)
    accounts: frozenset[Account] = Field(default_factory=frozenset)
    applications: frozenset[Application] = Field(default_factory=frozenset)

    @model_validator(mode="after")
    def names_unique_per_type(self) -> UserPermission:
        for resource_type in ResourceType:
            seen: set[str] = set()
            for r in self.resources(resource_type):
                if r.name in seen:
                    raise ValueError(
                        f"duplicate {resource_type.value} name {r.name!r} for user {self.id!r}"
                    )
                seen.add(r.name)
        return self

    def resources(self, resource_type: ResourceType) -> frozenset[Resource]:
        return getattr(self, resource_type.value)

    def all_resources(self) -> frozenset[Resource]:
        out: set[Resource] = set()
        for resource_type in ResourceType:
            out.update(self.resources(resource_type))
        return frozenset(out)

    def is_empty(self) -> bool:
        return not self.all_resources()

    def add_resource(self, resource: Resource) -> UserPermission:
        return self.add_resources([resource])

    def add_resources(self, resources: Iterable[Resource]) -> UserPermission:
        """Return a copy with `resources` added; a same-named record is replaced."""
        by_type = {
            t: {r.name: r for r in self.resources(t)} for t in ResourceType
        }
        for r in resources:
            by_type[r.resource_type][r.name] = r
        return UserPermission(
            id=self.id,
            **{t.value: frozenset(named.values()) for t, named in by_type.items()},
        )

    def merge(self, other: UserPermission) -> UserPermission:
        return self.add_resources(other.all_resources())

    def view(self) -> dict[str, Any]:
        out: dict[str, Any] = {"name": self.id}
        for resource_type in ResourceType:
            out[resource_type.value] = [
                r.model_dump(mode="json", by_alias=True)
                for r in sorted(self.resources(resource_type), key=lambda r: r.name)
            ]
        return out


class PermissionUpdateRequest(BaseModel):
    """Body of a full-replace write; the principal id comes from the path."""

    accounts: list[Account] = Field(default_factory=list)
    applications: list[Application] = Field(default_factory=list)

    def to_user_permission(self, user_id: str) -> UserPermission:
        return UserPermission(
            id=user_id,
            accounts=frozenset(self.accounts),
            applications=frozenset(self.applications),
        )
