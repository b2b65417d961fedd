from __future__ import annotations

from enum import Enum
from typing import ClassVar

from pydantic import BaseModel, ConfigDict, Field, field_validator


class ResourceType(str, Enum):
    """
    Closed set of permission-bearing resource kinds.

    The value doubles as the Redis key segment and as the field name on
    `UserPermission`.
    """

    ACCOUNT = "accounts"
    APPLICATION = "applications"

    @property
    def record_class(self) -> type[Resource]:
        return _RECORD_CLASSES[self]

    @classmethod
    def parse(cls, value: str) -> ResourceType:
        try:
            return cls(value.lower())
        except ValueError:
            raise ValueError(f"Unknown resource type: {value}") from None


class Resource(BaseModel):
    model_config = ConfigDict(frozen=True, populate_by_name=True, extra="ignore")

    resource_type: ClassVar[ResourceType]

    name: str = Field(min_length=1)
    required_group_membership: tuple[str, ...] = Field(
        default=(), alias="requiredGroupMembership"
    )

    @field_validator("required_group_membership", mode="before")
    @classmethod
    def null_means_empty(cls, v):
        return () if v is None else v


class Account(Resource):
    resource_type: ClassVar[ResourceType] = ResourceType.ACCOUNT


class Application(Resource):
    resource_type: ClassVar[ResourceType] = ResourceType.APPLICATION


_RECORD_CLASSES: dict[ResourceType, type[Resource]] = {
    ResourceType.ACCOUNT: Account,
    ResourceType.APPLICATION: Application,
}
