from __future__ import annotations

from pydantic import ValidationError

from permission_store.domain.entities.resources import Resource, ResourceType
from permission_store.errors import RecordCorruptError


class ResourceCodec:
    """
    JSON text form of a single resource record, as stored in the per-type hash.

    `requiredGroupMembership` is always written, even when empty.
    """

    def encode(self, resource: Resource) -> str:
        return resource.model_dump_json(by_alias=True)

    def decode(self, resource_type: ResourceType, text: str) -> Resource:
        try:
            return resource_type.record_class.model_validate_json(text)
        except ValidationError as e:
            raise RecordCorruptError(
                f"cannot decode {resource_type.value} record: {e.error_count()} error(s)"
            ) from e
