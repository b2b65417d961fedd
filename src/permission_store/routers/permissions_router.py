from fastapi import APIRouter, Request
from pydantic import ValidationError

from permission_store.domain.entities.resources import ResourceType
from permission_store.domain.entities.user_permission import PermissionUpdateRequest
from permission_store.errors import AppError, NotFoundError
from permission_store.repositories.permissions_repository import PermissionsRepository
from permission_store.utils.response import success
from permission_store.configs.logging_config import get_logger

log = get_logger(__name__)

router = APIRouter(prefix="/permissions", tags=["permissions"])


def _repo(request: Request) -> PermissionsRepository:
    return request.app.state.permissions_repo


@router.get("")
async def list_permissions(request: Request) -> dict:
    by_id = await _repo(request).get_all_by_id()
    log.info("permissions.list.done users=%s", len(by_id))
    return success({user_id: p.view() for user_id, p in by_id.items()})


@router.get("/{user_id}")
async def get_permission(request: Request, user_id: str) -> dict:
    permission = await _repo(request).get(user_id)
    if permission is None:
        raise NotFoundError(f"no permissions stored for user {user_id}")
    return success(permission.view())


@router.get("/{user_id}/{resource_type}")
async def get_resources(request: Request, user_id: str, resource_type: str) -> dict:
    try:
        rt = ResourceType.parse(resource_type)
    except ValueError as e:
        raise NotFoundError(str(e)) from e
    permission = await _repo(request).get(user_id)
    if permission is None:
        raise NotFoundError(f"no permissions stored for user {user_id}")
    return success(permission.view()[rt.value])


@router.put("/{user_id}")
async def put_permission(request: Request, user_id: str, body: PermissionUpdateRequest) -> dict:
    try:
        permission = body.to_user_permission(user_id)
    except ValidationError as e:
        log.info("permissions.put.invalid user_id=%s errors=%s", user_id, e.error_count())
        raise AppError(f"invalid permissions for user {user_id}", http_status=422) from e
    await _repo(request).put(permission)
    log.info("permissions.put.done user_id=%s", user_id)
    return success(permission.view(), message="permissions replaced")


@router.delete("/{user_id}")
async def delete_permission(request: Request, user_id: str) -> dict:
    await _repo(request).remove(user_id)
    log.info("permissions.delete.done user_id=%s", user_id)
    return success({"name": user_id}, message="permissions removed")
