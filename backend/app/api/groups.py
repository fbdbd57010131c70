import math
from typing import Optional

from fastapi import APIRouter, Depends, Query, status

from app.config import settings
from app.models.group import (
    AlgorithmCatalogResponse,
    CommitGroupsRequest,
    CommitGroupsResponse,
    GroupCreateRequest,
    GroupListResponse,
    GroupResponse,
    GroupSuggestionResponse,
    GroupUpdateRequest,
    Pagination,
)
from app.services.group_service import (
    commit_partition,
    create_group,
    delete_group,
    get_algorithm_catalog,
    get_group,
    list_groups,
    suggest_groups,
    update_group,
)
from app.utils.dependencies import get_current_staff

router = APIRouter()


@router.get("/health")
async def health():
    return {"status": "ok", "service": "groups"}


@router.get("/algorithms", response_model=AlgorithmCatalogResponse)
async def list_algorithms(current_staff: dict = Depends(get_current_staff)):
    return get_algorithm_catalog()


@router.get("/suggest", response_model=GroupSuggestionResponse)
async def suggest(
    algorithm: str = Query(default=settings.default_algorithm),
    group_size: int = Query(default=settings.default_group_size),
    exclude_ids: Optional[list[str]] = Query(default=None),
    current_staff: dict = Depends(get_current_staff),
):
    return await suggest_groups(
        algorithm=algorithm,
        group_size=group_size,
        exclude_ids=exclude_ids,
    )


@router.post("/commit", response_model=CommitGroupsResponse, status_code=status.HTTP_201_CREATED)
async def commit(
    request: CommitGroupsRequest,
    current_staff: dict = Depends(get_current_staff),
):
    return await commit_partition(request=request, created_by=current_staff["uid"])


@router.get("", response_model=GroupListResponse)
async def list_all(
    project_id: Optional[str] = Query(default=None),
    status_filter: Optional[str] = Query(default=None, alias="status"),
    page: int = Query(default=1, ge=1),
    limit: int = Query(default=20, ge=1, le=100),
    current_staff: dict = Depends(get_current_staff),
):
    groups, total = await list_groups(
        project_id=project_id,
        status_filter=status_filter,
        page=page,
        limit=limit,
    )
    total_pages = math.ceil(total / limit) if total else 0
    return GroupListResponse(
        groups=[GroupResponse(**g) for g in groups],
        pagination=Pagination(
            page=page,
            limit=limit,
            total=total,
            total_pages=total_pages,
            has_next=page < total_pages,
            has_prev=page > 1,
        ),
    )


@router.post("", response_model=GroupResponse, status_code=status.HTTP_201_CREATED)
async def create(
    request: GroupCreateRequest,
    current_staff: dict = Depends(get_current_staff),
):
    return GroupResponse(**await create_group(request=request, created_by=current_staff["uid"]))


@router.get("/{group_id}", response_model=GroupResponse)
async def get_one(group_id: str, current_staff: dict = Depends(get_current_staff)):
    return GroupResponse(**await get_group(group_id))


@router.put("/{group_id}", response_model=GroupResponse)
async def update(
    group_id: str,
    request: GroupUpdateRequest,
    current_staff: dict = Depends(get_current_staff),
):
    return GroupResponse(**await update_group(group_id, request))


@router.delete("/{group_id}")
async def delete(group_id: str, current_staff: dict = Depends(get_current_staff)):
    await delete_group(group_id)
    return {"message": "Group deleted successfully"}
