from __future__ import annotations

from fastapi import APIRouter, Depends, Response

from nestegg.api.deps import get_category_service, get_household_id
from nestegg.schemas.category import CategoryCreate, CategoryDetailOut, CategoryNodeOut, CategoryOut, CategoryUpdate
from nestegg.schemas.stats import CategoryStatisticsOut
from nestegg.services.categories import CategoryService

router = APIRouter(prefix="/categories", tags=["categories"])


@router.get("", response_model=list[CategoryNodeOut])
def list_categories(
    household_id: str = Depends(get_household_id),
    service: CategoryService = Depends(get_category_service),
) -> list[CategoryNodeOut]:
    return service.find_all(household_id)


@router.get("/tree", response_model=list[CategoryNodeOut])
def get_category_tree(
    household_id: str = Depends(get_household_id),
    service: CategoryService = Depends(get_category_service),
) -> list[CategoryNodeOut]:
    return service.get_category_tree(household_id)


@router.get("/{category_id}", response_model=CategoryDetailOut)
def get_category(
    category_id: str,
    household_id: str = Depends(get_household_id),
    service: CategoryService = Depends(get_category_service),
) -> CategoryDetailOut:
    return service.find_one(household_id, category_id)


@router.get("/{category_id}/path", response_model=list[CategoryOut])
def get_category_path(
    category_id: str,
    household_id: str = Depends(get_household_id),
    service: CategoryService = Depends(get_category_service),
) -> list[CategoryOut]:
    return service.get_category_path(household_id, category_id)


@router.get("/{category_id}/stats", response_model=CategoryStatisticsOut)
def get_category_stats(
    category_id: str,
    household_id: str = Depends(get_household_id),
    service: CategoryService = Depends(get_category_service),
) -> CategoryStatisticsOut:
    return service.get_category_stats(household_id, category_id)


@router.post("", response_model=CategoryNodeOut, status_code=201)
def create_category(
    payload: CategoryCreate,
    household_id: str = Depends(get_household_id),
    service: CategoryService = Depends(get_category_service),
) -> CategoryNodeOut:
    return service.create(
        household_id,
        payload.name,
        parent_id=payload.parentId,
        description=payload.description,
        type=payload.type,
    )


@router.put("/{category_id}", response_model=CategoryNodeOut)
def update_category(
    category_id: str,
    payload: CategoryUpdate,
    household_id: str = Depends(get_household_id),
    service: CategoryService = Depends(get_category_service),
) -> CategoryNodeOut:
    return service.update(household_id, category_id, payload)


@router.delete("/{category_id}", status_code=204)
def delete_category(
    category_id: str,
    household_id: str = Depends(get_household_id),
    service: CategoryService = Depends(get_category_service),
) -> Response:
    service.remove(household_id, category_id)
    return Response(status_code=204)
