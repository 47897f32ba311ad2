from typing import Dict, List, Optional

from dependency_injector.wiring import Provide, inject
from fastapi import APIRouter, Depends, Query

from core.container import Container
from schema.diff_schema import DiffResponse, FileAuthorInfo, WorkingTreeStatus
from services.attribution_service import AttributionService
from services.diff_service import DiffService
from util.common import split_csv

router = APIRouter(prefix="/repository", tags=["diff"])


@router.get("/diff", response_model=DiffResponse)
@inject
def get_diff(
    to: str,
    from_: Optional[str] = Query(None, alias="from"),
    path: Optional[str] = None,
    exclude_authors: Optional[str] = Query(None, description="Hide files touched only by these emails"),
    service: DiffService = Depends(Provide[Container.diff_service]),
):
    """
    Diff between two commits, or between ``to`` and its first parent when
    ``from`` is omitted. Files carry the authors who touched them in the range.
    """
    return service.diff(from_, to, path, split_csv(exclude_authors))


@router.get("/working-tree/diff", response_model=DiffResponse)
@inject
def get_working_tree_diff(
    path: Optional[str] = None,
    service: DiffService = Depends(Provide[Container.diff_service]),
):
    return service.working_diff(path)


@router.get("/working-tree/status", response_model=WorkingTreeStatus)
@inject
def get_working_tree_status(
    path: Optional[str] = None,
    service: DiffService = Depends(Provide[Container.diff_service]),
):
    return service.working_status(path)


@router.get("/authors", response_model=Dict[str, List[FileAuthorInfo]])
@inject
def get_file_authors(
    to: str,
    from_: Optional[str] = Query(None, alias="from"),
    path: Optional[str] = None,
    service: AttributionService = Depends(Provide[Container.attribution_service]),
):
    """Per-file authors over ``from..to``, most commits first."""
    return service.attribute_authors(from_, to, path)
