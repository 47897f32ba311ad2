from typing import List, Optional

from dependency_injector.wiring import Provide, inject
from fastapi import APIRouter, Depends

from core.container import Container
from schema.tree_schema import FullTreeEntry, TreeEntry
from services.tree_service import TreeService

router = APIRouter(prefix="/repository", tags=["tree"])


@router.get("/tree", response_model=List[TreeEntry])
@inject
def get_tree(
    path: Optional[str] = None,
    include_last_commit: bool = True,
    service: TreeService = Depends(Provide[Container.tree_service]),
):
    """
    Entries of a directory at HEAD, directories first.

    With ``include_last_commit`` each entry carries the newest commit that touched it.
    """
    return service.list_entries(path, include_last_commit)


@router.get("/tree/full", response_model=List[FullTreeEntry])
@inject
def get_full_tree(
    service: TreeService = Depends(Provide[Container.tree_service]),
):
    return service.full_tree()


@router.get("/file", response_model=str)
@inject
def get_file_content(
    path: str,
    service: TreeService = Depends(Provide[Container.tree_service]),
):
    return service.file_content(path)
