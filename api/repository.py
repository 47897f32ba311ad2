from typing import Optional

from dependency_injector.wiring import Provide, inject
from fastapi import APIRouter, Depends

from core.container import Container
from schema.commit_schema import CacheStats, DirectoryInfo
from schema.repository_schema import RepositoryInfo, SwitchRepoRequest
from services.repository_service import RepositoryService

router = APIRouter(prefix="/repository", tags=["repository"])


@router.get("", response_model=RepositoryInfo)
@inject
def get_repository_info(
    service: RepositoryService = Depends(Provide[Container.repository_service]),
):
    return service.info()


@router.post("/switch", response_model=RepositoryInfo)
@inject
def switch_repository(
    request: SwitchRepoRequest,
    service: RepositoryService = Depends(Provide[Container.repository_service]),
):
    """Serve a different repository. Its history cache starts empty."""
    return service.switch(request.path)


@router.get("/cache", response_model=CacheStats)
@inject
def get_cache_stats(
    service: RepositoryService = Depends(Provide[Container.repository_service]),
):
    return service.cache_stats()


@router.get("/directory-info", response_model=DirectoryInfo)
@inject
def get_directory_info(
    path: Optional[str] = None,
    service: RepositoryService = Depends(Provide[Container.repository_service]),
):
    """File/directory counts at HEAD plus contributors and first/latest commit for the path."""
    return service.directory_info(path)
