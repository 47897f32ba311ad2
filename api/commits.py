from typing import Optional

from dependency_injector.wiring import Provide, inject
from fastapi import APIRouter, Depends, Query

from core.config import configs
from core.container import Container
from schema.commit_schema import CommitListResponse
from services.history_service import HistoryService
from util.common import split_csv

router = APIRouter(prefix="/repository", tags=["history"])


@router.get("/commits", response_model=CommitListResponse)
@inject
def get_commits(
    path: Optional[str] = None,
    limit: int = Query(configs.DEFAULT_COMMIT_LIMIT, ge=0),
    offset: int = Query(0, ge=0),
    exclude_authors: Optional[str] = Query(None, description="Comma-separated author emails to hide"),
    service: HistoryService = Depends(Provide[Container.history_service]),
):
    """
    Paginated history of the commits touching ``path``.

    The first request for a path walks the whole history once; later requests
    (other pages, other author filters) are answered from the cache.
    """
    return service.list_revisions(path, limit, offset, split_csv(exclude_authors))
