from typing import Optional

from dependency_injector.wiring import Provide, inject
from fastapi import APIRouter, Depends

from core.container import Container
from schema.repository_schema import BlameResponse
from services.blame_service import BlameService

router = APIRouter(prefix="/repository", tags=["blame"])


@router.get("/blame", response_model=BlameResponse)
@inject
def get_blame(
    path: str,
    commit: Optional[str] = None,
    service: BlameService = Depends(Provide[Container.blame_service]),
):
    return service.blame(path, commit)
