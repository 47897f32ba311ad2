from typing import List

from dependency_injector.wiring import Provide, inject
from fastapi import APIRouter, Depends

from core.container import Container
from schema.repository_schema import BranchInfo, CheckoutRemoteRequest, CheckoutRequest
from services.branch_service import BranchService

router = APIRouter(prefix="/repository", tags=["branches"])


@router.get("/branches", response_model=List[BranchInfo])
@inject
def list_branches(
    service: BranchService = Depends(Provide[Container.branch_service]),
):
    """Local branches (current first), then remote branches."""
    return service.list_branches()


@router.post("/checkout")
@inject
def checkout_branch(
    request: CheckoutRequest,
    service: BranchService = Depends(Provide[Container.branch_service]),
):
    """
    Switch to a local branch. Refused with 409 when tracked files have
    uncommitted changes. The commit cache rebuilds on the next history query.
    """
    service.checkout(request.branch)
    return {"status": "success", "branch": request.branch}


@router.post("/checkout-remote")
@inject
def checkout_remote_branch(
    request: CheckoutRemoteRequest,
    service: BranchService = Depends(Provide[Container.branch_service]),
):
    service.checkout_remote(request.remote_branch, request.local_name)
    return {"status": "success", "branch": request.local_name, "tracking": request.remote_branch}
