from fastapi import APIRouter

from api.blame import router as blame_router
from api.branches import router as branches_router
from api.commits import router as commits_router
from api.diff import router as diff_router
from api.repository import router as repository_router
from api.tree import router as tree_router

routers = APIRouter()

routers.include_router(repository_router, tags=["v1"])
routers.include_router(branches_router, tags=["v1"])
routers.include_router(commits_router, tags=["v1"])
routers.include_router(diff_router, tags=["v1"])
routers.include_router(blame_router, tags=["v1"])
routers.include_router(tree_router, tags=["v1"])
