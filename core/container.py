from dependency_injector import containers, providers

from core.config import configs
from core.git_context import RepositoryHolder
from services.attribution_service import AttributionService
from services.blame_service import BlameService
from services.branch_service import BranchService
from services.diff_service import DiffService
from services.history_service import HistoryService
from services.repository_service import RepositoryService
from services.tree_service import TreeService


class Container(containers.DeclarativeContainer):
    wiring_config = containers.WiringConfiguration(
        modules=[
            "api.repository",
            "api.commits",
            "api.diff",
            "api.blame",
            "api.branches",
            "api.tree",
        ]
    )

    repository_holder = providers.Singleton(RepositoryHolder, initial_path=configs.REPO_PATH)

    history_service = providers.Factory(HistoryService, repository_holder=repository_holder)

    diff_service = providers.Factory(DiffService, repository_holder=repository_holder)

    attribution_service = providers.Factory(AttributionService, repository_holder=repository_holder)

    blame_service = providers.Factory(BlameService, repository_holder=repository_holder)

    branch_service = providers.Factory(BranchService, repository_holder=repository_holder)

    repository_service = providers.Factory(RepositoryService, repository_holder=repository_holder)

    tree_service = providers.Factory(TreeService, repository_holder=repository_holder)
