from typing import List, Optional

from loguru import logger

from core.git_context import RepositoryHolder
from schema.commit_schema import CommitListResponse


class HistoryService:
    def __init__(self, repository_holder: RepositoryHolder) -> None:
        self.repository_holder = repository_holder

    def list_revisions(
        self,
        path: Optional[str] = None,
        limit: int = 50,
        offset: int = 0,
        exclude_authors: Optional[List[str]] = None,
    ) -> CommitListResponse:
        """Commits touching ``path`` (whole history when empty), paged after author filtering."""
        git_repo = self.repository_holder.current()
        response = git_repo.with_cache(
            lambda cache, repo: cache.commits_for_path(repo, path, limit, offset, exclude_authors)
        )
        logger.debug(
            f"Listed {len(response.commits)}/{response.filtered_total} commits for '{path or ''}'"
        )
        return response

