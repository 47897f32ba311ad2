from typing import Optional

from git import Commit, Repo
from loguru import logger

from core.exceptions import InvalidInputError, NotFoundError
from core.git_context import GitRepository, RepositoryHolder
from core.revision_store import head_commit, head_commit_id, normalize_path
from schema.commit_schema import CacheStats, CommitInfo, DirectoryInfo
from schema.repository_schema import RepositoryInfo
from services.history_cache import HistorySnapshot
from util.common import format_relative_time


def commit_summary(commit: Commit) -> CommitInfo:
    timestamp = int(commit.committed_date)
    return CommitInfo(
        oid=commit.hexsha,
        message=(commit.message or "").strip(),
        author=commit.author.name or "Unknown",
        timestamp=timestamp,
        relative_time=format_relative_time(timestamp),
    )


class RepositoryService:
    def __init__(self, repository_holder: RepositoryHolder) -> None:
        self.repository_holder = repository_holder

    def info(self) -> RepositoryInfo:
        git_repo = self.repository_holder.current()
        return git_repo.with_repo(lambda repo: self._info(git_repo, repo))

    @staticmethod
    def _info(git_repo: GitRepository, repo: Repo) -> RepositoryInfo:
        resolved = head_commit_id(repo) is not None
        head_branch = None
        if resolved and not repo.head.is_detached:
            head_branch = repo.head.reference.name

        return RepositoryInfo(
            name=git_repo.name,
            path=git_repo.path,
            head_branch=head_branch,
            head_commit=commit_summary(repo.head.commit) if resolved else None,
            is_bare=repo.bare,
            is_empty=not resolved,
        )

    def switch(self, path: str) -> RepositoryInfo:
        """Serve another repository; later queries never see the old one's cache."""
        if not path or not path.strip():
            raise InvalidInputError("Repository path must not be empty")
        git_repo = self.repository_holder.switch(path)
        return git_repo.with_repo(lambda repo: self._info(git_repo, repo))

    def cache_stats(self) -> CacheStats:
        git_repo = self.repository_holder.current()
        return git_repo.with_cache(lambda cache, repo: cache.stats())

    def directory_info(self, path: Optional[str] = None) -> DirectoryInfo:
        git_repo = self.repository_holder.current()
        return git_repo.with_cache(lambda cache, repo: self._directory_info(cache, repo, path))

    @staticmethod
    def _directory_info(cache: HistorySnapshot, repo: Repo, path: Optional[str]) -> DirectoryInfo:
        key = normalize_path(path)
        target = head_commit(repo).tree
        if key:
            try:
                target = target / key
            except KeyError:
                raise NotFoundError(f"Path not found: {key}")
            if target.type != "tree":
                raise InvalidInputError(f"{key} is not a directory")

        file_count = directory_count = total_size = 0
        for item in target.traverse():
            if item.type == "blob":
                file_count += 1
                total_size += item.size
            elif item.type == "tree":
                directory_count += 1

        index = cache.path_index(repo, key)
        touching = index.revision_indices
        logger.debug(f"Directory info for '{key}': {file_count} files, {len(touching)} commits")

        return DirectoryInfo(
            path=key,
            file_count=file_count,
            directory_count=directory_count,
            total_size=total_size,
            contributors=index.contributors,
            latest_commit=cache.revisions[touching[0]].to_commit_info() if touching else None,
            first_commit=cache.revisions[touching[-1]].to_commit_info() if touching else None,
        )
