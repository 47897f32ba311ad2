from typing import List

from git import RemoteReference, Repo
from git.exc import GitCommandError
from loguru import logger

from core.exceptions import ConflictError, InternalError, InvalidInputError, NotFoundError
from core.git_context import RepositoryHolder
from core.revision_store import head_commit_id
from schema.repository_schema import BranchInfo
from services.repository_service import commit_summary

MAX_LISTED_DIRTY_FILES = 5


def remote_refs(repo: Repo) -> List[RemoteReference]:
    return [ref for ref in repo.refs if isinstance(ref, RemoteReference) and ref.remote_head != "HEAD"]


def dirty_files(repo: Repo) -> List[str]:
    """Tracked files with staged or unstaged changes (untracked files do not block a checkout)."""
    paths: List[str] = []
    if head_commit_id(repo) is not None:
        paths.extend(d.b_path or d.a_path for d in repo.index.diff("HEAD"))
    paths.extend(d.b_path or d.a_path for d in repo.index.diff(None))
    # keep first occurrence order
    return list(dict.fromkeys(paths))


def ensure_clean(repo: Repo) -> None:
    files = dirty_files(repo)
    if not files:
        return
    listed = ", ".join(files[:MAX_LISTED_DIRTY_FILES])
    more = f" and {len(files) - MAX_LISTED_DIRTY_FILES} more" if len(files) > MAX_LISTED_DIRTY_FILES else ""
    raise ConflictError(f"Cannot switch branches: you have uncommitted changes in: {listed}{more}")


class BranchService:
    def __init__(self, repository_holder: RepositoryHolder) -> None:
        self.repository_holder = repository_holder

    def list_branches(self) -> List[BranchInfo]:
        git_repo = self.repository_holder.current()
        return git_repo.with_repo(self._list_branches)

    @staticmethod
    def _list_branches(repo: Repo) -> List[BranchInfo]:
        current = None if repo.head.is_detached else repo.head.reference.name

        local = [
            BranchInfo(
                name=head.name,
                is_current=head.name == current,
                is_remote=False,
                last_commit=commit_summary(head.commit) if head.is_valid() else None,
            )
            for head in repo.heads
        ]
        local.sort(key=lambda b: (not b.is_current, b.name.lower()))

        remote = [
            BranchInfo(
                name=ref.name,
                is_current=False,
                is_remote=True,
                last_commit=commit_summary(ref.commit),
            )
            for ref in remote_refs(repo)
        ]
        remote.sort(key=lambda b: b.name.lower())

        return local + remote

    def checkout(self, branch: str) -> None:
        git_repo = self.repository_holder.current()
        git_repo.with_repo(lambda repo: self._checkout(repo, branch))

    @staticmethod
    def _checkout(repo: Repo, branch: str) -> None:
        if branch not in [h.name for h in repo.heads]:
            raise NotFoundError(f"Branch not found: {branch}")
        ensure_clean(repo)
        try:
            repo.git.checkout(branch)
        except GitCommandError as e:
            logger.error(f"Checkout of {branch} failed: {str(e)}")
            raise InternalError(f"Failed to checkout branch: {str(e)}")
        logger.info(f"Checked out branch: {branch}")

    def checkout_remote(self, remote_branch: str, local_name: str) -> None:
        git_repo = self.repository_holder.current()
        git_repo.with_repo(lambda repo: self._checkout_remote(repo, remote_branch, local_name))

    @staticmethod
    def _checkout_remote(repo: Repo, remote_branch: str, local_name: str) -> None:
        if local_name.startswith("-"):
            raise InvalidInputError(f"Invalid branch name: {local_name}")
        ensure_clean(repo)
        if local_name in [h.name for h in repo.heads]:
            raise InvalidInputError(f"Local branch '{local_name}' already exists")
        if remote_branch not in [ref.name for ref in remote_refs(repo)]:
            raise NotFoundError(f"Remote branch not found: {remote_branch}")

        try:
            repo.git.checkout("-b", local_name, "--track", remote_branch)
        except GitCommandError as e:
            logger.error(f"Checkout of {remote_branch} as {local_name} failed: {str(e)}")
            raise InternalError(f"Failed to checkout remote branch: {str(e)}")
        logger.info(f"Created and checked out local branch '{local_name}' tracking '{remote_branch}'")
