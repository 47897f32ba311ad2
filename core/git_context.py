"""Lock-guarded repository handle shared by every request.

``GitRepository`` owns the GitPython ``Repo`` together with the commit cache.
Access goes through ``with_repo`` (store lock only) or ``with_cache`` (store
lock, then cache lock). ``RepositoryHolder`` owns the current
``GitRepository`` and swaps it wholesale when the served repository changes.
"""
import os
import threading
import time
from typing import Callable, Optional, TypeVar

from git import Repo
from git.exc import InvalidGitRepositoryError, NoSuchPathError
from loguru import logger

from core.exceptions import InternalError, NotFoundError
from services.history_cache import HistorySnapshot

T = TypeVar("T")


class GitRepository:
    def __init__(self, repo: Repo, path: str) -> None:
        self.repo = repo
        self.path = path
        self._repo_lock = threading.Lock()
        self._cache_lock = threading.Lock()
        self._cache: Optional[HistorySnapshot] = None

    @classmethod
    def open(cls, path: str) -> "GitRepository":
        try:
            repo = Repo(path, search_parent_directories=True)
        except (InvalidGitRepositoryError, NoSuchPathError):
            raise NotFoundError(f"Repository not found: {path}")
        root = repo.working_tree_dir if not repo.bare else repo.git_dir
        return cls(repo, os.path.abspath(root or path))

    @property
    def name(self) -> str:
        return os.path.basename(self.path.rstrip(os.sep)) or "Unknown"

    def with_repo(self, fn: Callable[[Repo], T]) -> T:
        with self._repo_lock:
            return fn(self.repo)

    def with_cache(self, fn: Callable[[HistorySnapshot, Repo], T]) -> T:
        """Run ``fn`` against a snapshot that matches the current HEAD."""
        with self._repo_lock:
            with self._cache_lock:
                if self._cache is None or not self._cache.is_valid(self.repo):
                    # never serve the previous snapshot if the rebuild fails
                    self._cache = None
                    logger.info(f"Building commit cache for {self.path}")
                    start = time.monotonic()
                    self._cache = HistorySnapshot.build(self.repo)
                    logger.info(
                        f"Cache built: {len(self._cache.revisions)} commits "
                        f"in {time.monotonic() - start:.2f}s"
                    )
                return fn(self._cache, self.repo)


class RepositoryHolder:
    """Holds the repository currently served; swapping replaces it atomically."""

    def __init__(self, initial_path: Optional[str] = None) -> None:
        self._initial_path = initial_path
        self._lock = threading.Lock()
        self._current: Optional[GitRepository] = None

    def current(self) -> GitRepository:
        with self._lock:
            if self._current is None:
                if not self._initial_path:
                    raise InternalError("No repository configured")
                self._current = GitRepository.open(self._initial_path)
                logger.info(f"Serving repository {self._current.path}")
            return self._current

    def switch(self, path: str) -> GitRepository:
        # opened before taking the lock; a bad path leaves the current repository in place
        new_repo = GitRepository.open(path)
        with self._lock:
            self._current = new_repo
        logger.info(f"Switched repository to {new_repo.path}")
        return new_repo
