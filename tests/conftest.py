"""Throwaway GitPython repositories with fixed authors and dates."""
import os
from pathlib import Path
from typing import Dict, Iterable, Optional, Union

import pytest
from git import Actor, Commit, Repo

from core.git_context import GitRepository, RepositoryHolder

ALICE = Actor("Alice", "alice@example.com")
BOB = Actor("Bob", "bob@example.com")
CAROL = Actor("Carol", "carol@example.com")

BASE_TIMESTAMP = 1700000000


class RepoBuilder:
    """Writes files and records commits with deterministic timestamps."""

    def __init__(self, path: Path) -> None:
        self.path = path
        self.repo = Repo.init(path)
        with self.repo.config_writer() as config:
            config.set_value("user", "name", "Test User")
            config.set_value("user", "email", "test@example.com")
        self._tick = 0

    def write(self, rel_path: str, content: Union[str, bytes]) -> Path:
        target = self.path / rel_path
        target.parent.mkdir(parents=True, exist_ok=True)
        if isinstance(content, bytes):
            target.write_bytes(content)
        else:
            target.write_text(content)
        return target

    def gitlink(self, rel_path: str, sha: str, message: str) -> Commit:
        """Record a submodule entry pointing at a commit of another repository."""
        self.repo.git.update_index("--add", "--cacheinfo", f"160000,{sha},{rel_path}")
        self.repo.git.commit("-m", message)
        return self.repo.head.commit

    def symlink(self, rel_path: str, target: str) -> Path:
        link = self.path / rel_path
        if link.exists() or link.is_symlink():
            link.unlink()
        os.symlink(target, link)
        return link

    def commit(
        self,
        message: str,
        files: Optional[Dict[str, Union[str, bytes]]] = None,
        remove: Iterable[str] = (),
        author: Actor = ALICE,
        timestamp: Optional[int] = None,
    ) -> Commit:
        if files:
            written = [str(self.write(rel_path, content)) for rel_path, content in files.items()]
            self.repo.index.add(written)
        removed = list(remove)
        if removed:
            self.repo.index.remove(removed, working_tree=True)

        if timestamp is None:
            self._tick += 1
            timestamp = BASE_TIMESTAMP + self._tick * 60
        date = f"{timestamp} +0000"
        return self.repo.index.commit(
            message,
            author=author,
            committer=author,
            author_date=date,
            commit_date=date,
        )


@pytest.fixture
def builder(tmp_path):
    return RepoBuilder(tmp_path / "repo")


@pytest.fixture
def linear_repo(builder):
    """C1 adds README, C2 touches only f, C3 touches only g."""
    c1 = builder.commit("initial", {"README.md": "hello\n"}, author=ALICE)
    c2 = builder.commit("touch f", {"f": "one\ntwo\n"}, author=BOB)
    c3 = builder.commit("touch g", {"g": "alpha\n"}, author=ALICE)
    return builder, (c1, c2, c3)


@pytest.fixture
def git_repository(linear_repo):
    builder, _ = linear_repo
    return GitRepository.open(str(builder.path))


@pytest.fixture
def holder(linear_repo):
    builder, _ = linear_repo
    return RepositoryHolder(str(builder.path))
