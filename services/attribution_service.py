from dataclasses import dataclass
from typing import Dict, Iterable, List, Optional

from git import Repo
from git.exc import GitCommandError
from loguru import logger

from core.exceptions import InternalError
from core.git_context import RepositoryHolder
from core.revision_store import resolve_commit, revision_changes
from schema.diff_schema import FileAuthorInfo


@dataclass
class AuthorTally:
    email: str
    name: str
    commit_count: int
    last_commit_timestamp: int


def sort_contributions(tallies: Iterable[AuthorTally]) -> List[FileAuthorInfo]:
    """Most commits first; ties go to the author who touched the file last."""
    ordered = sorted(tallies, key=lambda t: (t.commit_count, t.last_commit_timestamp), reverse=True)
    return [
        FileAuthorInfo(
            email=t.email,
            name=t.name,
            commit_count=t.commit_count,
            last_commit_timestamp=t.last_commit_timestamp,
        )
        for t in ordered
    ]


def walk_file_authors(
    repo: Repo,
    from_id: Optional[str],
    to_id: str,
    path: Optional[str] = None,
) -> Dict[str, List[FileAuthorInfo]]:
    """Attribute every file changed in ``from..to`` to the authors who changed it.

    Without ``from_id`` the whole ancestry of ``to_id`` is walked. Each commit
    is compared against its first parent, restricted to ``path``.
    """
    to_commit = resolve_commit(repo, to_id)
    rev = to_commit.hexsha
    if from_id:
        from_commit = resolve_commit(repo, from_id)
        rev = f"{from_commit.hexsha}..{to_commit.hexsha}"

    file_authors: Dict[str, Dict[str, AuthorTally]] = {}
    walked = 0
    try:
        for commit in repo.iter_commits(rev, topo_order=True):
            walked += 1
            email = commit.author.email or ""
            name = commit.author.name or "Unknown"
            timestamp = int(commit.committed_date)
            first_parent = commit.parents[0].hexsha if commit.parents else None

            for file_path in revision_changes(repo, commit.hexsha, first_parent, path):
                authors = file_authors.setdefault(file_path, {})
                tally = authors.get(email)
                if tally is None:
                    authors[email] = AuthorTally(email, name, 1, timestamp)
                else:
                    tally.commit_count += 1
                    tally.last_commit_timestamp = max(tally.last_commit_timestamp, timestamp)
    except GitCommandError as e:
        logger.error(f"Author walk {rev} failed: {str(e)}")
        raise InternalError(f"Failed to walk commits {rev}: {str(e)}")

    logger.debug(f"Attributed {len(file_authors)} files over {walked} commits ({rev})")
    return {file_path: sort_contributions(authors.values()) for file_path, authors in file_authors.items()}


class AttributionService:
    def __init__(self, repository_holder: RepositoryHolder) -> None:
        self.repository_holder = repository_holder

    def attribute_authors(
        self,
        from_id: Optional[str],
        to_id: str,
        path: Optional[str] = None,
    ) -> Dict[str, List[FileAuthorInfo]]:
        git_repo = self.repository_holder.current()
        return git_repo.with_repo(lambda repo: walk_file_authors(repo, from_id, to_id, path))
