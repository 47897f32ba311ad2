from typing import List, Optional

from git import Repo
from git.exc import GitCommandError
from loguru import logger

from core.exceptions import InvalidInputError, NotFoundError
from core.git_context import RepositoryHolder
from core.revision_store import head_commit, normalize_path, resolve_commit
from schema.repository_schema import BlameLine, BlameResponse


class BlameService:
    def __init__(self, repository_holder: RepositoryHolder) -> None:
        self.repository_holder = repository_holder

    def blame(self, path: str, commit: Optional[str] = None) -> BlameResponse:
        """Who last changed each line of ``path`` as of ``commit`` (HEAD by default)."""
        git_repo = self.repository_holder.current()
        return git_repo.with_repo(lambda repo: self._blame(repo, path, commit))

    def _blame(self, repo: Repo, path: str, commit_id: Optional[str]) -> BlameResponse:
        rel_path = normalize_path(path)
        if not rel_path:
            raise InvalidInputError("A file path is required")

        commit = resolve_commit(repo, commit_id) if commit_id else head_commit(repo)

        try:
            entry = commit.tree / rel_path
        except KeyError:
            raise NotFoundError(f"Path not found: {rel_path}")
        if entry.type != "blob":
            raise InvalidInputError(f"{rel_path} is not a file")

        try:
            blame_entries = repo.blame(commit.hexsha, rel_path)
        except GitCommandError as e:
            logger.error(f"Blame {rel_path}@{commit.hexsha[:8]} failed: {str(e)}")
            raise NotFoundError(f"Cannot blame file '{rel_path}': {str(e)}")

        lines: List[BlameLine] = []
        line_number = 1
        for hunk_commit, hunk_lines in blame_entries or []:
            for _ in hunk_lines:
                lines.append(
                    BlameLine(
                        line_number=line_number,
                        author_name=hunk_commit.author.name or "Unknown",
                        author_email=hunk_commit.author.email or "",
                        commit_oid=hunk_commit.hexsha,
                        timestamp=int(hunk_commit.authored_date),
                    )
                )
                line_number += 1

        return BlameResponse(path=rel_path, commit=commit.hexsha, lines=lines)
