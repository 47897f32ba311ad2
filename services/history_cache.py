"""In-memory commit history cache.

All commits reachable from HEAD are captured once (metadata only); per-path
indices are built lazily on first use and then answered from memory. The
whole snapshot is discarded and rebuilt whenever HEAD moves.

Performance: building the snapshot is a single history walk. The first query
for a path costs one tree diff per cached commit; later queries for the same
path, author filtering and pagination are in-memory.
"""
import time
from dataclasses import dataclass
from typing import Dict, Iterable, List, Optional, Tuple

from git import Repo
from git.exc import GitCommandError
from loguru import logger

from core.exceptions import InternalError, InvalidInputError
from core.revision_store import head_commit, head_commit_id, normalize_path, revision_changes
from schema.commit_schema import (
    AuthorInfo,
    CacheStats,
    CommitDetail,
    CommitInfo,
    CommitListResponse,
    ContributorInfo,
)
from util.common import format_relative_time

ROOT_PATH = ""


@dataclass(frozen=True)
class CachedRevision:
    id: str
    message: str
    author_name: str
    author_email: str
    committer_name: str
    committer_email: str
    timestamp: int
    parents: Tuple[str, ...]

    @classmethod
    def from_commit(cls, commit) -> "CachedRevision":
        return cls(
            id=commit.hexsha,
            message=(commit.message or "").strip(),
            author_name=commit.author.name or "Unknown",
            author_email=commit.author.email or "",
            committer_name=commit.committer.name or "Unknown",
            committer_email=commit.committer.email or "",
            timestamp=int(commit.committed_date),
            parents=tuple(p.hexsha for p in commit.parents),
        )

    @property
    def first_parent(self) -> Optional[str]:
        return self.parents[0] if self.parents else None

    def to_commit_detail(self) -> CommitDetail:
        return CommitDetail(
            oid=self.id,
            message=self.message,
            author=AuthorInfo(name=self.author_name, email=self.author_email),
            committer=AuthorInfo(name=self.committer_name, email=self.committer_email),
            timestamp=self.timestamp,
            relative_time=format_relative_time(self.timestamp),
            parent_count=len(self.parents),
            parents=list(self.parents),
        )

    def to_commit_info(self) -> CommitInfo:
        return CommitInfo(
            oid=self.id,
            message=self.message,
            author=self.author_name,
            timestamp=self.timestamp,
            relative_time=format_relative_time(self.timestamp),
        )


@dataclass
class PathIndex:
    # positions into HistorySnapshot.revisions, newest first
    revision_indices: List[int]
    # sorted by commit count, most active first
    contributors: List[ContributorInfo]


def aggregate_contributors(revisions: Iterable[CachedRevision]) -> List[ContributorInfo]:
    counts: Dict[str, List] = {}
    for revision in revisions:
        entry = counts.get(revision.author_email)
        if entry is None:
            counts[revision.author_email] = [revision.author_name, 1]
        else:
            entry[1] += 1

    contributors = [
        ContributorInfo(name=name, email=email, commit_count=count)
        for email, (name, count) in counts.items()
    ]
    contributors.sort(key=lambda c: c.commit_count, reverse=True)
    return contributors


class HistorySnapshot:
    def __init__(self, revisions: List[CachedRevision], head_id: str) -> None:
        self.revisions = revisions
        self.head_id = head_id
        self.created_at = time.monotonic()
        # path -> index; "" is the root and always present
        self.path_indices: Dict[str, PathIndex] = {ROOT_PATH: self._build_root_index()}

    @classmethod
    def build(cls, repo: Repo) -> "HistorySnapshot":
        """Walk every commit reachable from HEAD, newest first."""
        head = head_commit(repo)
        try:
            revisions = [
                CachedRevision.from_commit(commit)
                for commit in repo.iter_commits(head.hexsha, date_order=True)
            ]
        except GitCommandError as e:
            logger.error(f"History walk failed: {str(e)}")
            raise InternalError(f"Failed to read commit history: {str(e)}")

        # stable: store order breaks timestamp ties
        revisions.sort(key=lambda r: r.timestamp, reverse=True)
        return cls(revisions, head.hexsha)

    def _build_root_index(self) -> PathIndex:
        return PathIndex(
            revision_indices=list(range(len(self.revisions))),
            contributors=aggregate_contributors(self.revisions),
        )

    def is_valid(self, repo: Repo) -> bool:
        """True while HEAD still resolves to the commit the snapshot was built from."""
        current = head_commit_id(repo)
        return current is not None and current == self.head_id

    def path_index(self, repo: Repo, path: Optional[str]) -> PathIndex:
        key = normalize_path(path)
        index = self.path_indices.get(key)
        if index is None:
            logger.info(f"Building path cache for: {key}")
            start = time.monotonic()
            index = self._build_path_index(repo, key)
            logger.info(
                f"Path cache built: {len(index.revision_indices)} commits "
                f"in {time.monotonic() - start:.2f}s"
            )
            self.path_indices[key] = index
        return index

    def _build_path_index(self, repo: Repo, path: str) -> PathIndex:
        indices: List[int] = []
        try:
            for position, revision in enumerate(self.revisions):
                if revision_changes(repo, revision.id, revision.first_parent, path):
                    indices.append(position)
        except GitCommandError as e:
            logger.error(f"Failed to build path cache for {path}: {str(e)}")
            raise InternalError(f"Failed to read history for {path}: {str(e)}")

        return PathIndex(
            revision_indices=indices,
            contributors=aggregate_contributors(self.revisions[i] for i in indices),
        )

    def query(
        self,
        index: PathIndex,
        limit: int,
        offset: int,
        exclude_authors: Optional[Iterable[str]] = None,
    ) -> CommitListResponse:
        if limit < 0 or offset < 0:
            raise InvalidInputError("limit and offset must not be negative")

        excluded = {email for email in (exclude_authors or []) if email}
        total = len(index.revision_indices)

        if excluded:
            filtered = [
                i for i in index.revision_indices
                if self.revisions[i].author_email not in excluded
            ]
        else:
            filtered = index.revision_indices
        filtered_total = len(filtered)

        commits = [self.revisions[i].to_commit_detail() for i in filtered[offset:offset + limit]]

        return CommitListResponse(
            commits=commits,
            total=total,
            filtered_total=filtered_total,
            has_more=filtered_total > offset + limit,
            contributors=[AuthorInfo(name=c.name, email=c.email) for c in index.contributors],
        )

    def commits_for_path(
        self,
        repo: Repo,
        path: Optional[str],
        limit: int,
        offset: int,
        exclude_authors: Optional[Iterable[str]] = None,
    ) -> CommitListResponse:
        return self.query(self.path_index(repo, path), limit, offset, exclude_authors)

    def last_revisions(self, repo: Repo, directory: Optional[str], paths: Iterable[str]) -> Dict[str, CachedRevision]:
        """Newest revision touching each of ``paths``, the direct children of ``directory``.

        Paths that already have an index are answered from it. The rest share
        one newest-first walk restricted to ``directory`` that stops as soon as
        every path has been seen.
        """
        base = normalize_path(directory)
        prefix = f"{base}/" if base else ""
        found: Dict[str, CachedRevision] = {}
        wanted = set()
        for entry_path in paths:
            index = self.path_indices.get(entry_path)
            if index is None:
                wanted.add(entry_path)
            elif index.revision_indices:
                found[entry_path] = self.revisions[index.revision_indices[0]]

        try:
            for revision in self.revisions:
                if not wanted:
                    break
                for changed in revision_changes(repo, revision.id, revision.first_parent, base):
                    entry_path = prefix + changed[len(prefix):].split("/", 1)[0]
                    if entry_path in wanted:
                        wanted.discard(entry_path)
                        found[entry_path] = revision
        except GitCommandError as e:
            logger.error(f"Last-commit lookup under '{base}' failed: {str(e)}")
            raise InternalError(f"Failed to read history for {base or '/'}: {str(e)}")

        return found

    def stats(self) -> CacheStats:
        return CacheStats(
            total_commits=len(self.revisions),
            cached_paths=len(self.path_indices),
            age_secs=int(time.monotonic() - self.created_at),
        )
