"""Diff generation between commits, and between HEAD and the working copy.

Each changed file carries its status, full old/new text (unless binary), the
hunks decoded line by line, and the authors who touched it in the compared
range (see ``attribution_service``).
"""
import os
import stat
from pathlib import Path
from typing import Dict, Iterable, List, Optional, Tuple

from git import Diff, Repo
from git.exc import GitCommandError
from loguru import logger

from core.config import configs
from core.exceptions import InternalError, NotFoundError
from core.git_context import RepositoryHolder
from core.revision_store import head_commit, normalize_path, parent_tree, path_filter, resolve_commit
from schema.commit_schema import AuthorInfo
from schema.diff_schema import (
    DiffResponse,
    DiffStats,
    DiffStatus,
    FileAuthorInfo,
    FileDiff,
    WorkingTreeStatus,
)
from services.attribution_service import walk_file_authors
from services.patch_parser import ParsedPatch, added_file_patch, parse_patch

BINARY_MARKERS = (b"Binary files", b"GIT binary patch")
# git looks for NUL bytes in the same leading window
BINARY_SNIFF_BYTES = 8000
GITLINK_MODE = 0o160000


def looks_binary(data: Optional[bytes]) -> bool:
    return data is not None and b"\0" in data[:BINARY_SNIFF_BYTES]


def decode_text(data: Optional[bytes], path: str) -> Optional[str]:
    if data is None:
        return None
    try:
        return data.decode("utf-8")
    except UnicodeDecodeError:
        raise InternalError(f"File is not valid UTF-8: {path}")


def classify(diff: Diff) -> DiffStatus:
    if diff.new_file:
        return DiffStatus.ADDED
    if diff.deleted_file:
        return DiffStatus.DELETED
    if getattr(diff, "copied_file", False):
        return DiffStatus.COPIED
    if diff.renamed_file:
        return DiffStatus.RENAMED
    return DiffStatus.MODIFIED


def is_gitlink(mode: Optional[int]) -> bool:
    """Submodule entries point at commits of another repository."""
    return bool(mode) and stat.S_IFMT(mode) == GITLINK_MODE


def _blob_bytes(blob, mode: Optional[int]) -> Optional[bytes]:
    if blob is None or is_gitlink(mode):
        return None
    return blob.data_stream.read()


def _read_worktree_file(workdir: str, rel_path: Optional[str]) -> Optional[bytes]:
    if not rel_path:
        return None
    target = Path(workdir) / rel_path
    # git stores a symlink as its target path
    if target.is_symlink():
        return os.fsencode(os.readlink(target))
    try:
        return target.read_bytes()
    except (FileNotFoundError, IsADirectoryError):
        return None


def _worktree_bytes(workdir: str, diff: Diff) -> Optional[bytes]:
    if diff.deleted_file or is_gitlink(diff.b_mode):
        return None
    return _read_worktree_file(workdir, diff.b_path)


def build_file_diff(diff: Diff, old_bytes: Optional[bytes], new_bytes: Optional[bytes]) -> Tuple[FileDiff, ParsedPatch]:
    old_path = diff.a_path or diff.b_path
    new_path = diff.b_path or diff.a_path
    patch = diff.diff or b""
    if isinstance(patch, str):
        patch = patch.encode("utf-8", errors="replace")

    is_binary = patch.startswith(BINARY_MARKERS) or looks_binary(old_bytes) or looks_binary(new_bytes)
    parsed = ParsedPatch() if is_binary else parse_patch(patch)

    file_diff = FileDiff(
        old_path=old_path,
        new_path=new_path,
        status=classify(diff),
        hunks=parsed.hunks,
        old_content=None if is_binary else decode_text(old_bytes, old_path),
        new_content=None if is_binary else decode_text(new_bytes, new_path),
        is_binary=is_binary,
    )
    return file_diff, parsed


def merge_type_change(kept: FileDiff, other: FileDiff) -> None:
    """Fold the other half of a deletion/addition pair into ``kept``."""
    deleted, added = (kept, other) if kept.status == DiffStatus.DELETED else (other, kept)
    kept.status = DiffStatus.TYPE_CHANGED
    kept.old_content = deleted.old_content
    kept.new_content = added.new_content
    kept.hunks = deleted.hunks + added.hunks
    kept.is_binary = deleted.is_binary or added.is_binary


def untracked_file_diff(rel_path: str, data: Optional[bytes]) -> Tuple[FileDiff, ParsedPatch]:
    is_binary = looks_binary(data)
    content = None if is_binary else decode_text(data, rel_path)
    parsed = ParsedPatch() if is_binary or content is None else added_file_patch(content)
    file_diff = FileDiff(
        old_path=rel_path,
        new_path=rel_path,
        status=DiffStatus.ADDED,
        hunks=parsed.hunks,
        new_content=content,
        is_binary=is_binary,
    )
    return file_diff, parsed


def attach_authors(files: List[FileDiff], file_authors: Dict[str, List[FileAuthorInfo]]) -> List[AuthorInfo]:
    """Copy per-file attribution onto the diff; returns every author seen, by name."""
    contributors: Dict[str, AuthorInfo] = {}
    for file_diff in files:
        authors = file_authors.get(file_diff.new_path) or file_authors.get(file_diff.old_path)
        if not authors:
            continue
        file_diff.authors = authors
        file_diff.biggest_change_author = authors[0].email
        for author in authors:
            contributors.setdefault(author.email, AuthorInfo(name=author.name, email=author.email))
    return sorted(contributors.values(), key=lambda a: a.name.lower())


def apply_author_filter(response: DiffResponse, exclude_authors: Optional[Iterable[str]]) -> DiffResponse:
    """Drop files whose every attributed author is excluded; unattributed files stay."""
    excluded = {email for email in (exclude_authors or []) if email}
    if not excluded:
        return response
    response.files = [
        f for f in response.files
        if not f.authors or any(a.email not in excluded for a in f.authors)
    ]
    response.filtered_files = len(response.files)
    return response


def _in_path(rel_path: str, prefix: str) -> bool:
    return not prefix or rel_path == prefix or rel_path.startswith(prefix + "/")


class DiffService:
    def __init__(self, repository_holder: RepositoryHolder) -> None:
        self.repository_holder = repository_holder

    def diff(
        self,
        from_id: Optional[str],
        to_id: str,
        path: Optional[str] = None,
        exclude_authors: Optional[List[str]] = None,
    ) -> DiffResponse:
        git_repo = self.repository_holder.current()
        response = git_repo.with_repo(lambda repo: self._diff(repo, from_id, to_id, path))
        return apply_author_filter(response, exclude_authors)

    def _diff(self, repo: Repo, from_id: Optional[str], to_id: str, path: Optional[str]) -> DiffResponse:
        to_commit = resolve_commit(repo, to_id)
        if from_id:
            base = resolve_commit(repo, from_id).tree
        else:
            base = parent_tree(to_commit)

        try:
            diffs = base.diff(
                to_commit.tree,
                paths=path_filter(path),
                create_patch=True,
                unified=configs.DIFF_CONTEXT_LINES,
            )
            files, stats = self._collect(
                (d, _blob_bytes(d.a_blob, d.a_mode), _blob_bytes(d.b_blob, d.b_mode)) for d in diffs
            )
        except GitCommandError as e:
            logger.error(f"Diff {from_id}..{to_id} failed: {str(e)}")
            raise InternalError(f"Failed to compute diff: {str(e)}")

        file_authors = walk_file_authors(repo, from_id, to_id, path)
        contributors = attach_authors(files, file_authors)

        logger.info(
            f"Diff {from_id or '(parent)'}..{to_id}: {stats.files_changed} files, "
            f"+{stats.insertions}/-{stats.deletions}"
        )
        return DiffResponse(
            from_commit=from_id,
            to_commit=to_id,
            path=path,
            files=files,
            stats=stats,
            contributors=contributors,
            total_files=len(files),
            filtered_files=len(files),
        )

    @staticmethod
    def _collect(entries) -> Tuple[List[FileDiff], DiffStats]:
        files: List[FileDiff] = []
        stats = DiffStats()
        # git emits a type change as a deletion plus an addition of the same path
        unpaired: Dict[str, FileDiff] = {}
        for diff, old_bytes, new_bytes in entries:
            file_diff, parsed = build_file_diff(diff, old_bytes, new_bytes)
            stats.insertions += parsed.insertions
            stats.deletions += parsed.deletions
            if file_diff.status in (DiffStatus.ADDED, DiffStatus.DELETED):
                counterpart = unpaired.pop(file_diff.new_path, None)
                if counterpart is not None and counterpart.status != file_diff.status:
                    merge_type_change(counterpart, file_diff)
                    continue
                unpaired[file_diff.new_path] = file_diff
            files.append(file_diff)
        stats.files_changed = len(files)
        return files, stats

    def working_diff(self, path: Optional[str] = None) -> DiffResponse:
        git_repo = self.repository_holder.current()
        return git_repo.with_repo(lambda repo: self._working_diff(repo, path))

    def _working_diff(self, repo: Repo, path: Optional[str]) -> DiffResponse:
        if repo.bare or not repo.working_tree_dir:
            raise InternalError("Repository has no working directory")
        try:
            head = head_commit(repo)
        except NotFoundError:
            raise InternalError("Cannot resolve HEAD to commit")
        workdir = repo.working_tree_dir
        prefix = normalize_path(path)

        try:
            # commit against working tree: staged and unstaged changes together
            diffs = head.diff(
                None,
                paths=path_filter(path),
                create_patch=True,
                unified=configs.DIFF_CONTEXT_LINES,
            )
            tracked = [
                (d, _blob_bytes(d.a_blob, d.a_mode), _worktree_bytes(workdir, d))
                for d in diffs
            ]
            untracked = [p for p in repo.untracked_files if _in_path(p, prefix)]
        except GitCommandError as e:
            logger.error(f"Working tree diff failed: {str(e)}")
            raise InternalError(f"Failed to compute working tree diff: {str(e)}")

        files, stats = self._collect(tracked)
        for rel_path in untracked:
            file_diff, parsed = untracked_file_diff(rel_path, _read_worktree_file(workdir, rel_path))
            files.append(file_diff)
            stats.files_changed += 1
            stats.insertions += parsed.insertions

        return DiffResponse(
            from_commit=head.hexsha,
            to_commit=configs.WORKING_TREE_ID,
            path=path,
            files=files,
            stats=stats,
            contributors=[],
            total_files=len(files),
            filtered_files=len(files),
        )

    def working_status(self, path: Optional[str] = None) -> WorkingTreeStatus:
        git_repo = self.repository_holder.current()
        return git_repo.with_repo(lambda repo: self._working_status(repo, path))

    @staticmethod
    def _working_status(repo: Repo, path: Optional[str]) -> WorkingTreeStatus:
        # bare or empty repositories have no working tree to compare
        if repo.bare:
            return WorkingTreeStatus(has_changes=False, files_changed=0)
        try:
            head_commit(repo)
        except NotFoundError:
            return WorkingTreeStatus(has_changes=False, files_changed=0)

        args = ["--porcelain", "--untracked-files=all"]
        prefix = normalize_path(path)
        if prefix:
            args.extend(["--", prefix])
        try:
            output = repo.git.status(*args)
        except GitCommandError as e:
            logger.error(f"git status failed: {str(e)}")
            raise InternalError(f"Failed to read working tree status: {str(e)}")

        files_changed = len([line for line in output.splitlines() if line.strip()])
        return WorkingTreeStatus(has_changes=files_changed > 0, files_changed=files_changed)
