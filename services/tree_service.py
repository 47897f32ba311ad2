"""Browsing of the HEAD tree: directory listings, the full tree, file content."""
from typing import List, Optional

from git import Repo
from loguru import logger

from core.exceptions import InternalError, InvalidInputError, NotFoundError
from core.git_context import RepositoryHolder
from core.revision_store import head_commit, normalize_path
from schema.tree_schema import EntryType, FullTreeEntry, TreeEntry
from services.history_cache import HistorySnapshot

SYMLINK_MODE = 0o120000


def entry_type(item) -> Optional[EntryType]:
    if item.type == "tree":
        return EntryType.DIRECTORY
    if item.type == "submodule":
        return EntryType.SUBMODULE
    if item.type == "blob":
        return EntryType.SYMLINK if item.mode == SYMLINK_MODE else EntryType.FILE
    return None


def entry_name(item) -> str:
    # submodule objects resolve `name` through .gitmodules, so derive it from the path
    return item.path.rsplit("/", 1)[-1]


def sort_entries(entries):
    """Directories first, then everything else; by lowercase name within each group."""
    entries.sort(key=lambda e: (e.entry_type != EntryType.DIRECTORY, e.name.lower()))
    return entries


def _lookup(repo: Repo, path: str):
    try:
        return head_commit(repo).tree / path
    except KeyError:
        raise NotFoundError(f"Path not found: {path}")


class TreeService:
    def __init__(self, repository_holder: RepositoryHolder) -> None:
        self.repository_holder = repository_holder

    def list_entries(self, path: Optional[str] = None, include_last_commit: bool = True) -> List[TreeEntry]:
        git_repo = self.repository_holder.current()
        if include_last_commit:
            return git_repo.with_cache(lambda cache, repo: self._list_entries(repo, path, cache))
        return git_repo.with_repo(lambda repo: self._list_entries(repo, path, None))

    @staticmethod
    def _list_entries(repo: Repo, path: Optional[str], cache: Optional[HistorySnapshot]) -> List[TreeEntry]:
        key = normalize_path(path)
        tree = _lookup(repo, key) if key else head_commit(repo).tree
        if tree.type != "tree":
            raise InvalidInputError(f"{key} is not a directory")

        entries = []
        for item in tree:
            kind = entry_type(item)
            if kind is None:
                continue
            entries.append(
                TreeEntry(
                    name=entry_name(item),
                    path=item.path,
                    entry_type=kind,
                    size=item.size if kind == EntryType.FILE else None,
                )
            )

        if cache is not None:
            last = cache.last_revisions(repo, key, [e.path for e in entries])
            for entry in entries:
                revision = last.get(entry.path)
                entry.last_commit = revision.to_commit_info() if revision else None

        logger.debug(f"Listed {len(entries)} entries under '{key}'")
        return sort_entries(entries)

    def full_tree(self) -> List[FullTreeEntry]:
        git_repo = self.repository_holder.current()
        return git_repo.with_repo(lambda repo: self._build(head_commit(repo).tree))

    def _build(self, tree) -> List[FullTreeEntry]:
        entries = []
        for item in tree:
            kind = entry_type(item)
            if kind is None:
                continue
            entries.append(
                FullTreeEntry(
                    name=entry_name(item),
                    path=item.path,
                    entry_type=kind,
                    children=self._build(item) if kind == EntryType.DIRECTORY else None,
                )
            )
        return sort_entries(entries)

    def file_content(self, path: str) -> str:
        """UTF-8 text of ``path`` at HEAD."""
        git_repo = self.repository_holder.current()
        return git_repo.with_repo(lambda repo: self._file_content(repo, path))

    @staticmethod
    def _file_content(repo: Repo, path: str) -> str:
        key = normalize_path(path)
        if not key:
            raise InvalidInputError("A file path is required")
        blob = _lookup(repo, key)
        if blob.type != "blob":
            raise InvalidInputError(f"{key} is not a file")
        try:
            return blob.data_stream.read().decode("utf-8")
        except UnicodeDecodeError:
            raise InternalError(f"File is not valid UTF-8: {key}")
