"""Thin adapter over GitPython for the revision-store operations the cache relies on.

Everything here assumes the caller holds the store lock of the owning
``GitRepository``; GitPython keeps persistent ``git cat-file`` processes per
``Repo`` and they must not be shared across threads.
"""
from typing import List, Optional

from git import Commit, Repo, Tree
from git.exc import BadName, BadObject, GitCommandError
from git.util import hex_to_bin

from core.exceptions import InvalidInputError, NotFoundError

# git knows this object in every repository, stored or not
EMPTY_TREE_SHA = "4b825dc642cb6eb9a060e54bf8d69288fbee4904"

RESOLVE_ERRORS = (BadName, BadObject, ValueError, GitCommandError, IndexError)


def empty_tree(repo: Repo) -> Tree:
    return Tree(repo, hex_to_bin(EMPTY_TREE_SHA))


def validate_revision_id(rev: Optional[str]) -> str:
    """Reject identifiers that must never reach the git command line."""
    if rev is None or not rev.strip():
        raise InvalidInputError("Revision id must not be empty")
    if rev.startswith("-") or any(ch.isspace() for ch in rev):
        raise InvalidInputError(f"Invalid revision id: {rev}")
    return rev


def resolve_commit(repo: Repo, rev: str) -> Commit:
    validate_revision_id(rev)
    try:
        obj = repo.rev_parse(rev)
    except RESOLVE_ERRORS:
        raise NotFoundError(f"Commit not found: {rev}")

    # annotated tags point at the commit they name
    while obj.type == "tag":
        obj = obj.object
    if obj.type != "commit":
        raise InvalidInputError(f"{rev} is a {obj.type}, not a commit")
    return obj


def head_commit(repo: Repo) -> Commit:
    """HEAD resolved to a commit; raises NotFoundError for unborn or broken HEAD."""
    try:
        return repo.head.commit
    except RESOLVE_ERRORS + (TypeError,):
        raise NotFoundError("HEAD does not resolve to a commit")


def head_commit_id(repo: Repo) -> Optional[str]:
    try:
        return repo.head.commit.hexsha
    except RESOLVE_ERRORS + (TypeError,):
        return None


def parent_tree(commit: Commit) -> Tree:
    """First parent's tree, or the empty tree for a root commit."""
    if commit.parents:
        return commit.parents[0].tree
    return empty_tree(commit.repo)


def normalize_path(path: Optional[str]) -> str:
    if not path:
        return ""
    return path.strip().strip("/")


def path_filter(path: Optional[str]) -> Optional[List[str]]:
    normalized = normalize_path(path)
    return [normalized] if normalized else None


def changed_paths(base: Tree, target: Tree, path: Optional[str] = None) -> List[str]:
    """Paths that differ between two trees, optionally restricted to a subtree."""
    diffs = base.diff(target, paths=path_filter(path))
    return [d.b_path or d.a_path for d in diffs]


def revision_changes(
    repo: Repo, revision_id: str, first_parent_id: Optional[str], path: Optional[str] = None
) -> List[str]:
    """Paths a revision changed relative to its first parent.

    Works from ids alone: diff-tree accepts commits as tree-ish, so neither
    commit object has to be read. Each call spawns one `git diff-tree`
    process; a first-time path index over N revisions costs N of them.
    """
    target = Commit(repo, hex_to_bin(revision_id))
    if first_parent_id:
        base = Commit(repo, hex_to_bin(first_parent_id))
    else:
        base = empty_tree(repo)
    return changed_paths(base, target, path)
