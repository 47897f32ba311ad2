from enum import Enum
from typing import List, Optional

from pydantic import BaseModel, Field

from schema.commit_schema import AuthorInfo


class DiffStatus(str, Enum):
    ADDED = "added"
    DELETED = "deleted"
    MODIFIED = "modified"
    RENAMED = "renamed"
    COPIED = "copied"
    TYPE_CHANGED = "typechanged"
    UNMODIFIED = "unmodified"


class LineType(str, Enum):
    CONTEXT = "context"
    ADDITION = "addition"
    DELETION = "deletion"
    HEADER = "header"


class DiffLine(BaseModel):
    line_type: LineType
    old_lineno: Optional[int] = None
    new_lineno: Optional[int] = None
    content: str


class DiffHunk(BaseModel):
    old_start: int
    old_lines: int
    new_start: int
    new_lines: int
    header: str
    lines: List[DiffLine] = Field(default_factory=list)


class FileAuthorInfo(BaseModel):
    """One author's activity on a file across the walked commit range."""
    email: str
    name: str
    commit_count: int
    last_commit_timestamp: int


class FileDiff(BaseModel):
    old_path: Optional[str] = None
    new_path: Optional[str] = None
    status: DiffStatus
    hunks: List[DiffHunk] = Field(default_factory=list)
    old_content: Optional[str] = Field(None, description="Full text before the change; omitted for binary files")
    new_content: Optional[str] = Field(None, description="Full text after the change; omitted for binary files")
    is_binary: bool = False
    authors: List[FileAuthorInfo] = Field(default_factory=list)
    biggest_change_author: Optional[str] = Field(None, description="Email of the most active author")


class DiffStats(BaseModel):
    files_changed: int = 0
    insertions: int = 0
    deletions: int = 0


class DiffResponse(BaseModel):
    from_commit: Optional[str] = None
    to_commit: str
    path: Optional[str] = None
    files: List[FileDiff]
    stats: DiffStats
    contributors: List[AuthorInfo]
    total_files: int
    filtered_files: int


class WorkingTreeStatus(BaseModel):
    has_changes: bool
    files_changed: int
