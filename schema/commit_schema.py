from typing import List, Optional

from pydantic import BaseModel, Field


class AuthorInfo(BaseModel):
    name: str
    email: str


class ContributorInfo(BaseModel):
    name: str
    email: str
    commit_count: int


class CommitInfo(BaseModel):
    """Short commit summary used for branch tips and directory statistics."""
    oid: str
    message: str
    author: str
    timestamp: int
    relative_time: str


class CommitDetail(BaseModel):
    oid: str
    message: str
    author: AuthorInfo
    committer: AuthorInfo
    timestamp: int
    relative_time: str
    parent_count: int
    parents: List[str]


class CommitListResponse(BaseModel):
    commits: List[CommitDetail] = Field(..., description="Page of commits touching the path, newest first")
    total: int = Field(..., description="Commits touching the path before author filtering")
    filtered_total: int = Field(..., description="Commits left after excluding authors")
    has_more: bool
    contributors: List[AuthorInfo] = Field(
        ..., description="Everyone who touched the path, most active first (ignores the author filter)"
    )


class CacheStats(BaseModel):
    total_commits: int
    cached_paths: int
    age_secs: int


class DirectoryInfo(BaseModel):
    path: str
    file_count: int
    directory_count: int
    total_size: int
    contributors: List[ContributorInfo]
    first_commit: Optional[CommitInfo] = None
    latest_commit: Optional[CommitInfo] = None
