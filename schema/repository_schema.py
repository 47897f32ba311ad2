from typing import List, Optional

from pydantic import BaseModel, Field

from schema.commit_schema import CommitInfo


class RepositoryInfo(BaseModel):
    name: str
    path: str
    head_branch: Optional[str] = Field(None, description="Checked-out branch; empty when HEAD is detached")
    head_commit: Optional[CommitInfo] = None
    is_bare: bool
    is_empty: bool


class SwitchRepoRequest(BaseModel):
    path: str = Field(..., description="Path inside the git repository to serve")


class BranchInfo(BaseModel):
    name: str
    is_current: bool
    is_remote: bool
    last_commit: Optional[CommitInfo] = None


class CheckoutRequest(BaseModel):
    branch: str


class CheckoutRemoteRequest(BaseModel):
    remote_branch: str = Field(..., description="Remote branch, e.g. origin/feature")
    local_name: str = Field(..., description="Name of the local tracking branch to create")


class BlameLine(BaseModel):
    line_number: int
    author_name: str
    author_email: str
    commit_oid: str
    timestamp: int


class BlameResponse(BaseModel):
    path: str
    commit: str
    lines: List[BlameLine]
