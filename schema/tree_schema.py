from enum import Enum
from typing import List, Optional

from pydantic import BaseModel, Field

from schema.commit_schema import CommitInfo


class EntryType(str, Enum):
    FILE = "file"
    DIRECTORY = "directory"
    SYMLINK = "symlink"
    SUBMODULE = "submodule"


class TreeEntry(BaseModel):
    name: str
    path: str
    entry_type: EntryType
    size: Optional[int] = Field(None, description="Blob size in bytes; files only")
    last_commit: Optional[CommitInfo] = Field(None, description="Newest commit touching the entry")


class FullTreeEntry(BaseModel):
    name: str
    path: str
    entry_type: EntryType
    children: Optional[List["FullTreeEntry"]] = None


FullTreeEntry.model_rebuild()
