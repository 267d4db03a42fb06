"""Value objects exchanged with the GitHub API.

All of them are frozen: tree entries are read from a remote snapshot and only
ever used as templates for new entries.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, Optional, Tuple

BLOB = "blob"


@dataclass(frozen=True)
class TreeEntry:
    """One entry of a recursive tree listing at a specific commit."""

    path: str
    sha: str
    mode: str
    type: str
    size: Optional[int] = None

    @classmethod
    def from_api(cls, data: Dict[str, Any]) -> TreeEntry:
        return cls(
            path=data["path"],
            sha=data["sha"],
            mode=data["mode"],
            type=data["type"],
            size=data.get("size"),
        )

    @property
    def abbrev(self) -> str:
        """``path sha7`` label used in diagnostics."""
        return f"{self.path} {self.sha[:7]}"


@dataclass(frozen=True)
class PatchedTreeEntry:
    """A tree entry whose content is replaced by canonical bytes.

    Path, mode and type are copied from the source entry; the content hash is
    left for GitHub to compute when the tree is created.
    """

    path: str
    mode: str
    type: str
    content: bytes

    @classmethod
    def from_entry(cls, entry: TreeEntry, content: bytes) -> PatchedTreeEntry:
        return cls(path=entry.path, mode=entry.mode, type=entry.type, content=content)

    def to_api(self) -> Dict[str, Any]:
        return {
            "path": self.path,
            "mode": self.mode,
            "type": self.type,
            "content": self.content.decode("utf-8"),
        }


@dataclass(frozen=True)
class RefInfo:
    """What a branch reference points at."""

    object_type: str
    commit_id: str


@dataclass(frozen=True)
class TreeListing:
    """A full recursive tree at one commit."""

    tree_id: str
    entries: Tuple[TreeEntry, ...] = field(default_factory=tuple)
    truncated: bool = False


@dataclass(frozen=True)
class ForkInfo:
    """Identity of the fork created under the acting user."""

    owner: str
    name: str
    html_url: str
