"""Repository client interface consumed by the workflow."""

from abc import ABC, abstractmethod
from typing import Sequence

from prbot.models import ForkInfo, PatchedTreeEntry, RefInfo, TreeListing


class RepositoryClient(ABC):
    """Interface for the remote operations the workflow needs.

    Every method raises ``GitHubAPIError`` on failure.
    """

    @abstractmethod
    async def resolve_ref(self, owner: str, repo: str, branch: str) -> RefInfo:
        """
        Resolve a branch to the object it points at.

        Args:
            owner: Repository owner
            repo: Repository name
            branch: Branch name without the ``refs/heads/`` prefix

        Returns:
            RefInfo; callers must check that ``object_type`` is ``commit``
        """
        ...

    @abstractmethod
    async def get_tree(self, owner: str, repo: str, commit_id: str, recursive: bool = True) -> TreeListing:
        """
        Fetch the tree of a commit.

        Args:
            owner: Repository owner
            repo: Repository name
            commit_id: Commit (or tree) SHA
            recursive: List every nested entry

        Returns:
            TreeListing with the tree SHA and its entries
        """
        ...

    @abstractmethod
    async def get_raw_blob(self, owner: str, repo: str, sha: str) -> bytes:
        """Fetch the raw bytes of a blob, not its base64 envelope."""
        ...

    @abstractmethod
    async def create_fork(self, owner: str, repo: str) -> ForkInfo:
        """Fork a repository under the authenticated user."""
        ...

    @abstractmethod
    async def create_tree(
        self, owner: str, repo: str, base_tree: str, entries: Sequence[PatchedTreeEntry]
    ) -> str:
        """
        Create a tree on top of ``base_tree``.

        Entries not listed are inherited unchanged from the base tree.

        Returns:
            SHA of the new tree
        """
        ...

    @abstractmethod
    async def create_commit(
        self, owner: str, repo: str, message: str, tree_id: str, parents: Sequence[str]
    ) -> str:
        """Create a commit and return its SHA."""
        ...

    @abstractmethod
    async def create_branch(self, owner: str, repo: str, branch: str, commit_id: str) -> str:
        """Create ``refs/heads/<branch>`` at ``commit_id`` and return the branch name."""
        ...

    @abstractmethod
    async def create_pull_request(
        self, owner: str, repo: str, title: str, head: str, base: str, body: str
    ) -> str:
        """Open a pull request and return its HTML URL."""
        ...
