"""Pytest configuration and fixtures for prbot tests."""

import sys
from pathlib import Path
from typing import Dict, List, Optional, Sequence, Set, Tuple

import pytest

# Add the project root to the Python path
project_root = Path(__file__).parent.parent
sys.path.insert(0, str(project_root))

from prbot.checker import CanonicalFormChecker  # noqa: E402
from prbot.config import Config  # noqa: E402
from prbot.exceptions import FormatSyntaxError, GitHubAPIError  # noqa: E402
from prbot.github.interfaces import RepositoryClient  # noqa: E402
from prbot.models import ForkInfo, PatchedTreeEntry, RefInfo, TreeEntry, TreeListing  # noqa: E402

WRITE_OPERATIONS = {"create_fork", "create_tree", "create_commit", "create_branch", "create_pull_request"}


class FakeGitHubClient(RepositoryClient):
    """In-memory repository client that records every call.

    ``calls`` holds ``(operation, kwargs)`` tuples in call order. Each
    write operation returns a distinct identifier so tests can check that the
    next step received exactly the previous step's output.
    """

    def __init__(
        self,
        entries: Sequence[TreeEntry] = (),
        blobs: Optional[Dict[str, bytes]] = None,
        failing_blobs: Optional[Set[str]] = None,
        fail_on: Optional[str] = None,
        ref_type: str = "commit",
    ):
        self.entries = tuple(entries)
        self.blobs = dict(blobs or {})
        self.failing_blobs = set(failing_blobs or ())
        self.fail_on = fail_on
        self.ref_type = ref_type
        self.calls: List[Tuple[str, dict]] = []

    def _record(self, operation: str, **kwargs) -> None:
        self.calls.append((operation, kwargs))
        if operation == self.fail_on:
            raise GitHubAPIError(operation, 500, "injected failure")

    def calls_to(self, operation: str) -> List[dict]:
        return [kwargs for name, kwargs in self.calls if name == operation]

    @property
    def write_calls(self) -> List[str]:
        return [name for name, _ in self.calls if name in WRITE_OPERATIONS]

    async def resolve_ref(self, owner, repo, branch):
        self._record("resolve_ref", owner=owner, repo=repo, branch=branch)
        return RefInfo(object_type=self.ref_type, commit_id="c0ffee0000")

    async def get_tree(self, owner, repo, commit_id, recursive=True):
        self._record("get_tree", owner=owner, repo=repo, commit_id=commit_id, recursive=recursive)
        return TreeListing(tree_id="tree0000", entries=self.entries)

    async def get_raw_blob(self, owner, repo, sha):
        self.calls.append(("get_raw_blob", {"owner": owner, "repo": repo, "sha": sha}))
        if sha in self.failing_blobs:
            raise GitHubAPIError("get blob", 404, "Not Found")
        return self.blobs[sha]

    async def create_fork(self, owner, repo):
        self._record("create_fork", owner=owner, repo=repo)
        return ForkInfo(owner="prbot-user", name=repo, html_url=f"https://github.com/prbot-user/{repo}")

    async def create_tree(self, owner, repo, base_tree, entries):
        self._record("create_tree", owner=owner, repo=repo, base_tree=base_tree, entries=list(entries))
        return "tree1111"

    async def create_commit(self, owner, repo, message, tree_id, parents):
        self._record("create_commit", owner=owner, repo=repo, message=message, tree_id=tree_id, parents=list(parents))
        return "commit2222"

    async def create_branch(self, owner, repo, branch, commit_id):
        self._record("create_branch", owner=owner, repo=repo, branch=branch, commit_id=commit_id)
        return branch

    async def create_pull_request(self, owner, repo, title, head, base, body):
        self._record("create_pull_request", owner=owner, repo=repo, title=title, head=head, base=base, body=body)
        return f"https://github.com/{owner}/{repo}/pull/1"


class TrailingWhitespaceChecker(CanonicalFormChecker):
    """Canonical form: no trailing whitespace on any line.

    Input containing ``SYNTAX ERROR`` is rejected.
    """

    def __init__(self):
        self.seen: List[bytes] = []

    def canonicalize(self, source: bytes) -> bytes:
        self.seen.append(source)
        if b"SYNTAX ERROR" in source:
            raise FormatSyntaxError("expected declaration, found 'SYNTAX'")
        return b"\n".join(line.rstrip() for line in source.split(b"\n"))


def make_entry(path: str, sha: str, size: Optional[int] = 10, type_: str = "blob", mode: str = "100644") -> TreeEntry:
    return TreeEntry(path=path, sha=sha, mode=mode, type=type_, size=size)


@pytest.fixture
def test_config(tmp_path):
    """Configuration used by every test; audit goes to a temp dir."""
    return Config(
        _env_file=None,
        audit_enabled=True,
        audit_path=str(tmp_path / "audit.jsonl"),
        max_workers=4,
        rate_limit_per_second=0,
        token_file=str(tmp_path / "token"),
    )


@pytest.fixture(autouse=True)
def global_config(monkeypatch, test_config):
    """Install ``test_config`` as the global configuration."""
    monkeypatch.setattr("prbot.config._config", test_config)
    return test_config


@pytest.fixture
def checker():
    return TrailingWhitespaceChecker()


@pytest.fixture
def three_file_repo():
    """Tree with three Go files; only ``b.go`` is not canonical."""
    entries = [
        make_entry("a.go", "aaaa111"),
        make_entry("pkg/b.go", "bbbb222", mode="100755"),
        make_entry("pkg/c.go", "cccc333"),
        make_entry("pkg", "dddd444", size=None, type_="tree", mode="040000"),
        make_entry("README.md", "eeee555"),
    ]
    blobs = {
        "aaaa111": b"package a\n",
        "bbbb222": b"package b\n\nfunc B() {}   \n",
        "cccc333": b"package c\n",
        "eeee555": b"# readme   \n",
    }
    return FakeGitHubClient(entries=entries, blobs=blobs)


@pytest.fixture
def patched_entry():
    return PatchedTreeEntry(path="pkg/b.go", mode="100644", type="blob", content=b"package b\n")
