"""Async HTTP client for the GitHub REST API using httpx.

Implements ``RepositoryClient`` with a single pooled ``httpx.AsyncClient``.
Failed calls are logged and raised as ``GitHubAPIError``.
"""
from __future__ import annotations

from typing import Any, Callable, Dict, Optional, Sequence, TypeVar

import httpx

from prbot.config import Config, get_config
from prbot.exceptions import GitHubAPIError
from prbot.github.interfaces import RepositoryClient
from prbot.models import ForkInfo, PatchedTreeEntry, RefInfo, TreeEntry, TreeListing
from prbot.utils.logger import log_api_response, log_error

JSON_MEDIA_TYPE = "application/vnd.github.v3+json"
RAW_MEDIA_TYPE = "application/vnd.github.v3.raw"

T = TypeVar("T")


def _ref_info(data: Dict[str, Any]) -> RefInfo:
    obj = data.get("object") or {}
    return RefInfo(object_type=obj.get("type", ""), commit_id=obj.get("sha", ""))


class AsyncGitHubClient(RepositoryClient):
    """Async GitHub API client with connection pooling."""

    def __init__(
        self,
        token: str,
        config: Optional[Config] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        """Initialize async client.

        Args:
            token: GitHub auth token
            config: Settings (defaults to the global config)
            transport: Optional httpx transport (used by tests)
        """
        self.config = config or get_config()
        self._token = token
        self._transport = transport
        self._client: Optional[httpx.AsyncClient] = None

    async def __aenter__(self):
        """Context manager entry - creates HTTP client."""
        self._client = httpx.AsyncClient(
            base_url=self.config.api_url,
            timeout=httpx.Timeout(float(self.config.timeout)),
            limits=httpx.Limits(
                max_keepalive_connections=self.config.max_workers,
                max_connections=self.config.max_workers * 2,
            ),
            transport=self._transport,
        )
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        """Context manager exit - closes HTTP client."""
        if self._client:
            await self._client.aclose()
            self._client = None

    def _headers(self, accept: str = JSON_MEDIA_TYPE) -> Dict[str, str]:
        return {
            "Authorization": f"token {self._token}",
            "Accept": accept,
            "User-Agent": self.config.user_agent,
        }

    async def _request(
        self,
        operation: str,
        method: str,
        url: str,
        *,
        accept: str = JSON_MEDIA_TYPE,
        params: Optional[Dict[str, Any]] = None,
        json: Optional[Dict[str, Any]] = None,
    ) -> httpx.Response:
        if not self._client:
            raise GitHubAPIError(operation, detail="AsyncGitHubClient not initialized - use 'async with' context")

        try:
            resp = await self._client.request(
                method, url, headers=self._headers(accept), params=params, json=json
            )
            resp.raise_for_status()
        except httpx.HTTPStatusError as e:
            detail = e.response.text[:500] if e.response is not None else str(e)
            status = e.response.status_code if e.response is not None else None
            log_error(f"GitHub {operation} failed", status_code=status, url=url, response=detail)
            raise GitHubAPIError(operation, status, detail) from e
        except httpx.HTTPError as e:
            log_error(f"GitHub {operation} failed", url=url, error=str(e))
            raise GitHubAPIError(operation, detail=str(e)) from e

        log_api_response(operation, resp.status_code)
        return resp

    def _parse(self, operation: str, resp: httpx.Response, parse: Callable[[Any], T]) -> T:
        """Decode a successful response body, mapping malformed payloads to GitHubAPIError."""
        try:
            return parse(resp.json())
        except (ValueError, KeyError, TypeError, AttributeError) as e:
            detail = f"unexpected response body: {e!r}"
            log_error(f"GitHub {operation} returned a malformed response", status_code=resp.status_code, error=detail)
            raise GitHubAPIError(operation, resp.status_code, detail) from e

    async def resolve_ref(self, owner: str, repo: str, branch: str) -> RefInfo:
        resp = await self._request("get ref", "GET", f"/repos/{owner}/{repo}/git/ref/heads/{branch}")
        return self._parse("get ref", resp, _ref_info)

    async def get_tree(self, owner: str, repo: str, commit_id: str, recursive: bool = True) -> TreeListing:
        params = {"recursive": "1"} if recursive else None
        resp = await self._request("get tree", "GET", f"/repos/{owner}/{repo}/git/trees/{commit_id}", params=params)
        return self._parse(
            "get tree",
            resp,
            lambda data: TreeListing(
                tree_id=data["sha"],
                entries=tuple(TreeEntry.from_api(e) for e in data.get("tree", [])),
                truncated=bool(data.get("truncated", False)),
            ),
        )

    async def get_raw_blob(self, owner: str, repo: str, sha: str) -> bytes:
        # The JSON representation is base64; ask for the raw body instead.
        resp = await self._request(
            "get blob", "GET", f"/repos/{owner}/{repo}/git/blobs/{sha}", accept=RAW_MEDIA_TYPE
        )
        return resp.content

    async def create_fork(self, owner: str, repo: str) -> ForkInfo:
        resp = await self._request("create fork", "POST", f"/repos/{owner}/{repo}/forks", json={})
        return self._parse(
            "create fork",
            resp,
            lambda data: ForkInfo(owner=data["owner"]["login"], name=data["name"], html_url=data["html_url"]),
        )

    async def create_tree(
        self, owner: str, repo: str, base_tree: str, entries: Sequence[PatchedTreeEntry]
    ) -> str:
        payload = {"base_tree": base_tree, "tree": [e.to_api() for e in entries]}
        resp = await self._request("create tree", "POST", f"/repos/{owner}/{repo}/git/trees", json=payload)
        return self._parse("create tree", resp, lambda data: data["sha"])

    async def create_commit(
        self, owner: str, repo: str, message: str, tree_id: str, parents: Sequence[str]
    ) -> str:
        payload = {"message": message, "tree": tree_id, "parents": list(parents)}
        resp = await self._request("create commit", "POST", f"/repos/{owner}/{repo}/git/commits", json=payload)
        return self._parse("create commit", resp, lambda data: data["sha"])

    async def create_branch(self, owner: str, repo: str, branch: str, commit_id: str) -> str:
        payload = {"ref": f"refs/heads/{branch}", "sha": commit_id}
        resp = await self._request("create ref", "POST", f"/repos/{owner}/{repo}/git/refs", json=payload)
        ref = self._parse("create ref", resp, lambda data: data.get("ref") or payload["ref"])
        return ref[len("refs/heads/"):] if ref.startswith("refs/heads/") else ref

    async def create_pull_request(
        self, owner: str, repo: str, title: str, head: str, base: str, body: str
    ) -> str:
        payload = {"title": title, "head": head, "base": base, "body": body}
        resp = await self._request("create pull request", "POST", f"/repos/{owner}/{repo}/pulls", json=payload)
        return self._parse("create pull request", resp, lambda data: data["html_url"])
