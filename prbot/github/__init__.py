"""GitHub access for prbot."""

from prbot.github.client import AsyncGitHubClient
from prbot.github.interfaces import RepositoryClient

__all__ = ["AsyncGitHubClient", "RepositoryClient"]
