"""Changeset-to-pull-request assembly.

Five sequential transitions, each calling exactly one remote operation:

  create_fork → create_tree → create_commit → create_branch → create_pull_request

Every transition takes the current ``WorkflowState``, reads only fields that
earlier steps populated and returns a new state with its own output added.
Any failure raises ``WorkflowStepError`` naming the step. Remote objects
created before the failure are left in place.
"""

from __future__ import annotations

from typing import Sequence

from prbot.exceptions import GitHubAPIError, WorkflowStepError
from prbot.github.interfaces import RepositoryClient
from prbot.models import PatchedTreeEntry
from prbot.state import WorkflowState
from prbot.utils.logger import log_info, log_step


async def create_fork(client: RepositoryClient, state: WorkflowState) -> WorkflowState:
    log_step("create_fork", repo=f"{state.owner}/{state.repo}")
    try:
        fork = await client.create_fork(state.owner, state.repo)
    except GitHubAPIError as e:
        raise WorkflowStepError("create_fork", e) from e
    log_info(f"Fork URL: {fork.html_url}")
    return state.advance(fork=fork)


async def create_tree(
    client: RepositoryClient, state: WorkflowState, changeset: Sequence[PatchedTreeEntry]
) -> WorkflowState:
    fork, base_tree = state.require("fork", "tree_id")
    if not changeset:
        raise WorkflowStepError("create_tree", ValueError("changeset is empty"))
    log_step("create_tree", base_tree=base_tree, entries=len(changeset))
    try:
        new_tree_id = await client.create_tree(fork.owner, fork.name, base_tree, list(changeset))
    except GitHubAPIError as e:
        raise WorkflowStepError("create_tree", e) from e
    log_info(f"New tree: {new_tree_id}")
    return state.advance(new_tree_id=new_tree_id)


async def create_commit(client: RepositoryClient, state: WorkflowState, message: str) -> WorkflowState:
    # The only parent is the original commit; the fresh fork has nothing newer.
    fork, new_tree_id, parent = state.require("fork", "new_tree_id", "commit_id")
    log_step("create_commit", tree=new_tree_id, parent=parent)
    try:
        new_commit_id = await client.create_commit(fork.owner, fork.name, message, new_tree_id, [parent])
    except GitHubAPIError as e:
        raise WorkflowStepError("create_commit", e) from e
    log_info(f"Commit: {new_commit_id}")
    return state.advance(new_commit_id=new_commit_id)


async def create_branch(client: RepositoryClient, state: WorkflowState, branch: str) -> WorkflowState:
    fork, new_commit_id = state.require("fork", "new_commit_id")
    log_step("create_branch", branch=branch, commit=new_commit_id)
    try:
        branch_name = await client.create_branch(fork.owner, fork.name, branch, new_commit_id)
    except GitHubAPIError as e:
        raise WorkflowStepError("create_branch", e) from e
    log_info(f"Branch URL: {fork.html_url}/tree/{branch_name}")
    return state.advance(branch_name=branch_name)


async def create_pull_request(
    client: RepositoryClient, state: WorkflowState, title: str, body: str
) -> WorkflowState:
    fork, branch_name = state.require("fork", "branch_name")
    head = f"{fork.owner}:{branch_name}"
    log_step("create_pull_request", head=head, base=state.base_branch)
    try:
        pr_url = await client.create_pull_request(state.owner, state.repo, title, head, state.base_branch, body)
    except GitHubAPIError as e:
        raise WorkflowStepError("create_pull_request", e) from e
    log_info(f"Pull request: {pr_url}")
    return state.advance(pr_url=pr_url)

