"""Graph definition for the scan → patch → pull request workflow.

This module wires the workflow using LangGraph. The state carries the
write-once ``WorkflowState`` plus the candidate list and the frozen
changeset. Steps before the worker pool (branch resolution, tree fetch) are
prerequisites: their failure aborts the run. An empty changeset ends the run
without any remote write.
"""

from __future__ import annotations

from typing import Any, Dict, Optional

from langgraph.graph import END, StateGraph

from prbot import assembler
from prbot.audit import append_audit
from prbot.checker import CanonicalFormChecker
from prbot.config import Config, get_config
from prbot.exceptions import GitHubAPIError, WorkflowStepError
from prbot.github.interfaces import RepositoryClient
from prbot.processor import AsyncPatchProcessor
from prbot.selector import select_candidates
from prbot.state import GraphState, WorkflowState
from prbot.utils.logger import log_info, log_step, log_warning


def route_after_patch(state: Dict[str, Any], config: Config) -> str:
    """Go on to the pull request only when there is something to submit."""
    if not state.get("changeset"):
        return "finish"
    if config.dry_run:
        return "finish"
    return "create_fork"


def summarize(state: Dict[str, Any], config: Config) -> str:
    """Final human-readable outcome of a run."""
    workflow: WorkflowState = state["workflow"]
    if workflow.pr_url:
        return f"Pull request: {workflow.pr_url}"

    changeset = state.get("changeset") or ()
    failures = (state.get("stats") or {}).get("failures", 0)
    if changeset and config.dry_run:
        paths = ", ".join(e.path for e in changeset)
        return f"Dry run: {len(changeset)} files need changes ({paths})"
    if failures:
        return f"No changes needed ({failures} files could not be checked)"
    return "No changes needed"


def build_graph(
    client: RepositoryClient,
    checker: CanonicalFormChecker,
    config: Optional[Config] = None,
):
    """Compile and return the LangGraph graph for one repository."""
    config = config or get_config()

    def audit(workflow: WorkflowState, step: str, **extra: Any) -> None:
        append_audit({"repo": f"{workflow.owner}/{workflow.repo}", "step": step, **extra}, config)

    async def resolve_branch(state: GraphState) -> Dict[str, Any]:
        workflow = state["workflow"]
        log_step("resolve_branch", branch=workflow.base_branch, repo=f"github.com/{workflow.owner}/{workflow.repo}")
        try:
            ref = await client.resolve_ref(workflow.owner, workflow.repo, workflow.base_branch)
        except GitHubAPIError as e:
            raise WorkflowStepError("resolve_branch", e) from e
        if ref.object_type != "commit":
            raise WorkflowStepError(
                "resolve_branch",
                ValueError(f"branch {workflow.base_branch} does not point at a commit"),
            )
        return {"workflow": workflow.advance(commit_id=ref.commit_id)}

    async def fetch_tree(state: GraphState) -> Dict[str, Any]:
        workflow = state["workflow"]
        (commit_id,) = workflow.require("commit_id")
        log_step("fetch_tree", commit=commit_id)
        try:
            listing = await client.get_tree(workflow.owner, workflow.repo, commit_id, recursive=True)
        except GitHubAPIError as e:
            raise WorkflowStepError("fetch_tree", e) from e
        if listing.truncated:
            log_warning("Tree listing was truncated by GitHub; some files will not be checked")
        log_info(f"Original tree with {len(listing.entries)} entries: {listing.tree_id}")
        return {"workflow": workflow.advance(tree_id=listing.tree_id), "entries": list(listing.entries)}

    def select(state: GraphState) -> Dict[str, Any]:
        return {"candidates": select_candidates(state.get("entries", []), config.suffix, config.max_bytes)}

    async def patch_files(state: GraphState) -> Dict[str, Any]:
        workflow = state["workflow"]
        processor = AsyncPatchProcessor(
            client,
            checker,
            workflow.owner,
            workflow.repo,
            max_workers=config.max_workers,
            rate_limit_per_second=config.rate_limit_per_second,
        )
        report = await processor.process(state.get("candidates", []))
        audit(workflow, "patch_files", changed=report.paths, failures=report.failures)
        return {"changeset": report.changeset, "stats": report.stats}

    async def fork(state: GraphState) -> Dict[str, Any]:
        workflow = await assembler.create_fork(client, state["workflow"])
        audit(workflow, "create_fork", fork=workflow.fork.html_url)
        return {"workflow": workflow}

    async def tree(state: GraphState) -> Dict[str, Any]:
        workflow = await assembler.create_tree(client, state["workflow"], state["changeset"])
        audit(workflow, "create_tree", tree=workflow.new_tree_id)
        return {"workflow": workflow}

    async def commit(state: GraphState) -> Dict[str, Any]:
        workflow = await assembler.create_commit(client, state["workflow"], config.commit_message)
        audit(workflow, "create_commit", commit=workflow.new_commit_id)
        return {"workflow": workflow}

    async def branch(state: GraphState) -> Dict[str, Any]:
        workflow = await assembler.create_branch(client, state["workflow"], config.branch_name)
        audit(workflow, "create_branch", branch=workflow.branch_name)
        return {"workflow": workflow}

    async def pull_request(state: GraphState) -> Dict[str, Any]:
        workflow = await assembler.create_pull_request(client, state["workflow"], config.pr_title, config.pr_body)
        audit(workflow, "create_pull_request", pr_url=workflow.pr_url)
        return {"workflow": workflow, "pr_url": workflow.pr_url}

    def finish(state: GraphState) -> Dict[str, Any]:
        message = summarize(state, config)
        audit(state["workflow"], "done", message=message)
        log_info(message)
        return {"message": message}

    builder = StateGraph(GraphState)

    builder.set_entry_point("resolve_branch")
    builder.add_node("resolve_branch", resolve_branch)
    builder.add_node("fetch_tree", fetch_tree)
    builder.add_node("select_candidates", select)
    builder.add_node("patch_files", patch_files)
    builder.add_node("create_fork", fork)
    builder.add_node("create_tree", tree)
    builder.add_node("create_commit", commit)
    builder.add_node("create_branch", branch)
    builder.add_node("create_pull_request", pull_request)
    builder.add_node("finish", finish)

    builder.add_edge("resolve_branch", "fetch_tree")
    builder.add_edge("fetch_tree", "select_candidates")
    builder.add_edge("select_candidates", "patch_files")
    builder.add_conditional_edges(
        "patch_files",
        lambda s: route_after_patch(s, config),
        {"create_fork": "create_fork", "finish": "finish"},
    )
    builder.add_edge("create_fork", "create_tree")
    builder.add_edge("create_tree", "create_commit")
    builder.add_edge("create_commit", "create_branch")
    builder.add_edge("create_branch", "create_pull_request")
    builder.add_edge("create_pull_request", "finish")
    builder.add_edge("finish", END)

    return builder.compile()


async def run_workflow(
    client: RepositoryClient,
    checker: CanonicalFormChecker,
    owner: str,
    repo: str,
    config: Optional[Config] = None,
) -> Dict[str, Any]:
    """Run the whole workflow against ``owner/repo`` and return the final state."""
    config = config or get_config()
    graph = build_graph(client, checker, config)
    initial: GraphState = {"workflow": WorkflowState(owner=owner, repo=repo, base_branch=config.base_branch)}
    return await graph.ainvoke(initial)
