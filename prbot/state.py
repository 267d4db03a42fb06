"""Workflow state threaded through the PR pipeline.

``WorkflowState`` holds the identifiers produced step by step. Each field is
written exactly once and must be populated before any step that needs it;
``require`` and ``advance`` enforce both rules.

``GraphState`` is the LangGraph state dictionary carrying the workflow record
alongside the candidate list and the frozen changeset.
"""

from __future__ import annotations

from dataclasses import dataclass, fields, replace
from typing import Any, List, Optional, Tuple, TypedDict

from prbot.exceptions import WorkflowStateError
from prbot.models import ForkInfo, PatchedTreeEntry, TreeEntry


@dataclass(frozen=True)
class WorkflowState:
    """Immutable snapshot of the identifiers produced so far."""

    owner: str
    repo: str
    base_branch: str

    commit_id: Optional[str] = None
    tree_id: Optional[str] = None
    fork: Optional[ForkInfo] = None
    new_tree_id: Optional[str] = None
    new_commit_id: Optional[str] = None
    branch_name: Optional[str] = None
    pr_url: Optional[str] = None

    def require(self, *names: str) -> Tuple[Any, ...]:
        """Return the named fields, failing if any is still unset."""
        values = []
        for name in names:
            value = getattr(self, name)
            if value is None:
                raise WorkflowStateError(f"Workflow field '{name}' is not populated yet")
            values.append(value)
        return tuple(values)

    def advance(self, **updates: Any) -> WorkflowState:
        """Return a copy with previously unset fields populated."""
        known = {f.name for f in fields(self)}
        for name, value in updates.items():
            if name not in known:
                raise WorkflowStateError(f"Unknown workflow field '{name}'")
            if getattr(self, name) is not None:
                raise WorkflowStateError(f"Workflow field '{name}' is already set")
            if value is None:
                raise WorkflowStateError(f"Workflow field '{name}' cannot be set to None")
        return replace(self, **updates)


class GraphState(TypedDict, total=False):
    # Identifiers (write-once, threaded through every step)
    workflow: WorkflowState

    # Produced by fetch_tree → consumed by select_candidates
    entries: List[TreeEntry]

    # Produced by select_candidates → consumed by patch_files
    candidates: List[TreeEntry]

    # Produced by patch_files (frozen after the worker barrier)
    changeset: Tuple[PatchedTreeEntry, ...]
    stats: dict

    # Outputs
    pr_url: str
    message: str
