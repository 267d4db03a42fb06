"""prbot: finds files that are not in canonical form on GitHub and opens a
pull request fixing them.

Pipeline:
  resolve_branch → fetch_tree → select_candidates → patch_files
  → create_fork → create_tree → create_commit → create_branch
  → create_pull_request

CLI entrypoint lives in `prbot.cli`.
"""

from __future__ import annotations

__version__ = "0.1.0"
