"""Candidate selection over a recursive tree listing."""

from __future__ import annotations

from typing import Iterable, List

from prbot.models import BLOB, TreeEntry
from prbot.utils.logger import log_info, log_warning


def select_candidates(entries: Iterable[TreeEntry], suffix: str, max_bytes: int) -> List[TreeEntry]:
    """Return the blobs whose path ends with ``suffix``, in listing order.

    Blobs with a known size above ``max_bytes`` are skipped with a warning.
    Non-blob entries are dropped silently.
    """
    selected: List[TreeEntry] = []
    for entry in entries:
        if entry.type != BLOB or not entry.path.endswith(suffix):
            continue
        # Safety measure; stick with files under the size ceiling.
        if entry.size is not None and entry.size > max_bytes:
            log_warning(f"Skipping {entry.path} because it is too big", size=entry.size, max_bytes=max_bytes)
            continue
        selected.append(entry)

    log_info(f"Found {len(selected)} candidate files", suffix=suffix)
    return selected
