"""Async patch worker pool.

Fetches every candidate blob, runs the canonical form checker on it and
collects the files that changed. Workers run concurrently behind a semaphore;
each one emits its patched entry onto a queue that a single collector task
drains, so no worker touches the changeset directly. Failures are isolated to
the candidate that raised them.
"""

import asyncio
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Sequence, Tuple

from prbot.checker import CanonicalFormChecker
from prbot.config import get_config
from prbot.exceptions import FormatSyntaxError, GitHubAPIError
from prbot.github.interfaces import RepositoryClient
from prbot.models import PatchedTreeEntry, TreeEntry
from prbot.utils.logger import log_debug, log_error, log_info, log_source_dump, log_warning
from prbot.utils.thread_safe import PatchStats, build_rate_limiter

_DONE = object()


@dataclass(frozen=True)
class PatchReport:
    """Frozen result of one pool run."""

    changeset: Tuple[PatchedTreeEntry, ...] = ()
    stats: Dict[str, Any] = field(default_factory=dict)

    @property
    def failures(self) -> int:
        return int(self.stats.get("failures", 0))

    @property
    def paths(self) -> List[str]:
        return [e.path for e in self.changeset]


class AsyncPatchProcessor:
    """Bounded fan-out over candidates with a single collector."""

    def __init__(
        self,
        client: RepositoryClient,
        checker: CanonicalFormChecker,
        owner: str,
        repo: str,
        max_workers: Optional[int] = None,
        rate_limit_per_second: Optional[float] = None,
    ):
        """Initialize the pool.

        Args:
            client: Remote repository client used for blob fetches
            checker: Canonical form checker
            owner: Repository owner
            repo: Repository name
            max_workers: Maximum concurrent workers (defaults to config)
            rate_limit_per_second: Blob fetch rate, 0 disables (defaults to config)
        """
        config = get_config()
        self.client = client
        self.checker = checker
        self.owner = owner
        self.repo = repo
        self.max_workers = max_workers if max_workers is not None else config.max_workers
        self.semaphore = asyncio.Semaphore(self.max_workers)
        self.rate_limiter = build_rate_limiter(
            rate_limit_per_second if rate_limit_per_second is not None else config.rate_limit_per_second
        )
        self.max_logged_source_bytes = config.max_logged_source_bytes
        self.stats = PatchStats()

    async def process(self, candidates: Sequence[TreeEntry]) -> PatchReport:
        """Check every candidate and return the frozen changeset.

        Does not return until every worker has finished.
        """
        await self.stats.set_candidates(len(candidates))
        if not candidates:
            log_info("No candidate files to check")
            return PatchReport(changeset=(), stats=await self.stats.get_summary())

        log_info("Starting patch workers", candidates=len(candidates), workers=self.max_workers)
        await self.stats.record_start()

        queue: asyncio.Queue = asyncio.Queue()
        collected: List[PatchedTreeEntry] = []
        collector = asyncio.create_task(self._collect(queue, collected))

        results = await asyncio.gather(
            *(self._process_candidate(entry, queue) for entry in candidates),
            return_exceptions=True,
        )
        await queue.put(_DONE)
        await collector
        await self.stats.record_end()

        for entry, result in zip(candidates, results):
            if isinstance(result, Exception):
                await self.stats.record("unexpected_errors")
                log_error(f"Unexpected error checking {entry.abbrev}", error=repr(result))

        changeset = tuple(sorted(collected, key=lambda e: e.path))
        summary = await self.stats.get_summary()
        log_info(
            f"Found {len(changeset)} files that need changes",
            candidates=summary["candidates"],
            unchanged=summary["unchanged"],
            fetch_failures=summary["fetch_failures"],
            check_failures=summary["check_failures"],
            unexpected_errors=summary["unexpected_errors"],
            duration_seconds=summary["duration_seconds"],
        )
        if summary["failures"]:
            log_warning(f"{summary['failures']} candidate files could not be checked")

        return PatchReport(changeset=changeset, stats=summary)

    async def _collect(self, queue: asyncio.Queue, sink: List[PatchedTreeEntry]) -> None:
        while True:
            item = await queue.get()
            if item is _DONE:
                return
            sink.append(item)

    async def _process_candidate(self, entry: TreeEntry, queue: asyncio.Queue) -> None:
        async with self.semaphore:
            outcome = await self._check_candidate(entry, queue)

        await self.stats.record(outcome)
        stats = await self.stats.get_summary()
        if stats["processed"] % 10 == 0:
            await self.stats.log_progress()

    async def _check_candidate(self, entry: TreeEntry, queue: asyncio.Queue) -> str:
        if self.rate_limiter:
            await self.rate_limiter.acquire()

        log_debug("Fetching blob", path=entry.path, sha=entry.sha[:7])
        try:
            raw = await self.client.get_raw_blob(self.owner, self.repo, entry.sha)
        except GitHubAPIError as e:
            log_error(f"Fetching blob ({entry.abbrev})", error=str(e))
            return "fetch_failures"

        loop = asyncio.get_running_loop()
        try:
            result = await loop.run_in_executor(None, self.checker.check, raw)
        except FormatSyntaxError as e:
            log_error(f"Bad source ({entry.abbrev})", error=e.message)
            log_source_dump(entry.path, raw, self.max_logged_source_bytes)
            return "check_failures"

        if result.is_canonical:
            return "unchanged"

        try:
            result.canonical.decode("utf-8")
        except UnicodeDecodeError as e:
            log_error(f"Formatter output is not UTF-8 ({entry.abbrev})", error=str(e))
            return "check_failures"

        log_info(f"({entry.abbrev}) needs formatting")
        await queue.put(PatchedTreeEntry.from_entry(entry, result.canonical))
        return "changed"


async def patch_candidates(
    client: RepositoryClient,
    checker: CanonicalFormChecker,
    owner: str,
    repo: str,
    candidates: Sequence[TreeEntry],
    max_workers: Optional[int] = None,
    rate_limit_per_second: Optional[float] = None,
) -> PatchReport:
    """Convenience function to run the pool once."""
    processor = AsyncPatchProcessor(
        client,
        checker,
        owner,
        repo,
        max_workers=max_workers,
        rate_limit_per_second=rate_limit_per_second,
    )
    return await processor.process(candidates)
