"""Unit tests for the async patch worker pool.

Covers change detection, failure isolation, the no-op case and the
concurrency bound.
"""

import asyncio

import pytest

from conftest import FakeGitHubClient, TrailingWhitespaceChecker, make_entry
from prbot.checker import CanonicalFormChecker, CheckResult
from prbot.processor import AsyncPatchProcessor, PatchReport, patch_candidates


def _repo(n: int, dirty: set, broken: set = frozenset(), missing: set = frozenset()):
    entries = [make_entry(f"f{i}.go", f"sha{i:04d}", mode="100755" if i % 2 else "100644") for i in range(n)]
    blobs = {}
    for i in range(n):
        body = f"package f{i}\n"
        if i in dirty:
            body = f"package f{i}   \n"
        if i in broken:
            body = "SYNTAX ERROR\n"
        blobs[f"sha{i:04d}"] = body.encode()
    failing = {f"sha{i:04d}" for i in missing}
    return entries, FakeGitHubClient(entries=entries, blobs=blobs, failing_blobs=failing)


class TestAsyncPatchProcessorInit:
    """Test pool initialization."""

    def test_defaults_from_config(self, global_config):
        processor = AsyncPatchProcessor(FakeGitHubClient(), TrailingWhitespaceChecker(), "o", "r")

        assert processor.max_workers == global_config.max_workers
        assert processor.semaphore._value == global_config.max_workers
        assert processor.rate_limiter is None

    def test_custom_workers_and_rate_limit(self):
        processor = AsyncPatchProcessor(
            FakeGitHubClient(), TrailingWhitespaceChecker(), "o", "r", max_workers=2, rate_limit_per_second=5
        )

        assert processor.semaphore._value == 2
        assert processor.rate_limiter is not None
        assert processor.rate_limiter.max_calls == 5


class TestAsyncPatchProcessorResults:
    """Changeset contents."""

    @pytest.mark.asyncio
    async def test_empty_candidates(self):
        report = await patch_candidates(FakeGitHubClient(), TrailingWhitespaceChecker(), "o", "r", [])

        assert isinstance(report, PatchReport)
        assert report.changeset == ()
        assert report.stats["candidates"] == 0

    @pytest.mark.asyncio
    async def test_only_changed_files_recorded(self):
        entries, client = _repo(5, dirty={1, 3})

        report = await patch_candidates(client, TrailingWhitespaceChecker(), "o", "r", entries)

        assert report.paths == ["f1.go", "f3.go"]
        assert report.changeset[0].content == b"package f1\n"
        assert report.stats["changed"] == 2
        assert report.stats["unchanged"] == 3
        assert report.failures == 0

    @pytest.mark.asyncio
    async def test_patched_entry_copies_path_and_mode(self):
        entries, client = _repo(2, dirty={1})

        report = await patch_candidates(client, TrailingWhitespaceChecker(), "o", "r", entries)

        (patched,) = report.changeset
        assert patched.path == entries[1].path
        assert patched.mode == entries[1].mode == "100755"
        assert patched.type == "blob"
        assert not hasattr(patched, "sha")

    @pytest.mark.asyncio
    async def test_all_canonical_yields_empty_changeset(self):
        entries, client = _repo(4, dirty=set())

        report = await patch_candidates(client, TrailingWhitespaceChecker(), "o", "r", entries)

        assert report.changeset == ()
        assert report.stats["unchanged"] == 4

    @pytest.mark.asyncio
    async def test_each_blob_fetched_once(self):
        entries, client = _repo(6, dirty={0, 5})

        await patch_candidates(client, TrailingWhitespaceChecker(), "o", "r", entries)

        fetched = [c["sha"] for c in client.calls_to("get_raw_blob")]
        assert sorted(fetched) == sorted(e.sha for e in entries)

    @pytest.mark.asyncio
    async def test_changeset_is_sorted_by_path(self):
        entries, client = _repo(12, dirty={11, 2, 7})

        report = await patch_candidates(client, TrailingWhitespaceChecker(), "o", "r", entries)

        assert report.paths == sorted(report.paths)

    @pytest.mark.asyncio
    async def test_checker_verdict_decides_unchanged(self):
        class AlwaysCanonical(CanonicalFormChecker):
            def canonicalize(self, source):
                return source

            def check(self, source):
                return CheckResult(is_canonical=True, canonical=source.upper())

        entries, client = _repo(3, dirty={1})

        report = await patch_candidates(client, AlwaysCanonical(), "o", "r", entries)

        assert report.changeset == ()
        assert report.stats["unchanged"] == 3


class TestAsyncPatchProcessorIsolation:
    """One failing candidate never affects its siblings."""

    @pytest.mark.asyncio
    async def test_fetch_failure_isolated(self):
        entries, client = _repo(4, dirty={0, 2, 3}, missing={2})

        report = await patch_candidates(client, TrailingWhitespaceChecker(), "o", "r", entries)

        assert report.paths == ["f0.go", "f3.go"]
        assert report.stats["fetch_failures"] == 1
        assert report.failures == 1

    @pytest.mark.asyncio
    async def test_syntax_error_isolated(self):
        entries, client = _repo(4, dirty={0, 1, 3}, broken={1})

        report = await patch_candidates(client, TrailingWhitespaceChecker(), "o", "r", entries)

        assert report.paths == ["f0.go", "f3.go"]
        assert report.stats["check_failures"] == 1

    @pytest.mark.asyncio
    async def test_checker_failing_for_one_path(self):
        class FailsForOne(TrailingWhitespaceChecker):
            def canonicalize(self, source):
                if source.startswith(b"package f2"):
                    raise RuntimeError("checker crashed")
                return super().canonicalize(source)

        entries, client = _repo(5, dirty={0, 1, 2, 3, 4})

        report = await patch_candidates(client, FailsForOne(), "o", "r", entries)

        assert report.paths == ["f0.go", "f1.go", "f3.go", "f4.go"]
        assert report.stats["unexpected_errors"] == 1

    @pytest.mark.asyncio
    async def test_every_candidate_failing_yields_empty_changeset(self):
        entries, client = _repo(3, dirty={0, 1, 2}, missing={0, 1, 2})

        report = await patch_candidates(client, TrailingWhitespaceChecker(), "o", "r", entries)

        assert report.changeset == ()
        assert report.failures == 3

    @pytest.mark.asyncio
    async def test_non_utf8_output_rejected(self):
        class Latin1Checker(CanonicalFormChecker):
            def canonicalize(self, source):
                return source + b"\xff"

        entries, client = _repo(2, dirty=set())

        report = await patch_candidates(client, Latin1Checker(), "o", "r", entries)

        assert report.changeset == ()
        assert report.stats["check_failures"] == 2


class TestAsyncPatchProcessorConcurrency:
    """Fan-out bound and barrier."""

    @pytest.mark.asyncio
    async def test_semaphore_limits_concurrent_fetches(self):
        entries, client = _repo(10, dirty={1})
        concurrent = 0
        max_concurrent = 0
        original = client.get_raw_blob

        async def slow_fetch(owner, repo, sha):
            nonlocal concurrent, max_concurrent
            concurrent += 1
            max_concurrent = max(max_concurrent, concurrent)
            await asyncio.sleep(0.01)
            concurrent -= 1
            return await original(owner, repo, sha)

        client.get_raw_blob = slow_fetch

        report = await patch_candidates(client, TrailingWhitespaceChecker(), "o", "r", entries, max_workers=3)

        assert max_concurrent <= 3
        assert report.paths == ["f1.go"]

    @pytest.mark.asyncio
    async def test_waits_for_all_workers(self):
        entries, client = _repo(5, dirty={0, 1, 2, 3, 4})
        original = client.get_raw_blob

        async def staggered(owner, repo, sha):
            await asyncio.sleep(0.002 * int(sha[-1]))
            return await original(owner, repo, sha)

        client.get_raw_blob = staggered

        report = await patch_candidates(client, TrailingWhitespaceChecker(), "o", "r", entries, max_workers=5)

        assert len(report.changeset) == 5
        assert report.stats["processed"] == 5
