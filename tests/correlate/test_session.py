"""Tests for correlate/session.py HighlightSession."""

from __future__ import annotations

import asyncio
from collections.abc import Callable

import pytest

from actionlens.config.models import ResolutionBounds
from actionlens.core.excludes import compile_exclude_patterns
from actionlens.correlate import CorrelationResult, HighlightSession
from actionlens.extraction.models import OffsetRange


class TestUpdate:
    @pytest.mark.asyncio
    async def test_given_update_then_result_and_sequence_advances(
        self, oracle_factory: Callable, calls_source: Callable
    ) -> None:
        text = calls_source("save")
        session = HighlightSession(oracle_factory(text))

        result = await session.update(text, "src/page.tsx", "doc")

        assert result is not None
        assert len(result.call_ranges) == 1
        assert session.seq == 1

    @pytest.mark.asyncio
    async def test_given_excluded_file_then_empty_result_without_oracle(
        self, oracle_factory: Callable, calls_source: Callable
    ) -> None:
        text = calls_source("save")
        oracle = oracle_factory(text)
        session = HighlightSession(oracle)

        result = await session.update(text, "src/page.test.tsx", "doc")

        assert result == CorrelationResult()
        assert oracle.calls == []

    @pytest.mark.asyncio
    async def test_given_custom_exclude_patterns_then_used_instead_of_defaults(
        self, oracle_factory: Callable, calls_source: Callable
    ) -> None:
        text = calls_source("save")
        oracle = oracle_factory(text)
        session = HighlightSession(oracle, exclude_patterns=compile_exclude_patterns([r"/legacy/"]))

        skipped = await session.update(text, "src/legacy/page.tsx", "doc")
        scanned = await session.update(text, "src/page.test.tsx", "doc")

        assert skipped is not None and skipped.call_ranges == []
        assert scanned is not None and len(scanned.call_ranges) == 1

    @pytest.mark.asyncio
    async def test_given_no_viewport_then_bounds_not_applied(
        self, oracle_factory: Callable, calls_source: Callable
    ) -> None:
        names = [f"call{i}" for i in range(5)]
        text = calls_source(*names)
        session = HighlightSession(oracle_factory(text), bounds=ResolutionBounds(max_resolutions=2))

        full = await session.update(text, "a.ts", "doc")
        visible = await session.update(text, "a.ts", "doc", OffsetRange(0, len(text)))

        assert full is not None and len(full.call_ranges) == 5
        assert visible is not None and len(visible.call_ranges) == 2


class TestSupersede:
    @pytest.mark.asyncio
    async def test_given_newer_update_then_older_result_dropped(
        self, oracle_factory: Callable, calls_source: Callable
    ) -> None:
        # Given - the first pass blocks inside the oracle
        old_text = calls_source("stuck")
        new_text = calls_source("save")
        oracle = oracle_factory({"old": old_text, "new": new_text}, hang={"stuck"})
        session = HighlightSession(oracle)
        first = asyncio.ensure_future(session.update(old_text, "a.ts", "old"))
        await asyncio.wait_for(oracle.started.wait(), timeout=1)

        # When
        second = await session.update(new_text, "a.ts", "new")

        # Then
        assert await asyncio.wait_for(first, timeout=1) is None
        assert second is not None
        assert session.seq == 2
        await oracle.release()

    @pytest.mark.asyncio
    async def test_given_cancel_then_running_pass_stops_admitting(
        self, oracle_factory: Callable, calls_source: Callable
    ) -> None:
        text = calls_source("stuck", "never")
        oracle = oracle_factory(text, hang={"stuck", "never"})
        session = HighlightSession(oracle, bounds=ResolutionBounds(max_concurrent=1))
        running = asyncio.ensure_future(session.update(text, "a.ts", "doc", OffsetRange(0, len(text))))
        await asyncio.wait_for(oracle.started.wait(), timeout=1)

        session.cancel()
        result = await asyncio.wait_for(running, timeout=1)

        assert result is not None
        assert result.stats.cancelled
        assert oracle.calls == ["stuck"]
        await oracle.release()

    def test_cancel_without_running_pass_is_noop(self, oracle_factory: Callable) -> None:
        session = HighlightSession(oracle_factory(""))

        session.cancel()

        assert session.seq == 0
