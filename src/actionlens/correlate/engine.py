"""Correlation of call candidates with server action definitions.

A pass runs in six steps:
1. Expand definition bodies to whole lines and place the gutter icons
2. Order candidates visible-first when the host knows the viewport
3. Admit candidates: markup entries always, same-file actions without the
   oracle, everything else only past the name filter
4. Resolve admitted candidates under the pass bounds
5. Drain in-flight resolutions, or abandon them when cancelled
6. Collect the accepted spans

Resolution is the only expensive part. Every bound (concurrency cap,
per-resolution timeout, pass budget, resolution count) and the cooperative
cancellation signal apply to step 4 only.
"""

from __future__ import annotations

import asyncio
import time
from collections.abc import Iterable, Sequence
from typing import Any

import structlog

from actionlens.config.models import ResolutionBounds
from actionlens.core.logging import clear_pass_id, set_pass_id
from actionlens.correlate.models import (
    CancellationSignal,
    CandidateState,
    CorrelationResult,
    PassStats,
    ResolutionVerdict,
    ResolveFn,
    RuntimeControls,
)
from actionlens.correlate.pool import ResolutionPool
from actionlens.extraction.calls import scan_call_sites
from actionlens.extraction.definitions import scan_definitions
from actionlens.extraction.models import (
    ActionDefinitionSpan,
    AttributeEntry,
    CallCandidate,
    NameSets,
    OffsetRange,
)
from actionlens.extraction.names import scan_name_sets
from actionlens.parsing.treesitter import parse_source

logger = structlog.get_logger()


def line_start(text: str, offset: int) -> int:
    return text.rfind("\n", 0, offset) + 1


def line_end(text: str, offset: int) -> int:
    end = text.find("\n", min(offset, len(text)))
    return len(text) if end == -1 else end


def _dedupe(ranges: Iterable[OffsetRange]) -> list[OffsetRange]:
    return list(dict.fromkeys(ranges))


def definition_ranges(
    source_text: str, definitions: Iterable[ActionDefinitionSpan]
) -> tuple[list[OffsetRange], list[OffsetRange]]:
    """Whole-line body ranges and zero-width icon anchors.

    The icon sits at the end of the line holding the opening brace, so
    expression-bodied arrows get a body highlight but no icon.
    """
    bodies: list[OffsetRange] = []
    icons: list[OffsetRange] = []
    for span in definitions:
        bodies.append(
            OffsetRange(line_start(source_text, span.body_start), line_end(source_text, span.body_end))
        )
        if source_text[span.body_start : span.body_start + 1] == "{":
            anchor = line_end(source_text, span.body_start)
            icons.append(OffsetRange(anchor, anchor))
    return _dedupe(bodies), _dedupe(icons)


def local_action_names(definitions: Iterable[ActionDefinitionSpan]) -> frozenset[str]:
    return frozenset(span.name for span in definitions if span.is_named)


def order_candidates(
    candidates: Sequence[CallCandidate], visible_range: OffsetRange | None
) -> list[CallCandidate]:
    """Stable partition: candidates overlapping the viewport first."""
    if visible_range is None:
        return list(candidates)
    visible = [c for c in candidates if c.span.overlaps(visible_range)]
    hidden = [c for c in candidates if not c.span.overlaps(visible_range)]
    return visible + hidden


def probe_offset(candidate: CallCandidate) -> int:
    """Offset handed to the oracle: the middle of the callee name.

    Landing inside the identifier rather than on its first character keeps
    definition lookups from snapping to a preceding token.
    """
    name = candidate.callee_name
    if not name:
        return candidate.start
    return candidate.start + max(1, len(name) // 2)


def classify(
    candidate: CallCandidate, local_names: frozenset[str], name_sets: NameSets
) -> CandidateState:
    """Admission state of a candidate before any resolution happens."""
    if isinstance(candidate, AttributeEntry):
        return CandidateState.UNCONDITIONAL_ACCEPT
    if candidate.callee_name in local_names:
        return CandidateState.LOCAL_SHORT_CIRCUIT
    if not name_sets.admits(candidate.callee_name, candidate.qualifier_name):
        return CandidateState.FILTERED
    return CandidateState.ADMITTED


class _CorrelationPass:
    """Mutable state of one pass. Never reused."""

    def __init__(
        self,
        *,
        document_id: str,
        resolve: ResolveFn,
        bounds: ResolutionBounds | None,
        cancellation: CancellationSignal | None,
        log: Any,
    ) -> None:
        self.document_id = document_id
        self.resolve = resolve
        self.bounds = bounds
        self.cancellation = cancellation
        self.log = log
        self.pool = ResolutionPool(bounds.max_concurrent if bounds is not None else None)
        self.stats = PassStats()
        self.verdicts: dict[int, ResolutionVerdict] = {}
        self._started = time.monotonic()
        self._exhausted = False
        self._closed = False

    @property
    def cancelled(self) -> bool:
        return self.cancellation is not None and self.cancellation.cancelled

    def elapsed_ms(self) -> float:
        return (time.monotonic() - self._started) * 1000

    def has_budget(self) -> bool:
        """Whether another resolution may be admitted. Sticky once exhausted."""
        if self.bounds is None:
            return True
        if self._exhausted:
            return False
        if (
            self.elapsed_ms() > self.bounds.per_pass_budget_ms
            or self.stats.admitted >= self.bounds.max_resolutions
        ):
            self._exhausted = True
            self.stats.budget_exhausted = True
            self.log.info(
                "budget_exhausted",
                admitted=self.stats.admitted,
                elapsed_ms=round(self.elapsed_ms(), 1),
            )
        return not self._exhausted

    async def admit(
        self,
        ordered: Sequence[CallCandidate],
        local_names: frozenset[str],
        name_sets: NameSets,
    ) -> set[int]:
        """Walk candidates in order, scheduling the ones that need the oracle.

        Returns the indices accepted without resolution. Once the budget is
        spent, candidates that would need the oracle are skipped while the
        free ones are still accepted. Cancellation ends the walk.
        """
        accepted: set[int] = set()
        for index, candidate in enumerate(ordered):
            if self.cancelled:
                self.stats.skipped += len(ordered) - index
                break

            state = classify(candidate, local_names, name_sets)
            if state is CandidateState.FILTERED:
                self.log.debug(
                    "candidate_filtered",
                    callee=candidate.callee_name,
                    kind=candidate.kind.value,
                    start=candidate.start,
                )
            elif state is not CandidateState.ADMITTED:
                accepted.add(index)
            elif not self.has_budget():
                state = CandidateState.SKIPPED
            elif not await self.pool.acquire(self.cancellation):
                # Cancelled while waiting for a slot
                self.stats.skipped += len(ordered) - index
                break
            elif not self.has_budget():
                # The pass budget ran out while waiting for the slot
                self.pool.release()
                state = CandidateState.SKIPPED
            else:
                self.pool.spawn(self._resolve(index, candidate))

            self.stats.record(state)
            if state is CandidateState.ADMITTED:
                self.has_budget()
        return accepted

    async def _resolve(self, index: int, candidate: CallCandidate) -> None:
        verdict = await self._race(probe_offset(candidate), candidate)
        if self._closed:
            return
        self.verdicts[index] = verdict
        self.stats.record_verdict(verdict)

    async def _race(self, offset: int, candidate: CallCandidate) -> ResolutionVerdict:
        """Race one oracle call against the timeout and the cancellation signal.

        Losing the race leaves the oracle call running; its outcome is
        discarded when it eventually settles.
        """
        try:
            oracle = asyncio.ensure_future(self.resolve(self.document_id, offset))
        except Exception as e:
            self.log.warning("resolution_failed", callee=candidate.callee_name, error=str(e))
            return ResolutionVerdict.FAILED

        timeout = self.bounds.resolve_timeout_ms / 1000 if self.bounds is not None else None
        waiters: set[asyncio.Future[Any]] = {oracle}
        signalled: asyncio.Future[Any] | None = None
        if self.cancellation is not None:
            signalled = asyncio.ensure_future(self.cancellation.wait())
            waiters.add(signalled)

        try:
            await asyncio.wait(waiters, timeout=timeout, return_when=asyncio.FIRST_COMPLETED)
        except asyncio.CancelledError:
            self.pool.detach(oracle)
            raise
        finally:
            if signalled is not None:
                signalled.cancel()

        if not oracle.done():
            self.pool.detach(oracle)
            if self.cancelled:
                return ResolutionVerdict.ABORTED
            self.log.info(
                "resolution_timed_out",
                callee=candidate.callee_name,
                offset=offset,
                timeout_ms=self.bounds.resolve_timeout_ms if self.bounds is not None else None,
            )
            return ResolutionVerdict.TIMED_OUT

        if oracle.cancelled():
            self.log.warning("resolution_failed", callee=candidate.callee_name, error="cancelled")
            return ResolutionVerdict.FAILED
        error = oracle.exception()
        if error is not None:
            self.log.warning(
                "resolution_failed",
                callee=candidate.callee_name,
                offset=offset,
                error=str(error),
                error_type=type(error).__name__,
            )
            return ResolutionVerdict.FAILED
        if oracle.result():
            return ResolutionVerdict.RESOLVED_TRUE
        return ResolutionVerdict.RESOLVED_FALSE

    async def settle(self) -> None:
        """Wait for in-flight work, or walk away from it after cancellation."""
        if not self.cancelled:
            await self.pool.drain()
        if self.cancelled:
            in_flight = len(self.pool.in_flight)
            self.pool.abandon()
            self.stats.cancelled = True
            self.log.info("correlation_pass_cancelled", abandoned=in_flight)
        self._closed = True

    def close(self) -> None:
        self.pool.abandon()
        self._closed = True


async def correlate(
    definitions: Sequence[ActionDefinitionSpan],
    candidates: Sequence[CallCandidate],
    name_sets: NameSets,
    source_text: str,
    document_id: str,
    resolve: ResolveFn,
    controls: RuntimeControls | None = None,
) -> CorrelationResult:
    """Decide which call candidates reach a server action.

    Args:
        definitions: Action definitions extracted from source_text
        candidates: Call candidates extracted from source_text
        name_sets: Imported, local callable and namespace import names
        source_text: Text the offsets refer to
        document_id: Passed through to resolve
        resolve: Oracle answering whether the symbol at an offset lands in an
            action definition
        controls: Viewport, bounds and cancellation. None runs unbounded.

    Returns:
        Body, icon and call ranges, each deduplicated, plus pass statistics.
        A cancelled pass returns what was accepted before the signal.
    """
    set_pass_id()
    log = logger.bind(document_id=document_id)
    visible_range = controls.visible_range if controls is not None else None
    pass_ = _CorrelationPass(
        document_id=document_id,
        resolve=resolve,
        bounds=controls.bounds if controls is not None else None,
        cancellation=controls.cancellation if controls is not None else None,
        log=log,
    )
    pass_.stats.candidates = len(candidates)

    try:
        body_ranges, icon_ranges = definition_ranges(source_text, definitions)
        local_names = local_action_names(definitions)
        ordered = order_candidates(candidates, visible_range)

        log.debug(
            "correlation_pass_started",
            definitions=len(definitions),
            candidates=len(candidates),
            bounded=pass_.bounds is not None,
            visible_first=visible_range is not None,
        )

        try:
            accepted = await pass_.admit(ordered, local_names, name_sets)
            await pass_.settle()
        except asyncio.CancelledError:
            pass_.close()
            raise

        accepted |= {i for i, verdict in pass_.verdicts.items() if verdict.accepted}
        call_ranges = _dedupe(ordered[i].span for i in sorted(accepted))
        pass_.stats.elapsed_ms = pass_.elapsed_ms()

        log.debug(
            "correlation_pass_finished",
            bodies=len(body_ranges),
            calls=len(call_ranges),
            **pass_.stats.to_dict(),
        )
        return CorrelationResult(
            body_ranges=body_ranges,
            icon_ranges=icon_ranges,
            call_ranges=call_ranges,
            stats=pass_.stats,
        )
    finally:
        clear_pass_id()


async def compute_highlights(
    source_text: str,
    file_name: str,
    document_id: str,
    resolve: ResolveFn,
    controls: RuntimeControls | None = None,
) -> CorrelationResult:
    """Parse once, run every extractor, then correlate."""
    source = parse_source(source_text, file_name)
    if source is None:
        return CorrelationResult()
    return await correlate(
        scan_definitions(source),
        scan_call_sites(source),
        scan_name_sets(source),
        source_text,
        document_id,
        resolve,
        controls,
    )
