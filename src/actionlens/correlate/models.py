"""Runtime controls, verdicts and results of a correlation pass."""

from __future__ import annotations

import asyncio
from collections.abc import Awaitable, Callable
from dataclasses import dataclass, field
from enum import Enum

from actionlens.config.models import ResolutionBounds
from actionlens.extraction.models import OffsetRange

# (document_id, offset) -> does the symbol at offset resolve to an action definition?
ResolveFn = Callable[[str, int], Awaitable[bool]]


class CancellationSignal:
    """Cooperative cancellation token for one pass.

    Cancelling stops new admissions and turns pending races into misses.
    It never interrupts an oracle call that is already running.
    """

    def __init__(self) -> None:
        self._event = asyncio.Event()

    @property
    def cancelled(self) -> bool:
        return self._event.is_set()

    def cancel(self) -> None:
        self._event.set()

    async def wait(self) -> None:
        await self._event.wait()


@dataclass
class RuntimeControls:
    """Caller-supplied controls.

    bounds=None keeps resolution unbounded while still honouring the
    visible range and the cancellation signal. Passing no controls at all
    to the Correlator is the legacy mode.
    """

    visible_range: OffsetRange | None = None
    bounds: ResolutionBounds | None = None
    cancellation: CancellationSignal | None = None


class CandidateState(str, Enum):
    """Where a candidate left the admission pipeline."""

    UNCONDITIONAL_ACCEPT = "unconditional_accept"
    LOCAL_SHORT_CIRCUIT = "local_short_circuit"
    FILTERED = "filtered"
    ADMITTED = "admitted"
    SKIPPED = "skipped"  # budget exhausted or pass cancelled before admission


class ResolutionVerdict(str, Enum):
    """Outcome of an admitted resolution."""

    RESOLVED_TRUE = "resolved_true"
    RESOLVED_FALSE = "resolved_false"
    TIMED_OUT = "timed_out"
    ABORTED = "aborted"
    FAILED = "failed"

    @property
    def accepted(self) -> bool:
        return self is ResolutionVerdict.RESOLVED_TRUE


@dataclass
class PassStats:
    """Counters for one pass, logged when it finishes."""

    candidates: int = 0
    unconditional: int = 0
    short_circuited: int = 0
    filtered: int = 0
    skipped: int = 0
    admitted: int = 0
    verdicts: dict[ResolutionVerdict, int] = field(default_factory=dict)
    budget_exhausted: bool = False
    cancelled: bool = False
    elapsed_ms: float = 0.0

    def record(self, state: CandidateState) -> None:
        if state is CandidateState.UNCONDITIONAL_ACCEPT:
            self.unconditional += 1
        elif state is CandidateState.LOCAL_SHORT_CIRCUIT:
            self.short_circuited += 1
        elif state is CandidateState.FILTERED:
            self.filtered += 1
        elif state is CandidateState.ADMITTED:
            self.admitted += 1
        else:
            self.skipped += 1

    def record_verdict(self, verdict: ResolutionVerdict) -> None:
        self.verdicts[verdict] = self.verdicts.get(verdict, 0) + 1

    def to_dict(self) -> dict[str, object]:
        return {
            "candidates": self.candidates,
            "unconditional": self.unconditional,
            "short_circuited": self.short_circuited,
            "filtered": self.filtered,
            "skipped": self.skipped,
            "admitted": self.admitted,
            "verdicts": {v.value: n for v, n in self.verdicts.items()},
            "budget_exhausted": self.budget_exhausted,
            "cancelled": self.cancelled,
            "elapsed_ms": round(self.elapsed_ms, 1),
        }


@dataclass
class CorrelationResult:
    """Highlight ranges of one pass, each list deduplicated."""

    body_ranges: list[OffsetRange] = field(default_factory=list)
    icon_ranges: list[OffsetRange] = field(default_factory=list)
    call_ranges: list[OffsetRange] = field(default_factory=list)
    stats: PassStats = field(default_factory=PassStats)
