"""Correlator: decides which call candidates reach a server action."""

from actionlens.correlate.engine import compute_highlights, correlate, probe_offset
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
from actionlens.correlate.session import HighlightSession

__all__ = [
    "compute_highlights",
    "correlate",
    "probe_offset",
    "CancellationSignal",
    "CandidateState",
    "CorrelationResult",
    "HighlightSession",
    "PassStats",
    "ResolutionPool",
    "ResolutionVerdict",
    "ResolveFn",
    "RuntimeControls",
]
