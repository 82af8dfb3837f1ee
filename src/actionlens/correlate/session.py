"""Per-document highlight session.

Editors re-run a pass on every change. Starting a new pass cancels the
previous one, and a result that finishes after a newer pass started is
dropped, so an out-of-date pass can never overwrite fresher highlights.
"""

from __future__ import annotations

import re
from collections.abc import Sequence
from dataclasses import dataclass, field

import structlog

from actionlens.config.models import ResolutionBounds
from actionlens.core.excludes import is_excluded_path
from actionlens.correlate.engine import compute_highlights
from actionlens.correlate.models import (
    CancellationSignal,
    CorrelationResult,
    ResolveFn,
    RuntimeControls,
)
from actionlens.extraction.models import OffsetRange

logger = structlog.get_logger()


@dataclass
class HighlightSession:
    """Runs passes for one document, newest wins.

    Bounds apply only to passes that know the visible range; without a
    viewport the pass runs unbounded, as on a first full render.
    """

    resolve: ResolveFn
    bounds: ResolutionBounds = field(default_factory=ResolutionBounds)
    exclude_patterns: Sequence[re.Pattern[str]] | None = None

    _seq: int = field(default=0, init=False)
    _current: CancellationSignal | None = field(default=None, init=False)

    @property
    def seq(self) -> int:
        return self._seq

    def cancel(self) -> None:
        """Cancel the running pass, if any."""
        if self._current is not None:
            self._current.cancel()
            self._current = None

    async def update(
        self,
        source_text: str,
        file_name: str,
        document_id: str,
        visible_range: OffsetRange | None = None,
    ) -> CorrelationResult | None:
        """Run a fresh pass.

        Returns:
            The pass result, an empty result for excluded files, or None when
            a newer update superseded this one before it finished.
        """
        self.cancel()
        self._seq += 1
        seq = self._seq

        if is_excluded_path(file_name, self.exclude_patterns):
            return CorrelationResult()

        signal = CancellationSignal()
        self._current = signal
        controls = RuntimeControls(
            visible_range=visible_range,
            bounds=self.bounds if visible_range is not None else None,
            cancellation=signal,
        )
        result = await compute_highlights(source_text, file_name, document_id, self.resolve, controls)

        if seq != self._seq:
            logger.debug("pass_superseded", document_id=document_id, seq=seq, latest=self._seq)
            return None
        self._current = None
        return result
