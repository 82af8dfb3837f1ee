"""Definition chasing on top of a location provider.

A location provider answers "where is the symbol at this offset defined?"
one hop at a time. The chaser follows those answers breadth-first until a
hop lands on the name or body of a server action, or the hop ceiling is
reached.
"""

from __future__ import annotations

from collections import deque
from dataclasses import dataclass
from typing import Protocol

import structlog

from actionlens.correlate.models import ResolveFn
from actionlens.extraction.definitions import extract_definitions
from actionlens.extraction.models import ActionDefinitionSpan

logger = structlog.get_logger()

DEFAULT_MAX_HOPS = 3


@dataclass(frozen=True, slots=True)
class Location:
    """A position in a document."""

    document_id: str
    offset: int


@dataclass(frozen=True, slots=True)
class Document:
    document_id: str
    text: str
    file_name: str


class LocationProvider(Protocol):
    """Source of definition-like locations and document text."""

    async def locate(self, document_id: str, offset: int) -> list[Location]:
        """Definition, type definition and implementation targets of a symbol."""
        ...

    async def read(self, document_id: str) -> Document:
        """Current text of a document.

        Raises:
            ResolutionError: If the document cannot be read.
        """
        ...


def make_resolve_fn(provider: LocationProvider, max_hops: int = DEFAULT_MAX_HOPS) -> ResolveFn:
    """Build a ResolveFn that chases locations through provider.

    Each dequeued location costs one hop, visited or not. A target that
    falls inside a definition's name or body (bounds inclusive) resolves
    true; any other target is queued for the next hop. A target whose
    document cannot be read or scanned is skipped. Failures of locate
    itself propagate to the caller.
    """

    async def resolve(document_id: str, offset: int) -> bool:
        visited: set[Location] = set()
        queue: deque[Location] = deque([Location(document_id, offset)])
        scanned: dict[str, list[ActionDefinitionSpan]] = {}
        hops = 0

        while queue and hops < max_hops:
            hops += 1
            current = queue.popleft()
            if current in visited:
                continue
            visited.add(current)

            for target in await provider.locate(current.document_id, current.offset):
                try:
                    definitions = scanned.get(target.document_id)
                    if definitions is None:
                        doc = await provider.read(target.document_id)
                        definitions = extract_definitions(doc.text, doc.file_name)
                        scanned[target.document_id] = definitions
                except Exception as e:
                    logger.debug(
                        "resolution_target_skipped",
                        document_id=target.document_id,
                        offset=target.offset,
                        error=str(e),
                    )
                    continue
                if any(span.covers(target.offset) for span in definitions):
                    return True
                queue.append(target)
        return False

    return resolve
