"""Shared fixtures for correlate tests."""

from __future__ import annotations

import asyncio
from collections.abc import Callable, Iterable, Mapping

import pytest


def _is_identifier_char(ch: str) -> bool:
    return ch.isalnum() or ch in "_$"


class RecordingOracle:
    """Stub resolve function that answers by the identifier under the offset.

    accept=None answers True for every identifier. Names in fail raise, names
    in hang wait on gate until the test releases it.
    """

    def __init__(
        self,
        text: str | Mapping[str, str],
        *,
        accept: Iterable[str] | None = None,
        fail: Iterable[str] = (),
        hang: Iterable[str] = (),
        delay: float = 0.0,
    ) -> None:
        # A mapping answers per document id
        self.texts = dict(text) if isinstance(text, Mapping) else {}
        self.text = text if isinstance(text, str) else ""
        self.accept = set(accept) if accept is not None else None
        self.fail = set(fail)
        self.hang = set(hang)
        self.delay = delay
        self.gate = asyncio.Event()
        self.started = asyncio.Event()
        self.calls: list[str] = []
        self.documents: list[str] = []
        self.active = 0
        self.max_active = 0
        self.completed = 0

    def word_at(self, offset: int, document_id: str | None = None) -> str:
        text = self.texts.get(document_id, self.text) if document_id is not None else self.text
        start = offset
        while start > 0 and _is_identifier_char(text[start - 1]):
            start -= 1
        end = offset
        while end < len(text) and _is_identifier_char(text[end]):
            end += 1
        return text[start:end]

    async def __call__(self, document_id: str, offset: int) -> bool:
        word = self.word_at(offset, document_id)
        self.calls.append(word)
        self.documents.append(document_id)
        self.started.set()
        self.active += 1
        self.max_active = max(self.max_active, self.active)
        try:
            if self.delay:
                await asyncio.sleep(self.delay)
            if word in self.hang:
                await self.gate.wait()
            if word in self.fail:
                raise RuntimeError(f"oracle exploded on {word}")
            return self.accept is None or word in self.accept
        finally:
            self.active -= 1
            self.completed += 1

    async def release(self) -> None:
        """Open the gate and let detached calls settle."""
        self.gate.set()
        for _ in range(5):
            await asyncio.sleep(0)


@pytest.fixture
def oracle_factory() -> Callable[..., RecordingOracle]:
    return RecordingOracle


def imported_calls(*names: str) -> str:
    """Source importing names from a sibling module and calling each once."""
    lines = [f"import {{ {', '.join(dict.fromkeys(names))} }} from './actions';"]
    lines.extend(f"{name}();" for name in names)
    return "\n".join(lines) + "\n"


@pytest.fixture
def calls_source() -> Callable[..., str]:
    return imported_calls
