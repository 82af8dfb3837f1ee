"""Data model shared by the extractors and the Correlator.

All offsets are half-open str indices into the source text.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import ClassVar, Literal

DEFAULT_NAME = "default"
ANONYMOUS_NAME = "(anonymous)"
INLINE_NAME = "(inline)"

SENTINEL_NAMES = frozenset({DEFAULT_NAME, ANONYMOUS_NAME, INLINE_NAME})


@dataclass(frozen=True, slots=True)
class OffsetRange:
    """Half-open [start, end) character range."""

    start: int
    end: int

    def __post_init__(self) -> None:
        if self.start > self.end:
            raise ValueError(f"OffsetRange start {self.start} > end {self.end}")

    def overlaps(self, other: OffsetRange) -> bool:
        """True when the ranges share at least one position.

        Zero-width ranges overlap a range that contains their position.
        """
        if self.start == self.end:
            return other.start <= self.start <= other.end
        if other.start == other.end:
            return self.start <= other.start <= self.end
        return self.start < other.end and other.start < self.end

    def contains(self, offset: int) -> bool:
        return self.start <= offset < self.end


@dataclass(frozen=True, slots=True)
class ActionDefinitionSpan:
    """A detected server action definition."""

    name: str  # Declared identifier, or one of SENTINEL_NAMES
    body_start: int  # Executable block, braces included
    body_end: int
    name_start: int | None = None  # Identifier range, None when anonymous
    name_end: int | None = None

    @property
    def is_named(self) -> bool:
        return self.name not in SENTINEL_NAMES

    @property
    def body(self) -> OffsetRange:
        return OffsetRange(self.body_start, self.body_end)

    def covers(self, offset: int) -> bool:
        """Whether offset lands on the name or inside the body (both inclusive)."""
        in_name = (
            self.name_start is not None
            and self.name_end is not None
            and self.name_start <= offset <= self.name_end
        )
        return in_name or self.body_start <= offset <= self.body_end


class CandidateKind(str, Enum):
    """Call candidate variants."""

    ENTRY_ACTION = "entry_action"  # <form action={...}>
    ENTRY_FORM_ACTION = "entry_form_action"  # <button formAction={...}>
    DIRECT_CALL = "direct_call"  # id(...), ns.id(...)
    WRAPPED_CALL = "wrapped_call"  # startTransition(() => id(...))
    HOOK_ARGUMENT = "hook_argument"  # useActionState(id, ...)


@dataclass(frozen=True, slots=True)
class AttributeEntry:
    """A markup attribute naming an entry point. Always surfaced."""

    attribute: Literal["action", "formAction"]
    start: int
    end: int

    callee_name: ClassVar[None] = None
    qualifier_name: ClassVar[None] = None

    @property
    def kind(self) -> CandidateKind:
        if self.attribute == "action":
            return CandidateKind.ENTRY_ACTION
        return CandidateKind.ENTRY_FORM_ACTION

    @property
    def span(self) -> OffsetRange:
        return OffsetRange(self.start, self.end)


@dataclass(frozen=True, slots=True)
class DirectCall:
    """A call expression with a resolvable callee identifier."""

    start: int  # Callee identifier start
    end: int  # Closing parenthesis end
    callee_name: str
    qualifier_name: str | None = None  # Base of a one-level property access

    kind: ClassVar[CandidateKind] = CandidateKind.DIRECT_CALL

    @property
    def span(self) -> OffsetRange:
        return OffsetRange(self.start, self.end)


@dataclass(frozen=True, slots=True)
class WrappedCall:
    """A call nested inside a deferred-execution wrapper callback."""

    start: int
    end: int
    callee_name: str
    wrapper: str
    qualifier_name: str | None = None

    kind: ClassVar[CandidateKind] = CandidateKind.WRAPPED_CALL

    @property
    def span(self) -> OffsetRange:
        return OffsetRange(self.start, self.end)


@dataclass(frozen=True, slots=True)
class HookArgument:
    """A bare identifier passed as the first argument of a hook call."""

    start: int
    end: int
    callee_name: str
    hook: str

    qualifier_name: ClassVar[None] = None
    kind: ClassVar[CandidateKind] = CandidateKind.HOOK_ARGUMENT

    @property
    def span(self) -> OffsetRange:
        return OffsetRange(self.start, self.end)


CallCandidate = AttributeEntry | DirectCall | WrappedCall | HookArgument


@dataclass(frozen=True, slots=True)
class NameSets:
    """Per-file name sets used to pre-filter call candidates."""

    imported: frozenset[str] = frozenset()
    local_callables: frozenset[str] = frozenset()
    namespace_imports: frozenset[str] = frozenset()

    def admits(self, callee_name: str, qualifier_name: str | None) -> bool:
        """Plain-name filter with the namespace-qualifier exemption."""
        if callee_name in self.imported or callee_name in self.local_callables:
            return True
        return qualifier_name is not None and qualifier_name in self.namespace_imports
