"""Typed errors.

Each family owns a range of numeric codes:
- 2xxx: configuration
- 3xxx: source parsing
- 4xxx: definition resolution

Extractors never let a ParseError escape; a resolution error for one
target only drops that target. Only configuration errors reach the user.
"""

from dataclasses import dataclass, field
from enum import IntEnum
from typing import Any


class ErrorCode(IntEnum):
    CONFIG_PARSE_ERROR = 2001
    CONFIG_INVALID_VALUE = 2002

    PARSE_LANGUAGE_UNAVAILABLE = 3001
    PARSE_FAILED = 3002

    RESOLUTION_DOCUMENT_NOT_FOUND = 4001
    RESOLUTION_OUTSIDE_ROOT = 4002


@dataclass(frozen=True, slots=True)
class ActionLensError(Exception):
    """Base error carrying a code and structured details for logs."""

    code: ErrorCode
    message: str
    details: dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        return {
            "code": self.code.value,
            "error": self.code.name,
            "message": self.message,
            "details": self.details,
        }

    def __str__(self) -> str:
        return f"[{self.code.value}] {self.code.name}: {self.message}"


class ConfigError(ActionLensError):
    @classmethod
    def parse_error(cls, path: str, reason: str) -> "ConfigError":
        return cls(
            ErrorCode.CONFIG_PARSE_ERROR,
            f"Cannot parse {path}: {reason}",
            {"path": path, "reason": reason},
        )

    @classmethod
    def invalid_value(cls, field: str, value: Any, reason: str) -> "ConfigError":
        return cls(
            ErrorCode.CONFIG_INVALID_VALUE,
            f"Invalid value for '{field}': {reason}",
            {"field": field, "value": str(value), "reason": reason},
        )


class ParseError(ActionLensError):
    """Raised by the parser. Extractors turn it into an empty result."""

    @classmethod
    def language_unavailable(cls, language: str, reason: str) -> "ParseError":
        return cls(
            ErrorCode.PARSE_LANGUAGE_UNAVAILABLE,
            f"No {language} grammar: {reason}",
            {"language": language, "reason": reason},
        )

    @classmethod
    def failed(cls, file_name: str, reason: str) -> "ParseError":
        return cls(
            ErrorCode.PARSE_FAILED,
            f"Cannot parse {file_name}: {reason}",
            {"file_name": file_name, "reason": reason},
        )


class ResolutionError(ActionLensError):
    """A location provider cannot read or reach a document."""

    @classmethod
    def document_not_found(cls, document_id: str) -> "ResolutionError":
        return cls(
            ErrorCode.RESOLUTION_DOCUMENT_NOT_FOUND,
            f"No such document: {document_id}",
            {"document_id": document_id},
        )

    @classmethod
    def outside_root(cls, document_id: str, root: str) -> "ResolutionError":
        return cls(
            ErrorCode.RESOLUTION_OUTSIDE_ROOT,
            f"{document_id} is outside the workspace root {root}",
            {"document_id": document_id, "root": root},
        )
