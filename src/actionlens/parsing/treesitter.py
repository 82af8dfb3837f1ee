"""Tree-sitter parsing for TypeScript / TSX sources.

This module provides:
- Grammar selection by file name (TypeScript vs TSX)
- A cached parser per grammar
- Character offsets for nodes (tree-sitter reports UTF-8 byte offsets,
  the rest of the system works on str indices)
- Small node helpers shared by the extractors

Parsing never fails on malformed source: tree-sitter recovers with ERROR
nodes, which the extractors simply walk past. Only infrastructure faults
(missing grammar, non-text input) raise ParseError.
"""

from __future__ import annotations

import importlib
from collections.abc import Iterator
from dataclasses import dataclass, field
from typing import Any

import structlog
import tree_sitter

from actionlens.core.errors import ParseError

logger = structlog.get_logger()


@dataclass(frozen=True)
class LanguagePack:
    """Tree-sitter configuration for a single grammar."""

    name: str  # Canonical language name ("typescript", "tsx")
    grammar_package: str  # PyPI package ("tree-sitter-typescript")
    grammar_module: str  # Python import ("tree_sitter_typescript")
    language_func: str  # Non-standard function name ("language_tsx")
    extensions: frozenset[str] = field(default_factory=frozenset)


TYPESCRIPT_PACK = LanguagePack(
    name="typescript",
    grammar_package="tree-sitter-typescript",
    grammar_module="tree_sitter_typescript",
    language_func="language_typescript",
    extensions=frozenset({"ts", "mts", "cts"}),
)

# TSX is a superset that also covers plain JS and JSX files
TSX_PACK = LanguagePack(
    name="tsx",
    grammar_package="tree-sitter-typescript",
    grammar_module="tree_sitter_typescript",
    language_func="language_tsx",
    extensions=frozenset({"tsx", "js", "jsx", "mjs", "cjs"}),
)

PACKS: dict[str, LanguagePack] = {p.name: p for p in (TYPESCRIPT_PACK, TSX_PACK)}


def pack_for_file(file_name: str) -> LanguagePack:
    """Pick the grammar for a file name; unknown extensions fall back to TSX."""
    ext = file_name.rsplit(".", 1)[-1].lower() if "." in file_name else ""
    if ext in TYPESCRIPT_PACK.extensions:
        return TYPESCRIPT_PACK
    return TSX_PACK


def _build_char_map(text: str) -> list[int] | None:
    """Map every UTF-8 byte offset to its str index. None when text is ASCII."""
    if text.isascii():
        return None
    char_map: list[int] = []
    for index, ch in enumerate(text):
        char_map.extend([index] * len(ch.encode("utf-8")))
    char_map.append(len(text))
    return char_map


@dataclass
class SourceTree:
    """A parsed source file with offset conversion helpers."""

    text: str
    file_name: str
    language: str
    tree: Any  # Tree-sitter Tree (not serializable)
    root_node: Any  # Tree-sitter Node
    _char_map: list[int] | None = field(default=None, repr=False)

    @property
    def has_error(self) -> bool:
        return bool(self.root_node.has_error)

    def char_offset(self, byte_offset: int) -> int:
        if self._char_map is None:
            return byte_offset
        return self._char_map[byte_offset]

    def start(self, node: Any) -> int:
        return self.char_offset(node.start_byte)

    def end(self, node: Any) -> int:
        return self.char_offset(node.end_byte)

    def node_text(self, node: Any) -> str:
        return self.text[self.start(node) : self.end(node)]


@dataclass
class TreeSitterParser:
    """
    Tree-sitter parser for TypeScript-family sources.

    Usage::

        parser = TreeSitterParser()
        source = parser.parse(text, "app/page.tsx")
        for node in walk(source.root_node):
            ...
    """

    _parser: Any = field(default=None, repr=False)
    _languages: dict[str, Any] = field(default_factory=dict, repr=False)

    def __post_init__(self) -> None:
        """Initialize the parser."""
        self._parser = tree_sitter.Parser()
        self._languages = {}

    def _get_language(self, pack: LanguagePack) -> Any:
        """Get or load a Tree-sitter language."""
        if pack.name in self._languages:
            return self._languages[pack.name]
        try:
            mod = importlib.import_module(pack.grammar_module)
            lang_fn = getattr(mod, pack.language_func)
            lang = tree_sitter.Language(lang_fn())
        except (ImportError, AttributeError) as err:
            raise ParseError.language_unavailable(pack.name, str(err)) from err
        self._languages[pack.name] = lang
        return lang

    def parse(self, text: str, file_name: str = "file.tsx") -> SourceTree:
        """
        Parse source text with the grammar matching file_name.

        Args:
            text: Source text
            file_name: Used only for grammar selection

        Returns:
            SourceTree with tree and offset helpers.

        Raises:
            ParseError: If the grammar cannot be loaded or the input is not text.
        """
        if not isinstance(text, str):
            raise ParseError.failed(file_name, f"expected str, got {type(text).__name__}")

        pack = pack_for_file(file_name)
        self._parser.language = self._get_language(pack)
        try:
            tree = self._parser.parse(text.encode("utf-8"))
        except (ValueError, UnicodeEncodeError) as err:
            raise ParseError.failed(file_name, str(err)) from err

        return SourceTree(
            text=text,
            file_name=file_name,
            language=pack.name,
            tree=tree,
            root_node=tree.root_node,
            _char_map=_build_char_map(text),
        )


_PARSER: TreeSitterParser | None = None


def get_parser() -> TreeSitterParser:
    """Return the shared parser instance."""
    global _PARSER
    if _PARSER is None:
        _PARSER = TreeSitterParser()
    return _PARSER


def parse_source(text: str, file_name: str = "file.tsx") -> SourceTree | None:
    """Parse text, returning None instead of raising on infrastructure faults.

    Source that is transiently invalid while being edited still parses;
    None only means no tree could be produced at all.
    """
    try:
        return get_parser().parse(text, file_name)
    except ParseError as e:
        logger.warning("parse_failed", file_name=file_name, **e.to_dict())
        return None


# =============================================================================
# Node helpers
# =============================================================================

FUNCTION_LITERAL_TYPES = frozenset(
    {"arrow_function", "function_expression", "function", "generator_function"}
)
FUNCTION_DECLARATION_TYPES = frozenset(
    {"function_declaration", "generator_function_declaration"}
)
VARIABLE_STATEMENT_TYPES = frozenset({"lexical_declaration", "variable_declaration"})


def walk(node: Any) -> Iterator[Any]:
    """Pre-order traversal in document order."""
    stack = [node]
    while stack:
        current = stack.pop()
        yield current
        stack.extend(reversed(current.children))


def named_children(node: Any) -> list[Any]:
    """Named children without comments."""
    return [c for c in node.named_children if c.type != "comment"]


def first_named_child(node: Any) -> Any | None:
    children = named_children(node)
    return children[0] if children else None


def last_named_child(node: Any) -> Any | None:
    children = named_children(node)
    return children[-1] if children else None


def has_token(node: Any, token: str) -> bool:
    """Check for an anonymous keyword child (async, default, type, ...)."""
    return any(not c.is_named and c.type == token for c in node.children)


def is_async(node: Any) -> bool:
    return has_token(node, "async")


def is_exported(node: Any) -> bool:
    parent = node.parent
    return parent is not None and parent.type == "export_statement"


def is_default_export(node: Any) -> bool:
    parent = node.parent
    return parent is not None and parent.type == "export_statement" and has_token(parent, "default")


def string_literal_value(source: SourceTree, node: Any) -> str | None:
    """Return the content of a plain string literal, or None.

    Template literals without substitutions count as plain strings.
    """
    if node.type == "string":
        return source.node_text(node)[1:-1]
    if node.type == "template_string" and not any(
        c.type == "template_substitution" for c in node.children
    ):
        return source.node_text(node)[1:-1]
    return None


def first_argument(call_node: Any) -> Any | None:
    args = call_node.child_by_field_name("arguments")
    if args is None or args.type != "arguments":
        return None
    return first_named_child(args)


__all__ = [
    "LanguagePack",
    "PACKS",
    "SourceTree",
    "TreeSitterParser",
    "get_parser",
    "pack_for_file",
    "parse_source",
    "walk",
]
