"""Tree-sitter parsing layer."""

from actionlens.parsing.treesitter import (
    PACKS,
    LanguagePack,
    SourceTree,
    TreeSitterParser,
    get_parser,
    pack_for_file,
    parse_source,
    walk,
)

__all__ = [
    "PACKS",
    "LanguagePack",
    "SourceTree",
    "TreeSitterParser",
    "get_parser",
    "pack_for_file",
    "parse_source",
    "walk",
]
