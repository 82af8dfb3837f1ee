"""Per-file name collectors used to pre-filter call candidates."""

from __future__ import annotations

from collections.abc import Iterator
from typing import Any

from actionlens.extraction.models import NameSets
from actionlens.parsing.treesitter import (
    FUNCTION_DECLARATION_TYPES,
    FUNCTION_LITERAL_TYPES,
    VARIABLE_STATEMENT_TYPES,
    SourceTree,
    has_token,
    named_children,
    parse_source,
    walk,
)


def _value_import_clauses(source: SourceTree) -> Iterator[Any]:
    """import_clause nodes of top-level, non type-only import statements."""
    for stmt in named_children(source.root_node):
        if stmt.type != "import_statement" or has_token(stmt, "type"):
            continue
        for child in named_children(stmt):
            if child.type == "import_clause":
                yield child


def imported_names(source: SourceTree) -> set[str]:
    """Default and named import local bindings (alias-aware).

    Namespace imports are excluded: a call through one names a property,
    never the binding itself.
    """
    names: set[str] = set()
    for clause in _value_import_clauses(source):
        for child in named_children(clause):
            if child.type == "identifier":
                names.add(source.node_text(child))
            elif child.type == "named_imports":
                for spec in named_children(child):
                    if spec.type != "import_specifier" or has_token(spec, "type"):
                        continue
                    local = spec.child_by_field_name("alias")
                    if local is None:
                        local = spec.child_by_field_name("name")
                    if local is not None and local.type == "identifier":
                        names.add(source.node_text(local))
    return names


def namespace_import_names(source: SourceTree) -> set[str]:
    """Local names of import * as ns, excluding type-only imports."""
    names: set[str] = set()
    for clause in _value_import_clauses(source):
        for child in named_children(clause):
            if child.type != "namespace_import":
                continue
            for ident in named_children(child):
                if ident.type == "identifier":
                    names.add(source.node_text(ident))
    return names


def _contains_function_literal(node: Any) -> bool:
    return any(n.type in FUNCTION_LITERAL_TYPES for n in walk(node))


def local_callable_names(source: SourceTree) -> set[str]:
    """Names that can be called within this file.

    - Function declarations
    - Variables bound to a function/arrow literal
    - Variables whose initializer contains one anywhere (builder/factory style)
    """
    names: set[str] = set()
    for node in walk(source.root_node):
        if node.type in FUNCTION_DECLARATION_TYPES:
            name_node = node.child_by_field_name("name")
            if name_node is not None:
                names.add(source.node_text(name_node))
        elif node.type in VARIABLE_STATEMENT_TYPES:
            for decl in named_children(node):
                if decl.type != "variable_declarator":
                    continue
                name_node = decl.child_by_field_name("name")
                init = decl.child_by_field_name("value")
                if name_node is None or name_node.type != "identifier" or init is None:
                    continue
                # any() stops at the first literal found
                if _contains_function_literal(init):
                    names.add(source.node_text(name_node))
    return names


def collect_imported_names(source_text: str, file_name: str = "file.tsx") -> set[str]:
    source = parse_source(source_text, file_name)
    return imported_names(source) if source is not None else set()


def collect_local_callable_names(source_text: str, file_name: str = "file.tsx") -> set[str]:
    source = parse_source(source_text, file_name)
    return local_callable_names(source) if source is not None else set()


def collect_namespace_import_names(source_text: str, file_name: str = "file.tsx") -> set[str]:
    source = parse_source(source_text, file_name)
    return namespace_import_names(source) if source is not None else set()


def scan_name_sets(source: SourceTree) -> NameSets:
    """All three name sets from one parsed source."""
    return NameSets(
        imported=frozenset(imported_names(source)),
        local_callables=frozenset(local_callable_names(source)),
        namespace_imports=frozenset(namespace_import_names(source)),
    )


def collect_name_sets(source_text: str, file_name: str = "file.tsx") -> NameSets:
    source = parse_source(source_text, file_name)
    return scan_name_sets(source) if source is not None else NameSets()
