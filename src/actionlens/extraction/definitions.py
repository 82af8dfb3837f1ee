"""Server action definition extraction.

A function is an action definition when it is async and either
- the module prologue starts with 'use server' and the function is exported, or
- its own body prologue starts with 'use server'.

Module-private helpers must carry the directive themselves; a module-level
directive alone does not qualify them.

Targets:
- export async function / export default async function
- local async function declarations (any depth)
- const x = async () => {} / async function () {}
- async literals nested in an initializer (builder/factory chains), reported
  under the variable name
- any async literal whose body starts with the directive (e.g. inline in a
  JSX attribute), reported as "(inline)"
"""

from __future__ import annotations

from typing import Any

from actionlens.extraction.models import (
    ANONYMOUS_NAME,
    DEFAULT_NAME,
    INLINE_NAME,
    ActionDefinitionSpan,
)
from actionlens.parsing.treesitter import (
    FUNCTION_DECLARATION_TYPES,
    FUNCTION_LITERAL_TYPES,
    VARIABLE_STATEMENT_TYPES,
    SourceTree,
    first_named_child,
    is_async,
    is_default_export,
    is_exported,
    named_children,
    parse_source,
    string_literal_value,
    walk,
)

USE_SERVER = "use server"

_PROLOGUE_SKIP_TYPES = frozenset({"comment", "hash_bang_line"})


def has_directive_prologue(source: SourceTree, block: Any, directive: str = USE_SERVER) -> bool:
    """Check whether the leading string statements of a block include directive."""
    for stmt in block.named_children:
        if stmt.type in _PROLOGUE_SKIP_TYPES:
            continue
        if stmt.type != "expression_statement":
            break
        expr = first_named_child(stmt)
        value = string_literal_value(source, expr) if expr is not None else None
        if value is None:
            break
        if value == directive:
            return True
    return False


def _function_has_directive(source: SourceTree, fn: Any) -> bool:
    # Expression-bodied arrows cannot carry directives
    body = fn.child_by_field_name("body")
    if body is None or body.type != "statement_block":
        return False
    return has_directive_prologue(source, body)


class _DefinitionCollector:
    """Accumulates spans in discovery order, suppressing repeated bodies."""

    def __init__(self, source: SourceTree) -> None:
        self.source = source
        self.module_directive = has_directive_prologue(source, source.root_node)
        self.spans: list[ActionDefinitionSpan] = []
        self._seen: set[tuple[int, int]] = set()

    def eligible(self, fn: Any, exported: bool) -> bool:
        if not is_async(fn):
            return False
        if _function_has_directive(self.source, fn):
            return True
        return exported and self.module_directive

    def push(self, name: str, fn: Any, name_node: Any | None = None) -> None:
        body = fn.child_by_field_name("body")
        if body is None:
            return
        start, end = self.source.start(body), self.source.end(body)
        if (start, end) in self._seen:
            return
        self._seen.add((start, end))
        self.spans.append(
            ActionDefinitionSpan(
                name=name,
                body_start=start,
                body_end=end,
                name_start=self.source.start(name_node) if name_node is not None else None,
                name_end=self.source.end(name_node) if name_node is not None else None,
            )
        )

    def visit_function_declaration(self, node: Any) -> None:
        exported = is_exported(node)
        if not self.eligible(node, exported):
            return
        name_node = node.child_by_field_name("name")
        if name_node is not None:
            name = self.source.node_text(name_node)
        else:
            name = DEFAULT_NAME if is_default_export(node) else ANONYMOUS_NAME
        self.push(name, node, name_node)

    def visit_variable_statement(self, node: Any) -> None:
        exported = is_exported(node)
        for decl in named_children(node):
            if decl.type != "variable_declarator":
                continue
            name_node = decl.child_by_field_name("name")
            init = decl.child_by_field_name("value")
            if name_node is None or name_node.type != "identifier" or init is None:
                continue
            name = self.source.node_text(name_node)
            # Covers the direct assignment (init itself) and builder/factory nesting
            for inner in walk(init):
                if inner.type in FUNCTION_LITERAL_TYPES and self.eligible(inner, exported):
                    self.push(name, inner, name_node)

    def visit_function_literal(self, node: Any) -> None:
        if node.type != "arrow_function" and is_default_export(node):
            # export default async function () {} is a declaration, not a literal
            self.visit_function_declaration(node)
        if is_async(node) and _function_has_directive(self.source, node):
            self.push(INLINE_NAME, node)


def scan_definitions(source: SourceTree) -> list[ActionDefinitionSpan]:
    """Extract action definitions from an already parsed source."""
    collector = _DefinitionCollector(source)
    for node in walk(source.root_node):
        if node.type in FUNCTION_DECLARATION_TYPES:
            collector.visit_function_declaration(node)
        elif node.type in VARIABLE_STATEMENT_TYPES:
            collector.visit_variable_statement(node)
        elif node.type in FUNCTION_LITERAL_TYPES:
            collector.visit_function_literal(node)
    return collector.spans


def extract_definitions(source_text: str, file_name: str = "file.tsx") -> list[ActionDefinitionSpan]:
    """Extract server action definitions from source text.

    Pure and deterministic. Returns an empty list when no tree can be built.
    """
    source = parse_source(source_text, file_name)
    if source is None:
        return []
    return scan_definitions(source)
