"""Call-site candidate extraction.

Syntax covered:
- JSX: <form action={...}>, <button formAction={...}>
- Direct calls: id(...), obj.id(...), optional chaining variants
- Calls inside startTransition(() => id(...))
- The first argument of useActionState(id, ...)

Candidates are syntactic only; the Correlator decides which of them really
reach an action definition. Duplicates are suppressed by span alone, since
the same call may be discovered by more than one rule.
"""

from __future__ import annotations

from typing import Any

from actionlens.extraction.models import (
    AttributeEntry,
    CallCandidate,
    DirectCall,
    HookArgument,
    WrappedCall,
)
from actionlens.parsing.treesitter import (
    FUNCTION_LITERAL_TYPES,
    SourceTree,
    first_argument,
    first_named_child,
    last_named_child,
    named_children,
    parse_source,
    walk,
)

ENTRY_ATTRIBUTES = frozenset({"action", "formAction"})
TRANSITION_WRAPPERS = frozenset({"startTransition"})
# useFormState is the pre-React-19 name of useActionState
ACTION_HOOKS = frozenset({"useActionState", "useFormState"})

MAX_UNWRAP_DEPTH = 8

_TRANSPARENT_WRAPPERS = frozenset(
    {"parenthesized_expression", "non_null_expression", "as_expression", "satisfies_expression"}
)


def unwrap_expression(node: Any) -> Any:
    """Strip parentheses, non-null assertions, casts and satisfies.

    Bounded to MAX_UNWRAP_DEPTH layers to avoid pathological nesting.
    """
    current = node
    for _ in range(MAX_UNWRAP_DEPTH):
        if current.type in _TRANSPARENT_WRAPPERS:
            inner = first_named_child(current)
        elif current.type == "type_assertion":
            # <T>expr: the expression follows the type arguments
            inner = last_named_child(current)
        else:
            break
        if inner is None:
            break
        current = inner
    return current


def callee_identifier(callee: Any) -> Any | None:
    """Identifier of a callee: id, or the tail name of obj.id / a.b.id."""
    node = unwrap_expression(callee)
    if node.type == "identifier":
        return node
    if node.type == "member_expression":
        prop = node.child_by_field_name("property")
        if prop is not None and prop.type == "property_identifier":
            return prop
    return None


def qualifier_identifier(callee: Any) -> Any | None:
    """Base identifier of a one-level property access (ns in ns.fn())."""
    node = unwrap_expression(callee)
    if node.type != "member_expression":
        return None
    obj = node.child_by_field_name("object")
    if obj is not None and obj.type == "identifier":
        return obj
    return None


def _is_plain_call(node: Any) -> bool:
    # Tagged templates share the call_expression node type
    args = node.child_by_field_name("arguments")
    return args is not None and args.type == "arguments"


class _CallCollector:
    def __init__(self, source: SourceTree) -> None:
        self.source = source
        self.candidates: list[CallCandidate] = []
        self._seen: set[tuple[int, int]] = set()

    def push(self, candidate: CallCandidate) -> None:
        key = (candidate.start, candidate.end)
        if key in self._seen:
            return
        self._seen.add(key)
        self.candidates.append(candidate)

    def _call_parts(self, node: Any) -> tuple[Any, Any | None] | None:
        if not _is_plain_call(node):
            return None
        callee = node.child_by_field_name("function")
        if callee is None:
            return None
        ident = callee_identifier(callee)
        if ident is None:
            return None
        return ident, qualifier_identifier(callee)

    def visit_jsx_attribute(self, node: Any) -> None:
        children = named_children(node)
        if len(children) < 2:
            return
        name_node, value = children[0], children[-1]
        attribute = self.source.node_text(name_node)
        if attribute not in ENTRY_ATTRIBUTES or value.type != "jsx_expression":
            return
        expr = first_named_child(value)
        if expr is None or expr.type == "spread_element":
            return
        self.push(
            AttributeEntry(
                attribute=attribute,  # type: ignore[arg-type]
                start=self.source.start(expr),
                end=self.source.end(expr),
            )
        )

    def visit_call(self, node: Any) -> None:
        parts = self._call_parts(node)
        if parts is None:
            return
        ident, qualifier = parts
        callee_name = self.source.node_text(ident)
        self.push(
            DirectCall(
                start=self.source.start(ident),
                end=self.source.end(node),
                callee_name=callee_name,
                qualifier_name=self.source.node_text(qualifier) if qualifier is not None else None,
            )
        )

        if callee_name in TRANSITION_WRAPPERS:
            self._visit_wrapper(node, callee_name)
        elif callee_name in ACTION_HOOKS:
            self._visit_hook(node, callee_name)

    def _visit_wrapper(self, node: Any, wrapper: str) -> None:
        arg = first_argument(node)
        if arg is None or arg.type not in FUNCTION_LITERAL_TYPES:
            return
        body = arg.child_by_field_name("body")
        if body is None:
            return
        for inner in walk(body):
            if inner.type != "call_expression":
                continue
            parts = self._call_parts(inner)
            if parts is None:
                continue
            ident, qualifier = parts
            self.push(
                WrappedCall(
                    start=self.source.start(ident),
                    end=self.source.end(inner),
                    callee_name=self.source.node_text(ident),
                    wrapper=wrapper,
                    qualifier_name=(
                        self.source.node_text(qualifier) if qualifier is not None else None
                    ),
                )
            )

    def _visit_hook(self, node: Any, hook: str) -> None:
        arg = first_argument(node)
        if arg is None or arg.type != "identifier":
            return
        self.push(
            HookArgument(
                start=self.source.start(arg),
                end=self.source.end(arg),
                callee_name=self.source.node_text(arg),
                hook=hook,
            )
        )


def scan_call_sites(source: SourceTree) -> list[CallCandidate]:
    """Extract call candidates from an already parsed source."""
    collector = _CallCollector(source)
    for node in walk(source.root_node):
        if node.type == "jsx_attribute":
            collector.visit_jsx_attribute(node)
        elif node.type == "call_expression":
            collector.visit_call(node)
    return collector.candidates


def extract_call_sites(source_text: str, file_name: str = "file.tsx") -> list[CallCandidate]:
    """Extract call-site candidates from source text.

    Pure and deterministic. Returns an empty list when no tree can be built.
    """
    source = parse_source(source_text, file_name)
    if source is None:
        return []
    return scan_call_sites(source)
