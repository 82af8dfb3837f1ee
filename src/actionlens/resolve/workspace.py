"""Filesystem location provider.

Resolves identifiers by reading source files under a workspace root. It
understands enough of the module system to chase server actions across
files:

- local declarations (function, class, variable) in the same file
- default and named imports through relative specifiers
- namespace member access (ns.fn through import * as ns)
- re-exports: export { a } from, export { a as b } from, export * from
- local export lists and export default of an identifier

Bare package specifiers are not resolved. Every locate() answer is one hop;
the chaser in resolve.chaser decides how many hops to follow.
"""

from __future__ import annotations

import asyncio
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any
from urllib.parse import unquote, urlparse

import structlog

from actionlens.core.errors import ResolutionError
from actionlens.parsing.treesitter import (
    FUNCTION_DECLARATION_TYPES,
    FUNCTION_LITERAL_TYPES,
    VARIABLE_STATEMENT_TYPES,
    SourceTree,
    has_token,
    named_children,
    parse_source,
    string_literal_value,
    walk,
)
from actionlens.resolve.chaser import Document, Location

logger = structlog.get_logger()

# Probe order for extensionless relative specifiers
RESOLVE_EXTENSIONS: tuple[str, ...] = (".ts", ".tsx", ".mts", ".cts", ".js", ".jsx")

# import './x.js' in TypeScript refers to x.ts on disk
_EMITTED_TO_SOURCE: dict[str, tuple[str, ...]] = {
    ".js": (".ts", ".tsx"),
    ".jsx": (".tsx",),
    ".mjs": (".mts",),
    ".cjs": (".cts",),
}

_IDENTIFIER_TYPES = frozenset(
    {
        "identifier",
        "property_identifier",
        "shorthand_property_identifier",
        "type_identifier",
    }
)

_DECLARATION_TYPES = FUNCTION_DECLARATION_TYPES | {"class_declaration", "abstract_class_declaration"}


def _same_node(a: Any, b: Any) -> bool:
    return a.start_byte == b.start_byte and a.end_byte == b.end_byte and a.type == b.type


def _descend_to(source: SourceTree, offset: int) -> Any:
    node = source.root_node
    while True:
        for child in node.children:
            if source.start(child) <= offset < source.end(child):
                node = child
                break
        else:
            return node


def identifier_at(source: SourceTree, offset: int) -> Any | None:
    """Identifier under offset, or the one ending right before it."""
    for probe in (offset, offset - 1):
        if probe < 0:
            continue
        node = _descend_to(source, probe)
        if node.type in _IDENTIFIER_TYPES:
            return node
    return None


@dataclass
class ImportBindings:
    """Value imports of one module."""

    # local name -> (module specifier, imported name or "default")
    named: dict[str, tuple[str, str]] = field(default_factory=dict)
    # local namespace name -> module specifier
    namespaces: dict[str, str] = field(default_factory=dict)


def import_bindings(source: SourceTree) -> ImportBindings:
    bindings = ImportBindings()
    for stmt in named_children(source.root_node):
        if stmt.type != "import_statement" or has_token(stmt, "type"):
            continue
        src = stmt.child_by_field_name("source")
        specifier = string_literal_value(source, src) if src is not None else None
        if specifier is None:
            continue
        for clause in named_children(stmt):
            if clause.type != "import_clause":
                continue
            for child in named_children(clause):
                if child.type == "identifier":
                    bindings.named[source.node_text(child)] = (specifier, "default")
                elif child.type == "namespace_import":
                    for ident in named_children(child):
                        if ident.type == "identifier":
                            bindings.namespaces[source.node_text(ident)] = specifier
                elif child.type == "named_imports":
                    for spec in named_children(child):
                        if spec.type != "import_specifier" or has_token(spec, "type"):
                            continue
                        name = spec.child_by_field_name("name")
                        alias = spec.child_by_field_name("alias")
                        if name is None:
                            continue
                        local = alias if alias is not None else name
                        bindings.named[source.node_text(local)] = (specifier, source.node_text(name))
    return bindings


def declared_name_nodes(decl: Any) -> list[Any]:
    """Name nodes introduced by a declaration statement."""
    if decl.type in _DECLARATION_TYPES:
        name = decl.child_by_field_name("name")
        return [name] if name is not None else []
    if decl.type in VARIABLE_STATEMENT_TYPES:
        names = []
        for declarator in named_children(decl):
            if declarator.type != "variable_declarator":
                continue
            name = declarator.child_by_field_name("name")
            if name is not None and name.type == "identifier":
                names.append(name)
        return names
    return []


def find_local_declaration(source: SourceTree, name: str) -> Any | None:
    """First declaration of name in document order, at any depth."""
    for node in walk(source.root_node):
        if node.type in _DECLARATION_TYPES or node.type == "variable_declarator":
            name_node = node.child_by_field_name("name")
            if name_node is not None and source.node_text(name_node) == name:
                return name_node
    return None


@dataclass
class _CachedFile:
    mtime_ns: int
    text: str
    source: SourceTree | None = None


@dataclass
class WorkspaceLocationProvider:
    """LocationProvider over files under root.

    Document ids are file paths (absolute, or relative to root) or file://
    URIs. Locations it returns always carry absolute paths.
    """

    root: Path
    _cache: dict[Path, _CachedFile] = field(default_factory=dict, init=False, repr=False)

    def __post_init__(self) -> None:
        self.root = Path(self.root).resolve()

    # =========================================================================
    # Documents
    # =========================================================================

    def to_path(self, document_id: str) -> Path:
        raw = unquote(urlparse(document_id).path) if document_id.startswith("file://") else document_id
        path = Path(raw)
        if not path.is_absolute():
            path = self.root / path
        path = path.resolve()
        if not path.is_relative_to(self.root):
            raise ResolutionError.outside_root(document_id, str(self.root))
        return path

    def _load(self, path: Path) -> _CachedFile:
        try:
            mtime_ns = path.stat().st_mtime_ns
        except OSError as e:
            raise ResolutionError.document_not_found(str(path)) from e
        cached = self._cache.get(path)
        if cached is not None and cached.mtime_ns == mtime_ns:
            return cached
        try:
            text = path.read_text(encoding="utf-8", errors="replace")
        except OSError as e:
            raise ResolutionError.document_not_found(str(path)) from e
        cached = _CachedFile(mtime_ns=mtime_ns, text=text)
        self._cache[path] = cached
        return cached

    async def _file(self, path: Path) -> _CachedFile:
        loop = asyncio.get_running_loop()
        return await loop.run_in_executor(None, self._load, path)

    async def _source(self, path: Path) -> SourceTree | None:
        cached = await self._file(path)
        if cached.source is None:
            cached.source = parse_source(cached.text, path.name)
        return cached.source

    async def read(self, document_id: str) -> Document:
        path = self.to_path(document_id)
        cached = await self._file(path)
        return Document(document_id=str(path), text=cached.text, file_name=path.name)

    def resolve_module(self, from_path: Path, specifier: str) -> Path | None:
        """File a relative module specifier points at, or None."""
        if not (specifier in (".", "..") or specifier.startswith(("./", "../"))):
            return None
        base = from_path.parent / specifier
        candidates: list[Path] = [base.with_suffix(s) for s in _EMITTED_TO_SOURCE.get(base.suffix, ())]
        candidates.append(base)
        candidates.extend(base.with_name(base.name + ext) for ext in RESOLVE_EXTENSIONS)
        candidates.extend(base / f"index{ext}" for ext in RESOLVE_EXTENSIONS)
        for candidate in candidates:
            if candidate.is_file():
                resolved = candidate.resolve()
                if resolved.is_relative_to(self.root):
                    return resolved
        return None

    # =========================================================================
    # Locations
    # =========================================================================

    async def locate(self, document_id: str, offset: int) -> list[Location]:
        path = self.to_path(document_id)
        source = await self._source(path)
        if source is None:
            return []
        ident = identifier_at(source, offset)
        if ident is None:
            return []
        return await self._locate_identifier(source, path, ident)

    async def _locate_identifier(self, source: SourceTree, path: Path, ident: Any) -> list[Location]:
        name = source.node_text(ident)
        parent = ident.parent

        if parent is not None and parent.type == "member_expression":
            prop = parent.child_by_field_name("property")
            if prop is not None and _same_node(prop, ident):
                obj = parent.child_by_field_name("object")
                if obj is None or obj.type != "identifier":
                    return []
                specifier = import_bindings(source).namespaces.get(source.node_text(obj))
                if specifier is None:
                    return []
                return await self._exports_of(path, specifier, name)

        if parent is not None and parent.type == "export_specifier":
            original = parent.child_by_field_name("name")
            if original is not None:
                name = source.node_text(original)
            stmt = parent.parent.parent if parent.parent is not None else None
            src = stmt.child_by_field_name("source") if stmt is not None else None
            if src is not None:
                specifier = string_literal_value(source, src)
                return await self._exports_of(path, specifier, name) if specifier else []

        imported = import_bindings(source).named.get(name)
        if imported is not None:
            specifier, imported_name = imported
            return await self._exports_of(path, specifier, imported_name)

        decl = find_local_declaration(source, name)
        if decl is None:
            return []
        if not _same_node(decl, ident):
            return [Location(str(path), source.start(decl))]

        # Already on a declaration name: follow a plain alias (const run = save)
        declarator = decl.parent
        value = declarator.child_by_field_name("value") if declarator is not None else None
        if value is not None and value.type in ("identifier", "member_expression"):
            target = value.child_by_field_name("property") if value.type == "member_expression" else value
            if target is not None:
                return [Location(str(path), source.start(target))]
        return []

    async def _exports_of(
        self,
        from_path: Path,
        specifier: str,
        name: str,
        seen: set[Path] | None = None,
    ) -> list[Location]:
        """Where module specifier (relative to from_path) exports name."""
        target = self.resolve_module(from_path, specifier)
        if target is None:
            logger.debug("module_unresolved", path=str(from_path), specifier=specifier)
            return []
        seen = seen if seen is not None else set()
        if target in seen:
            return []
        seen.add(target)

        source = await self._source(target)
        if source is None:
            return []

        doc_id = str(target)
        star_sources: list[str] = []
        for stmt in named_children(source.root_node):
            if stmt.type != "export_statement":
                continue
            is_default = has_token(stmt, "default")
            decl = stmt.child_by_field_name("declaration")
            value = stmt.child_by_field_name("value")
            src = stmt.child_by_field_name("source")

            if decl is not None:
                if is_default:
                    if name != "default":
                        continue
                    name_node = decl.child_by_field_name("name")
                    anchor = name_node if name_node is not None else decl
                    return [Location(doc_id, source.start(anchor))]
                for name_node in declared_name_nodes(decl):
                    if source.node_text(name_node) == name:
                        return [Location(doc_id, source.start(name_node))]
                continue

            if value is not None:
                if not is_default or name != "default":
                    continue
                if value.type in FUNCTION_LITERAL_TYPES:
                    # Anonymous default: point into the body
                    body = value.child_by_field_name("body")
                    if body is not None:
                        return [Location(doc_id, source.start(body))]
                return [Location(doc_id, source.start(value))]

            clause = next((c for c in named_children(stmt) if c.type == "export_clause"), None)
            if clause is not None:
                for spec in named_children(clause):
                    if spec.type != "export_specifier":
                        continue
                    local = spec.child_by_field_name("name")
                    alias = spec.child_by_field_name("alias")
                    exported = alias if alias is not None else local
                    if local is not None and exported is not None and source.node_text(exported) == name:
                        return [Location(doc_id, source.start(local))]
                continue

            if src is not None and has_token(stmt, "*") and name != "default":
                if not any(c.type == "namespace_export" for c in named_children(stmt)):
                    star = string_literal_value(source, src)
                    if star:
                        star_sources.append(star)

        for star in star_sources:
            found = await self._exports_of(target, star, name, seen)
            if found:
                return found
        return []
