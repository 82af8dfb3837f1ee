"""Syntactic extraction: definitions, call candidates, name sets."""

from actionlens.extraction.calls import extract_call_sites, scan_call_sites
from actionlens.extraction.definitions import extract_definitions, scan_definitions
from actionlens.extraction.models import (
    ActionDefinitionSpan,
    AttributeEntry,
    CallCandidate,
    CandidateKind,
    DirectCall,
    HookArgument,
    NameSets,
    OffsetRange,
    WrappedCall,
)
from actionlens.extraction.names import (
    collect_imported_names,
    collect_local_callable_names,
    collect_name_sets,
    collect_namespace_import_names,
    scan_name_sets,
)

__all__ = [
    "extract_call_sites",
    "extract_definitions",
    "scan_call_sites",
    "scan_definitions",
    "scan_name_sets",
    "collect_imported_names",
    "collect_local_callable_names",
    "collect_name_sets",
    "collect_namespace_import_names",
    "ActionDefinitionSpan",
    "AttributeEntry",
    "CallCandidate",
    "CandidateKind",
    "DirectCall",
    "HookArgument",
    "NameSets",
    "OffsetRange",
    "WrappedCall",
]
