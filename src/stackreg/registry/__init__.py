"""stackreg registry and module discovery system.

Provides source scanning, module loading, version resolution, compatibility
checks and search over the module catalog.

Usage::

    from stackreg.registry import Registry

    registry = Registry()
    count = registry.initialize()
    vue = registry.get_module("vue3", "^1.0.0")
"""

from __future__ import annotations

from stackreg.registry.compatibility import (
    CompatibilityResult,
    CompatibilityRule,
    StackReport,
    check_stack,
    explain_compatibility,
    is_compatible,
)
from stackreg.registry.loader import LoadResult, ModuleLoader
from stackreg.registry.registry import CompatibilityReport, Registry
from stackreg.registry.scanner import scan_source, scan_sources
from stackreg.registry.search import SearchEngine, SearchIndexEntry, SearchResult
from stackreg.registry.types import CandidateKind, CatalogEntry, RawCandidate, Source, SourceType, default_sources
from stackreg.registry.validation import build_descriptor, validate_descriptor
from stackreg.registry.versions import (
    VersionedCatalog,
    compare_versions,
    is_stable,
    satisfies,
    sort_versions,
)

__all__ = [
    "CandidateKind",
    "CatalogEntry",
    "CompatibilityReport",
    "CompatibilityResult",
    "CompatibilityRule",
    "LoadResult",
    "ModuleLoader",
    "RawCandidate",
    "Registry",
    "SearchEngine",
    "SearchIndexEntry",
    "SearchResult",
    "Source",
    "SourceType",
    "StackReport",
    "VersionedCatalog",
    "build_descriptor",
    "check_stack",
    "compare_versions",
    "default_sources",
    "explain_compatibility",
    "is_compatible",
    "is_stable",
    "satisfies",
    "scan_source",
    "scan_sources",
    "sort_versions",
    "validate_descriptor",
]
