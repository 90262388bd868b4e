"""Central module registry: discovery, version resolution and queries."""

from __future__ import annotations

import asyncio
import logging
import threading
import time
from collections import Counter
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Coroutine, Iterable

from stackreg.cache import MISS, CacheManager
from stackreg.config import Config
from stackreg.errors import InvalidInputError, RegistryUnusableError
from stackreg.module import ModuleDescriptor, ModuleType
from stackreg.registry.compatibility import (
    CompatibilityResult,
    StackReport,
    check_stack,
    explain_compatibility,
    is_compatible,
    normalize_single_select,
)
from stackreg.registry.loader import LoadResult, ModuleLoader
from stackreg.registry.scanner import scan_source
from stackreg.registry.search import SearchEngine, SearchResult
from stackreg.registry.types import CatalogEntry, Source, default_sources
from stackreg.registry.versions import VersionedCatalog

logger = logging.getLogger(__name__)

__all__ = ["CompatibilityReport", "Registry"]

MAX_ALTERNATIVES = 3


@dataclass(frozen=True)
class _Snapshot:
    """Immutable view served to readers; replaced wholesale on refresh."""

    catalog: VersionedCatalog
    search: SearchEngine
    init_time_ms: float = 0.0


@dataclass(frozen=True)
class CompatibilityReport:
    """Verdict for two catalog modules plus replacements for the second."""

    a: ModuleDescriptor
    b: ModuleDescriptor
    result: CompatibilityResult
    alternatives: list[ModuleDescriptor] = field(default_factory=list)

    @property
    def compatible(self) -> bool:
        return self.result.compatible

    @property
    def reason(self) -> str:
        return self.result.reason

    def to_dict(self) -> dict[str, Any]:
        return {
            "a": self.a.id,
            "b": self.b.id,
            "compatible": self.compatible,
            "reason": self.reason,
            "rule": self.result.rule.value,
            "alternatives": [m.id for m in self.alternatives],
        }


def _coerce_type(value: str | ModuleType) -> ModuleType:
    if isinstance(value, ModuleType):
        return value
    try:
        return ModuleType(value)
    except ValueError as e:
        valid = ", ".join(t.value for t in ModuleType)
        raise InvalidInputError(message=f"Unknown module type '{value}'. Valid types: {valid}", cause=e) from e


def _require_id(module_id: str) -> str:
    if not isinstance(module_id, str) or not module_id.strip():
        raise InvalidInputError(message="Module id must be a non-empty string")
    return module_id.strip()


class Registry:
    """Catalog of stack modules discovered from prioritised sources.

    Construct one per process (or per test) and call :meth:`initialize`;
    query methods initialize lazily if that has not happened yet. All
    queries read the current snapshot, so they never observe a half-built
    catalog while :meth:`reload_module` or a forced refresh is running.
    """

    def __init__(
        self,
        config: Config | None = None,
        sources: Iterable[Source] | None = None,
        cache: CacheManager | None = None,
        loader: ModuleLoader | None = None,
    ) -> None:
        """Initialize the Registry.

        Args:
            config: Settings; defaults are used when omitted.
            sources: Source list overriding the configured/default one.
            cache: Cache for loaded descriptors and the search index. When
                omitted one is built from ``cache.*`` settings, unless
                ``cache.enabled`` is false.
            loader: Module loader; defaults to one using the built-in
                factory table and ``cache``.
        """
        self._config = config if config is not None else Config()
        self._sources: list[Source] = list(sources) if sources is not None else default_sources(self._config)

        if cache is None and loader is None and self._config.get("cache.enabled", True):
            cache = CacheManager.from_config(self._config)
        self._cache = cache if cache is not None else (loader.cache if loader is not None else None)
        self._loader = loader if loader is not None else ModuleLoader.from_config(self._config, cache=self._cache)

        self._single_select = normalize_single_select(self._config.get("registry.single_select_types"))
        self._search_ttl = float(self._config.get("cache.search_ttl_seconds", 1800))
        self._lock = threading.RLock()
        self._snapshot: _Snapshot | None = None

    # ----- Lifecycle -----

    @property
    def sources(self) -> list[Source]:
        return list(self._sources)

    @property
    def cache(self) -> CacheManager | None:
        return self._cache

    @property
    def is_initialized(self) -> bool:
        return self._snapshot is not None

    def initialize(self, force: bool = False) -> int:
        """Discover, load and index every module.

        A no-op on an initialized registry unless ``force`` is set; a forced
        refresh also ignores cached results (fresh results are still
        written back).

        Returns:
            Number of distinct module ids in the catalog.

        Raises:
            RegistryUnusableError: If no source directory exists or no
                module could be loaded from any of them.
        """
        with self._lock:
            if self._snapshot is not None and not force:
                return len(self._snapshot.catalog)

            present = [s for s in self._sources if Path(s.path).is_dir()]
            if not present:
                searched = ", ".join(str(s.path) for s in self._sources) or "(none configured)"
                raise RegistryUnusableError(f"no module source directory exists (searched: {searched})")

            start = time.perf_counter()
            self._loader.reset_timings()
            per_source = self._run_discovery(use_cache=not force)

            catalog = VersionedCatalog()
            ordered = sorted(enumerate(per_source), key=lambda item: (self._sources[item[0]].priority, item[0]))
            for _, results in ordered:
                for result in results:
                    catalog.register(result.to_entry())

            if len(catalog) == 0:
                raise RegistryUnusableError("no modules were discovered in any source")

            search = self._build_search(catalog, use_cache=not force)
            elapsed_ms = (time.perf_counter() - start) * 1000
            self._snapshot = _Snapshot(catalog=catalog, search=search, init_time_ms=elapsed_ms)

            logger.info(
                "Module registry initialized: %d modules (%d versions) from %d source(s) in %.1fms",
                len(catalog),
                catalog.total_versions,
                len(present),
                elapsed_ms,
            )
            return len(catalog)

    def reload_module(self, module_id: str) -> bool:
        """Reload one module from its source, bypassing the cache.

        Builds a new snapshot with the entry replaced and the search index
        rebuilt, then swaps it in. Returns False (leaving the catalog as it
        was) when the module is unknown or fails to load.
        """
        module_id = _require_id(module_id)
        with self._lock:
            snapshot = self._current()
            entry = self._entry_from(snapshot.catalog, module_id, None)
            if entry is None:
                logger.warning("Cannot reload unknown module '%s'", module_id)
                return False

            result = self._loader.load_result(entry.candidate, use_cache=False)
            if result is None:
                return False
            if result.descriptor.id != module_id:
                logger.warning(
                    "Reloaded module at %s now declares id '%s', expected '%s'",
                    entry.path,
                    result.descriptor.id,
                    module_id,
                )
                return False

            catalog = snapshot.catalog.copy()
            catalog.replace(result.to_entry())
            search = SearchEngine()
            search.build_index(e.descriptor for e in catalog.latest_entries())
            self._snapshot = _Snapshot(catalog=catalog, search=search, init_time_ms=snapshot.init_time_ms)
            logger.info("Reloaded module '%s' at version %s", module_id, result.descriptor.version)
            return True

    def clear(self) -> None:
        """Drop the catalog; the next query re-runs discovery."""
        with self._lock:
            self._snapshot = None
            self._loader.reset_timings()

    def clear_cache(self) -> None:
        """Empty both cache tiers."""
        if self._cache is not None:
            self._cache.clear()

    # ----- Lookup -----

    def get_module(self, module_id: str, version: str | None = None) -> ModuleDescriptor | None:
        """Return a module descriptor, or None when nothing matches.

        ``version`` may be an exact version or a range (``^1.2.0``); when
        omitted the latest version is returned.
        """
        entry = self.get_entry(module_id, version)
        return entry.descriptor if entry is not None else None

    def get_entry(self, module_id: str, version: str | None = None) -> CatalogEntry | None:
        """Like :meth:`get_module` but includes the source the module came from."""
        module_id = _require_id(module_id)
        return self._entry_from(self._current().catalog, module_id, version)

    def has_module(self, module_id: str) -> bool:
        return module_id in self._current().catalog

    def list_modules(
        self, type: str | ModuleType | None = None, category: str | None = None
    ) -> list[ModuleDescriptor]:
        """Latest version of every module, ordered by id."""
        wanted = _coerce_type(type) if type is not None else None
        modules = []
        for entry in self._current().catalog.latest_entries():
            descriptor = entry.descriptor
            if wanted is not None and descriptor.module_type != wanted:
                continue
            if category is not None and descriptor.category != category:
                continue
            modules.append(descriptor)
        return modules

    def get_modules_by_type(self, type: str | ModuleType) -> list[ModuleDescriptor]:
        return self.list_modules(type=type)

    def get_modules_by_category(self, category: str) -> list[ModuleDescriptor]:
        return self.list_modules(category=category)

    # ----- Versions -----

    def versions(self, module_id: str) -> list[str]:
        return self._current().catalog.versions(module_id)

    def latest_version(self, module_id: str, stable: bool = False) -> str | None:
        catalog = self._current().catalog
        return catalog.latest_stable(module_id) if stable else catalog.latest(module_id)

    def resolve_version(self, module_id: str, constraint: str | None) -> str | None:
        return self._current().catalog.resolve(module_id, constraint)

    # ----- Search -----

    def search(
        self,
        query: str,
        type: str | ModuleType | None = None,
        category: str | None = None,
        limit: int | None = None,
    ) -> list[SearchResult]:
        wanted = _coerce_type(type) if type is not None else None
        return self._current().search.search(query, type=wanted, category=category, limit=limit)

    def search_modules(
        self,
        query: str,
        type: str | ModuleType | None = None,
        category: str | None = None,
        limit: int | None = None,
    ) -> list[ModuleDescriptor]:
        """Ranked search returning descriptors."""
        results = self.search(query, type=type, category=category, limit=limit)
        return [r.module for r in results if r.module is not None]

    def get_suggestions(self, partial: str, limit: int = 5) -> list[str]:
        return self._current().search.get_suggestions(partial, limit=limit)

    def find_similar(self, module_id: str, limit: int = 5) -> list[ModuleDescriptor]:
        results = self._current().search.find_similar(module_id, limit=limit)
        return [r.module for r in results if r.module is not None]

    def get_recommendations(self, selected: Iterable[str], limit: int = 5) -> list[ModuleDescriptor]:
        results = self._current().search.get_recommendations(
            selected, limit=limit, single_select_types=self._single_select
        )
        return [r.module for r in results if r.module is not None]

    # ----- Compatibility -----

    def get_compatible_modules(
        self, type: str | ModuleType, modules: Iterable[str] = ()
    ) -> list[ModuleDescriptor]:
        """Modules of ``type`` compatible with every already-chosen id.

        Unknown ids in ``modules`` are ignored.
        """
        chosen: list[ModuleDescriptor] = []
        for module_id in modules:
            descriptor = self.get_module(module_id)
            if descriptor is not None:
                chosen.append(descriptor)
        chosen_ids = {m.id for m in chosen}

        return [
            candidate
            for candidate in self.get_modules_by_type(type)
            if candidate.id not in chosen_ids
            and all(is_compatible(candidate, existing, self._single_select) for existing in chosen)
        ]

    def check_compatibility(self, a_id: str, b_id: str) -> CompatibilityReport | None:
        """Explain whether two modules work together.

        When they do not, up to three modules of ``b``'s type that are
        compatible with ``a`` are offered as alternatives. Returns None if
        either id is unknown.
        """
        a = self.get_module(a_id)
        b = self.get_module(b_id)
        if a is None or b is None:
            return None

        result = explain_compatibility(a, b, self._single_select)
        alternatives: list[ModuleDescriptor] = []
        if not result.compatible:
            alternatives = [m for m in self.get_compatible_modules(b.module_type, [a.id]) if m.id != b.id][
                :MAX_ALTERNATIVES
            ]
        return CompatibilityReport(a=a, b=b, result=result, alternatives=alternatives)

    def check_stack(self, module_ids: Iterable[str]) -> StackReport:
        """Check every pair in a selection plus each module's requirements."""
        found: list[ModuleDescriptor] = []
        unknown: list[str] = []
        for module_id in dict.fromkeys(module_ids):
            descriptor = self.get_module(module_id)
            if descriptor is None:
                unknown.append(module_id)
            else:
                found.append(descriptor)
        report = check_stack(found, self._single_select)
        report.unknown.extend(unknown)
        return report

    def get_compatible_versions(self, module_id: str, with_id: str) -> list[str]:
        """Versions of ``module_id`` compatible with the latest ``with_id``, highest first."""
        other = self.get_module(with_id)
        if other is None:
            return []
        catalog = self._current().catalog
        compatible = []
        for version in catalog.versions(module_id):
            entry = catalog.get(module_id, version)
            if entry is not None and is_compatible(entry.descriptor, other, self._single_select):
                compatible.append(version)
        return compatible

    # ----- Introspection -----

    def get_stats(self) -> dict[str, Any]:
        """Catalog totals, per-type/category/source counts, load timings and cache metrics."""
        snapshot = self._current()
        catalog = snapshot.catalog
        latest = list(catalog.latest_entries())
        load_times = self._loader.load_times

        return {
            "totalModules": len(catalog),
            "totalVersions": catalog.total_versions,
            "byType": dict(sorted(Counter(e.descriptor.module_type.value for e in latest).items())),
            "byCategory": dict(sorted(Counter(e.descriptor.category for e in latest).items())),
            "bySource": dict(sorted(Counter(e.source.type.value for e in latest).items())),
            "sources": [dict(s.to_dict(), exists=Path(s.path).is_dir()) for s in self._sources],
            "fromCache": sum(1 for e in catalog.entries() if e.from_cache),
            "initTimeMs": snapshot.init_time_ms,
            "loadTimes": load_times,
            "averageLoadTimeMs": sum(load_times.values()) / len(load_times) if load_times else 0.0,
            "slowModules": [{"id": mid, "ms": ms} for mid, ms in self._loader.slow_modules()],
            "cache": self._cache.stats().to_dict() if self._cache is not None else None,
        }

    def export_state(self) -> dict[str, Any]:
        """Debug dump of every catalog entry and the cache."""
        snapshot = self._snapshot
        modules: dict[str, dict[str, Any]] = {}
        if snapshot is not None:
            for entry in snapshot.catalog.entries():
                modules.setdefault(entry.descriptor.id, {})[entry.descriptor.version] = {
                    "source": entry.source.type.value,
                    "path": str(entry.path),
                    "kind": entry.kind.value,
                    "loadTimeMs": entry.load_time_ms,
                    "fromCache": entry.from_cache,
                }
        return {
            "initialized": snapshot is not None,
            "sources": [s.to_dict() for s in self._sources],
            "modules": modules,
            "cache": self._cache.export_state() if self._cache is not None else None,
        }

    def __len__(self) -> int:
        snapshot = self._snapshot
        return len(snapshot.catalog) if snapshot is not None else 0

    def __contains__(self, module_id: object) -> bool:
        snapshot = self._snapshot
        return snapshot is not None and module_id in snapshot.catalog

    # ----- Internals -----

    def _current(self) -> _Snapshot:
        snapshot = self._snapshot
        if snapshot is None:
            self.initialize()
            snapshot = self._snapshot
            assert snapshot is not None
        return snapshot

    @staticmethod
    def _entry_from(catalog: VersionedCatalog, module_id: str, version: str | None) -> CatalogEntry | None:
        if version is not None:
            exact = catalog.get(module_id, version)
            if exact is not None:
                return exact
            resolved = catalog.resolve(module_id, version)
        else:
            resolved = catalog.latest(module_id)
        return catalog.get(module_id, resolved) if resolved is not None else None

    def _scan_and_load(self, source: Source, index: int, use_cache: bool) -> list[LoadResult]:
        candidates = scan_source(source, index)
        return self._loader.load_all(candidates, use_cache=use_cache)

    async def _discover(self, use_cache: bool) -> list[list[LoadResult]]:
        tasks = [
            asyncio.to_thread(self._scan_and_load, source, index, use_cache)
            for index, source in enumerate(self._sources)
        ]
        return list(await asyncio.gather(*tasks))

    def _run_discovery(self, use_cache: bool) -> list[list[LoadResult]]:
        """Run discovery from sync code, with or without a running event loop."""
        try:
            asyncio.get_running_loop()
            has_loop = True
        except RuntimeError:
            has_loop = False

        if not has_loop:
            return asyncio.run(self._discover(use_cache))
        return self._run_in_new_thread(self._discover(use_cache))

    @staticmethod
    def _run_in_new_thread(coro: Coroutine[Any, Any, list[list[LoadResult]]]) -> list[list[LoadResult]]:
        """Run coroutine in a new thread with its own event loop."""
        result_holder: dict[str, list[list[LoadResult]]] = {}
        exception_holder: dict[str, BaseException] = {}

        def thread_target() -> None:
            loop = asyncio.new_event_loop()
            asyncio.set_event_loop(loop)
            try:
                result_holder["output"] = loop.run_until_complete(coro)
            except Exception as e:
                exception_holder["error"] = e
            finally:
                loop.close()

        thread = threading.Thread(target=thread_target, daemon=True)
        thread.start()
        thread.join()

        if "error" in exception_holder:
            raise exception_holder["error"]
        return result_holder["output"]

    def _build_search(self, catalog: VersionedCatalog, use_cache: bool) -> SearchEngine:
        modules = [e.descriptor for e in catalog.latest_entries()]
        engine = SearchEngine()
        if self._cache is None:
            engine.build_index(modules)
            return engine

        fingerprint = sorted(f"{e.descriptor.id}@{e.descriptor.version}:{e.source.type.value}" for e in catalog.entries())
        key = CacheManager.make_key("search-index", *fingerprint)
        cached = self._cache.get(key) if use_cache else MISS
        if isinstance(cached, list):
            try:
                engine.load_entries(cached, modules)
                logger.debug("Search index restored from cache (%d entries)", len(engine))
                return engine
            except (KeyError, TypeError) as e:
                logger.debug("Ignoring unusable cached search index: %s", e)

        engine.build_index(modules)
        self._cache.set(key, [e.to_dict() for e in engine.entries()], ttl=self._search_ttl)
        return engine
