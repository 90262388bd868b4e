"""Module loader: turns scanned candidates into validated descriptors."""

from __future__ import annotations

import json
import logging
import threading
import time
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any, Mapping

import yaml
from pydantic import ValidationError

from stackreg.builtin import BUILTIN_FACTORIES, ModuleFactory
from stackreg.cache import MISS, CacheManager
from stackreg.errors import ModuleLoadError, ModuleValidationError
from stackreg.module import ModuleDescriptor
from stackreg.registry.scanner import find_descriptor_file
from stackreg.registry.types import CandidateKind, CatalogEntry, RawCandidate
from stackreg.registry.validation import build_descriptor

if TYPE_CHECKING:
    from stackreg.config import Config

logger = logging.getLogger(__name__)

__all__ = ["LoadResult", "ModuleLoader"]


@dataclass(frozen=True)
class LoadResult:
    """A loaded descriptor together with how it was obtained."""

    candidate: RawCandidate
    descriptor: ModuleDescriptor
    load_time_ms: float
    from_cache: bool = False

    def to_entry(self) -> CatalogEntry:
        return CatalogEntry(
            descriptor=self.descriptor,
            source=self.candidate.source,
            path=self.candidate.path,
            kind=self.candidate.kind,
            load_time_ms=self.load_time_ms,
            from_cache=self.from_cache,
        )


class ModuleLoader:
    """Loads factory and descriptor candidates, timing each load.

    Factory candidates resolve their file stem against a factory table
    (the built-in table by default). Descriptor candidates are read from
    ``module.json`` / ``module.yaml`` and schema-validated. A failing module
    is logged and skipped; it never aborts discovery of the others.

    Safe to call from several threads at once: only the timing table is
    shared and it is lock-guarded.
    """

    def __init__(
        self,
        factories: Mapping[str, ModuleFactory] | None = None,
        cache: CacheManager | None = None,
        module_ttl: float = 86400.0,
        slow_module_ms: float = 100.0,
    ) -> None:
        self._factories: Mapping[str, ModuleFactory] = BUILTIN_FACTORIES if factories is None else factories
        self._cache = cache
        self._module_ttl = module_ttl
        self._slow_module_ms = slow_module_ms
        self._lock = threading.Lock()
        self._load_times: dict[str, float] = {}

    @classmethod
    def from_config(cls, config: Config, cache: CacheManager | None = None) -> ModuleLoader:
        return cls(
            cache=cache,
            module_ttl=float(config.get("cache.module_ttl_seconds", 86400)),
            slow_module_ms=float(config.get("registry.slow_module_ms", 100)),
        )

    @property
    def cache(self) -> CacheManager | None:
        return self._cache

    @property
    def slow_module_ms(self) -> float:
        return self._slow_module_ms

    @property
    def load_times(self) -> dict[str, float]:
        """Milliseconds spent loading each module id, last load wins."""
        with self._lock:
            return dict(self._load_times)

    def slow_modules(self) -> list[tuple[str, float]]:
        """Modules whose last load exceeded the slow threshold, slowest first."""
        times = self.load_times
        slow = [(mid, ms) for mid, ms in times.items() if ms > self._slow_module_ms]
        return sorted(slow, key=lambda item: (-item[1], item[0]))

    def reset_timings(self) -> None:
        with self._lock:
            self._load_times.clear()

    def load(self, candidate: RawCandidate, *, use_cache: bool = True) -> ModuleDescriptor | None:
        """Load one candidate. Returns None when it cannot be loaded."""
        result = self.load_result(candidate, use_cache=use_cache)
        return result.descriptor if result is not None else None

    def load_result(self, candidate: RawCandidate, *, use_cache: bool = True) -> LoadResult | None:
        """Load one candidate and report timing and cache provenance.

        With ``use_cache=False`` the cache is not read but fresh results are
        still written back to it.
        """
        key = self._cache_key(candidate)

        start = time.perf_counter()
        descriptor = self._from_cache(key, candidate) if use_cache else None
        from_cache = descriptor is not None

        if descriptor is None:
            try:
                descriptor = self._load_uncached(candidate)
            except ModuleValidationError as e:
                logger.warning(
                    "Skipping invalid module '%s' from %s: %s",
                    candidate.name,
                    candidate.path,
                    "; ".join(e.errors),
                )
                return None
            except ModuleLoadError as e:
                logger.warning("Skipping module '%s' from %s: %s", candidate.name, candidate.path, e.details["reason"])
                return None
        elapsed_ms = (time.perf_counter() - start) * 1000

        with self._lock:
            self._load_times[descriptor.id] = elapsed_ms
        if not from_cache:
            if elapsed_ms > self._slow_module_ms:
                logger.warning("Slow module load: '%s' took %.1fms", descriptor.id, elapsed_ms)
            if self._cache is not None and key is not None:
                self._cache.set(key, descriptor.to_dict(), ttl=self._module_ttl)

        return LoadResult(candidate=candidate, descriptor=descriptor, load_time_ms=elapsed_ms, from_cache=from_cache)

    def load_all(self, candidates: list[RawCandidate], *, use_cache: bool = True) -> list[LoadResult]:
        """Load candidates in order, dropping the ones that fail."""
        results: list[LoadResult] = []
        for candidate in candidates:
            result = self.load_result(candidate, use_cache=use_cache)
            if result is not None:
                results.append(result)
        return results

    # ----- Internals -----

    def _cache_key(self, candidate: RawCandidate) -> str | None:
        if self._cache is None:
            return None
        return CacheManager.make_key("load", candidate.kind.value, candidate.path.resolve(), candidate.name)

    def _from_cache(self, key: str | None, candidate: RawCandidate) -> ModuleDescriptor | None:
        if self._cache is None or key is None:
            return None
        cached = self._cache.get(key)
        if cached is MISS:
            return None
        try:
            descriptor = ModuleDescriptor.model_validate(cached)
        except ValidationError:
            logger.debug("Discarding stale cached descriptor for '%s'", candidate.name)
            self._cache.delete(key)
            return None
        logger.debug("Loaded '%s' from cache", descriptor.id)
        return descriptor

    def _load_uncached(self, candidate: RawCandidate) -> ModuleDescriptor:
        if candidate.kind is CandidateKind.FACTORY:
            return self._load_factory(candidate)
        return self._load_descriptor(candidate)

    def _load_factory(self, candidate: RawCandidate) -> ModuleDescriptor:
        factory = self._factories.get(candidate.name)
        if factory is None:
            raise ModuleLoadError(candidate.name, "no built-in factory is registered under this name")
        try:
            descriptor = factory()
        except Exception as e:
            raise ModuleLoadError(candidate.name, f"factory raised {type(e).__name__}: {e}", cause=e) from e
        if not isinstance(descriptor, ModuleDescriptor):
            raise ModuleLoadError(
                candidate.name,
                f"factory returned {type(descriptor).__name__}, expected ModuleDescriptor",
            )
        return descriptor

    def _load_descriptor(self, candidate: RawCandidate) -> ModuleDescriptor:
        descriptor_file = find_descriptor_file(candidate.path)
        if descriptor_file is None:
            raise ModuleLoadError(candidate.name, f"no descriptor file in {candidate.path}")

        try:
            content = descriptor_file.read_text(encoding="utf-8")
        except (OSError, UnicodeDecodeError) as e:
            raise ModuleLoadError(candidate.name, f"cannot read {descriptor_file}: {e}", cause=e) from e

        data: Any
        try:
            if descriptor_file.suffix == ".json":
                data = json.loads(content)
            else:
                data = yaml.safe_load(content)
        except (json.JSONDecodeError, yaml.YAMLError) as e:
            raise ModuleLoadError(candidate.name, f"cannot parse {descriptor_file.name}: {e}", cause=e) from e

        descriptor = build_descriptor(data, origin=candidate.name)
        if descriptor.id != candidate.name:
            logger.debug("Module directory '%s' declares id '%s'", candidate.name, descriptor.id)
        return descriptor
