"""Shared pytest fixtures for the registry test suite."""

from __future__ import annotations

from pathlib import Path
from typing import Any, Callable

import pytest

from stackreg.cache import CacheManager
from stackreg.config import Config
from stackreg.registry.registry import Registry
from stackreg.registry.types import BUILTIN_DIR, Source, SourceType


# ---------------------------------------------------------------------------
# Sources
# ---------------------------------------------------------------------------


@pytest.fixture
def project_dir(tmp_path: Path) -> Path:
    path = tmp_path / "fsd-modules"
    path.mkdir()
    return path


@pytest.fixture
def user_dir(tmp_path: Path) -> Path:
    path = tmp_path / "user-modules"
    path.mkdir()
    return path


@pytest.fixture
def builtin_source() -> Source:
    return Source(BUILTIN_DIR, SourceType.BUILTIN, 4)


@pytest.fixture
def sources(project_dir: Path, user_dir: Path, builtin_source: Source) -> list[Source]:
    """Project (1), user (2) and built-in (4) sources."""
    return [
        Source(project_dir, SourceType.PROJECT, 1),
        Source(user_dir, SourceType.USER, 2),
        builtin_source,
    ]


# ---------------------------------------------------------------------------
# Registries
# ---------------------------------------------------------------------------


@pytest.fixture
def no_cache_config() -> Config:
    return Config({"cache": {"enabled": False}})


@pytest.fixture
def cache_dir(tmp_path: Path) -> Path:
    return tmp_path / "cache"


@pytest.fixture
def make_cache(cache_dir: Path) -> Callable[..., CacheManager]:
    """Build caches sharing one disk directory, like separate CLI runs would."""

    def factory(**kwargs: Any) -> CacheManager:
        kwargs.setdefault("cache_dir", cache_dir)
        return CacheManager(**kwargs)

    return factory


@pytest.fixture
def registry(sources: list[Source], no_cache_config: Config) -> Registry:
    """Uncached Registry over the test sources (initialize NOT called)."""
    return Registry(config=no_cache_config, sources=sources)


@pytest.fixture
def builtin_registry(builtin_source: Source, no_cache_config: Config) -> Registry:
    """Initialized Registry over the built-in modules only."""
    reg = Registry(config=no_cache_config, sources=[builtin_source])
    reg.initialize()
    return reg
