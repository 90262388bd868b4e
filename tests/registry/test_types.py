"""Tests for registry types: Source, CatalogEntry and the default source list."""

from __future__ import annotations

import sys
from pathlib import Path

import pytest

from stackreg.config import Config
from stackreg.errors import ConfigError
from stackreg.module import ModuleDescriptor
from stackreg.registry.types import (
    BUILTIN_DIR,
    CandidateKind,
    CatalogEntry,
    Source,
    SourceType,
    default_sources,
)


class TestSource:
    def test_round_trip_dict(self) -> None:
        source = Source(Path("/tmp/mods"), SourceType.PROJECT, 1)
        assert Source.from_dict(source.to_dict()) == source

    def test_from_dict_expands_user(self) -> None:
        source = Source.from_dict({"path": "~/mods", "type": "user", "priority": 2})
        assert source.path == Path.home() / "mods"
        assert source.type is SourceType.USER

    def test_from_dict_rejects_unknown_type(self) -> None:
        with pytest.raises(ConfigError, match="remote"):
            Source.from_dict({"path": "/x", "type": "remote", "priority": 1})

    def test_from_dict_requires_priority(self) -> None:
        with pytest.raises(ConfigError, match="priority"):
            Source.from_dict({"path": "/x", "type": "user"})

    @pytest.mark.parametrize("entry", ["/x", {"path": "/x", "type": "user", "priority": "high"}])
    def test_from_dict_rejects_malformed_entry(self, entry: object) -> None:
        with pytest.raises(ConfigError):
            Source.from_dict(entry)  # type: ignore[arg-type]


class TestDefaultSources:
    def test_order_and_priorities(self, isolated_home: Path) -> None:
        sources = default_sources()
        assert [(s.type, s.priority) for s in sources] == [
            (SourceType.PROJECT, 1),
            (SourceType.USER, 2),
            (SourceType.INSTALLED, 3),
            (SourceType.BUILTIN, 4),
            (SourceType.LEGACY, 5),
        ]

    def test_paths(self, isolated_home: Path) -> None:
        sources = {s.type: s.path for s in default_sources()}
        assert sources[SourceType.PROJECT] == Path("./fsd-modules")
        assert sources[SourceType.USER] == isolated_home / "modules"
        assert sources[SourceType.INSTALLED] == Path(sys.prefix) / "share" / "fsd" / "modules"
        assert sources[SourceType.BUILTIN] == BUILTIN_DIR
        assert sources[SourceType.LEGACY] == Path("./modules")

    def test_builtin_dir_is_the_package(self) -> None:
        assert (BUILTIN_DIR / "vue3.py").is_file()

    def test_configured_sources_override(self, tmp_path: Path) -> None:
        config = Config({"registry": {"sources": [{"path": str(tmp_path), "type": "project", "priority": 7}]}})
        assert default_sources(config) == [Source(tmp_path, SourceType.PROJECT, 7)]

    def test_configured_sources_must_be_a_list(self) -> None:
        config = Config({"registry": {"sources": {"path": "/x", "type": "user", "priority": 2}}})
        with pytest.raises(ConfigError, match="must be a list"):
            default_sources(config)

    def test_configured_data_dir(self, tmp_path: Path) -> None:
        config = Config({"data_dir": str(tmp_path / "data")})
        user = next(s for s in default_sources(config) if s.type is SourceType.USER)
        assert user.path == tmp_path / "data" / "modules"


class TestCatalogEntry:
    def test_candidate_for_factory(self) -> None:
        source = Source(BUILTIN_DIR, SourceType.BUILTIN, 4)
        entry = CatalogEntry(
            descriptor=ModuleDescriptor(id="vue3", module_type="frontend-framework"),
            source=source,
            path=BUILTIN_DIR / "vue3.py",
            kind=CandidateKind.FACTORY,
        )
        candidate = entry.candidate
        assert candidate.name == "vue3"
        assert candidate.kind is CandidateKind.FACTORY
        assert candidate.source is source

    def test_candidate_for_descriptor(self, tmp_path: Path) -> None:
        entry = CatalogEntry(
            descriptor=ModuleDescriptor(id="my-mod", module_type="custom"),
            source=Source(tmp_path, SourceType.PROJECT, 1),
            path=tmp_path / "my-mod",
            kind=CandidateKind.DESCRIPTOR,
        )
        assert entry.candidate.name == "my-mod"
        assert entry.load_time_ms == 0.0
        assert entry.from_cache is False
