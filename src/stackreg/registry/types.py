"""Registry types: Source, RawCandidate, CatalogEntry."""

from __future__ import annotations

import sys
from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import Any

from stackreg.config import Config, default_data_dir
from stackreg.errors import ConfigError
from stackreg.module import ModuleDescriptor

__all__ = [
    "CandidateKind",
    "CatalogEntry",
    "RawCandidate",
    "Source",
    "SourceType",
    "default_sources",
]

BUILTIN_DIR = Path(__file__).resolve().parent.parent / "builtin"


class SourceType(str, Enum):
    """Where a module source lives."""

    PROJECT = "project"
    USER = "user"
    INSTALLED = "installed"
    BUILTIN = "builtin"
    LEGACY = "legacy"


class CandidateKind(str, Enum):
    """Shape of a discovered module."""

    FACTORY = "factory"
    DESCRIPTOR = "descriptor"


@dataclass(frozen=True)
class Source:
    """A filesystem location scanned for modules. Lower priority wins."""

    path: Path
    type: SourceType
    priority: int

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> Source:
        """Build a source from a ``registry.sources`` config entry.

        Raises:
            ConfigError: If a key is missing or has an invalid value.
        """
        if not isinstance(data, dict):
            raise ConfigError(message=f"Invalid module source entry: {data!r}")
        try:
            return cls(
                path=Path(data["path"]).expanduser(),
                type=SourceType(data["type"]),
                priority=int(data["priority"]),
            )
        except KeyError as e:
            raise ConfigError(message=f"Module source entry is missing {e}: {data!r}", cause=e) from e
        except (TypeError, ValueError) as e:
            raise ConfigError(message=f"Invalid module source entry {data!r}: {e}", cause=e) from e

    def to_dict(self) -> dict[str, Any]:
        return {"path": str(self.path), "type": self.type.value, "priority": self.priority}


@dataclass(frozen=True)
class RawCandidate:
    """A module found on disk but not yet loaded."""

    source: Source
    source_index: int
    path: Path
    kind: CandidateKind
    name: str


@dataclass(frozen=True)
class CatalogEntry:
    """One retained ``(id, version)`` in the versioned catalog."""

    descriptor: ModuleDescriptor
    source: Source
    path: Path
    kind: CandidateKind
    load_time_ms: float = 0.0
    from_cache: bool = False

    @property
    def candidate(self) -> RawCandidate:
        """Rebuild the candidate this entry was loaded from."""
        return RawCandidate(
            source=self.source,
            source_index=0,
            path=self.path,
            kind=self.kind,
            name=self.path.stem if self.kind is CandidateKind.FACTORY else self.path.name,
        )


def default_sources(config: Config | None = None) -> list[Source]:
    """The priority-ordered source list: project, user, installed, builtin, legacy."""
    if config is not None and config.get("registry.sources"):
        configured = config.get("registry.sources")
        if not isinstance(configured, list):
            raise ConfigError(message="registry.sources must be a list of {path, type, priority} entries")
        return [Source.from_dict(item) for item in configured]

    data_dir = config.data_dir if config is not None else default_data_dir()

    return [
        Source(Path("./fsd-modules"), SourceType.PROJECT, 1),
        Source(data_dir / "modules", SourceType.USER, 2),
        Source(Path(sys.prefix) / "share" / "fsd" / "modules", SourceType.INSTALLED, 3),
        Source(BUILTIN_DIR, SourceType.BUILTIN, 4),
        Source(Path("./modules"), SourceType.LEGACY, 5),
    ]
