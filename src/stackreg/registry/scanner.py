"""Source scanner for discovering stack module candidates."""

from __future__ import annotations

import logging
import os
from pathlib import Path

from stackreg.registry.types import CandidateKind, RawCandidate, Source, SourceType

logger = logging.getLogger(__name__)

__all__ = ["DESCRIPTOR_FILES", "find_descriptor_file", "scan_source", "scan_sources"]

DESCRIPTOR_FILES = ("module.json", "module.yaml", "module.yml")

_SKIP_DIR_NAMES = {"__pycache__", "node_modules"}


def find_descriptor_file(module_dir: Path) -> Path | None:
    """Return the descriptor file inside ``module_dir``, JSON first."""
    for name in DESCRIPTOR_FILES:
        candidate = module_dir / name
        if candidate.is_file():
            return candidate
    return None


def scan_source(source: Source, source_index: int = 0) -> list[RawCandidate]:
    """Scan one source directory for module candidates.

    A source holds flat implementation files (``*.py``, one factory each) and
    subdirectories carrying a ``module.json``/``module.yaml`` descriptor.
    Implementation files are only honoured for the built-in source. Results
    are ordered by entry name so repeated scans agree.
    """
    root = Path(source.path)
    if not root.exists():
        logger.debug("Source %s (%s) does not exist, skipping", root, source.type.value)
        return []
    if not root.is_dir():
        logger.warning("Source %s (%s) is not a directory, skipping", root, source.type.value)
        return []

    try:
        entries = sorted(os.scandir(root), key=lambda e: e.name)
    except PermissionError as e:
        logger.error("Permission denied scanning %s: %s", root, e)
        return []
    except OSError as e:
        logger.error("OS error scanning %s: %s", root, e)
        return []

    results: list[RawCandidate] = []
    for entry in entries:
        name = entry.name
        if name.startswith(".") or name.startswith("_"):
            continue
        if name in _SKIP_DIR_NAMES:
            continue

        try:
            is_dir = entry.is_dir()
            is_file = entry.is_file()
        except OSError as e:
            logger.error("OS error accessing %s: %s", entry.path, e)
            continue

        entry_path = Path(entry.path)

        if is_file:
            if entry_path.suffix != ".py" or name.startswith("test_"):
                continue
            if source.type is not SourceType.BUILTIN:
                logger.warning(
                    "Skipping code module %s in %s source: only descriptor modules load from outside the built-ins",
                    entry_path,
                    source.type.value,
                )
                continue
            results.append(
                RawCandidate(
                    source=source,
                    source_index=source_index,
                    path=entry_path,
                    kind=CandidateKind.FACTORY,
                    name=entry_path.stem,
                )
            )
        elif is_dir:
            if find_descriptor_file(entry_path) is None:
                logger.debug("Directory %s has no module descriptor, skipping", entry_path)
                continue
            results.append(
                RawCandidate(
                    source=source,
                    source_index=source_index,
                    path=entry_path,
                    kind=CandidateKind.DESCRIPTOR,
                    name=name,
                )
            )

    logger.debug("Found %d candidate(s) in %s source %s", len(results), source.type.value, root)
    return results


def scan_sources(sources: list[Source]) -> list[RawCandidate]:
    """Scan every source sequentially, in list order, and concatenate the candidates.

    The registry runs :func:`scan_source` concurrently, one task per source;
    this helper is the plain serial form.
    """
    results: list[RawCandidate] = []
    for index, source in enumerate(sources):
        results.extend(scan_source(source, index))
    return results
