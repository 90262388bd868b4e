"""Semantic-version ordering, range matching and the versioned module catalog.

Ordering follows SemVer 2.0.0 precedence via the ``semver`` package, so a
pre-release sorts below its release (``2.0.0-beta < 2.0.0``) and build
metadata is ignored. Range syntax follows the npm dialect used by module
descriptors::

    *  x  latest          any version
    1.2.3  =1.2.3         exact
    >1.2  >=1.2.3  <2  <=1.4  !=1.2.3
    ^1.2.3  ~1.2.3  ~>1.2  1.x  1.2.*  1.2
    1.0.0 - 2.0.0         inclusive hyphen range
    >=1.0.0 <2.0.0        whitespace AND
    ^1.0.0 || ^2.0.0      OR

A pre-release only satisfies a comparator set when one of the set's
comparators names the same ``major.minor.patch`` with a pre-release tag.
"""

from __future__ import annotations

import functools
import logging
import re
from dataclasses import dataclass
from typing import Iterable, Iterator

import semver

from stackreg.errors import InvalidVersionError
from stackreg.registry.types import CatalogEntry

logger = logging.getLogger(__name__)

__all__ = [
    "Comparator",
    "VersionedCatalog",
    "compare_versions",
    "is_stable",
    "parse_range",
    "parse_version",
    "satisfies",
    "sort_versions",
]

_ANY = ("", "*", "x", "X", "latest")

_PARTIAL_RE = re.compile(
    r"^v?(?P<major>0|[1-9]\d*|[xX*])"
    r"(?:\.(?P<minor>0|[1-9]\d*|[xX*]))?"
    r"(?:\.(?P<patch>0|[1-9]\d*|[xX*]))?"
    r"(?:-(?P<pre>[0-9A-Za-z.-]+))?"
    r"(?:\+(?P<build>[0-9A-Za-z.-]+))?$"
)
_TOKEN_RE = re.compile(r"^(<=|>=|!=|<|>|=|\^|~>|~)?(.+)$")
_HYPHEN_RE = re.compile(r"^\s*(\S+)\s+-\s+(\S+)\s*$")
_OP_SPACING_RE = re.compile(r"(<=|>=|!=|<|>|=|\^|~>|~)\s+")


def parse_version(version: str) -> semver.Version:
    """Parse a strict semantic version.

    Raises:
        InvalidVersionError: If ``version`` is not valid SemVer.
    """
    try:
        return semver.Version.parse(version)
    except (TypeError, ValueError) as e:
        raise InvalidVersionError(version, cause=e) from e


def compare_versions(a: str, b: str) -> int:
    """Return -1, 0 or 1 comparing two versions by SemVer precedence."""
    return parse_version(a).compare(b)


def sort_versions(versions: Iterable[str], descending: bool = True) -> list[str]:
    """Sort version strings by precedence; equal precedence keeps input order."""
    return sorted(versions, key=functools.cmp_to_key(compare_versions), reverse=descending)


def is_stable(version: str) -> bool:
    """True when ``version`` carries no pre-release tag."""
    return parse_version(version).prerelease is None


# ---------------------------------------------------------------------------
# Ranges
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class Comparator:
    """A single ``<op> <version>`` test."""

    op: str
    version: semver.Version

    def test(self, candidate: semver.Version) -> bool:
        cmp = candidate.compare(self.version)
        if self.op == "==":
            return cmp == 0
        if self.op == "!=":
            return cmp != 0
        if self.op == ">":
            return cmp > 0
        if self.op == ">=":
            return cmp >= 0
        if self.op == "<":
            return cmp < 0
        return cmp <= 0

    def __str__(self) -> str:
        return f"{self.op}{self.version}"


def _part(value: str | None) -> int | None:
    if value is None or value in ("x", "X", "*"):
        return None
    return int(value)


def _parse_partial(text: str, constraint: str) -> tuple[int | None, int | None, int | None, str | None]:
    match = _PARTIAL_RE.match(text)
    if match is None:
        raise InvalidVersionError(constraint)
    major = _part(match.group("major"))
    minor = _part(match.group("minor")) if major is not None else None
    patch = _part(match.group("patch")) if minor is not None else None
    pre = match.group("pre") if patch is not None else None
    return major, minor, patch, pre


def _v(major: int, minor: int = 0, patch: int = 0, pre: str | None = None) -> semver.Version:
    return semver.Version(major, minor, patch, prerelease=pre)


def _token_comparators(token: str, constraint: str) -> list[Comparator]:
    match = _TOKEN_RE.match(token)
    if match is None:
        raise InvalidVersionError(constraint)
    op = match.group(1) or "="
    major, minor, patch, pre = _parse_partial(match.group(2), constraint)

    if major is None:
        if op in ("<", "!="):
            # "<*" matches nothing
            return [Comparator("<", _v(0, 0, 0, "0"))]
        return []

    full = patch is not None

    if op == "=":
        if full:
            return [Comparator("==", _v(major, minor, patch, pre))]
        if minor is None:
            return [Comparator(">=", _v(major)), Comparator("<", _v(major + 1))]
        return [Comparator(">=", _v(major, minor)), Comparator("<", _v(major, minor + 1))]

    if op == "^":
        low = _v(major, minor or 0, patch or 0, pre)
        if major > 0 or minor is None:
            high = _v(major + 1)
        elif minor > 0 or patch is None:
            high = _v(0, minor + 1)
        else:
            high = _v(0, 0, patch + 1)
        return [Comparator(">=", low), Comparator("<", high)]

    if op in ("~", "~>"):
        low = _v(major, minor or 0, patch or 0, pre)
        high = _v(major + 1) if minor is None else _v(major, minor + 1)
        return [Comparator(">=", low), Comparator("<", high)]

    if op == ">":
        if full:
            return [Comparator(">", _v(major, minor, patch, pre))]
        if minor is None:
            return [Comparator(">=", _v(major + 1))]
        return [Comparator(">=", _v(major, minor + 1))]

    if op == ">=":
        return [Comparator(">=", _v(major, minor or 0, patch or 0, pre))]

    if op == "<":
        return [Comparator("<", _v(major, minor or 0, patch or 0, pre))]

    if op == "<=":
        if full:
            return [Comparator("<=", _v(major, minor, patch, pre))]
        if minor is None:
            return [Comparator("<", _v(major + 1))]
        return [Comparator("<", _v(major, minor + 1))]

    # "!=" needs a complete version
    if not full:
        raise InvalidVersionError(constraint)
    return [Comparator("!=", _v(major, minor, patch, pre))]


def _parse_set(part: str, constraint: str) -> list[Comparator]:
    part = part.strip()
    if part in _ANY:
        return []

    hyphen = _HYPHEN_RE.match(part)
    if hyphen is not None:
        low = _token_comparators(">=" + hyphen.group(1), constraint)
        high_major, high_minor, high_patch, high_pre = _parse_partial(hyphen.group(2), constraint)
        if high_major is None:
            return low
        if high_patch is not None:
            return low + [Comparator("<=", _v(high_major, high_minor, high_patch, high_pre))]
        if high_minor is None:
            return low + [Comparator("<", _v(high_major + 1))]
        return low + [Comparator("<", _v(high_major, high_minor + 1))]

    comparators: list[Comparator] = []
    for token in _OP_SPACING_RE.sub(r"\1", part).split():
        comparators.extend(_token_comparators(token, constraint))
    return comparators


def parse_range(constraint: str) -> list[list[Comparator]]:
    """Parse a range into OR-ed comparator sets (each set is AND-ed).

    Raises:
        InvalidVersionError: If any part of the range is malformed.
    """
    if constraint is None:
        return [[]]
    return [_parse_set(part, constraint) for part in constraint.split("||")]


def _set_allows_prerelease(comparators: list[Comparator], candidate: semver.Version) -> bool:
    base = (candidate.major, candidate.minor, candidate.patch)
    return any(
        c.version.prerelease is not None and (c.version.major, c.version.minor, c.version.patch) == base
        for c in comparators
    )


def _matches(candidate: semver.Version, ranges: list[list[Comparator]]) -> bool:
    for comparators in ranges:
        if not all(c.test(candidate) for c in comparators):
            continue
        if candidate.prerelease is not None and not _set_allows_prerelease(comparators, candidate):
            continue
        return True
    return False


def satisfies(version: str, constraint: str) -> bool:
    """Return True when ``version`` is inside ``constraint``.

    Raises:
        InvalidVersionError: If either argument is malformed.
    """
    return _matches(parse_version(version), parse_range(constraint))


# ---------------------------------------------------------------------------
# Versioned catalog
# ---------------------------------------------------------------------------


class VersionedCatalog:
    """Maps ``module id -> version -> CatalogEntry``.

    For one ``(id, version)`` pair only the entry from the most authoritative
    source (lowest priority number) is kept; on equal priority the entry
    registered first stays.
    """

    def __init__(self, entries: dict[str, dict[str, CatalogEntry]] | None = None) -> None:
        self._entries: dict[str, dict[str, CatalogEntry]] = entries if entries is not None else {}

    def register(self, entry: CatalogEntry) -> bool:
        """Insert ``entry`` under the priority rule. Returns True if kept."""
        module_id, version = entry.descriptor.key
        versions = self._entries.setdefault(module_id, {})
        existing = versions.get(version)
        if existing is not None and existing.source.priority <= entry.source.priority:
            logger.debug(
                "Keeping %s@%s from %s source, ignoring %s source",
                module_id,
                version,
                existing.source.type.value,
                entry.source.type.value,
            )
            return False
        versions[version] = entry
        return True

    def replace(self, entry: CatalogEntry) -> None:
        """Unconditionally store ``entry`` (used by hot reload)."""
        module_id, version = entry.descriptor.key
        self._entries.setdefault(module_id, {})[version] = entry

    def copy(self) -> VersionedCatalog:
        """Copy the id and version maps; entries themselves are shared."""
        return VersionedCatalog({mid: dict(versions) for mid, versions in self._entries.items()})

    def get(self, module_id: str, version: str) -> CatalogEntry | None:
        return self._entries.get(module_id, {}).get(version)

    def versions(self, module_id: str) -> list[str]:
        """All known versions of ``module_id``, highest first."""
        return sort_versions(self._entries.get(module_id, {}).keys())

    def latest(self, module_id: str) -> str | None:
        """Highest version by SemVer precedence, or None for unknown ids."""
        versions = self.versions(module_id)
        return versions[0] if versions else None

    def latest_stable(self, module_id: str) -> str | None:
        """Highest release version, falling back to the highest pre-release."""
        versions = self.versions(module_id)
        for version in versions:
            if is_stable(version):
                return version
        return versions[0] if versions else None

    def resolve(self, module_id: str, constraint: str | None) -> str | None:
        """Highest version satisfying ``constraint``; None when nothing does."""
        versions = self.versions(module_id)
        if not versions:
            return None
        if constraint is None or constraint.strip() in _ANY:
            return versions[0]
        try:
            ranges = parse_range(constraint)
        except InvalidVersionError:
            logger.warning("Invalid version constraint '%s' for module '%s'", constraint, module_id)
            return None
        for version in versions:
            if _matches(parse_version(version), ranges):
                return version
        return None

    def ids(self) -> list[str]:
        return sorted(self._entries)

    def latest_entries(self) -> Iterator[CatalogEntry]:
        """Latest entry of every module, ordered by id."""
        for module_id in self.ids():
            version = self.latest(module_id)
            if version is not None:
                yield self._entries[module_id][version]

    def entries(self) -> Iterator[CatalogEntry]:
        """Every retained entry, ordered by id then descending version."""
        for module_id in self.ids():
            for version in self.versions(module_id):
                yield self._entries[module_id][version]

    @property
    def total_versions(self) -> int:
        return sum(len(v) for v in self._entries.values())

    def __contains__(self, module_id: object) -> bool:
        return module_id in self._entries

    def __len__(self) -> int:
        return len(self._entries)
