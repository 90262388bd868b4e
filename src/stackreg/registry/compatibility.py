"""Pairwise compatibility rules between stack modules."""

from __future__ import annotations

import itertools
import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Iterable, Sequence

from stackreg.module import ModuleDescriptor, ModuleType

logger = logging.getLogger(__name__)

__all__ = [
    "CompatibilityResult",
    "CompatibilityRule",
    "DEFAULT_SINGLE_SELECT_TYPES",
    "PairConflict",
    "StackReport",
    "check_stack",
    "explain_compatibility",
    "is_compatible",
    "normalize_single_select",
]

DEFAULT_SINGLE_SELECT_TYPES: frozenset[str] = frozenset(
    t.value
    for t in (
        ModuleType.FRONTEND_FRAMEWORK,
        ModuleType.UI_LIBRARY,
        ModuleType.BACKEND_FRAMEWORK,
        ModuleType.BACKEND_SERVICE,
        ModuleType.AUTH_PROVIDER,
        ModuleType.DATABASE,
        ModuleType.DEPLOYMENT,
    )
)


class CompatibilityRule(str, Enum):
    """Which rule decided a compatibility verdict."""

    INCOMPATIBLE = "incompatible"
    SINGLE_SELECT = "single-select"
    DECLARED_COMPATIBLE = "declared-compatible"
    DEFAULT = "default"


@dataclass(frozen=True)
class CompatibilityResult:
    """Verdict for one pair of modules."""

    compatible: bool
    reason: str
    rule: CompatibilityRule

    def __bool__(self) -> bool:
        return self.compatible


def normalize_single_select(types: Iterable[str | ModuleType] | None) -> frozenset[str]:
    if types is None:
        return DEFAULT_SINGLE_SELECT_TYPES
    return frozenset(t.value if isinstance(t, ModuleType) else str(t) for t in types)


def explain_compatibility(
    a: ModuleDescriptor,
    b: ModuleDescriptor,
    single_select_types: Iterable[str | ModuleType] | None = None,
) -> CompatibilityResult:
    """Evaluate the compatibility rules for ``a`` and ``b`` in order.

    1. An explicit ``incompatible_with`` entry on either side vetoes.
    2. Two modules of the same single-select type exclude each other.
    3. An explicit ``compatible_with`` entry on either side approves.
    4. Anything else is compatible.

    The verdict is symmetric in ``a`` and ``b``.
    """
    if b.id in a.incompatible_with:
        return CompatibilityResult(
            False, f"{a.display_name} explicitly lists {b.id} as incompatible", CompatibilityRule.INCOMPATIBLE
        )
    if a.id in b.incompatible_with:
        return CompatibilityResult(
            False, f"{b.display_name} explicitly lists {a.id} as incompatible", CompatibilityRule.INCOMPATIBLE
        )

    single_select = normalize_single_select(single_select_types)
    if a.module_type == b.module_type and a.module_type.value in single_select:
        return CompatibilityResult(
            False,
            f"Only one {a.module_type.value} can be selected ({a.id} and {b.id} are both {a.module_type.value})",
            CompatibilityRule.SINGLE_SELECT,
        )

    if b.id in a.compatible_with or a.id in b.compatible_with:
        return CompatibilityResult(
            True, f"{a.id} and {b.id} are declared compatible", CompatibilityRule.DECLARED_COMPATIBLE
        )

    return CompatibilityResult(True, f"No known conflict between {a.id} and {b.id}", CompatibilityRule.DEFAULT)


def is_compatible(
    a: ModuleDescriptor,
    b: ModuleDescriptor,
    single_select_types: Iterable[str | ModuleType] | None = None,
) -> bool:
    return explain_compatibility(a, b, single_select_types).compatible


@dataclass(frozen=True)
class PairConflict:
    a: str
    b: str
    reason: str
    rule: CompatibilityRule


@dataclass
class StackReport:
    """Result of checking a whole module selection."""

    modules: list[str]
    conflicts: list[PairConflict] = field(default_factory=list)
    missing: dict[str, list[str]] = field(default_factory=dict)
    unknown: list[str] = field(default_factory=list)

    @property
    def compatible(self) -> bool:
        """True when no pair conflicts. Unmet requirements are warnings only."""
        return not self.conflicts

    @property
    def complete(self) -> bool:
        """True when every ``requires`` entry is provided by the selection."""
        return not self.missing

    def to_dict(self) -> dict[str, Any]:
        return {
            "modules": list(self.modules),
            "compatible": self.compatible,
            "complete": self.complete,
            "conflicts": [
                {"a": c.a, "b": c.b, "reason": c.reason, "rule": c.rule.value} for c in self.conflicts
            ],
            "missing": {mid: list(reqs) for mid, reqs in self.missing.items()},
            "unknown": list(self.unknown),
        }


def check_stack(
    modules: Sequence[ModuleDescriptor],
    single_select_types: Iterable[str | ModuleType] | None = None,
) -> StackReport:
    """Check every pair in ``modules`` and each module's requirements.

    A requirement is met when another selected module lists it in
    ``provides`` or has it as its module type.
    """
    single_select = normalize_single_select(single_select_types)
    report = StackReport(modules=[m.id for m in modules])

    for a, b in itertools.combinations(modules, 2):
        result = explain_compatibility(a, b, single_select)
        if not result.compatible:
            report.conflicts.append(PairConflict(a.id, b.id, result.reason, result.rule))

    for module in modules:
        others = [m for m in modules if m.id != module.id]
        offered = {cap for m in others for cap in m.provides} | {m.module_type.value for m in others}
        unmet = [req for req in module.requires if req not in offered]
        if unmet:
            report.missing[module.id] = unmet

    if report.conflicts:
        logger.debug("Stack %s has %d conflict(s)", report.modules, len(report.conflicts))
    return report
