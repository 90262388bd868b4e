"""Shared test fixtures for the stackreg test suite."""

from __future__ import annotations

import json
from pathlib import Path
from typing import Any, Callable

import pytest
import yaml

from stackreg.module import ModuleDescriptor, ModuleType


# === Helpers ===


def write_module(
    source_dir: Path,
    name: str,
    data: dict[str, Any] | None = None,
    fmt: str = "json",
) -> Path:
    """Create ``source_dir/name/module.<fmt>`` and return the module directory."""
    module_dir = source_dir / name
    module_dir.mkdir(parents=True, exist_ok=True)
    payload: dict[str, Any] = {"id": name, "moduleType": "custom"}
    payload.update(data or {})
    if fmt == "json":
        (module_dir / "module.json").write_text(json.dumps(payload))
    else:
        (module_dir / f"module.{fmt}").write_text(yaml.safe_dump(payload))
    return module_dir


class FakeClock:
    """Manually advanced clock for TTL tests."""

    def __init__(self, start: float = 1000.0) -> None:
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


# === Fixtures ===


@pytest.fixture(autouse=True)
def isolated_home(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> Path:
    """Point the user data directory at a temp dir so no test touches ~/.fsd."""
    home = tmp_path / "fsd-home"
    monkeypatch.setenv("FSD_HOME", str(home))
    return home


@pytest.fixture
def module_writer() -> Callable[..., Path]:
    """The :func:`write_module` helper as a fixture."""
    return write_module


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def make_descriptor() -> Callable[..., ModuleDescriptor]:
    """Build descriptors with sensible defaults; keyword arguments override."""

    def factory(module_id: str, module_type: ModuleType | str = ModuleType.CUSTOM, **kwargs: Any) -> ModuleDescriptor:
        return ModuleDescriptor(id=module_id, module_type=module_type, **kwargs)

    return factory
