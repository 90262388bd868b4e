"""Tests for the source scanner: scan_source() and scan_sources()."""

from __future__ import annotations

import logging
import os
from pathlib import Path
from typing import Callable
from unittest.mock import patch

from stackreg.registry.scanner import find_descriptor_file, scan_source, scan_sources
from stackreg.registry.types import BUILTIN_DIR, CandidateKind, Source, SourceType


def _project(path: Path) -> Source:
    return Source(path, SourceType.PROJECT, 1)


# === Descriptor directories ===


class TestScanDescriptors:
    def test_empty_directory(self, tmp_path: Path) -> None:
        assert scan_source(_project(tmp_path)) == []

    def test_descriptor_directory(self, tmp_path: Path, module_writer: Callable[..., Path]) -> None:
        module_writer(tmp_path, "my-mod")
        result = scan_source(_project(tmp_path), 3)
        assert len(result) == 1
        assert result[0].name == "my-mod"
        assert result[0].kind is CandidateKind.DESCRIPTOR
        assert result[0].path == tmp_path / "my-mod"
        assert result[0].source_index == 3

    def test_yaml_descriptor(self, tmp_path: Path, module_writer: Callable[..., Path]) -> None:
        module_writer(tmp_path, "yaml-mod", fmt="yaml")
        module_writer(tmp_path, "yml-mod", fmt="yml")
        assert [c.name for c in scan_source(_project(tmp_path))] == ["yaml-mod", "yml-mod"]

    def test_directory_without_descriptor_skipped(self, tmp_path: Path) -> None:
        (tmp_path / "just-a-dir").mkdir()
        (tmp_path / "just-a-dir" / "README.md").write_text("hi")
        assert scan_source(_project(tmp_path)) == []

    def test_results_sorted_by_name(self, tmp_path: Path, module_writer: Callable[..., Path]) -> None:
        for name in ["zeta", "alpha", "mid"]:
            module_writer(tmp_path, name)
        assert [c.name for c in scan_source(_project(tmp_path))] == ["alpha", "mid", "zeta"]

    def test_json_preferred(self, tmp_path: Path, module_writer: Callable[..., Path]) -> None:
        module_dir = module_writer(tmp_path, "both")
        (module_dir / "module.yaml").write_text("id: both\nmoduleType: custom\n")
        assert find_descriptor_file(module_dir) == module_dir / "module.json"


# === Ignore rules ===


class TestScanIgnore:
    def test_hidden_and_private_skipped(self, tmp_path: Path, module_writer: Callable[..., Path]) -> None:
        module_writer(tmp_path, ".hidden")
        module_writer(tmp_path, "_private")
        assert scan_source(_project(tmp_path)) == []

    def test_node_modules_skipped(self, tmp_path: Path, module_writer: Callable[..., Path]) -> None:
        module_writer(tmp_path, "node_modules")
        assert scan_source(_project(tmp_path)) == []

    def test_other_files_ignored(self, tmp_path: Path) -> None:
        (tmp_path / "notes.txt").write_text("")
        (tmp_path / "module.json").write_text("{}")
        assert scan_source(_project(tmp_path)) == []


# === Code modules ===


class TestScanFactories:
    def test_builtin_source_yields_factories(self) -> None:
        result = scan_source(Source(BUILTIN_DIR, SourceType.BUILTIN, 4))
        names = [c.name for c in result]
        assert "vue3" in names
        assert "_factory" not in names
        assert all(c.kind is CandidateKind.FACTORY for c in result)

    def test_code_outside_builtin_skipped_with_warning(self, tmp_path: Path, caplog) -> None:
        """Third-party code files are never treated as modules."""
        (tmp_path / "evil.py").write_text("raise SystemExit")
        with caplog.at_level(logging.WARNING):
            assert scan_source(_project(tmp_path)) == []
        assert "only descriptor modules" in caplog.text

    def test_test_files_skipped(self, tmp_path: Path) -> None:
        (tmp_path / "test_vue3.py").write_text("")
        assert scan_source(Source(tmp_path, SourceType.BUILTIN, 4)) == []


# === Missing and broken sources ===


class TestScanErrors:
    def test_missing_source(self, tmp_path: Path, caplog) -> None:
        with caplog.at_level(logging.DEBUG, logger="stackreg.registry.scanner"):
            assert scan_source(_project(tmp_path / "absent")) == []
        assert "does not exist" in caplog.text

    def test_source_is_a_file(self, tmp_path: Path, caplog) -> None:
        file_source = tmp_path / "file"
        file_source.write_text("")
        assert scan_source(_project(file_source)) == []
        assert "is not a directory" in caplog.text

    def test_permission_error(self, tmp_path: Path, caplog) -> None:
        with patch("stackreg.registry.scanner.os.scandir", side_effect=PermissionError("denied")):
            assert scan_source(_project(tmp_path)) == []
        assert "Permission denied" in caplog.text

    def test_os_error(self, tmp_path: Path, caplog) -> None:
        with patch.object(os, "scandir", side_effect=OSError("disk gone")):
            assert scan_source(_project(tmp_path)) == []
        assert "OS error" in caplog.text


# === Multiple sources ===


class TestScanSources:
    def test_source_order_preserved(self, tmp_path: Path, module_writer: Callable[..., Path]) -> None:
        first, second = tmp_path / "first", tmp_path / "second"
        module_writer(second, "b-mod")
        module_writer(first, "z-mod")
        result = scan_sources([_project(first), Source(second, SourceType.USER, 2)])
        assert [(c.name, c.source_index) for c in result] == [("z-mod", 0), ("b-mod", 1)]

    def test_missing_sources_contribute_nothing(self, tmp_path: Path, module_writer: Callable[..., Path]) -> None:
        module_writer(tmp_path / "real", "mod-a")
        result = scan_sources([_project(tmp_path / "absent"), _project(tmp_path / "real")])
        assert [c.name for c in result] == ["mod-a"]
