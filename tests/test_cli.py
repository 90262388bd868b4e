"""Tests for the ``fsd modules`` command-line interface."""

from __future__ import annotations

import json
from pathlib import Path
from typing import Any, Callable

import pytest
import yaml

from stackreg.cli import build_parser, main
from stackreg.registry.types import BUILTIN_DIR


@pytest.fixture
def project_dir(tmp_path: Path) -> Path:
    path = tmp_path / "fsd-modules"
    path.mkdir()
    return path


@pytest.fixture
def write_config(tmp_path: Path, project_dir: Path) -> Callable[..., Path]:
    """Write a config file whose sources are the temp project dir plus the built-ins."""

    def factory(cache: dict[str, Any] | None = None, sources: list[dict[str, Any]] | None = None) -> Path:
        data = {
            "registry": {
                "sources": sources
                or [
                    {"path": str(project_dir), "type": "project", "priority": 1},
                    {"path": str(BUILTIN_DIR), "type": "builtin", "priority": 4},
                ]
            },
            "cache": cache or {"enabled": False},
        }
        path = tmp_path / "config.yaml"
        path.write_text(yaml.safe_dump(data))
        return path

    return factory


@pytest.fixture
def config_path(write_config: Callable[..., Path]) -> Path:
    return write_config()


def run(config_path: Path, *args: str) -> int:
    return main(["modules", *args, "--config", str(config_path)])


# === Parser ===


class TestParser:
    def test_global_options_before_subcommand(self, config_path: Path) -> None:
        args = build_parser().parse_args(["--config", str(config_path), "-q", "modules", "list"])
        assert args.config == str(config_path)
        assert args.quiet is True

    def test_global_options_after_subcommand(self) -> None:
        args = build_parser().parse_args(["modules", "stats", "--force-refresh", "-vv"])
        assert args.force_refresh is True
        assert args.verbose == 2

    def test_info_verbose_means_details(self) -> None:
        args = build_parser().parse_args(["modules", "info", "vue3", "--verbose"])
        assert args.details is True
        assert args.verbose == 0

    def test_unknown_type_rejected(self, capsys) -> None:
        with pytest.raises(SystemExit) as exc_info:
            build_parser().parse_args(["modules", "list", "--type", "mainframe"])
        assert exc_info.value.code == 2

    def test_action_required(self) -> None:
        with pytest.raises(SystemExit):
            build_parser().parse_args(["modules"])


# === list ===


class TestListCommand:
    def test_table(self, config_path: Path, capsys) -> None:
        assert run(config_path, "list") == 0
        out = capsys.readouterr().out
        assert "vuetify" in out
        assert "9 module(s)" in out

    def test_json(self, config_path: Path, capsys) -> None:
        assert run(config_path, "list", "--json") == 0
        data = json.loads(capsys.readouterr().out)
        assert [m["name"] for m in data][:3] == ["base-config", "better-auth", "react"]
        assert data[0]["type"] == "base"

    def test_type_filter(self, config_path: Path, capsys) -> None:
        run(config_path, "list", "--type", "ui-library", "--json")
        assert [m["name"] for m in json.loads(capsys.readouterr().out)] == ["tailwind", "vuetify"]

    def test_empty_filter(self, config_path: Path, capsys) -> None:
        run(config_path, "list", "--category", "nowhere")
        assert "No modules found." in capsys.readouterr().out

    def test_project_module_listed(self, config_path: Path, project_dir: Path, module_writer, capsys) -> None:
        module_writer(project_dir, "my-mod", {"description": "local module"})
        run(config_path, "list", "--json")
        names = [m["name"] for m in json.loads(capsys.readouterr().out)]
        assert "my-mod" in names


# === search ===


class TestSearchCommand:
    def test_results(self, config_path: Path, capsys) -> None:
        assert run(config_path, "search", "tailwind", "--json") == 0
        data = json.loads(capsys.readouterr().out)
        assert data[0]["name"] == "tailwind"
        assert data[0]["score"] >= 100

    def test_limit(self, config_path: Path, capsys) -> None:
        run(config_path, "search", "vue", "--limit", "1", "--json")
        assert len(json.loads(capsys.readouterr().out)) == 1

    def test_no_results_suggests(self, config_path: Path, capsys) -> None:
        assert run(config_path, "search", "vuetifyy") == 0
        out = capsys.readouterr().out
        assert "No modules match 'vuetifyy'." in out
        assert "Did you mean: vuetify?" in out

    def test_table(self, config_path: Path, capsys) -> None:
        run(config_path, "search", "auth")
        assert "Search results for 'auth'" in capsys.readouterr().out


# === info ===


class TestInfoCommand:
    def test_panel(self, config_path: Path, capsys) -> None:
        assert run(config_path, "info", "vue3") == 0
        out = capsys.readouterr().out
        assert "Vue 3" in out
        assert "Source: builtin" in out
        assert "vuetify" in out

    def test_details(self, config_path: Path, capsys) -> None:
        run(config_path, "info", "vue3", "--verbose")
        out = capsys.readouterr().out
        assert "Versions:" in out
        assert "Homepage: https://vuejs.org" in out

    def test_json(self, config_path: Path, capsys) -> None:
        run(config_path, "info", "supabase", "--json", "--verbose")
        data = json.loads(capsys.readouterr().out)
        assert data["id"] == "supabase"
        assert data["source"] == "builtin"
        assert data["versions"] == ["1.0.0"]
        assert data["moduleType"] == "backend-service"

    def test_not_found_exits_zero(self, config_path: Path, capsys) -> None:
        assert run(config_path, "info", "reactt") == 0
        out = capsys.readouterr().out
        assert "Module 'reactt' not found." in out
        assert "Did you mean: react?" in out


# === check-compat ===


class TestCheckCompatCommand:
    def test_compatible(self, config_path: Path, capsys) -> None:
        assert run(config_path, "check-compat", "vue3", "vuetify") == 0
        out = capsys.readouterr().out
        assert "Compatible" in out
        assert "Not compatible" not in out

    def test_incompatible_with_alternatives(self, config_path: Path, capsys) -> None:
        run(config_path, "check-compat", "react", "vuetify")
        out = capsys.readouterr().out
        assert "Not compatible" in out
        assert "Reason:" in out
        assert "Compatible alternatives:" in out
        assert "tailwind" in out

    def test_unknown_module(self, config_path: Path, capsys) -> None:
        assert run(config_path, "check-compat", "vue3", "angular") == 0
        assert "Module 'angular' not found." in capsys.readouterr().out


# === stats / cache-clear ===


class TestStatsCommand:
    def test_stats(self, config_path: Path, capsys) -> None:
        assert run(config_path, "stats") == 0
        out = capsys.readouterr().out
        assert "Modules: 9 (9 versions)" in out
        assert "builtin: 9" in out
        assert "Cache: disabled" in out

    def test_stats_with_cache(self, write_config: Callable[..., Path], tmp_path: Path, capsys) -> None:
        path = write_config(cache={"dir": str(tmp_path / "cache")})
        run(path, "stats")
        out = capsys.readouterr().out
        assert "hit rate" in out
        assert "Cache: disabled" not in out


class TestCacheClearCommand:
    def test_clears_disk(self, write_config: Callable[..., Path], tmp_path: Path, capsys) -> None:
        cache_dir = tmp_path / "cache"
        path = write_config(cache={"dir": str(cache_dir)})
        run(path, "list")
        assert any(cache_dir.iterdir())

        assert run(path, "cache-clear") == 0
        assert "Cache cleared." in capsys.readouterr().out
        assert list(cache_dir.iterdir()) == []

    def test_disabled(self, config_path: Path, capsys) -> None:
        assert run(config_path, "cache-clear") == 0
        assert "nothing to clear" in capsys.readouterr().out

    def test_does_not_need_modules(self, write_config: Callable[..., Path], tmp_path: Path, capsys) -> None:
        path = write_config(
            cache={"dir": str(tmp_path / "cache")},
            sources=[{"path": str(tmp_path / "missing"), "type": "project", "priority": 1}],
        )
        assert run(path, "cache-clear") == 0


# === Failures ===


class TestFailures:
    def test_unusable_registry(self, write_config: Callable[..., Path], tmp_path: Path, capsys) -> None:
        path = write_config(sources=[{"path": str(tmp_path / "missing"), "type": "project", "priority": 1}])
        assert run(path, "list") == 1
        assert "Module registry is unusable" in capsys.readouterr().err

    def test_missing_config(self, tmp_path: Path, capsys) -> None:
        assert run(tmp_path / "missing.yaml", "list") == 1
        assert "Configuration error" in capsys.readouterr().err

    def test_invalid_config(self, tmp_path: Path, capsys) -> None:
        path = tmp_path / "bad.yaml"
        path.write_text("- just\n- a list\n")
        assert run(path, "list") == 1
        assert "Configuration error" in capsys.readouterr().err

    @pytest.mark.parametrize(
        "entry",
        [
            {"path": "/tmp", "type": "nonsense", "priority": 1},
            {"path": "/tmp", "type": "project"},
            {"type": "project", "priority": 1},
        ],
    )
    def test_bad_source_entry(self, write_config: Callable[..., Path], entry: dict[str, Any], capsys) -> None:
        path = write_config(sources=[entry])
        assert run(path, "list") == 1
        assert "Configuration error" in capsys.readouterr().err

    def test_undecodable_config(self, tmp_path: Path, capsys) -> None:
        path = tmp_path / "bad.yaml"
        path.write_bytes(b"cache:\n  dir: \xff\n")
        assert run(path, "list") == 1
        assert "Configuration error" in capsys.readouterr().err

    def test_config_is_a_directory(self, tmp_path: Path, capsys) -> None:
        assert run(tmp_path, "list") == 1
        assert "Configuration error" in capsys.readouterr().err
