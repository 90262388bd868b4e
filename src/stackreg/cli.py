"""Command-line interface: ``fsd modules ...``."""

from __future__ import annotations

import argparse
import json
import logging
import sys
from typing import Any, Callable, Sequence

from rich.console import Console
from rich.panel import Panel
from rich.table import Table

from stackreg import __version__
from stackreg.config import Config
from stackreg.errors import ConfigError, ConfigNotFoundError, RegistryUnusableError
from stackreg.module import ModuleDescriptor, ModuleType
from stackreg.registry import Registry

logger = logging.getLogger(__name__)

__all__ = ["build_parser", "main"]

_TYPE_STYLES = {
    "frontend-framework": "green",
    "ui-library": "magenta",
    "backend-service": "blue",
    "backend-framework": "blue",
    "auth-provider": "yellow",
    "database": "cyan",
    "deployment": "bright_blue",
}


def _add_global_options(parser: argparse.ArgumentParser, nested: bool = False, long_verbose: bool = True) -> None:
    # Nested copies only record options actually given, so top-level values survive.
    default = argparse.SUPPRESS if nested else None
    parser.add_argument(
        "--force-refresh",
        action="store_true",
        default=argparse.SUPPRESS if nested else False,
        help="Rediscover modules and ignore cached results",
    )
    parser.add_argument("--config", metavar="PATH", default=default, help="Path to a YAML config file")
    verbose_flags = ("--verbose", "-v") if long_verbose else ("-v",)
    parser.add_argument(
        *verbose_flags,
        dest="verbose",
        action="count",
        default=argparse.SUPPRESS if nested else 0,
        help="Show more log output (-vv for debug)",
    )
    parser.add_argument(
        "--quiet",
        "-q",
        action="store_true",
        default=argparse.SUPPRESS if nested else False,
        help="Only log errors",
    )


def build_parser() -> argparse.ArgumentParser:
    """Build the ``fsd`` argument parser."""
    parser = argparse.ArgumentParser(
        prog="fsd",
        description="Discover, search and check stack modules",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  fsd modules list --type frontend-framework
  fsd modules search auth
  fsd modules info vue3 --verbose
  fsd modules check-compat vue3 vuetify
        """,
    )
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    _add_global_options(parser)

    commands = parser.add_subparsers(dest="command", required=True)
    modules = commands.add_parser("modules", help="Work with the module registry")
    actions = modules.add_subparsers(dest="action", required=True)
    type_choices = [t.value for t in ModuleType]

    list_parser = actions.add_parser("list", help="List available modules")
    list_parser.add_argument("--type", choices=type_choices, help="Only modules of this type")
    list_parser.add_argument("--category", help="Only modules in this category")
    list_parser.add_argument("--json", action="store_true", help="Print JSON")
    list_parser.set_defaults(handler=_cmd_list)

    search_parser = actions.add_parser("search", help="Search modules")
    search_parser.add_argument("query", help="Search text")
    search_parser.add_argument("--type", choices=type_choices, help="Only modules of this type")
    search_parser.add_argument("--limit", type=int, help="Maximum number of results")
    search_parser.add_argument("--json", action="store_true", help="Print JSON")
    search_parser.set_defaults(handler=_cmd_search)

    info_parser = actions.add_parser("info", help="Show module details")
    info_parser.add_argument("module", help="Module id")
    info_parser.add_argument("--verbose", dest="details", action="store_true", help="Show every field")
    info_parser.add_argument("--json", action="store_true", help="Print JSON")
    info_parser.set_defaults(handler=_cmd_info)

    compat_parser = actions.add_parser("check-compat", help="Check whether two modules work together")
    compat_parser.add_argument("module_a", help="First module id")
    compat_parser.add_argument("module_b", help="Second module id")
    compat_parser.set_defaults(handler=_cmd_check_compat)

    stats_parser = actions.add_parser("stats", help="Show registry and cache statistics")
    stats_parser.set_defaults(handler=_cmd_stats)

    clear_parser = actions.add_parser("cache-clear", help="Empty the module cache")
    clear_parser.set_defaults(handler=_cmd_cache_clear, needs_registry=False)

    for sub in (list_parser, search_parser, compat_parser, stats_parser, clear_parser):
        _add_global_options(sub, nested=True)
    # "info --verbose" shows every field, so only "-v" raises log verbosity there
    _add_global_options(info_parser, nested=True, long_verbose=False)

    return parser


def _configure_logging(verbose: int, quiet: bool) -> None:
    if quiet:
        level = logging.ERROR
    elif verbose >= 2:
        level = logging.DEBUG
    elif verbose == 1:
        level = logging.INFO
    else:
        level = logging.WARNING
    logging.basicConfig(level=level, format="%(levelname)s %(name)s: %(message)s")


def _print_json(data: Any) -> None:
    sys.stdout.write(json.dumps(data, indent=2) + "\n")


def _type_label(module: ModuleDescriptor) -> str:
    style = _TYPE_STYLES.get(module.module_type.value, "white")
    return f"[{style}]{module.module_type.value}[/{style}]"


def _print_suggestions(console: Console, registry: Registry, text: str) -> None:
    suggestions = registry.get_suggestions(text)
    if suggestions:
        console.print(f"Did you mean: {', '.join(suggestions)}?")


# ----- Commands -----


def _cmd_list(args: argparse.Namespace, registry: Registry, console: Console) -> int:
    modules = registry.list_modules(type=args.type, category=args.category)
    if args.json:
        _print_json([m.to_summary() for m in modules])
        return 0
    if not modules:
        console.print("No modules found.")
        return 0

    table = Table(title="Available Modules")
    table.add_column("Name", style="bold")
    table.add_column("Version")
    table.add_column("Type")
    table.add_column("Category")
    table.add_column("Description")
    for module in modules:
        table.add_row(module.id, module.version, _type_label(module), module.category, module.description)
    console.print(table)
    console.print(f"{len(modules)} module(s)")
    return 0


def _cmd_search(args: argparse.Namespace, registry: Registry, console: Console) -> int:
    results = registry.search(args.query, type=args.type, limit=args.limit)
    if args.json:
        _print_json([dict(r.module.to_summary(), score=r.score) for r in results if r.module is not None])
        return 0
    if not results:
        console.print(f"No modules match '{args.query}'.")
        _print_suggestions(console, registry, args.query)
        return 0

    table = Table(title=f"Search results for '{args.query}'")
    table.add_column("Name", style="bold")
    table.add_column("Type")
    table.add_column("Score", justify="right")
    table.add_column("Description")
    for result in results:
        if result.module is None:
            continue
        table.add_row(result.id, _type_label(result.module), str(result.score), result.module.description)
    console.print(table)
    return 0


def _cmd_info(args: argparse.Namespace, registry: Registry, console: Console) -> int:
    entry = registry.get_entry(args.module)
    if entry is None:
        if args.json:
            _print_json(None)
            return 0
        console.print(f"Module '{args.module}' not found.")
        _print_suggestions(console, registry, args.module)
        return 0

    module = entry.descriptor
    if args.json:
        data = module.to_dict()
        data["source"] = entry.source.type.value
        if args.details:
            data["versions"] = registry.versions(module.id)
            data["path"] = str(entry.path)
        _print_json(data)
        return 0

    lines = [
        f"[bold]{module.display_name}[/bold] ({module.id}) v{module.version}",
        f"Type: {_type_label(module)}",
        f"Category: {module.category}",
        f"Source: {entry.source.type.value}",
    ]
    if module.description:
        lines.append(f"\n{module.description}")
    console.print(Panel("\n".join(lines), title="Module", border_style="blue"))

    def _section(title: str, values: Sequence[str], style: str = "white") -> None:
        if values:
            console.print(f"\n[bold]{title}:[/bold]")
            for value in values:
                console.print(f"  - [{style}]{value}[/{style}]")

    _section("Provides", module.provides)
    _section("Requires", module.requires)
    _section("Compatible with", module.compatible_with, "green")
    _section("Incompatible with", module.incompatible_with, "red")
    _section("Tags", module.tags)

    if args.details:
        _section("Versions", registry.versions(module.id))
        console.print(f"\nPath: {entry.path}")
        console.print(f"Load time: {entry.load_time_ms:.1f}ms{' (cached)' if entry.from_cache else ''}")
        if module.author:
            console.print(f"Author: {module.author}")
        if module.homepage:
            console.print(f"Homepage: {module.homepage}")
        if module.default_config:
            console.print("\n[bold]Default config:[/bold]")
            console.print(json.dumps(module.default_config, indent=2), markup=False)
    return 0


def _cmd_check_compat(args: argparse.Namespace, registry: Registry, console: Console) -> int:
    report = registry.check_compatibility(args.module_a, args.module_b)
    if report is None:
        for module_id in (args.module_a, args.module_b):
            if registry.get_module(module_id) is None:
                console.print(f"Module '{module_id}' not found.")
                _print_suggestions(console, registry, module_id)
        return 0

    console.print(f"\n[bold]Compatibility check:[/bold] {report.a.id} + {report.b.id}")
    if report.compatible:
        console.print("[green]Compatible[/green]")
    else:
        console.print("[red]Not compatible[/red]")
    console.print(f"Reason: {report.reason}")
    if report.alternatives:
        console.print("\nCompatible alternatives:")
        for module in report.alternatives:
            console.print(f"  - {module.id} ({module.display_name})")
    return 0


def _cmd_stats(args: argparse.Namespace, registry: Registry, console: Console) -> int:
    stats = registry.get_stats()
    console.print(f"[bold]Modules:[/bold] {stats['totalModules']} ({stats['totalVersions']} versions)")
    console.print(f"Initialized in {stats['initTimeMs']:.1f}ms, average load {stats['averageLoadTimeMs']:.1f}ms")

    table = Table(title="Modules by type")
    table.add_column("Type")
    table.add_column("Count", justify="right")
    for type_name, count in stats["byType"].items():
        table.add_row(type_name, str(count))
    console.print(table)

    by_source = ", ".join(f"{name}: {count}" for name, count in stats["bySource"].items())
    console.print(f"By source: {by_source}")

    if stats["slowModules"]:
        console.print("[yellow]Slow modules:[/yellow]")
        for slow in stats["slowModules"]:
            console.print(f"  - {slow['id']}: {slow['ms']:.1f}ms")

    cache = stats["cache"]
    if cache is None:
        console.print("Cache: disabled")
    else:
        console.print(
            f"Cache: {cache['hitRate']:.1%} hit rate ({cache['hits']} hits, {cache['misses']} misses), "
            f"{cache['entriesInMemory']}/{cache['maxEntries']} entries, {cache['memoryUsed']} bytes, "
            f"disk {'on' if cache['diskEnabled'] else 'off'}"
        )
    return 0


def _cmd_cache_clear(args: argparse.Namespace, registry: Registry, console: Console) -> int:
    if registry.cache is None:
        console.print("Cache is disabled; nothing to clear.")
        return 0
    registry.clear_cache()
    console.print("Cache cleared.")
    return 0


# ----- Entry point -----


def main(
    argv: Sequence[str] | None = None,
    registry_factory: Callable[[Config], Registry] | None = None,
) -> int:
    """Run the CLI and return its exit code."""
    parser = build_parser()
    args = parser.parse_args(argv)
    _configure_logging(args.verbose, args.quiet)
    console = Console(highlight=False)
    err_console = Console(stderr=True, highlight=False)

    try:
        config = Config.load(args.config) if args.config else Config.from_env()
        registry = (registry_factory or Registry)(config)
        if getattr(args, "needs_registry", True):
            registry.initialize(force=args.force_refresh)
        return args.handler(args, registry, console)
    except (ConfigError, ConfigNotFoundError) as e:
        err_console.print(f"[red]Configuration error:[/red] {e.message}")
        return 1
    except RegistryUnusableError as e:
        err_console.print(f"[red]Error:[/red] {e.message}")
        err_console.print("Check your module source directories or run with --verbose for details.")
        return 1


if __name__ == "__main__":
    sys.exit(main())
