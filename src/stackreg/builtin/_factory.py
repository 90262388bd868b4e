"""Compile-time table of built-in module factories."""

from __future__ import annotations

from typing import Callable

from stackreg.errors import InvalidInputError
from stackreg.module import ModuleDescriptor

__all__ = ["BUILTIN_FACTORIES", "ModuleFactory", "stack_module"]

ModuleFactory = Callable[[], ModuleDescriptor]

BUILTIN_FACTORIES: dict[str, ModuleFactory] = {}


def stack_module(
    func_or_none: ModuleFactory | None = None,
    /,
    *,
    name: str | None = None,
    table: dict[str, ModuleFactory] | None = None,
) -> ModuleFactory | Callable[[ModuleFactory], ModuleFactory]:
    """Register a function as the factory for one built-in module file.

    The factory is keyed by its implementation file stem (``vue3.py`` ->
    ``vue3``) unless ``name`` is given, so the scanner can map each file in
    the built-in directory onto a known constructor without importing it.
    Works bare (``@stack_module``) or with arguments.
    """
    target = BUILTIN_FACTORIES if table is None else table

    def _register(func: ModuleFactory) -> ModuleFactory:
        key = name or func.__module__.rsplit(".", 1)[-1]
        if key in target and target[key] is not func:
            raise InvalidInputError(message=f"Duplicate built-in module factory: '{key}'")
        target[key] = func
        return func

    if func_or_none is not None and callable(func_or_none):
        return _register(func_or_none)
    return _register
