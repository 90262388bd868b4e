"""Base configuration files shared by every generated project."""

from __future__ import annotations

from stackreg.builtin._factory import stack_module
from stackreg.module import ModuleDescriptor, ModuleType


@stack_module
def base_config() -> ModuleDescriptor:
    return ModuleDescriptor(
        id="base-config",
        display_name="Base Configuration Files",
        version="1.0.0",
        module_type=ModuleType.BASE,
        category="other",
        description="Editor, lint and formatting configuration applied before any other module",
        provides=["config", "linting", "formatting"],
        tags=["config", "eslint", "prettier", "editorconfig"],
        default_config={
            "prettier": True,
            "eslint": True,
            "editorconfig": True,
            "gitignore": True,
            "claude": True,
        },
    )
