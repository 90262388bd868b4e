"""Vuetify 3 component library module."""

from __future__ import annotations

from stackreg.builtin._factory import stack_module
from stackreg.module import ModuleDescriptor, ModuleType


@stack_module
def vuetify() -> ModuleDescriptor:
    return ModuleDescriptor(
        id="vuetify",
        display_name="Vuetify 3",
        version="1.0.0",
        module_type=ModuleType.UI_LIBRARY,
        category="ui-library",
        description="Vuetify 3 Material Design component library for Vue",
        provides=["ui", "components", "theme", "styling"],
        requires=["frontend"],
        compatible_with=["vue3"],
        incompatible_with=["react", "angular", "sveltekit", "tailwind"],
        tags=["vue", "material", "components", "ui"],
        default_config={
            "theme": "material",
            "icons": "@mdi/js",
            "darkMode": True,
            "customColors": True,
            "treeshaking": True,
        },
    )
