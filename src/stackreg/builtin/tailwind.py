"""Tailwind CSS utility-first styling module."""

from __future__ import annotations

from stackreg.builtin._factory import stack_module
from stackreg.module import ModuleDescriptor, ModuleType


@stack_module
def tailwind() -> ModuleDescriptor:
    return ModuleDescriptor(
        id="tailwind",
        display_name="Tailwind CSS",
        version="1.0.0",
        module_type=ModuleType.UI_LIBRARY,
        category="ui-library",
        description="Tailwind CSS utility-first styling with dark mode and forms plugin",
        provides=["ui", "styling", "theming"],
        requires=["frontend"],
        compatible_with=["vue3", "react", "sveltekit", "angular"],
        incompatible_with=["vuetify", "material-ui", "ant-design", "bootstrap"],
        tags=["css", "tailwindcss", "utility", "styling"],
        default_config={
            "darkMode": "class",
            "plugins": ["forms"],
            "componentExamples": True,
            "customColors": True,
            "preflight": True,
        },
        homepage="https://tailwindcss.com",
    )
