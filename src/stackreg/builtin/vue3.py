"""Vue 3 frontend framework module."""

from __future__ import annotations

from stackreg.builtin._factory import stack_module
from stackreg.module import ModuleDescriptor, ModuleType


@stack_module
def vue3() -> ModuleDescriptor:
    """Vue 3 with Vite, Vue Router and Pinia."""
    return ModuleDescriptor(
        id="vue3",
        display_name="Vue 3",
        version="1.0.0",
        module_type=ModuleType.FRONTEND_FRAMEWORK,
        category="frontend-framework",
        description="Vue 3 frontend framework with Vite, routing and Pinia state management",
        provides=["frontend", "routing", "state-management"],
        compatible_with=["vuetify", "tailwind", "supabase", "firebase", "better-auth", "vercel"],
        incompatible_with=["react", "angular", "sveltekit"],
        tags=["vue", "vuejs", "vite", "pinia", "spa"],
        default_config={
            "typescript": True,
            "router": True,
            "pinia": True,
            "eslint": True,
            "prettier": True,
            "vitest": True,
        },
        homepage="https://vuejs.org",
    )
