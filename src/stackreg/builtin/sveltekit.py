"""SvelteKit frontend framework module."""

from __future__ import annotations

from stackreg.builtin._factory import stack_module
from stackreg.module import ModuleDescriptor, ModuleType


@stack_module
def sveltekit() -> ModuleDescriptor:
    return ModuleDescriptor(
        id="sveltekit",
        display_name="SvelteKit",
        version="1.0.0",
        module_type=ModuleType.FRONTEND_FRAMEWORK,
        category="frontend-framework",
        description="SvelteKit full-stack frontend framework with file-based routing",
        provides=["frontend", "routing", "state-management"],
        compatible_with=["tailwind", "better-auth", "supabase", "firebase", "vercel"],
        incompatible_with=["vue3", "react", "angular"],
        tags=["svelte", "sveltekit", "ssr", "vite"],
        default_config={
            "typescript": True,
            "adapter": "auto",
            "testing": True,
            "eslint": True,
            "prettier": True,
            "vitest": True,
            "playwright": True,
        },
        homepage="https://kit.svelte.dev",
    )
