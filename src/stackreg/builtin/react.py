"""React frontend framework module."""

from __future__ import annotations

from stackreg.builtin._factory import stack_module
from stackreg.module import ModuleDescriptor, ModuleType


@stack_module
def react() -> ModuleDescriptor:
    return ModuleDescriptor(
        id="react",
        display_name="React",
        version="1.0.0",
        module_type=ModuleType.FRONTEND_FRAMEWORK,
        category="frontend-framework",
        description="React frontend framework with Vite, React Router and context state",
        provides=["frontend", "routing", "state-management"],
        compatible_with=["tailwind", "material-ui", "supabase", "firebase", "better-auth", "vercel"],
        incompatible_with=["vue3", "angular", "sveltekit"],
        tags=["react", "reactjs", "vite", "jsx", "spa"],
        default_config={
            "typescript": True,
            "router": True,
            "stateManagement": "context",
            "eslint": True,
            "prettier": True,
            "vitest": True,
        },
        homepage="https://react.dev",
    )
