"""Supabase backend service module."""

from __future__ import annotations

from stackreg.builtin._factory import stack_module
from stackreg.module import ModuleDescriptor, ModuleType


@stack_module
def supabase() -> ModuleDescriptor:
    """Postgres database, auth, storage and realtime as a hosted service."""
    return ModuleDescriptor(
        id="supabase",
        display_name="Supabase",
        version="1.0.0",
        module_type=ModuleType.BACKEND_SERVICE,
        category="backend",
        description="Supabase open source Firebase alternative with Postgres, auth, storage and realtime",
        provides=["backend", "database", "auth", "storage", "realtime", "api"],
        requires=["frontend"],
        compatible_with=["vue3", "react", "sveltekit", "angular", "better-auth"],
        incompatible_with=["firebase"],
        tags=["postgres", "database", "auth", "realtime", "baas"],
        default_config={
            "auth": {
                "autoRefreshToken": True,
                "persistSession": True,
                "detectSessionInUrl": True,
            },
            "database": {"schema": "public"},
        },
        homepage="https://supabase.com",
    )
