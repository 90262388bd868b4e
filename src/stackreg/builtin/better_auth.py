"""Better Auth authentication module."""

from __future__ import annotations

from stackreg.builtin._factory import stack_module
from stackreg.module import ModuleDescriptor, ModuleType


@stack_module
def better_auth() -> ModuleDescriptor:
    return ModuleDescriptor(
        id="better-auth",
        display_name="Better Auth",
        version="1.0.0",
        module_type=ModuleType.AUTH_PROVIDER,
        category="auth-provider",
        description="Better Auth self-hosted authentication with sessions and OAuth providers",
        provides=["authentication", "session-management"],
        compatible_with=["sveltekit", "react", "vue3", "supabase"],
        incompatible_with=["auth0", "clerk", "firebase-auth"],
        tags=["auth", "authentication", "oauth", "sessions"],
        default_config={
            "providers": ["email", "google"],
            "database": "sqlite",
            "sessionStrategy": "jwt",
            "enableMFA": False,
            "enablePasswordReset": True,
            "enableEmailVerification": True,
        },
    )
