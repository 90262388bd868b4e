"""Built-in stack modules.

Each implementation file in this package defines one factory registered in
:data:`BUILTIN_FACTORIES`. The registry scans this directory like any other
source, but resolves the files it finds against the table instead of
importing them at runtime.
"""

from __future__ import annotations

from stackreg.builtin._factory import BUILTIN_FACTORIES, ModuleFactory, stack_module
from stackreg.builtin import (  # noqa: F401
    base_config,
    better_auth,
    react,
    supabase,
    sveltekit,
    tailwind,
    vercel,
    vue3,
    vuetify,
)

__all__ = ["BUILTIN_FACTORIES", "ModuleFactory", "stack_module"]
