"""Vercel deployment module."""

from __future__ import annotations

from stackreg.builtin._factory import stack_module
from stackreg.module import ModuleDescriptor, ModuleType


@stack_module
def vercel() -> ModuleDescriptor:
    return ModuleDescriptor(
        id="vercel",
        display_name="Vercel",
        version="1.0.0",
        module_type=ModuleType.DEPLOYMENT,
        category="devops",
        description="Vercel deployment platform with preview deployments and edge functions",
        provides=["deployment", "ci-cd"],
        requires=["frontend"],
        compatible_with=["vue3", "react", "sveltekit", "angular"],
        incompatible_with=["netlify"],
        tags=["hosting", "deploy", "serverless", "edge"],
        default_config={
            "deploymentType": "static",
            "analytics": False,
            "functions": False,
            "edge": False,
            "customDomain": "",
            "environment": "production",
        },
        homepage="https://vercel.com",
    )
