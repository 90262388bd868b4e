"""stackreg - stack module registry for project scaffolding."""

from __future__ import annotations

# Core
from stackreg.registry import Registry
from stackreg.registry.types import Source, SourceType
from stackreg.module import MODULE_ID_PATTERN, ModuleDescriptor, ModuleType

# Config
from stackreg.config import Config

# Cache
from stackreg.cache import CacheManager, CacheStats

# Errors
from stackreg.errors import (
    ConfigError,
    ConfigNotFoundError,
    ErrorCodes,
    InvalidInputError,
    InvalidVersionError,
    ModuleLoadError,
    ModuleValidationError,
    RegistryError,
    RegistryUnusableError,
)

__version__ = "0.1.0"

__all__ = [
    # Core
    "Registry",
    "Source",
    "SourceType",
    "ModuleDescriptor",
    "ModuleType",
    "MODULE_ID_PATTERN",
    # Config
    "Config",
    # Cache
    "CacheManager",
    "CacheStats",
    # Errors
    "RegistryError",
    "ConfigError",
    "ConfigNotFoundError",
    "ErrorCodes",
    "InvalidInputError",
    "InvalidVersionError",
    "ModuleLoadError",
    "ModuleValidationError",
    "RegistryUnusableError",
]
