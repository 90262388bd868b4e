"""Error hierarchy for the stackreg module registry."""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Any

__all__ = [
    "RegistryError",
    "ConfigNotFoundError",
    "ConfigError",
    "InvalidInputError",
    "InvalidVersionError",
    "ModuleLoadError",
    "ModuleValidationError",
    "RegistryUnusableError",
    "ErrorCodes",
]


class RegistryError(Exception):
    """Base error for all stackreg errors."""

    def __init__(
        self,
        code: str,
        message: str,
        details: dict[str, Any] | None = None,
        cause: Exception | None = None,
    ) -> None:
        super().__init__(message)
        self.code = code
        self.message = message
        self.details: dict[str, Any] = details or {}
        self.cause = cause
        self.timestamp = datetime.now(timezone.utc).isoformat()

    def __str__(self) -> str:
        return f"[{self.code}] {self.message}"


class ConfigNotFoundError(RegistryError):
    """Raised when a configuration file cannot be found."""

    def __init__(self, config_path: str, **kwargs: Any) -> None:
        super().__init__(
            code="CONFIG_NOT_FOUND",
            message=f"Configuration file not found: {config_path}",
            details={"config_path": config_path},
            **kwargs,
        )


class ConfigError(RegistryError):
    """Raised when configuration is invalid."""

    def __init__(self, message: str, **kwargs: Any) -> None:
        super().__init__(code="CONFIG_INVALID", message=message, **kwargs)


class InvalidInputError(RegistryError):
    """Raised for invalid arguments to the public API."""

    def __init__(self, message: str = "Invalid input", **kwargs: Any) -> None:
        super().__init__(code="GENERAL_INVALID_INPUT", message=message, **kwargs)


class InvalidVersionError(RegistryError):
    """Raised when a string is not a valid semantic version."""

    def __init__(self, version: str, **kwargs: Any) -> None:
        super().__init__(
            code="INVALID_VERSION",
            message=f"Invalid semantic version: '{version}'",
            details={"version": version},
            **kwargs,
        )

    @property
    def version(self) -> str:
        """The rejected version string."""
        return self.details["version"]


class ModuleLoadError(RegistryError):
    """Raised when a module candidate cannot be loaded."""

    def __init__(self, module_id: str, reason: str, **kwargs: Any) -> None:
        super().__init__(
            code="MODULE_LOAD_ERROR",
            message=f"Failed to load module '{module_id}': {reason}",
            details={"module_id": module_id, "reason": reason},
            **kwargs,
        )

    @property
    def module_id(self) -> str:
        """The id (or path) of the module that failed to load."""
        return self.details["module_id"]


class ModuleValidationError(RegistryError):
    """Raised when a module descriptor fails schema validation."""

    def __init__(self, module_id: str, errors: list[str], **kwargs: Any) -> None:
        super().__init__(
            code="MODULE_VALIDATION_ERROR",
            message=f"Module '{module_id}' failed validation: {'; '.join(errors)}",
            details={"module_id": module_id, "errors": errors},
            **kwargs,
        )

    @property
    def module_id(self) -> str:
        """The id (or path) of the invalid module."""
        return self.details["module_id"]

    @property
    def errors(self) -> list[str]:
        """One message per failing field."""
        return self.details["errors"]


class RegistryUnusableError(RegistryError):
    """Raised when discovery produced no usable catalog."""

    def __init__(self, reason: str, **kwargs: Any) -> None:
        super().__init__(
            code="REGISTRY_UNUSABLE",
            message=f"Module registry is unusable: {reason}",
            details={"reason": reason},
            **kwargs,
        )


class ErrorCodes:
    """All registry error codes as constants.

    Example:
        if error.code == ErrorCodes.REGISTRY_UNUSABLE:
            sys.exit(1)
    """

    CONFIG_NOT_FOUND = "CONFIG_NOT_FOUND"
    CONFIG_INVALID = "CONFIG_INVALID"
    GENERAL_INVALID_INPUT = "GENERAL_INVALID_INPUT"
    INVALID_VERSION = "INVALID_VERSION"
    MODULE_LOAD_ERROR = "MODULE_LOAD_ERROR"
    MODULE_VALIDATION_ERROR = "MODULE_VALIDATION_ERROR"
    REGISTRY_UNUSABLE = "REGISTRY_UNUSABLE"

    def __setattr__(self, name: str, value: object) -> None:
        raise AttributeError("ErrorCodes is immutable")
