"""Descriptor validation for the registry system."""

from __future__ import annotations

from typing import Any

from pydantic import ValidationError

from stackreg.errors import ModuleValidationError
from stackreg.module import ModuleDescriptor

__all__ = ["build_descriptor", "validate_descriptor"]


def _format_errors(exc: ValidationError) -> list[str]:
    errors: list[str] = []
    for err in exc.errors():
        field = ".".join(str(part) for part in err.get("loc", ())) or "root"
        errors.append(f"{field}: {err.get('msg', 'invalid value')}")
    return errors


def validate_descriptor(data: Any) -> list[str]:
    """Validate raw descriptor data against the module descriptor schema.

    Accepts a mapping (as read from ``module.json``) or an existing
    ModuleDescriptor. Returns a list of validation error strings. Empty list
    means valid.
    """
    if isinstance(data, ModuleDescriptor):
        return []
    if not isinstance(data, dict):
        return [f"root: descriptor must be a mapping, got {type(data).__name__}"]
    try:
        ModuleDescriptor.model_validate(data)
    except ValidationError as e:
        return _format_errors(e)
    return []


def build_descriptor(data: Any, origin: str) -> ModuleDescriptor:
    """Build a ModuleDescriptor from raw data.

    Raises:
        ModuleValidationError: If the data fails schema validation. ``origin``
            names the module (or file) in the error.
    """
    if isinstance(data, ModuleDescriptor):
        return data
    if not isinstance(data, dict):
        raise ModuleValidationError(origin, [f"root: descriptor must be a mapping, got {type(data).__name__}"])
    try:
        return ModuleDescriptor.model_validate(data)
    except ValidationError as e:
        raise ModuleValidationError(origin, _format_errors(e), cause=e) from e
