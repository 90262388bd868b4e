"""Stack module descriptor and the module type enumeration."""

from __future__ import annotations

from enum import Enum
from typing import Any

import semver
from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

__all__ = ["ModuleType", "ModuleDescriptor", "MODULE_ID_PATTERN"]

MODULE_ID_PATTERN = r"^[a-z0-9][a-z0-9._-]*$"


class ModuleType(str, Enum):
    """Kinds of stack module a project can be composed from."""

    BASE = "base"
    FRONTEND_FRAMEWORK = "frontend-framework"
    UI_LIBRARY = "ui-library"
    BACKEND_SERVICE = "backend-service"
    AUTH_PROVIDER = "auth-provider"
    BACKEND_FRAMEWORK = "backend-framework"
    DATABASE = "database"
    DEPLOYMENT = "deployment"
    TESTING = "testing"
    MONITORING = "monitoring"
    CUSTOM = "custom"


def _dedupe(values: Any) -> Any:
    if not isinstance(values, (list, tuple)):
        return values
    seen: dict[str, None] = {}
    for value in values:
        if not isinstance(value, str):
            raise ValueError(f"expected a list of strings, got an item of type {type(value).__name__}")
        value = value.strip()
        if not value:
            continue
        seen.setdefault(value, None)
    return tuple(seen)


class ModuleDescriptor(BaseModel):
    """One installable stack module: identity, capabilities and compatibility.

    Field names are snake_case in Python; descriptor files use the camelCase
    aliases (``displayName``, ``moduleType``, ``compatibleWith``, ...).
    ``(id, version)`` identifies a descriptor; ``id`` alone may repeat across
    versions.
    """

    model_config = ConfigDict(populate_by_name=True, frozen=True, extra="ignore")

    id: str = Field(min_length=2, max_length=64, pattern=MODULE_ID_PATTERN)
    display_name: str = Field(default="", alias="displayName")
    version: str = "1.0.0"
    module_type: ModuleType = Field(alias="moduleType")
    category: str = "other"
    description: str = ""
    provides: tuple[str, ...] = ()
    requires: tuple[str, ...] = ()
    compatible_with: tuple[str, ...] = Field(default=(), alias="compatibleWith")
    incompatible_with: tuple[str, ...] = Field(default=(), alias="incompatibleWith")
    tags: tuple[str, ...] = ()
    default_config: dict[str, Any] | None = Field(default=None, alias="defaultConfig")
    author: str | None = None
    homepage: str | None = None

    @model_validator(mode="before")
    @classmethod
    def _fill_identity(cls, data: Any) -> Any:
        if not isinstance(data, dict):
            return data
        data = dict(data)
        if not data.get("id") and data.get("name"):
            data["id"] = data["name"]
        if not data.get("displayName") and not data.get("display_name"):
            data["displayName"] = data.get("id") or ""
        return data

    @field_validator("version")
    @classmethod
    def _check_version(cls, value: str) -> str:
        if not semver.Version.is_valid(value):
            raise ValueError(f"'{value}' is not a valid semantic version")
        return value

    @field_validator("provides", "requires", "compatible_with", "incompatible_with", "tags", mode="before")
    @classmethod
    def _normalize_list(cls, value: Any) -> Any:
        if value is None:
            return ()
        return _dedupe(value)

    @field_validator("compatible_with", "incompatible_with")
    @classmethod
    def _lowercase_ids(cls, value: tuple[str, ...]) -> tuple[str, ...]:
        return tuple(dict.fromkeys(v.lower() for v in value))

    @property
    def name(self) -> str:
        """Alias of ``id`` kept for descriptor files that use ``name``."""
        return self.id

    @property
    def key(self) -> tuple[str, str]:
        """The unique ``(id, version)`` key."""
        return (self.id, self.version)

    def to_dict(self) -> dict[str, Any]:
        """JSON-ready mapping using descriptor-file field names."""
        return self.model_dump(mode="json", by_alias=True)

    def to_summary(self) -> dict[str, Any]:
        """Short listing form used by ``modules list --json``."""
        return {
            "name": self.id,
            "displayName": self.display_name,
            "version": self.version,
            "type": self.module_type.value,
            "category": self.category,
            "description": self.description,
        }
