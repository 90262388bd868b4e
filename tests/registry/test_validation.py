"""Tests for descriptor validation helpers."""

from __future__ import annotations

import pytest

from stackreg.errors import ModuleValidationError
from stackreg.module import ModuleDescriptor
from stackreg.registry.validation import build_descriptor, validate_descriptor


class TestValidateDescriptor:
    def test_valid_descriptor(self) -> None:
        assert validate_descriptor({"id": "my-mod", "moduleType": "custom"}) == []

    def test_existing_descriptor_is_valid(self) -> None:
        assert validate_descriptor(ModuleDescriptor(id="abc", module_type="custom")) == []

    def test_non_mapping(self) -> None:
        errors = validate_descriptor(["not", "a", "dict"])
        assert errors == ["root: descriptor must be a mapping, got list"]

    def test_errors_name_each_field(self) -> None:
        errors = validate_descriptor({"id": "Bad Id", "version": "1.0", "moduleType": "nope"})
        fields = {e.split(":", 1)[0] for e in errors}
        assert fields == {"id", "version", "moduleType"}

    def test_missing_id(self) -> None:
        errors = validate_descriptor({"moduleType": "custom"})
        assert any(e.startswith("id:") for e in errors)


class TestBuildDescriptor:
    def test_builds(self) -> None:
        module = build_descriptor({"name": "my-mod", "moduleType": "database"}, origin="my-mod")
        assert module.id == "my-mod"

    def test_passes_descriptor_through(self) -> None:
        module = ModuleDescriptor(id="abc", module_type="custom")
        assert build_descriptor(module, origin="abc") is module

    def test_raises_with_field_errors(self) -> None:
        with pytest.raises(ModuleValidationError) as exc_info:
            build_descriptor({"id": "ok-id", "moduleType": "custom", "version": "one"}, origin="dir-name")
        assert exc_info.value.module_id == "dir-name"
        assert exc_info.value.errors[0].startswith("version:")

    def test_non_mapping_raises(self) -> None:
        with pytest.raises(ModuleValidationError):
            build_descriptor("module", origin="x")
