"""Tests for crategraph.core.schema module."""

from __future__ import annotations

import pytest

from crategraph.core.errors import ErrorKind, SchemaViolationError, to_string_pretty
from crategraph.core.schema import as_array, as_object, as_str, item_as_str


class TestAccessors:
    """Tests for the typed field accessors."""

    def test_as_array(self) -> None:
        assert as_array("kind", {"kind": ["lib"]}) == ["lib"]

    def test_as_str(self) -> None:
        assert as_str("id", {"id": "serde 1.0.0 (registry+x)"}) == "serde 1.0.0 (registry+x)"

    def test_as_object(self) -> None:
        assert as_object("resolve", {"resolve": {"nodes": []}}) == {"nodes": []}

    def test_missing_field(self) -> None:
        with pytest.raises(SchemaViolationError) as exc_info:
            as_str("manifest_path", {"id": "x"})
        err = exc_info.value
        assert err.kind is ErrorKind.SCHEMA_VIOLATION
        assert err.field == "manifest_path"
        assert err.expected == "string"
        assert "'manifest_path'" in str(err)
        # The offending node is pretty-printed into the message
        assert '"id": "x"' in str(err)

    def test_wrong_type(self) -> None:
        with pytest.raises(SchemaViolationError, match="array entry 'targets'"):
            as_array("targets", {"targets": "src/lib.rs"})

    def test_null_is_not_an_object(self) -> None:
        # cargo metadata --no-deps writes "resolve": null
        with pytest.raises(SchemaViolationError, match="object entry 'resolve'"):
            as_object("resolve", {"resolve": None})

    def test_node_not_an_object(self) -> None:
        with pytest.raises(SchemaViolationError):
            as_str("id", ["not", "an", "object"])

    def test_item_as_str(self) -> None:
        assert item_as_str("dependencies", "a") == "a"
        with pytest.raises(SchemaViolationError) as exc_info:
            item_as_str("dependencies", 42)
        assert exc_info.value.node == 42


class TestToStringPretty:
    """Tests for to_string_pretty helper."""

    def test_indented(self) -> None:
        assert to_string_pretty({"a": 1}) == '{\n  "a": 1\n}'

    def test_used_in_schema_errors(self) -> None:
        with pytest.raises(SchemaViolationError) as exc_info:
            as_str("id", {"name": "a"})
        assert str(exc_info.value).endswith(to_string_pretty({"name": "a"}))
