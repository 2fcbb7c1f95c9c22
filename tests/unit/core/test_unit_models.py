# tests/unit/core/test_unit_models.py — v1
"""Tests for core/models.py — raw graph models and property coercion.

Also covers version.py import validation.
"""

from __future__ import annotations

import pytest

from arstraverse.core.models import (
    GraphDocument,
    GraphNode,
    GraphRelationship,
    coerce_properties,
    coerce_property_value,
)


class TestGraphModels:
    def test_defaults(self):
        node = GraphNode(id="n1", name="Alice", label="Person")
        assert node.properties == {}
        doc = GraphDocument()
        assert doc.nodes == [] and doc.relationships == []

    def test_node_index_keeps_order(self):
        doc = GraphDocument(nodes=[
            GraphNode(id="z", name="Z", label="X"),
            GraphNode(id="a", name="A", label="X"),
        ])
        assert list(doc.node_index()) == ["z", "a"]

    def test_relationship_roundtrip_json(self):
        rel = GraphRelationship(
            id="r1", type="KNOWS", properties={"weight": 0.5, "note": None},
            source_id="a", target_id="b",
        )
        restored = GraphRelationship.model_validate_json(rel.model_dump_json())
        assert restored == rel


class TestCoercePropertyValue:
    @pytest.mark.parametrize(
        ("value", "expected"),
        [
            ("text", "text"),
            (None, ""),
            (True, "true"),
            (False, "false"),
            (3, "3"),
            (3.0, "3"),
            (2.5, "2.5"),
        ],
    )
    def test_coercion(self, value, expected):
        assert coerce_property_value(value) == expected


class TestCoerceProperties:
    def test_mapping(self):
        assert coerce_properties({"a": 1, "b": None, "c": True}) == {
            "a": "1", "b": "", "c": "true",
        }

    def test_non_mapping_gives_empty(self):
        assert coerce_properties(None) == {}
        assert coerce_properties(["a", "b"]) == {}
        assert coerce_properties("text") == {}


class TestVersion:
    def test_version_importable(self):
        from arstraverse.version import __version__
        assert __version__ == "0.1.0"

    def test_package_exports_version(self):
        import arstraverse
        assert arstraverse.__version__ == "0.1.0"
