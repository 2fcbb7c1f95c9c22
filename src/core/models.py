# src/core/models.py — v1
"""Shared Pydantic models for the raw knowledge graph.

The raw graph is owned by the graph-storage collaborator and is read-only
to the community / story code. Property bags accept JSON primitives on the
way in and are coerced to ``dict[str, str]`` at the persistence boundary.
"""

from __future__ import annotations

from collections.abc import Mapping
from typing import Any, Union

from pydantic import BaseModel, Field

PropertyValue = Union[str, int, float, bool, None]


class GraphNode(BaseModel):
    """Single node of a raw knowledge graph."""

    id: str
    name: str
    label: str
    properties: dict[str, PropertyValue] = Field(default_factory=dict)


class GraphRelationship(BaseModel):
    """Directed, typed edge between two GraphNode ids."""

    id: str
    type: str
    properties: dict[str, PropertyValue] = Field(default_factory=dict)
    source_id: str
    target_id: str


class GraphDocument(BaseModel):
    """Nodes + relationships, as served by the graph-storage collaborator."""

    nodes: list[GraphNode] = Field(default_factory=list)
    relationships: list[GraphRelationship] = Field(default_factory=list)

    def node_index(self) -> dict[str, GraphNode]:
        """Map node id -> node, keeping input order."""
        return {n.id: n for n in self.nodes}


def coerce_property_value(value: Any) -> str:
    """Stringify one property value for the ``dict[str, str]`` contract."""
    if value is None:
        return ""
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    return str(value)


def coerce_properties(properties: Any) -> dict[str, str]:
    """Coerce a JSON property bag into a string-valued map.

    Anything that is not a mapping yields an empty dict.
    """
    if not isinstance(properties, Mapping):
        return {}
    return {str(k): coerce_property_value(v) for k, v in properties.items()}
