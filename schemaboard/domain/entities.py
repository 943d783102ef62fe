"""Internal domain entities as TypedDicts for type safety at boundaries.

Diagrams travel as plain JSON-compatible dicts between the cache, the durable
store and the websocket, so the shapes are described here rather than wrapped
in classes.
"""
from __future__ import annotations

from typing import Any, Dict, List, TypedDict


class Position(TypedDict):
    x: float
    y: float


class FieldEntity(TypedDict, total=False):
    id: str
    name: str
    type: str
    isPrimary: bool
    required: bool
    isUnique: bool
    index: bool
    ref: str


class NodeData(TypedDict):
    label: str
    description: str
    fields: List[FieldEntity]


class NodeEntity(TypedDict):
    id: str
    type: str
    position: Position
    data: NodeData


# Edges carry arbitrary presentation keys; only id/source/target/sourceHandle are read.
EdgeEntity = Dict[str, Any]


class DiagramEntity(TypedDict):
    Nodes: List[NodeEntity]
    Edges: List[EdgeEntity]


class MemberEntity(TypedDict):
    userName: str
    connectionId: str


def empty_diagram() -> DiagramEntity:
    return {"Nodes": [], "Edges": []}
