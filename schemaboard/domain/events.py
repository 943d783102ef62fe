"""Realtime event names and the inbound message types they decode to.

Every frame on the websocket is ``{"event": NAME, "data": {...}}``. Inbound
frames are decoded into one of the message dataclasses below; the sync engine
dispatches on the message type.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Callable, ClassVar, Dict, List, Mapping

from schemaboard.domain.entities import DiagramEntity, EdgeEntity, FieldEntity, NodeEntity, Position
from schemaboard.domain.errors import ValidationError

PROJECT_JOIN = "PROJECT:JOIN"
PROJECT_LEAVE = "PROJECT:LEAVE"
PROJECT_USER_COUNT = "PROJECT:USER_COUNT"
DIAGRAM_INITIAL = "DIAGRAM:INITIAL"
DIAGRAM_UPDATE = "DIAGRAM:UPDATE"
NODE_ADDED = "DIAGRAM:NODE_ADDED"
NODE_DELETED = "DIAGRAM:NODE_DELETED"
NODE_LABEL_CHANGED = "DIAGRAM:NODE_LABEL_CHANGED"
NODE_DESCRIPTION_CHANGED = "DIAGRAM:NODE_DESCRIPTION_CHANGED"
ADD_NODE_FIELDS = "DIAGRAM:ADD_NODE_FIELDS"
DELETE_NODE_FIELD = "DIAGRAM:DELETE_NODE_FIELD"
NODE_DRAG = "DIAGRAM:NODE_DRAG"
NODE_DRAG_STOP = "DIAGRAM:NODE_DRAG_STOP"
EDGE_ADDED = "DIAGRAM:EDGE_ADDED"
EDGE_DELETED = "DIAGRAM:EDGE_DELETED"
EDGE_UPDATE = "DIAGRAM:EDGE_UPDATE"
MOUSE_MOVE = "EDITOR:MOUSE_MOVE"


@dataclass
class ClientMessage:
    """Base class for all inbound messages."""
    event: ClassVar[str]
    project_id: str


@dataclass
class JoinProject(ClientMessage):
    event: ClassVar[str] = PROJECT_JOIN
    user_name: str = ""


@dataclass
class LeaveProject(ClientMessage):
    event: ClassVar[str] = PROJECT_LEAVE
    user_name: str = ""


@dataclass
class UpdateDiagram(ClientMessage):
    event: ClassVar[str] = DIAGRAM_UPDATE
    diagram: DiagramEntity = field(default_factory=lambda: {"Nodes": [], "Edges": []})


@dataclass
class NodeAdded(ClientMessage):
    event: ClassVar[str] = NODE_ADDED
    node: NodeEntity = field(default_factory=dict)  # type: ignore[arg-type]


@dataclass
class NodeDeleted(ClientMessage):
    event: ClassVar[str] = NODE_DELETED
    node_id: str = ""


@dataclass
class NodeLabelChanged(ClientMessage):
    event: ClassVar[str] = NODE_LABEL_CHANGED
    node_id: str = ""
    label: str = ""


@dataclass
class NodeDescriptionChanged(ClientMessage):
    event: ClassVar[str] = NODE_DESCRIPTION_CHANGED
    node_id: str = ""
    description: str = ""


@dataclass
class FieldsAdded(ClientMessage):
    event: ClassVar[str] = ADD_NODE_FIELDS
    node_id: str = ""
    fields: List[FieldEntity] = field(default_factory=list)


@dataclass
class FieldDeleted(ClientMessage):
    event: ClassVar[str] = DELETE_NODE_FIELD
    node_id: str = ""
    field_id: str = ""


@dataclass
class NodeDragged(ClientMessage):
    event: ClassVar[str] = NODE_DRAG
    node_id: str = ""
    position: Position = field(default_factory=lambda: {"x": 0, "y": 0})


@dataclass
class NodeDragStopped(ClientMessage):
    event: ClassVar[str] = NODE_DRAG_STOP
    node_id: str = ""
    position: Position = field(default_factory=lambda: {"x": 0, "y": 0})


@dataclass
class EdgeAdded(ClientMessage):
    event: ClassVar[str] = EDGE_ADDED
    edge: EdgeEntity = field(default_factory=dict)


@dataclass
class EdgeDeleted(ClientMessage):
    event: ClassVar[str] = EDGE_DELETED
    edge_id: str = ""


@dataclass
class EdgeUpdated(ClientMessage):
    event: ClassVar[str] = EDGE_UPDATE
    edge_id: str = ""
    property: str = ""
    value: Any = None


@dataclass
class MouseMoved(ClientMessage):
    event: ClassVar[str] = MOUSE_MOVE
    user_id: str = ""
    user_name: str = ""
    position: Position = field(default_factory=lambda: {"x": 0, "y": 0})


def _require(data: Mapping[str, Any], key: str, kind: type) -> Any:
    value = data.get(key)
    if not isinstance(value, kind):
        raise ValidationError(f"'{key}' must be a {kind.__name__}")
    return value


def _position(data: Mapping[str, Any]) -> Position:
    pos = _require(data, "position", dict)
    return {"x": pos.get("x", 0), "y": pos.get("y", 0)}


_DECODERS: Dict[str, Callable[[str, Mapping[str, Any]], ClientMessage]] = {
    PROJECT_JOIN: lambda pid, d: JoinProject(pid, _require(d, "userName", str)),
    PROJECT_LEAVE: lambda pid, d: LeaveProject(pid, d.get("userName") or ""),
    DIAGRAM_UPDATE: lambda pid, d: UpdateDiagram(pid, _require(d, "diagram", dict)),
    NODE_ADDED: lambda pid, d: NodeAdded(pid, _require(d, "node", dict)),
    NODE_DELETED: lambda pid, d: NodeDeleted(pid, _require(d, "nodeId", str)),
    NODE_LABEL_CHANGED: lambda pid, d: NodeLabelChanged(
        pid, _require(d, "nodeId", str), _require(d, "label", str)
    ),
    NODE_DESCRIPTION_CHANGED: lambda pid, d: NodeDescriptionChanged(
        pid, _require(d, "nodeId", str), _require(d, "description", str)
    ),
    ADD_NODE_FIELDS: lambda pid, d: FieldsAdded(pid, _require(d, "nodeId", str), _require(d, "fields", list)),
    DELETE_NODE_FIELD: lambda pid, d: FieldDeleted(pid, _require(d, "nodeId", str), _require(d, "fieldId", str)),
    NODE_DRAG: lambda pid, d: NodeDragged(pid, _require(d, "nodeId", str), _position(d)),
    NODE_DRAG_STOP: lambda pid, d: NodeDragStopped(pid, _require(d, "nodeId", str), _position(d)),
    EDGE_ADDED: lambda pid, d: EdgeAdded(pid, _require(d, "edge", dict)),
    EDGE_DELETED: lambda pid, d: EdgeDeleted(pid, _require(d, "edgeId", str)),
    EDGE_UPDATE: lambda pid, d: EdgeUpdated(
        pid, _require(d, "edgeId", str), _require(d, "property", str), d.get("value")
    ),
    MOUSE_MOVE: lambda pid, d: MouseMoved(
        pid, d.get("userId") or "", d.get("userName") or "", _position(d)
    ),
}


def parse_client_message(frame: Any) -> ClientMessage:
    """Decode a raw ``{"event", "data"}`` frame into a message.

    Raises:
        ValidationError: unknown event name or malformed payload
    """
    if not isinstance(frame, Mapping):
        raise ValidationError("Frame must be a JSON object")
    name = frame.get("event")
    decoder = _DECODERS.get(name)
    if decoder is None:
        raise ValidationError(f"Unknown event: {name!r}")
    data = frame.get("data")
    if not isinstance(data, Mapping):
        raise ValidationError(f"Event {name} requires an object payload")
    project_id = _require(data, "projectId", str)
    return decoder(project_id, data)
