"""Pure mutations over diagram documents.

Every function returns a new diagram and leaves its input untouched, so a
failed cache write never leaves a half-edited document behind in memory.
Operations addressing an id that is not present are no-ops. Node ids are
unique within a diagram and field ids within a node.
"""
from __future__ import annotations

from typing import Any, Dict, Iterable, List, Mapping

from schemaboard.domain.entities import (
    DiagramEntity,
    EdgeEntity,
    FieldEntity,
    NodeEntity,
    Position,
    empty_diagram,
)


def coerce_diagram(value: Any) -> DiagramEntity:
    """Return a well-formed diagram from a cached or stored JSON value."""
    if not isinstance(value, Mapping):
        return empty_diagram()
    nodes = value.get("Nodes") or []
    edges = value.get("Edges") or []
    return {"Nodes": list(nodes), "Edges": list(edges)}


def _map_node(diagram: DiagramEntity, node_id: str, update) -> DiagramEntity:
    nodes = [update(node) if node.get("id") == node_id else node for node in diagram["Nodes"]]
    return {"Nodes": nodes, "Edges": list(diagram["Edges"])}


def _with_data(node: NodeEntity, **changes: Any) -> NodeEntity:
    data = dict(node.get("data") or {})
    data.update(changes)
    return {**node, "data": data}  # type: ignore[return-value]


def _upsert_by_id(items: Iterable[Dict[str, Any]], incoming: Iterable[Dict[str, Any]]) -> List[Dict[str, Any]]:
    """Append incoming items; one whose id is already present replaces it in place."""
    merged = list(items)
    positions = {item.get("id"): index for index, item in enumerate(merged)}
    for item in incoming:
        index = positions.get(item.get("id"))
        if index is None:
            positions[item.get("id")] = len(merged)
            merged.append(item)
        else:
            merged[index] = item
    return merged


def add_node(diagram: DiagramEntity, node: NodeEntity) -> DiagramEntity:
    """Add a node; re-adding an existing id (e.g. a client retry) replaces it."""
    nodes = _upsert_by_id(diagram["Nodes"], [node])  # type: ignore[list-item]
    return {"Nodes": nodes, "Edges": list(diagram["Edges"])}  # type: ignore[typeddict-item]


def delete_node(diagram: DiagramEntity, node_id: str) -> DiagramEntity:
    nodes = [node for node in diagram["Nodes"] if node.get("id") != node_id]
    return {"Nodes": nodes, "Edges": list(diagram["Edges"])}


def set_node_label(diagram: DiagramEntity, node_id: str, label: str) -> DiagramEntity:
    return _map_node(diagram, node_id, lambda node: _with_data(node, label=label))


def set_node_description(diagram: DiagramEntity, node_id: str, description: str) -> DiagramEntity:
    return _map_node(diagram, node_id, lambda node: _with_data(node, description=description))


def set_node_position(diagram: DiagramEntity, node_id: str, position: Position) -> DiagramEntity:
    return _map_node(diagram, node_id, lambda node: {**node, "position": position})


def add_fields(diagram: DiagramEntity, node_id: str, fields: Iterable[FieldEntity]) -> DiagramEntity:
    new_fields = list(fields)

    def update(node: NodeEntity) -> NodeEntity:
        existing = list((node.get("data") or {}).get("fields") or [])
        return _with_data(node, fields=_upsert_by_id(existing, new_fields))

    return _map_node(diagram, node_id, update)


def delete_field(diagram: DiagramEntity, node_id: str, field_id: str) -> DiagramEntity:
    def update(node: NodeEntity) -> NodeEntity:
        existing = (node.get("data") or {}).get("fields") or []
        return _with_data(node, fields=[f for f in existing if f.get("id") != field_id])

    return _map_node(diagram, node_id, update)


def _handle_field_name(source_handle: str) -> str:
    # Handles are rendered as "<fieldName>-<side>"
    return source_handle.split("-")[0]


def _set_field_ref(diagram: DiagramEntity, node_id: str, field_name: str, ref: str) -> DiagramEntity:
    def update(node: NodeEntity) -> NodeEntity:
        fields: List[FieldEntity] = [
            {**f, "ref": ref} if f.get("name") == field_name else f  # type: ignore[misc]
            for f in (node.get("data") or {}).get("fields") or []
        ]
        return _with_data(node, fields=fields)

    return _map_node(diagram, node_id, update)


def add_edge(diagram: DiagramEntity, edge: EdgeEntity) -> DiagramEntity:
    """Append an edge; a handle-bound edge also stamps the target label as the field's ref."""
    updated: DiagramEntity = {"Nodes": list(diagram["Nodes"]), "Edges": [*diagram["Edges"], edge]}
    source_handle = edge.get("sourceHandle")
    if not source_handle:
        return updated
    target_label = next(
        ((node.get("data") or {}).get("label") for node in updated["Nodes"] if node.get("id") == edge.get("target")),
        None,
    )
    return _set_field_ref(updated, edge.get("source"), _handle_field_name(source_handle), target_label or "")


def delete_edge(diagram: DiagramEntity, edge_id: str) -> DiagramEntity:
    """Remove an edge and clear the field ref it established."""
    removed = next((edge for edge in diagram["Edges"] if edge.get("id") == edge_id), None)
    updated: DiagramEntity = {
        "Nodes": list(diagram["Nodes"]),
        "Edges": [edge for edge in diagram["Edges"] if edge.get("id") != edge_id],
    }
    if removed and removed.get("sourceHandle"):
        updated = _set_field_ref(updated, removed.get("source"), _handle_field_name(removed["sourceHandle"]), "")
    return updated


def update_edge(diagram: DiagramEntity, edge_id: str, prop: str, value: Any) -> DiagramEntity:
    edges: List[Dict[str, Any]] = [
        {**edge, prop: value} if edge.get("id") == edge_id else edge for edge in diagram["Edges"]
    ]
    return {"Nodes": list(diagram["Nodes"]), "Edges": edges}
