"""
Tests for pure diagram mutations.
"""
import copy

from schemaboard.domain import diagram as ops
from schemaboard.domain.entities import empty_diagram


def _diagram(*nodes, edges=None):
    return {"Nodes": list(nodes), "Edges": list(edges or [])}


class TestNodeOperations:
    """Node level mutations."""

    def test_add_node_appends_without_touching_input(self, make_node):
        original = empty_diagram()
        updated = ops.add_node(original, make_node("n1"))
        assert [n["id"] for n in updated["Nodes"]] == ["n1"]
        assert original == {"Nodes": [], "Edges": []}

    def test_add_node_with_existing_id_replaces_it(self, make_node):
        diagram = ops.add_node(_diagram(make_node("n1", "users"), make_node("n2")), make_node("n1", "accounts"))
        assert [n["id"] for n in diagram["Nodes"]] == ["n1", "n2"]
        assert diagram["Nodes"][0]["data"]["label"] == "accounts"

    def test_delete_node_is_idempotent(self, make_node):
        diagram = _diagram(make_node("n1"), make_node("n2"))
        once = ops.delete_node(diagram, "n1")
        twice = ops.delete_node(once, "n1")
        assert [n["id"] for n in once["Nodes"]] == ["n2"]
        assert twice == once

    def test_label_and_description_update_only_target(self, make_node):
        diagram = _diagram(make_node("n1", "users"), make_node("n2", "posts"))
        updated = ops.set_node_label(diagram, "n1", "accounts")
        updated = ops.set_node_description(updated, "n1", "Registered accounts")
        assert updated["Nodes"][0]["data"]["label"] == "accounts"
        assert updated["Nodes"][0]["data"]["description"] == "Registered accounts"
        assert updated["Nodes"][1]["data"]["label"] == "posts"
        assert diagram["Nodes"][0]["data"]["label"] == "users"

    def test_unknown_node_is_a_noop(self, make_node):
        diagram = _diagram(make_node("n1"))
        assert ops.set_node_label(diagram, "missing", "x") == diagram
        assert ops.add_fields(diagram, "missing", [{"id": "f1"}]) == diagram

    def test_set_node_position(self, make_node):
        diagram = _diagram(make_node("n1"))
        updated = ops.set_node_position(diagram, "n1", {"x": 300, "y": 40})
        assert updated["Nodes"][0]["position"] == {"x": 300, "y": 40}


class TestFieldOperations:
    """Field list mutations."""

    def test_add_fields_appends_in_order(self, make_node):
        diagram = _diagram(make_node("n1", fields=[{"id": "f1", "name": "id"}]))
        updated = ops.add_fields(diagram, "n1", [{"id": "f2", "name": "email"}, {"id": "f3", "name": "name"}])
        assert [f["id"] for f in updated["Nodes"][0]["data"]["fields"]] == ["f1", "f2", "f3"]

    def test_add_fields_replaces_existing_ids(self, make_node):
        diagram = _diagram(make_node("n1", fields=[{"id": "f1", "name": "id"}, {"id": "f2", "name": "email"}]))
        updated = ops.add_fields(
            diagram, "n1", [{"id": "f1", "name": "uuid"}, {"id": "f3", "name": "name"}, {"id": "f3", "name": "title"}]
        )
        fields = updated["Nodes"][0]["data"]["fields"]
        assert [(f["id"], f["name"]) for f in fields] == [("f1", "uuid"), ("f2", "email"), ("f3", "title")]

    def test_delete_field_twice_is_a_noop(self, make_node):
        diagram = _diagram(make_node("n1", fields=[{"id": "f1"}, {"id": "f2"}]))
        once = ops.delete_field(diagram, "n1", "f1")
        assert ops.delete_field(once, "n1", "f1") == once
        assert [f["id"] for f in once["Nodes"][0]["data"]["fields"]] == ["f2"]


class TestEdgeOperations:
    """Edges and the field references they establish."""

    def _linked(self, make_node):
        posts = make_node("posts", "posts", fields=[{"id": "f1", "name": "author_id", "ref": ""}])
        users = make_node("users", "users", fields=[{"id": "f2", "name": "id"}])
        return _diagram(posts, users)

    def test_add_edge_sets_field_ref_to_target_label(self, make_node):
        edge = {"id": "e1", "source": "posts", "target": "users", "sourceHandle": "author_id-right"}
        updated = ops.add_edge(self._linked(make_node), edge)
        assert updated["Edges"] == [edge]
        assert updated["Nodes"][0]["data"]["fields"][0]["ref"] == "users"

    def test_add_edge_without_handle_leaves_fields(self, make_node):
        diagram = self._linked(make_node)
        updated = ops.add_edge(diagram, {"id": "e1", "source": "posts", "target": "users"})
        assert updated["Nodes"] == diagram["Nodes"]

    def test_delete_edge_clears_ref(self, make_node):
        edge = {"id": "e1", "source": "posts", "target": "users", "sourceHandle": "author_id-right"}
        linked = ops.add_edge(self._linked(make_node), edge)
        updated = ops.delete_edge(linked, "e1")
        assert updated["Edges"] == []
        assert updated["Nodes"][0]["data"]["fields"][0]["ref"] == ""
        assert ops.delete_edge(updated, "e1") == updated

    def test_update_edge_sets_property(self):
        diagram = _diagram(edges=[{"id": "e1", "animated": False}, {"id": "e2"}])
        snapshot = copy.deepcopy(diagram)
        updated = ops.update_edge(diagram, "e1", "animated", True)
        assert updated["Edges"][0] == {"id": "e1", "animated": True}
        assert diagram == snapshot


class TestCoerceDiagram:
    def test_coerce_fills_missing_lists(self):
        assert ops.coerce_diagram({"Nodes": None}) == {"Nodes": [], "Edges": []}
        assert ops.coerce_diagram("not a diagram") == {"Nodes": [], "Edges": []}
