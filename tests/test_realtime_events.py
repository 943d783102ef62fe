"""
Tests for inbound frame decoding.
"""
import pytest

from schemaboard.domain import events as ev
from schemaboard.domain.errors import ValidationError


class TestParseClientMessage:
    """Decoding of {"event", "data"} frames."""

    def test_join(self):
        message = ev.parse_client_message(
            {"event": "PROJECT:JOIN", "data": {"projectId": "p1", "userName": "alice"}}
        )
        assert isinstance(message, ev.JoinProject)
        assert message.project_id == "p1"
        assert message.user_name == "alice"
        assert message.event == ev.PROJECT_JOIN

    def test_node_label_changed(self):
        message = ev.parse_client_message({
            "event": ev.NODE_LABEL_CHANGED,
            "data": {"projectId": "p1", "nodeId": "n1", "label": "accounts"},
        })
        assert message == ev.NodeLabelChanged("p1", "n1", "accounts")

    def test_drag_stop_position_defaults(self):
        message = ev.parse_client_message({
            "event": ev.NODE_DRAG_STOP,
            "data": {"projectId": "p1", "nodeId": "n1", "position": {"x": 5}},
        })
        assert message.position == {"x": 5, "y": 0}

    def test_edge_update_value_may_be_anything(self):
        message = ev.parse_client_message({
            "event": ev.EDGE_UPDATE,
            "data": {"projectId": "p1", "edgeId": "e1", "property": "label", "value": None},
        })
        assert message == ev.EdgeUpdated("p1", "e1", "label", None)

    @pytest.mark.parametrize("frame", [
        "PROJECT:JOIN",
        {"event": "DIAGRAM:UNKNOWN", "data": {"projectId": "p1"}},
        {"event": "PROJECT:JOIN", "data": "p1"},
        {"event": "PROJECT:JOIN", "data": {"userName": "alice"}},
        {"event": "PROJECT:JOIN", "data": {"projectId": "p1", "userName": 7}},
        {"event": "DIAGRAM:ADD_NODE_FIELDS", "data": {"projectId": "p1", "nodeId": "n1", "fields": {}}},
    ])
    def test_malformed_frames_are_rejected(self, frame):
        with pytest.raises(ValidationError):
            ev.parse_client_message(frame)
