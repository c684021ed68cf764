import pytest

from signalgrid.core.GraphPrimitives import (
    Connection,
    Graph,
    SignalNode,
    distance_to_segment,
    snap_to_grid,
)
from signalgrid.core.Types import AggregateOp, CompareMode, NodeKind, format_signal


class TestGraph:

    def setup_method(self):
        self.graph = Graph()
        self.a = self.graph.add_node(NodeKind.INPUT, (0, 0), node_id="a")
        self.b = self.graph.add_node(NodeKind.THRESHOLD, (80, 0), node_id="b")
        self.c = self.graph.add_node(NodeKind.OUTPUT, (160, 0), node_id="c")

    def test_add_node_defaults(self):
        """A fresh node starts OFF with the default settings of every kind"""
        node = self.graph.nodes["b"]
        assert node.value is None
        assert node.threshold == 5.0
        assert node.compare_mode == CompareMode.GT
        assert node.tolerance == 0.0
        assert node.aggregate_op == AggregateOp.SUM

    def test_add_node_generates_unique_ids(self):
        """Ids are generated when not given"""
        first = self.graph.add_node("competitive")
        second = self.graph.add_node("competitive")
        assert first != second
        assert self.graph.nodes[first].kind == NodeKind.COMPETITIVE

    def test_add_node_duplicate_id(self):
        with pytest.raises(ValueError, match="already exists"):
            self.graph.add_node(NodeKind.OUTPUT, node_id="a")

    def test_add_node_unknown_kind(self):
        with pytest.raises(ValueError, match="Invalid NodeKind"):
            self.graph.add_node("SPLITTER")

    def test_insertion_order_is_iteration_order(self):
        """Iteration follows insertion, not id order"""
        self.graph.add_node(NodeKind.OUTPUT, node_id="0")
        assert [n.id for n in self.graph] == ["a", "b", "c", "0"]

    def test_remove_node_cascades(self):
        """Deleting a node drops every connection touching it, either end"""
        self.graph.add_connection("a", "b")
        self.graph.add_connection("b", "c")
        self.graph.add_connection("b", "b")
        self.graph.add_connection("a", "c")

        assert self.graph.remove_node("b") is True
        assert "b" not in self.graph.nodes
        assert self.graph.connections == [Connection("a", "c")]

    def test_remove_missing_node(self):
        assert self.graph.remove_node("nope") is False

    def test_add_connection_unknown_endpoint(self):
        with pytest.raises(KeyError):
            self.graph.add_connection("a", "nope")

    def test_duplicate_and_self_connections_allowed(self):
        """Duplicates and self-loops are legal by default"""
        self.graph.add_connection("a", "b")
        self.graph.add_connection("a", "b")
        self.graph.add_connection("c", "c")
        assert len(self.graph.get_incoming_connections("b")) == 2
        assert self.graph.get_outgoing_connections("c") == [Connection("c", "c")]

    def test_duplicate_and_self_connections_can_be_refused(self):
        self.graph.add_connection("a", "b")
        with pytest.raises(ValueError, match="already exists"):
            self.graph.add_connection("a", "b", allow_duplicate=False)
        with pytest.raises(ValueError, match="Self-connection"):
            self.graph.add_connection("c", "c", allow_self=False)

    def test_incoming_values_order_and_off(self):
        """One entry per connection in connection order; OFF sources skipped"""
        other = self.graph.add_node(NodeKind.INPUT, node_id="d")
        self.graph.nodes["a"].value = 3.0
        self.graph.nodes[other].value = 1.0
        self.graph.add_connection(other, "c")
        self.graph.add_connection("b", "c")
        self.graph.add_connection("a", "c")
        self.graph.add_connection(other, "c")

        assert self.graph.incoming_values("c") == [1.0, 3.0, 1.0]

    def test_incoming_values_zero_is_not_off(self):
        self.graph.nodes["a"].value = 0.0
        self.graph.add_connection("a", "c")
        assert self.graph.incoming_values("c") == [0.0]

    def test_incoming_values_skips_dangling(self):
        """A connection whose source is gone reads as OFF"""
        self.graph.connections.append(Connection("ghost", "c"))
        assert self.graph.incoming_values("c") == []

    def test_set_node_field(self):
        self.graph.set_node_field("b", "compare_mode", "lt")
        self.graph.set_node_field("b", "threshold", 2)
        self.graph.set_node_field("b", "aggregate_op", AggregateOp.AVG)
        node = self.graph.nodes["b"]
        assert node.compare_mode == CompareMode.LT
        assert node.threshold == 2.0
        assert node.aggregate_op == AggregateOp.AVG

    def test_set_node_field_errors(self):
        with pytest.raises(ValueError, match="non-negative"):
            self.graph.set_node_field("b", "tolerance", -0.5)
        with pytest.raises(ValueError, match="cannot be set"):
            self.graph.set_node_field("b", "kind", "OUTPUT")
        with pytest.raises(ValueError, match="Invalid CompareMode"):
            self.graph.set_node_field("b", "compare_mode", "NOT")
        with pytest.raises(KeyError):
            self.graph.set_node_field("nope", "threshold", 1)

    @pytest.mark.parametrize("field, value", [
        ("threshold", None),
        ("tolerance", None),
        ("x", "left"),
        ("threshold", True),
    ])
    def test_set_node_field_needs_a_number(self, field, value):
        """Only the value may be OFF; other numeric fields refuse non-numbers"""
        with pytest.raises(ValueError, match=f"{field} must be a number"):
            self.graph.set_node_field("b", field, value)
        assert self.graph.nodes["b"].threshold == 5.0

    def test_set_node_field_negative_value(self):
        self.graph.set_node_field("a", "value", -0.1)
        assert self.graph.nodes["a"].value == -0.1
        self.graph.set_node_field("a", "value", None)
        assert self.graph.nodes["a"].value is None

    def test_node_at(self):
        assert self.graph.node_at(85, 5).id == "b"
        assert self.graph.node_at(40, 0) is None

    def test_connection_near(self):
        """Only drawn connections within the tolerance match"""
        self.graph.add_connection("a", "b")
        self.graph.add_connection("b", "c")
        self.graph.connections.append(Connection("a", "ghost"))

        removed = self.graph.remove_connections(self.graph.connection_near(40, 3))
        assert removed == 1
        assert self.graph.connections == [Connection("b", "c"), Connection("a", "ghost")]

    def test_reset_values_keeps_inputs(self):
        self.graph.nodes["a"].value = 4.0
        self.graph.nodes["c"].value = 4.0
        self.graph.reset_values()
        assert self.graph.nodes["a"].value == 4.0
        assert self.graph.nodes["c"].value is None

    def test_equality_is_order_sensitive(self):
        other = Graph()
        for node_id in ("a", "c", "b"):
            node = self.graph.nodes[node_id]
            other.insert_node(SignalNode(**vars(node)))
        assert other != self.graph

    def test_clear_and_replace(self):
        self.graph.add_connection("a", "b")
        other = Graph()
        other.add_node(NodeKind.OUTPUT, node_id="z")

        self.graph.replace(other)
        assert list(self.graph.nodes) == ["z"]
        assert self.graph.connections == []

        self.graph.clear()
        assert len(self.graph) == 0


class TestGeometry:

    def test_snap_to_grid(self):
        assert snap_to_grid(41, 59) == (40, 40)
        assert snap_to_grid(60, 61) == (80, 80)
        assert snap_to_grid(-21, 19) == (-40, 0)

    def test_distance_to_segment(self):
        assert distance_to_segment(5, 3, 0, 0, 10, 0) == pytest.approx(3.0)
        # beyond the end point the distance is to the end point
        assert distance_to_segment(13, 4, 0, 0, 10, 0) == pytest.approx(5.0)
        # zero-length segment
        assert distance_to_segment(3, 4, 0, 0, 0, 0) == pytest.approx(5.0)

    def test_format_signal(self):
        assert format_signal(None) == "OFF"
        assert format_signal(0.0) == "0.0"
        assert format_signal(10 / 3) == "3.3"
