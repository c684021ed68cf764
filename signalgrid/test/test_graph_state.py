import pytest

from signalgrid.core.Propagator import SWEEP_COUNT
from signalgrid.core.Types import CompareMode, NodeKind
from signalgrid.persistence import LocalStore, SchemaError, StorageError
from signalgrid.server.state import CellOccupiedError, GraphState
from signalgrid.server.trace.trace_emitter import TraceEmitter
from signalgrid.server.trace.trace_types import TRACE_EVENT_TYPES


class TestGraphState:

    def setup_method(self):
        self.events = []
        self.tracer = TraceEmitter()
        self.tracer.on_trace(self.events.append)

    def teardown_method(self):
        self.tracer.off_trace(self.events.append)

    def _state(self, root):
        return GraphState(LocalStore(root), tracer=self.tracer)

    def _types(self):
        return [event["type"] for event in self.events]

    def test_edit_fires_one_simulation(self, tmp_path):
        """Every edit is followed by exactly one propagation call"""
        state = self._state(tmp_path)
        state.drop_node(NodeKind.INPUT, 0, 0)

        assert self._types() == (
            ["SIMULATE_START"] + ["SWEEP_DONE"] * SWEEP_COUNT + ["SIMULATE_DONE"]
        )
        assert self.events[0]["reason"] == "add-node"
        assert [e["sweep"] for e in self.events[1:-1]] == list(range(SWEEP_COUNT))
        assert all("ts" in event for event in self.events)

    def test_event_values_use_string_keys(self, tmp_path):
        state = self._state(tmp_path)
        state.import_document({"nodes": [{"id": 7, "type": "INPUT", "val": 2}], "connections": []})
        done = [e for e in self.events if e["type"] == "SIMULATE_DONE"][-1]
        assert done["values"] == {"7": 2.0}

    def test_drop_on_occupied_cell(self, tmp_path):
        state = self._state(tmp_path)
        node = state.drop_node("OUTPUT", 79, 81)
        assert (node.x, node.y) == (80, 80)
        with pytest.raises(CellOccupiedError, match=r"\(80, 80\)"):
            state.drop_node("INPUT", 85, 70)

    def test_update_is_all_or_nothing(self, tmp_path):
        """One bad field leaves the node exactly as it was"""
        state = self._state(tmp_path)
        node = state.drop_node(NodeKind.THRESHOLD, 0, 0)
        with pytest.raises(ValueError):
            state.update_node(node.id, {"thresh": 2, "logic": "LT", "strict": -1})
        assert node.threshold == 5.0
        assert node.compare_mode == CompareMode.GT

    def test_update_value_only_on_inputs(self, tmp_path):
        state = self._state(tmp_path)
        node = state.drop_node(NodeKind.OUTPUT, 0, 0)
        with pytest.raises(ValueError, match="Only INPUT"):
            state.update_node(node.id, {"value": 1})

    def test_delete_missing_node(self, tmp_path):
        with pytest.raises(KeyError):
            self._state(tmp_path).delete_node("nope")

    def test_wipe_and_import_fire_replaced(self, tmp_path):
        state = self._state(tmp_path)
        state.wipe()
        state.import_text('{"nodes": [], "connections": []}')
        replaced = [e for e in self.events if e["type"] == "GRAPH_REPLACED"]
        assert [e["source"] for e in replaced] == ["wipe", "import"]

    def test_bad_import_keeps_graph(self, tmp_path):
        state = self._state(tmp_path)
        state.drop_node(NodeKind.INPUT, 0, 0)
        with pytest.raises(SchemaError):
            state.import_text("[]")
        assert len(state.graph) == 1

    def test_save_failure_is_traced(self, tmp_path):
        blocker = tmp_path / "blocker"
        blocker.write_text("not a directory")
        state = self._state(blocker)
        with pytest.raises(StorageError):
            state.save()
        assert self._types()[-1] == "STORAGE_ERROR"

    def test_load_empty_slot_keeps_graph(self, tmp_path):
        state = self._state(tmp_path)
        state.drop_node(NodeKind.INPUT, 0, 0)
        assert state.load() is False
        assert len(state.graph) == 1

    def test_broken_listener_does_not_break_edits(self, tmp_path):
        def broken(event):
            raise RuntimeError("listener down")

        self.tracer.on_trace(broken)
        state = self._state(tmp_path)
        state.drop_node(NodeKind.INPUT, 0, 0)
        assert self._types()[-1] == "SIMULATE_DONE"

    def test_every_event_type_is_declared(self, tmp_path):
        state = self._state(tmp_path)
        node = state.drop_node(NodeKind.INPUT, 0, 0)
        state.update_node(node.id, {"val": 3})
        state.save()
        state.load()
        state.wipe()
        assert set(self._types()) <= set(TRACE_EVENT_TYPES)
        assert {"SIMULATE_START", "SWEEP_DONE", "SIMULATE_DONE", "GRAPH_REPLACED"} <= set(self._types())
