from dataclasses import dataclass
from typing import Callable, Dict, Iterator, List, NamedTuple, Optional, Tuple
import math
import uuid

from logging import getLogger

from .Types import AggregateOp, CompareMode, NodeId, NodeKind, Signal

logger = getLogger(__name__)

GRID_SIZE = 40
NODE_HIT_RADIUS = 20
CONNECTION_HIT_TOLERANCE = 5

DEFAULT_THRESHOLD = 5.0


# Connections are plain value pairs. Two connections with the same endpoints
# are still two connections: each one duplicates the source's contribution.
class Connection(NamedTuple):
    from_id: NodeId
    to_id: NodeId

    def touches(self, node_id: NodeId) -> bool:
        return self.from_id == node_id or self.to_id == node_id

    def __repr__(self):
        return f"Connection({self.from_id} -> {self.to_id})"


@dataclass
class SignalNode:
    """
    One node of the signal grid.

    Every node carries the settings of every kind. Only the fields matching
    ``kind`` take part in evaluation; the others are kept so the node's
    configuration survives untouched.
    """
    id: NodeId
    kind: NodeKind
    x: float = 0.0
    y: float = 0.0
    value: Signal = None
    threshold: float = DEFAULT_THRESHOLD
    compare_mode: CompareMode = CompareMode.GT
    tolerance: float = 0.0
    aggregate_op: AggregateOp = AggregateOp.SUM

    def is_on(self) -> bool:
        return self.value is not None

    def is_input(self) -> bool:
        return self.kind == NodeKind.INPUT


# Fields the presentation layer may change after creation.
EDITABLE_FIELDS = frozenset({
    "value", "threshold", "compare_mode", "tolerance", "aggregate_op", "x", "y",
})


def snap_to_grid(x: float, y: float, grid: int = GRID_SIZE) -> Tuple[int, int]:
    # round() half-to-even would disagree with the canvas on exact midpoints
    return (int(math.floor(x / grid + 0.5)) * grid,
            int(math.floor(y / grid + 0.5)) * grid)


def _to_float(field: str, value) -> float:
    # only "value" may be OFF; every other numeric field needs a number
    if isinstance(value, bool):
        raise ValueError(f"{field} must be a number, got {value!r}")
    try:
        return float(value)
    except (TypeError, ValueError):
        raise ValueError(f"{field} must be a number, got {value!r}") from None


def distance_to_segment(px: float, py: float,
                        ax: float, ay: float,
                        bx: float, by: float) -> float:
    """Distance from point P to the segment A-B."""
    l2 = (ax - bx) ** 2 + (ay - by) ** 2
    if l2 == 0:
        return math.hypot(px - ax, py - ay)
    t = ((px - ax) * (bx - ax) + (py - ay) * (by - ay)) / l2
    t = max(0.0, min(1.0, t))
    return math.hypot(px - (ax + t * (bx - ax)), py - (ay + t * (by - ay)))


class Graph:
    """
    Nodes keyed by id plus an ordered list of connections.

    Node insertion order is the evaluation order used by the propagator, so
    it is part of the graph's observable behaviour.
    """

    def __init__(self):
        self.nodes: Dict[NodeId, SignalNode] = {}
        self.connections: List[Connection] = []

    def __eq__(self, other):
        if not isinstance(other, Graph):
            return NotImplemented
        return (list(self.nodes.items()) == list(other.nodes.items())
                and self.connections == other.connections)

    def __len__(self):
        return len(self.nodes)

    def __iter__(self) -> Iterator[SignalNode]:
        return iter(list(self.nodes.values()))

    def __repr__(self):
        return f"Graph(nodes={len(self.nodes)}, connections={len(self.connections)})"

    # --- Node Management ---

    def add_node(self, kind: NodeKind, position: Tuple[float, float] = (0.0, 0.0),
                 node_id: Optional[NodeId] = None) -> NodeId:
        kind = NodeKind.parse(kind)
        if node_id is None:
            node_id = uuid.uuid4().hex
        if node_id in self.nodes:
            raise ValueError(f"Node with id '{node_id}' already exists in the graph")

        x, y = position
        self.nodes[node_id] = SignalNode(id=node_id, kind=kind, x=x, y=y)
        logger.debug("Added %s node %s at (%s, %s)", kind.value, node_id, x, y)
        return node_id

    def insert_node(self, node: SignalNode) -> SignalNode:
        """Insert a fully built node, as done when decoding a document."""
        if node.id in self.nodes:
            raise ValueError(f"Node with id '{node.id}' already exists in the graph")
        self.nodes[node.id] = node
        return node

    def get_node(self, node_id: NodeId) -> Optional[SignalNode]:
        return self.nodes.get(node_id)

    def require_node(self, node_id: NodeId) -> SignalNode:
        node = self.nodes.get(node_id)
        if node is None:
            raise KeyError(f"Node with id '{node_id}' does not exist in the graph")
        return node

    def remove_node(self, node_id: NodeId) -> bool:
        if node_id not in self.nodes:
            return False

        removed = self.remove_connections(lambda c: c.touches(node_id))
        del self.nodes[node_id]
        logger.debug("Removed node %s and %d connection(s)", node_id, removed)
        return True

    def set_node_field(self, node_id: NodeId, field: str, value) -> SignalNode:
        node = self.require_node(node_id)
        if field not in EDITABLE_FIELDS:
            raise ValueError(f"Field '{field}' cannot be set on a node")

        if field == "compare_mode":
            value = CompareMode.parse(value)
        elif field == "aggregate_op":
            value = AggregateOp.parse(value)
        elif field == "value":
            value = None if value is None else _to_float(field, value)
        elif field == "tolerance":
            value = _to_float(field, value)
            if value < 0:
                raise ValueError(f"tolerance must be non-negative, got {value}")
        else:
            value = _to_float(field, value)

        setattr(node, field, value)
        return node

    def node_at(self, x: float, y: float, radius: float = NODE_HIT_RADIUS) -> Optional[SignalNode]:
        for node in self.nodes.values():
            if math.hypot(node.x - x, node.y - y) < radius:
                return node
        return None

    def node_on_cell(self, x: float, y: float) -> Optional[SignalNode]:
        for node in self.nodes.values():
            if node.x == x and node.y == y:
                return node
        return None

    # --- Connection Management ---

    def add_connection(self, from_id: NodeId, to_id: NodeId,
                       allow_duplicate: bool = True,
                       allow_self: bool = True) -> Connection:
        self.require_node(from_id)
        self.require_node(to_id)

        connection = Connection(from_id, to_id)
        if not allow_self and from_id == to_id:
            raise ValueError(f"Self-connection on node '{from_id}' is not allowed")
        if not allow_duplicate and connection in self.connections:
            raise ValueError(f"{connection!r} already exists")

        self.connections.append(connection)
        return connection

    def remove_connections(self, predicate: Callable[[Connection], bool]) -> int:
        kept = [c for c in self.connections if not predicate(c)]
        removed = len(self.connections) - len(kept)
        self.connections = kept
        return removed

    def get_incoming_connections(self, node_id: NodeId) -> List[Connection]:
        return [c for c in self.connections if c.to_id == node_id]

    def get_outgoing_connections(self, node_id: NodeId) -> List[Connection]:
        return [c for c in self.connections if c.from_id == node_id]

    def incoming_values(self, node_id: NodeId) -> List[float]:
        """
        Source values arriving at ``node_id``, one entry per connection in
        connection order. OFF sources and sources that no longer exist are
        skipped.
        """
        values = []
        for connection in self.connections:
            if connection.to_id != node_id:
                continue
            source = self.nodes.get(connection.from_id)
            if source is None or source.value is None:
                continue
            values.append(source.value)
        return values

    def connection_near(self, x: float, y: float,
                        tolerance: float = CONNECTION_HIT_TOLERANCE) -> Callable[[Connection], bool]:
        """
        Predicate matching connections drawn within ``tolerance`` of (x, y).
        Connections with a missing endpoint are never matched, since they are
        not drawn.
        """
        def predicate(connection: Connection) -> bool:
            source = self.nodes.get(connection.from_id)
            target = self.nodes.get(connection.to_id)
            if source is None or target is None:
                return False
            return distance_to_segment(x, y, source.x, source.y, target.x, target.y) <= tolerance
        return predicate

    # --- Whole-graph operations ---

    def reset_values(self):
        for node in self.nodes.values():
            if not node.is_input():
                node.value = None

    def clear(self):
        self.nodes.clear()
        self.connections.clear()

    def replace(self, other: 'Graph'):
        """Swap in the contents of ``other``; used on load and import."""
        self.nodes = dict(other.nodes)
        self.connections = list(other.connections)

    def values(self) -> Dict[NodeId, Signal]:
        return {node_id: node.value for node_id, node in self.nodes.items()}


__all__ = [
    "CONNECTION_HIT_TOLERANCE",
    "Connection",
    "DEFAULT_THRESHOLD",
    "EDITABLE_FIELDS",
    "GRID_SIZE",
    "Graph",
    "NODE_HIT_RADIUS",
    "SignalNode",
    "distance_to_segment",
    "snap_to_grid",
]
