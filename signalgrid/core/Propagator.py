from typing import Callable, Dict, List, Optional
from logging import getLogger

from .GraphPrimitives import Graph, SignalNode
from .Types import AggregateOp, CompareMode, NodeId, NodeKind, Signal

logger = getLogger(__name__)

# Fixed sweep budget. Enough to carry a signal through five hops in one call
# while staying bounded on cyclic graphs.
SWEEP_COUNT = 5

Rule = Callable[[SignalNode, List[float]], Signal]


class Propagator:
    """
    Bounded relaxation over a Graph.

    Each call runs exactly ``SWEEP_COUNT`` sweeps. A sweep visits every
    non-INPUT node in graph insertion order and commits the new value at
    once, so nodes later in the same sweep already read it. INPUT nodes are
    never written.

    Optional hooks:
        on_node_value(node_id, value)       after each node update
        on_sweep_done(sweep_index, values)  after each full sweep
    """
    _rule_registry: Dict[NodeKind, Rule] = {}

    @classmethod
    def register_rule(cls, kind: NodeKind) -> Callable[[Rule], Rule]:
        """Decorator to register the evaluation rule of a node kind."""
        def decorator(rule: Rule) -> Rule:
            if kind in cls._rule_registry:
                raise ValueError(f"Rule for node kind '{kind.value}' is already registered.")
            cls._rule_registry[kind] = rule
            return rule
        return decorator

    @classmethod
    def rule_for(cls, kind: NodeKind) -> Rule:
        # OUTPUT and anything without a dedicated rule display the strongest signal
        return cls._rule_registry.get(kind, max_rule)

    def __init__(self, graph: Graph, sweeps: int = SWEEP_COUNT):
        self.graph = graph
        self.sweeps = sweeps
        self.on_node_value: Optional[Callable[[NodeId, Signal], None]] = None
        self.on_sweep_done: Optional[Callable[[int, Dict[NodeId, Signal]], None]] = None

    def evaluate(self, node: SignalNode) -> Signal:
        incoming = self.graph.incoming_values(node.id)
        if not incoming:
            return None
        return Propagator.rule_for(node.kind)(node, incoming)

    def sweep(self):
        for node in self.graph:
            if node.is_input():
                continue
            node.value = self.evaluate(node)
            if self.on_node_value:
                self.on_node_value(node.id, node.value)

    def run(self) -> Dict[NodeId, Signal]:
        for sweep_index in range(self.sweeps):
            self.sweep()
            if self.on_sweep_done:
                self.on_sweep_done(sweep_index, self.graph.values())

        values = self.graph.values()
        logger.debug("Propagation finished: %d node(s), %d sweep(s)", len(values), self.sweeps)
        return values


def propagate(graph: Graph) -> Dict[NodeId, Signal]:
    """Run one propagation call over ``graph`` and return the settled values."""
    return Propagator(graph).run()


# --- Evaluation rules ---

def max_rule(node: SignalNode, incoming: List[float]) -> Signal:
    return max(incoming)


Propagator.register_rule(NodeKind.OUTPUT)(max_rule)


def passes_threshold(node: SignalNode, signal: float) -> bool:
    threshold = node.threshold
    tolerance = node.tolerance or 0.0
    if node.compare_mode == CompareMode.GT:
        return signal > threshold - tolerance
    if node.compare_mode == CompareMode.LT:
        return signal < threshold + tolerance
    if node.compare_mode == CompareMode.EQ:
        return abs(signal - threshold) <= tolerance
    return False


# A threshold gate reacts to its first incoming signal only; any further
# connections into it are kept but not read.
@Propagator.register_rule(NodeKind.THRESHOLD)
def threshold_rule(node: SignalNode, incoming: List[float]) -> Signal:
    signal = incoming[0]
    return signal if passes_threshold(node, signal) else None


@Propagator.register_rule(NodeKind.COMPETITIVE)
def competitive_rule(node: SignalNode, incoming: List[float]) -> Signal:
    op = node.aggregate_op
    if op == AggregateOp.MAX:
        return max(incoming)
    if op == AggregateOp.MIN:
        return min(incoming)
    if op == AggregateOp.AVG:
        return sum(incoming) / len(incoming)
    return sum(incoming)
