"""
Declarative weights → evaluators.

Node and edge types are identified by address prefixes. A `Weights` object
assigns a weight to each node type, a forward/backward pair to each edge
type, and optional per-node manual overrides. The evaluators resolve an
address to the most specific (longest) matching type prefix.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Callable, Optional, Sequence

from credgraph.address import EdgeAddress, NodeAddress
from credgraph.connections import EdgeEvaluator, EdgeWeight
from credgraph.graph import Edge

NodeEvaluator = Callable[[NodeAddress], float]


@dataclass(frozen=True)
class NodeType:
    name: str
    prefix: NodeAddress
    default_weight: float = 1.0


@dataclass(frozen=True)
class EdgeType:
    name: str
    prefix: EdgeAddress
    forward_weight: float = 1.0
    backward_weight: float = 1.0


@dataclass(frozen=True)
class NodeAndEdgeTypes:
    node_types: tuple[NodeType, ...] = ()
    edge_types: tuple[EdgeType, ...] = ()


@dataclass(frozen=True)
class EdgeTypeWeight:
    forwards: float
    backwards: float


@dataclass
class Weights:
    node_type_weights: dict[NodeAddress, float] = field(default_factory=dict)
    edge_type_weights: dict[EdgeAddress, EdgeTypeWeight] = field(default_factory=dict)
    node_manual_weights: dict[NodeAddress, float] = field(default_factory=dict)


def default_weights(types: NodeAndEdgeTypes) -> Weights:
    return Weights(
        node_type_weights={t.prefix: t.default_weight for t in types.node_types},
        edge_type_weights={
            t.prefix: EdgeTypeWeight(t.forward_weight, t.backward_weight)
            for t in types.edge_types
        },
    )


def _longest_prefix(address, prefixes: Sequence) -> Optional[object]:
    best = None
    for prefix in prefixes:
        if prefix.is_prefix_of(address) and (best is None or len(prefix) > len(best)):
            best = prefix
    return best


def weights_to_node_evaluator(weights: Weights, types: NodeAndEdgeTypes) -> NodeEvaluator:
    """Manual weight if present, else the weight of the node's type, else 1."""
    type_weights = dict(weights.node_type_weights)
    for t in types.node_types:
        type_weights.setdefault(t.prefix, t.default_weight)
    for address, w in list(type_weights.items()) + list(weights.node_manual_weights.items()):
        if w < 0:
            raise ValueError(f"negative node weight {w} for {address}")
    prefixes = list(type_weights)
    cache: dict[NodeAddress, float] = {}

    def evaluate(address: NodeAddress) -> float:
        manual = weights.node_manual_weights.get(address)
        if manual is not None:
            return manual
        cached = cache.get(address)
        if cached is not None:
            return cached
        prefix = _longest_prefix(address, prefixes)
        result = 1.0 if prefix is None else type_weights[prefix]
        cache[address] = result
        return result

    return evaluate


def weights_to_edge_evaluator(weights: Weights, types: NodeAndEdgeTypes) -> EdgeEvaluator:
    """
    to_weight = forwards × weight(dst), fro_weight = backwards × weight(src),
    with (1, 1) for edges that match no edge type.
    """
    node_weight = weights_to_node_evaluator(weights, types)
    type_weights = dict(weights.edge_type_weights)
    for t in types.edge_types:
        type_weights.setdefault(t.prefix, EdgeTypeWeight(t.forward_weight, t.backward_weight))
    prefixes = list(type_weights)

    def evaluate(edge: Edge) -> EdgeWeight:
        prefix = _longest_prefix(edge.address, prefixes)
        etw = EdgeTypeWeight(1.0, 1.0) if prefix is None else type_weights[prefix]
        return EdgeWeight(
            to_weight=etw.forwards * node_weight(edge.dst),
            fro_weight=etw.backwards * node_weight(edge.src),
        )

    return evaluate
