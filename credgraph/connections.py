"""
Per-node connections: the ways probability mass can flow *into* a node.

For every node we enumerate a synthetic self-loop, one connection per in-edge
(mass flowing src → dst, weighted by the evaluator's `to_weight`) and one per
out-edge (mass flowing dst → src, weighted by `fro_weight`). Dangling edges
carry no mass and are skipped.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Callable, Union

from credgraph.address import NodeAddress
from credgraph.graph import AddressedGraph, Edge


@dataclass(frozen=True)
class EdgeWeight:
    to_weight: float
    fro_weight: float


EdgeEvaluator = Callable[[Edge], EdgeWeight]


@dataclass(frozen=True)
class SyntheticLoop:
    pass


@dataclass(frozen=True)
class InEdge:
    edge: Edge


@dataclass(frozen=True)
class OutEdge:
    edge: Edge


Adjacency = Union[SyntheticLoop, InEdge, OutEdge]


@dataclass(frozen=True)
class Connection:
    adjacency: Adjacency
    weight: float


NodeToConnections = dict[NodeAddress, list[Connection]]


def adjacency_source(target: NodeAddress, adjacency: Adjacency) -> NodeAddress:
    """The node that sends mass along `adjacency` into `target`."""
    if isinstance(adjacency, SyntheticLoop):
        return target
    if isinstance(adjacency, InEdge):
        return adjacency.edge.src
    if isinstance(adjacency, OutEdge):
        return adjacency.edge.dst
    raise TypeError(f"unknown adjacency: {adjacency!r}")


def create_connections(
    graph: AddressedGraph,
    edge_evaluator: EdgeEvaluator,
    synthetic_loop_weight: float,
) -> NodeToConnections:
    """Raw (unnormalized) connections for every node, in node-address order."""
    if synthetic_loop_weight < 0:
        raise ValueError(f"synthetic loop weight must be >= 0, got {synthetic_loop_weight}")

    result: NodeToConnections = {}
    for node in graph.nodes():
        result[node.address] = [Connection(SyntheticLoop(), synthetic_loop_weight)]

    for edge in graph.edges(show_dangling=False):
        weight = edge_evaluator(edge)
        if weight.to_weight < 0 or weight.fro_weight < 0:
            raise ValueError(f"negative weight {weight} for edge {edge.address}")
        result[edge.dst].append(Connection(InEdge(edge), weight.to_weight))
        result[edge.src].append(Connection(OutEdge(edge), weight.fro_weight))

    return result
