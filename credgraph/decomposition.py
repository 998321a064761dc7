"""
Explain a PageRank result: split each node's score into the contributions of
the connections that feed it.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Mapping

from credgraph.address import NodeAddress
from credgraph.connections import Connection, NodeToConnections, adjacency_source


@dataclass(frozen=True)
class ScoredConnection:
    connection: Connection
    source: NodeAddress
    connection_score: float


@dataclass(frozen=True)
class NodeDecomposition:
    score: float
    scored_connections: tuple[ScoredConnection, ...]


PagerankNodeDecomposition = dict[NodeAddress, NodeDecomposition]


def decompose(
    pr: Mapping[NodeAddress, float],
    connections: NodeToConnections,
) -> PagerankNodeDecomposition:
    """
    `connections` must be normalized (weights are transition probabilities).
    Connections are listed by descending score; ties keep enumeration order.
    """
    result: PagerankNodeDecomposition = {}
    for target, conns in connections.items():
        scored = []
        for conn in conns:
            source = adjacency_source(target, conn.adjacency)
            scored.append(ScoredConnection(
                connection=conn,
                source=source,
                connection_score=pr[source] * conn.weight,
            ))
        scored.sort(key=lambda sc: -sc.connection_score)
        result[target] = NodeDecomposition(score=pr[target], scored_connections=tuple(scored))
    return result


def validate_decomposition(
    decomposition: PagerankNodeDecomposition,
    epsilon: float = 1e-6,
) -> None:
    """
    Sanity checks: every node's score is the sum of its connection scores,
    scores total 1, and connections are in non-increasing score order.
    """
    for address, node in decomposition.items():
        subtotal = sum(sc.connection_score for sc in node.scored_connections)
        delta = subtotal - node.score
        if abs(delta) > epsilon:
            raise ValueError(
                f"for node {address}: expected total score ({node.score}) to equal "
                f"sum of connection scores ({subtotal}) within {epsilon}, "
                f"but the difference is {delta}"
            )

    total = sum(node.score for node in decomposition.values())
    if abs(total - 1) > epsilon:
        raise ValueError(
            f"expected total score of all nodes ({total}) to equal 1.0 "
            f"within {epsilon}, but the difference is {total - 1}"
        )

    for node in decomposition.values():
        scs = node.scored_connections
        for i in range(1, len(scs)):
            if scs[i].connection_score > scs[i - 1].connection_score:
                raise ValueError(
                    f"expected connection score to be non-increasing, but element "
                    f"at index {i} has score {scs[i].connection_score}, higher than "
                    f"that of its predecessor ({scs[i - 1].connection_score})"
                )
