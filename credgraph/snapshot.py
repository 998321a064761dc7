"""JSON snapshots of graphs and PageRank scores."""

from __future__ import annotations

import json
import logging
from datetime import datetime, timezone
from pathlib import Path
from typing import Optional

from credgraph.address import EdgeAddress, NodeAddress
from credgraph.config import DEFAULT_SYNTHETIC_LOOP_WEIGHT
from credgraph.connections import EdgeEvaluator, EdgeWeight
from credgraph.errors import SnapshotError
from credgraph.graph import AddressedGraph, Edge, Node
from credgraph.pagerank_graph import PagerankGraph

log = logging.getLogger(__name__)

SNAPSHOT_VERSION = 1


def _uniform_evaluator(edge: Edge) -> EdgeWeight:
    return EdgeWeight(1.0, 1.0)


def graph_to_json(graph: AddressedGraph) -> dict:
    return {
        "nodes": [
            {
                "address":      list(n.address.parts),
                "description":  n.description,
                "timestamp_ms": n.timestamp_ms,
            }
            for n in graph.nodes()
        ],
        "edges": [
            {
                "address":      list(e.address.parts),
                "src":          list(e.src.parts),
                "dst":          list(e.dst.parts),
                "timestamp_ms": e.timestamp_ms,
            }
            for e in graph.edges()
        ],
    }


def _require_object(value, what: str) -> dict:
    if not isinstance(value, dict):
        raise SnapshotError(f"{what} must be a JSON object, got {type(value).__name__}")
    return value


def _timestamp(value, required: bool):
    if value is None and not required:
        return None
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise SnapshotError(f"timestamp must be a number, got {value!r}")
    return value


def graph_from_json(data: dict) -> AddressedGraph:
    _require_object(data, "graph")
    graph = AddressedGraph()
    try:
        for n in data["nodes"]:
            _require_object(n, "node entry")
            graph.add_node(Node(
                address=NodeAddress.from_parts(n["address"]),
                description=n.get("description", ""),
                timestamp_ms=_timestamp(n.get("timestamp_ms"), required=False),
            ))
        for e in data["edges"]:
            _require_object(e, "edge entry")
            graph.add_edge(Edge(
                address=EdgeAddress.from_parts(e["address"]),
                src=NodeAddress.from_parts(e["src"]),
                dst=NodeAddress.from_parts(e["dst"]),
                timestamp_ms=_timestamp(e["timestamp_ms"], required=True),
            ))
    except (KeyError, TypeError) as exc:
        raise SnapshotError(f"malformed graph JSON: {exc!r}") from exc
    return graph


def pagerank_graph_to_json(prg: PagerankGraph) -> dict:
    """Graph plus scores listed in node-address order."""
    return {
        "version":      SNAPSHOT_VERSION,
        "generated_at": datetime.now(timezone.utc).isoformat(),
        "graph":        graph_to_json(prg.graph()),
        "scores":       [scored.score for scored in prg.nodes()],
    }


def pagerank_graph_from_json(
    data: dict,
    edge_evaluator: Optional[EdgeEvaluator] = None,
    synthetic_loop_weight: float = DEFAULT_SYNTHETIC_LOOP_WEIGHT,
) -> PagerankGraph:
    _require_object(data, "snapshot")
    if data.get("version") != SNAPSHOT_VERSION:
        raise SnapshotError(f"unsupported snapshot version: {data.get('version')!r}")
    if "graph" not in data or "scores" not in data:
        raise SnapshotError("snapshot must contain 'graph' and 'scores'")
    graph = graph_from_json(data["graph"])
    addresses = [n.address for n in graph.nodes()]
    scores = data["scores"]
    if len(scores) != len(addresses):
        raise SnapshotError(
            f"snapshot has {len(scores)} scores for {len(addresses)} nodes"
        )
    return PagerankGraph.from_scores(
        graph,
        dict(zip(addresses, scores)),
        edge_evaluator or _uniform_evaluator,
        synthetic_loop_weight,
    )


def save_snapshot(prg: PagerankGraph, path: Path) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    with path.open("w") as f:
        json.dump(pagerank_graph_to_json(prg), f, indent=2, default=str)
    log.info(f"✓ Saved {path} ({path.stat().st_size / 1024:.1f} KB)")


def load_snapshot(path: Path) -> PagerankGraph:
    if not path.exists():
        raise SnapshotError(f"'{path}' not found")
    with path.open() as f:
        try:
            data = json.load(f)
        except json.JSONDecodeError as exc:
            raise SnapshotError(f"'{path}' is not valid JSON: {exc}") from exc
    return pagerank_graph_from_json(data)
