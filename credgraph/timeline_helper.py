"""Read-only queries over TimelineScores, plus a pandas view."""

from __future__ import annotations

from dataclasses import dataclass

import pandas as pd

from credgraph.address import NodeAddress
from credgraph.errors import MissingNodeError
from credgraph.graph import AddressedGraph
from credgraph.pagerank_graph import ScoredNode
from credgraph.timeline import Interval, TimelineScores


@dataclass(frozen=True)
class IntervalCred:
    interval: Interval
    cred: float


class TimelineScoreHelper:
    def __init__(self, graph: AddressedGraph, timeline_scores: TimelineScores) -> None:
        self._graph = graph
        self._scores = timeline_scores

    def intervals(self) -> tuple[Interval, ...]:
        return self._scores.intervals

    def timeseries_cred(self, address: NodeAddress) -> tuple[IntervalCred, ...]:
        """
        Cred accumulated by `address` in each interval, in interval order.

        Raises MissingNodeError if the node has no scores.
        """
        scores = self._scores.node_address_to_scores.get(address)
        if scores is None:
            raise MissingNodeError(address)
        return tuple(
            IntervalCred(interval, cred)
            for interval, cred in zip(self._scores.intervals, scores)
        )

    def aggregate_cred(self, address: NodeAddress) -> float:
        return sum(x.cred for x in self.timeseries_cred(address))

    def cred_sorted_nodes(self, prefix: NodeAddress = NodeAddress.empty) -> list[ScoredNode]:
        """Nodes under `prefix` with their aggregate cred, highest first."""
        results = [
            ScoredNode(node=node, score=self.aggregate_cred(node.address))
            for node in self._graph.nodes(prefix)
        ]
        results.sort(key=lambda x: -x.score)
        return results


def timeline_scores_frame(timeline_scores: TimelineScores) -> pd.DataFrame:
    """Long-form frame: one row per (node, interval)."""
    rows = []
    for address, scores in timeline_scores.node_address_to_scores.items():
        for interval, cred in zip(timeline_scores.intervals, scores):
            rows.append({
                "node":           address.to_string(),
                "interval_start": interval.start_time_ms,
                "interval_end":   interval.end_time_ms,
                "cred":           cred,
            })
    df = pd.DataFrame(rows, columns=["node", "interval_start", "interval_end", "cred"])
    if not df.empty:
        df["interval_start"] = pd.to_datetime(df["interval_start"], unit="ms", utc=True)
        df["interval_end"]   = pd.to_datetime(df["interval_end"], unit="ms", utc=True)
    return df
