"""
Probability distributions over node indices.

A distribution is a 1-d float64 numpy array whose entries sum to 1; index `i`
refers to `node_order[i]` of an ordered Markov chain.
"""

from __future__ import annotations

from typing import Mapping, Sequence

import numpy as np

from credgraph.address import NodeAddress
from credgraph.errors import InvalidDistributionError

Distribution = np.ndarray


def uniform_distribution(n: int) -> Distribution:
    if isinstance(n, bool) or not isinstance(n, (int, np.integer)) or n <= 0:
        raise InvalidDistributionError(f"expected positive integer, but got: {n!r}")
    return np.full(n, 1.0 / n)


def _check_pair(pi0: Distribution, pi1: Distribution) -> None:
    if len(pi0) == 0 or len(pi0) != len(pi1):
        raise InvalidDistributionError(
            f"invalid input: lengths {len(pi0)} and {len(pi1)}"
        )


def compute_delta(pi0: Distribution, pi1: Distribution) -> float:
    """Maximum absolute component-wise difference (the infinity norm)."""
    _check_pair(pi0, pi1)
    return float(np.max(np.abs(np.asarray(pi0) - np.asarray(pi1))))


def delta_less_than(pi0: Distribution, pi1: Distribution, target: float) -> bool:
    """
    Whether every component differs by less than `target`.

    Cheaper than `compute_delta` when we only need a yes/no: the scan stops at
    the first component that reaches the target.
    """
    _check_pair(pi0, pi1)
    for a, b in zip(pi0, pi1):
        if abs(a - b) >= target:
            return False
    return True


def weighted_distribution(
    node_order: Sequence[NodeAddress],
    weights: Mapping[NodeAddress, float],
) -> Distribution:
    """
    Distribution proportional to `weights` over `node_order`.

    Addresses missing from `node_order` are ignored. If no positive weight
    remains, the result is uniform.
    """
    pi = np.zeros(len(node_order))
    for i, address in enumerate(node_order):
        w = weights.get(address, 0.0)
        if w < 0:
            raise InvalidDistributionError(f"negative weight {w} for {address}")
        pi[i] = w
    total = pi.sum()
    if total <= 0:
        return uniform_distribution(len(node_order))
    return pi / total


def distribution_to_node_distribution(
    node_order: Sequence[NodeAddress],
    pi: Distribution,
) -> dict[NodeAddress, float]:
    if len(node_order) != len(pi):
        raise InvalidDistributionError(
            f"node order has {len(node_order)} entries but distribution has {len(pi)}"
        )
    return {address: float(p) for address, p in zip(node_order, pi)}
