"""
Stationary distribution of a seeded, damped Markov chain (personalized
PageRank) by power iteration:

    pi_{t+1} = alpha * seed + (1 - alpha) * (pi_t · chain)

The loop runs to completion. Callers that share the thread with something
else can pass `on_yield`, which is invoked every `yield_after_ms` of wall
clock spent iterating.
"""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass
from typing import Callable, Optional

import numpy as np

from credgraph.config import (
    DEFAULT_CONVERGENCE_THRESHOLD,
    DEFAULT_MAX_ITERATIONS,
    DEFAULT_YIELD_AFTER_MS,
)
from credgraph.distribution import Distribution, compute_delta, delta_less_than
from credgraph.errors import ConvergenceNotReached, InvalidDistributionError
from credgraph.markov_chain import SparseMarkovChain

log = logging.getLogger(__name__)

YieldHook = Callable[[int, float], None]


@dataclass(frozen=True, eq=False)
class PagerankParams:
    chain: SparseMarkovChain
    alpha: float
    seed: Distribution
    pi0: Optional[Distribution] = None


@dataclass(frozen=True)
class PagerankOptions:
    convergence_threshold: float = DEFAULT_CONVERGENCE_THRESHOLD
    max_iterations: int = DEFAULT_MAX_ITERATIONS
    yield_after_ms: float = DEFAULT_YIELD_AFTER_MS
    verbose: bool = False


@dataclass(frozen=True, eq=False)
class StationaryDistributionResult:
    pi: Distribution
    converged: bool
    iterations: int
    delta: float

    def raise_if_not_converged(self) -> "StationaryDistributionResult":
        if not self.converged:
            raise ConvergenceNotReached(self.iterations, self.delta)
        return self


def _validate(params: PagerankParams) -> Distribution:
    n = len(params.chain)
    if not 0.0 <= params.alpha <= 1.0:
        raise ValueError(f"alpha must be in [0, 1], got {params.alpha}")
    if len(params.seed) != n:
        raise InvalidDistributionError(
            f"seed has {len(params.seed)} entries for a chain of {n} nodes"
        )
    pi0 = params.seed if params.pi0 is None else params.pi0
    if len(pi0) != n:
        raise InvalidDistributionError(
            f"pi0 has {len(pi0)} entries for a chain of {n} nodes"
        )
    return np.asarray(pi0, dtype=np.float64)


def find_stationary_distribution(
    params: PagerankParams,
    options: PagerankOptions = PagerankOptions(),
    on_yield: Optional[YieldHook] = None,
) -> StationaryDistributionResult:
    pi = _validate(params)
    n = len(params.chain)
    if n == 0:
        return StationaryDistributionResult(pi=pi, converged=True, iterations=0, delta=0.0)

    targets, sources, probs = params.chain.coo
    seed = np.asarray(params.seed, dtype=np.float64)
    alpha = params.alpha

    def step(current: Distribution) -> Distribution:
        flow = np.bincount(targets, weights=current[sources] * probs, minlength=n)
        return alpha * seed + (1 - alpha) * flow

    started = time.monotonic()
    last_yield = started
    yield_after = options.yield_after_ms / 1000.0
    iteration = 0

    while iteration < options.max_iterations:
        iteration += 1
        new_pi = step(pi)
        if delta_less_than(pi, new_pi, options.convergence_threshold):
            if options.verbose:
                log.info(f"PageRank converged after {iteration} iterations")
            return StationaryDistributionResult(
                pi=new_pi,
                converged=True,
                iterations=iteration,
                delta=compute_delta(pi, new_pi),
            )
        pi_prev, pi = pi, new_pi

        now = time.monotonic()
        if on_yield is not None and now - last_yield >= yield_after:
            on_yield(iteration, (now - started) * 1000.0)
            last_yield = time.monotonic()

    delta = compute_delta(pi_prev, pi) if iteration else float("inf")
    log.debug(
        f"PageRank stopped after {iteration} iterations without converging "
        f"(delta={delta:.3g}, threshold={options.convergence_threshold:.3g})"
    )
    return StationaryDistributionResult(pi=pi, converged=False, iterations=iteration, delta=delta)
