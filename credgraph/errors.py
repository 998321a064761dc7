"""Error taxonomy shared by the graph, chain, solver and timeline modules."""

from __future__ import annotations


class CredError(Exception):
    """Base class for every error raised by credgraph."""


class ConflictError(CredError, ValueError):
    """An address is already occupied by a different node or edge."""


class DegenerateChainError(CredError, ValueError):
    """A node emits no positive transition weight."""


class ConvergenceNotReached(CredError, Warning):
    """The solver ran out of iterations before meeting its threshold."""

    def __init__(self, iterations: int, delta: float) -> None:
        super().__init__(
            f"PageRank did not converge after {iterations} iterations "
            f"(last delta {delta:.3g})"
        )
        self.iterations = iterations
        self.delta = delta


class MissingNodeError(CredError, KeyError):
    """A score was requested for a node that has no computed score."""

    def __str__(self) -> str:
        return f"Missing node address: {self.args[0]}"


class UnknownSeedStrategy(CredError, AssertionError):
    """The seeding strategy is outside the closed set of strategies."""


class InvalidDistributionError(CredError, ValueError):
    """A probability vector has the wrong shape or size."""


class SnapshotError(CredError, ValueError):
    """A persisted snapshot is malformed or does not match its graph."""
