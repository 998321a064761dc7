"""Shared constants: PageRank defaults, interval policy, CLI paths."""

from __future__ import annotations

import os
import tempfile
from pathlib import Path

# ── PageRank ─────────────────────────────────────────────────────────────────
DEFAULT_ALPHA                 = 0.05
DEFAULT_SYNTHETIC_LOOP_WEIGHT = 1e-3
DEFAULT_CONVERGENCE_THRESHOLD = 1e-7
DEFAULT_MAX_ITERATIONS        = 255
DEFAULT_YIELD_AFTER_MS        = 30

# ── Timeline ─────────────────────────────────────────────────────────────────
WEEK_MS                   = 7 * 24 * 3600 * 1000
INTERVAL_ANCHOR_MS        = 4 * 24 * 3600 * 1000   # 1970-01-05T00:00Z, a Monday
DEFAULT_INTERVAL_HALF_LIFE = 12                     # intervals
USER_PREFIX_PARTS         = ("github", "USER")

# ── CLI ──────────────────────────────────────────────────────────────────────
SCORES_TOTAL  = 1000
SNAPSHOT_FILE = "cred_snapshot.json"


def cred_directory() -> Path:
    """Directory holding loaded data; `CRED_DIRECTORY` overrides the default."""
    value = os.environ.get("CRED_DIRECTORY", "").strip()
    if value:
        return Path(value)
    return Path(tempfile.gettempdir()) / "credgraph"
