"""Bitrate ladder for the DASH player simulation.

The ladder is a fixed, ordered table of rungs.  Rank comparisons and
"next/previous rung" lookups are plain index arithmetic over that table.
"""

from typing import List


# ---------------------------------------------------------------------------
# Ladder definition (kbps, ascending)
# ---------------------------------------------------------------------------

LADDER_RATES_KBPS = (250, 500, 750, 1000, 1500, 3000)


class BitrateLevel:
    """Describes a single rung of the bitrate ladder."""

    def __init__(self, rate_kbps: int, rank: int) -> None:
        self.rate_kbps = rate_kbps
        self.rank = rank

    @property
    def rate_mbps(self) -> float:
        return self.rate_kbps / 1000.0

    def __eq__(self, other) -> bool:
        if not isinstance(other, BitrateLevel):
            return NotImplemented
        return self.rate_kbps == other.rate_kbps and self.rank == other.rank

    def __hash__(self) -> int:
        return hash((self.rate_kbps, self.rank))

    def __repr__(self) -> str:
        return f"BitrateLevel({self.rank}, {self.rate_kbps} kbps)"


# Rank 1 is the floor, the last rank is the ceiling
BITRATE_LADDER: List[BitrateLevel] = [
    BitrateLevel(rate, rank)
    for rank, rate in enumerate(LADDER_RATES_KBPS, start=1)
]

FLOOR_INDEX = 0
CEILING_INDEX = len(BITRATE_LADDER) - 1


def level_index_for_rate(rate_kbps: float) -> int:
    """Return the index of the highest rung whose rate does not exceed
    *rate_kbps*.  Rates below the lowest rung snap to the floor."""
    best = FLOOR_INDEX
    for i, level in enumerate(BITRATE_LADDER):
        if rate_kbps >= level.rate_kbps:
            best = i
    return best


def step_up(index: int) -> int:
    return min(index + 1, CEILING_INDEX)


def step_down(index: int) -> int:
    return max(index - 1, FLOOR_INDEX)
