"""Tests for dashsim.ladder module."""

from dashsim.ladder import (
    BITRATE_LADDER,
    CEILING_INDEX,
    FLOOR_INDEX,
    level_index_for_rate,
    step_down,
    step_up,
)


def test_ranks_increase_with_rate():
    ranks = [level.rank for level in BITRATE_LADDER]
    rates = [level.rate_kbps for level in BITRATE_LADDER]
    assert ranks == list(range(1, len(BITRATE_LADDER) + 1))
    assert rates == sorted(rates)
    assert BITRATE_LADDER[FLOOR_INDEX].rate_kbps == 250
    assert BITRATE_LADDER[CEILING_INDEX].rate_kbps == 3000


def test_rate_rounds_down_to_rung():
    assert level_index_for_rate(999) == 2
    assert level_index_for_rate(1000) == 3
    assert level_index_for_rate(2999) == 4


def test_rate_below_floor_snaps_to_floor():
    assert level_index_for_rate(0) == FLOOR_INDEX
    assert level_index_for_rate(249) == FLOOR_INDEX


def test_rate_above_ceiling_stays_at_ceiling():
    assert level_index_for_rate(100000) == CEILING_INDEX


def test_step_up_and_down_clamp():
    assert step_up(CEILING_INDEX) == CEILING_INDEX
    assert step_down(FLOOR_INDEX) == FLOOR_INDEX
    assert step_up(2) == 3
    assert step_down(2) == 1
