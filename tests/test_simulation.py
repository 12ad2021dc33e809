"""Tests for dashsim.simulation module."""

import pytest
from dashsim.simulation import DashSimulation
from dashsim.trace import BandwidthTrace


def _trace(kbps: int = 1200, seconds: int = 60) -> BandwidthTrace:
    line = f"x 1326178352000 NOFIX NOFIX {kbps * 1000 // 8} 1000"
    return BandwidthTrace.from_lines([line] * seconds)


def test_run_returns_one_report_per_player():
    sim = DashSimulation(_trace(), num_players=3, seed=0)
    reports = sim.run()
    assert len(reports) == 3
    for report in reports:
        for key in ("total_ticks", "stall_count", "utilization_pct", "timeline"):
            assert key in report


def test_players_share_bandwidth_evenly():
    sim = DashSimulation(_trace(kbps=1200), num_players=3, seed=0)
    for report in sim.run():
        assert all(t["bandwidth_kbps"] == 400 for t in report["timeline"])


def test_players_get_distinct_seeds():
    sim = DashSimulation(_trace(), num_players=2, seed=10)
    assert [p.seed for p in sim.players] == [10, 11]


def test_sequential_players_see_whole_trace():
    sim = DashSimulation(_trace(seconds=30), num_players=2, seed=0)
    r1, r2 = sim.run()
    assert r1["total_ticks"] == r2["total_ticks"] == 151


def test_player_kwargs_forwarded():
    sim = DashSimulation(_trace(), num_players=2, player_kwargs={"target_buffer_ms": 10000})
    assert all(p.target_buffer_ms == 10000 for p in sim.players)


def test_invalid_player_count_raises():
    with pytest.raises(ValueError):
        DashSimulation(_trace(), num_players=0)


def test_deterministic_with_same_seed():
    r1 = DashSimulation(_trace(), num_players=2, seed=7).run()
    r2 = DashSimulation(_trace(), num_players=2, seed=7).run()
    assert [r["utilization_pct"] for r in r1] == [r["utilization_pct"] for r in r2]


def test_print_report_shows_utilization(capsys):
    sim = DashSimulation(_trace(), seed=0)
    report = sim.run()[0]
    sim.print_report(report, 0)
    out = capsys.readouterr().out
    assert "DASH Player 1" in out
    assert "Bandwidth utilization" in out
    assert "%" in out


def test_print_report_undefined_utilization(capsys):
    DashSimulation.print_report({"utilization_pct": None})
    assert "undefined" in capsys.readouterr().out
