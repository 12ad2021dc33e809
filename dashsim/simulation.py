"""Multi-player simulation orchestrator for the DASH player model.

Runs :class:`~dashsim.player.DashPlayer` instances that share one
bottleneck link.  Players do not interact: each one divides the same trace
bandwidth by the fixed player count.

Example usage::

    from dashsim.trace import BandwidthTrace
    from dashsim.simulation import DashSimulation

    trace = BandwidthTrace.from_file("traces/ferry.log")
    sim = DashSimulation(trace, num_players=3, seed=42)
    for i, report in enumerate(sim.run()):
        sim.print_report(report, i)
"""

from __future__ import annotations

from typing import List

from dashsim.player import DashPlayer
from dashsim.trace import BandwidthTrace


class DashSimulation:
    """N independent players sharing one trace.

    Parameters
    ----------
    trace : BandwidthTrace
        Shared link capacity trace.
    num_players : int
        Number of players on the bottleneck link (default 1).
    seed : int or None
        Master random seed; player ``i`` is seeded with ``seed + i``.
    player_kwargs : dict or None
        Keyword arguments forwarded to every :class:`~dashsim.player.DashPlayer`.
    """

    def __init__(
        self,
        trace: BandwidthTrace,
        num_players: int = 1,
        seed: int = None,
        player_kwargs: dict = None,
    ) -> None:
        if num_players < 1:
            raise ValueError("num_players must be >= 1")
        self.trace = trace
        self.num_players = num_players
        self.seed = seed

        pkw = player_kwargs or {}
        self.players: List[DashPlayer] = [
            DashPlayer(
                trace,
                num_players=num_players,
                seed=None if seed is None else seed + i,
                **pkw,
            )
            for i in range(num_players)
        ]

    # ------------------------------------------------------------------
    # Public interface
    # ------------------------------------------------------------------

    def run(self) -> List[dict]:
        """Run every player to trace exhaustion, one after another.

        Each player scans the trace with its own cursor, so every run sees
        identical bandwidth.
        """
        return [player.run() for player in self.players]

    # ------------------------------------------------------------------
    # Reporting helpers
    # ------------------------------------------------------------------

    @staticmethod
    def print_report(report: dict, index: int = 0) -> None:
        """Print a human-readable summary of one player's report.

        Parameters
        ----------
        report : dict
            Output of :meth:`dashsim.player.DashPlayer.run`.
        index : int
            Zero-based player index, shown in the header.
        """
        sep = "-" * 52
        print(sep)
        print(f" DASH Player {index + 1} – Run Report")
        print(sep)
        keys_fmt = [
            ("total_ticks",           "Total ticks",                   "{:.0f}"),
            ("duration_ms",           "Simulated time (ms)",           "{:.0f}"),
            ("stall_count",           "Stall events",                  "{:.0f}"),
            ("total_stall_time_ms",   "Total stall time (ms)",         "{:.0f}"),
            ("stall_ratio",           "Stall ratio",                   "{:.3f}"),
            ("bitrate_switch_count",  "Bitrate switches",              "{:.0f}"),
            ("mean_played_kbps",      "Mean played bitrate (kbps)",    "{:.1f}"),
            ("mean_buffer_ms",        "Mean buffer level (ms)",        "{:.0f}"),
        ]
        for key, label, fmt in keys_fmt:
            if key in report:
                value_str = fmt.format(report[key])
                print(f"  {label:<36} {value_str}")
        utilization = report.get("utilization_pct")
        value_str = "undefined" if utilization is None else f"{utilization:.2f}%"
        print(f"  {'Bandwidth utilization':<36} {value_str}")
        print(sep)
