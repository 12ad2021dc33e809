"""Run summary metrics for the DASH player simulation.

Aggregates the per-tick records produced by the player:

* **Utilisation** – played bitrate over available bandwidth, in percent.
* **Stalls** – number of rebuffer events and time spent stalled.
* **Stability** – how often the selected bitrate changes.
"""

from typing import List, Optional


def utilization_percent(bitrate_sum: float, bandwidth_sum: float) -> Optional[float]:
    """Return ``100 * bitrate_sum / bandwidth_sum``.

    A run that ended before any bandwidth was observed has no defined
    utilisation; ``None`` is returned instead of dividing by zero.
    """
    if bandwidth_sum <= 0:
        return None
    return bitrate_sum * 100.0 / bandwidth_sum


class PlaybackMetrics:
    """Accumulates per-tick player records and computes a run summary.

    Parameters
    ----------
    step_ms : int
        Duration of one tick in ms, used to convert tick counts to time
        (default 200).
    """

    def __init__(self, step_ms: int = 200) -> None:
        self.step_ms = step_ms
        self._ticks: List[dict] = []

    # ------------------------------------------------------------------
    # Public interface
    # ------------------------------------------------------------------

    def record(self, tick: dict) -> None:
        """Record one simulation tick.

        Parameters
        ----------
        tick : dict
            Output of :meth:`dashsim.player.DashPlayer.step`.
        """
        self._ticks.append(
            {
                "played_kbps": tick["played_kbps"],
                "selected_kbps": tick["selected_kbps"],
                "bandwidth_kbps": tick["bandwidth_kbps"],
                "buffer_ms": tick["buffer_ms"],
                "stalled": tick["stalled"],
                "stall_event": tick["stall_event"],
            }
        )

    def compute(self) -> dict:
        """Compute aggregate metrics over all recorded ticks.

        Returns
        -------
        dict with keys:
            ``total_ticks``          – number of ticks recorded
            ``duration_ms``          – simulated time covered (ms)
            ``stall_count``          – number of stall events
            ``stall_ticks``          – number of ticks spent stalled
            ``total_stall_time_ms``  – time spent stalled (ms)
            ``stall_ratio``          – fraction of ticks spent stalled
            ``bitrate_switch_count`` – number of selected-bitrate changes
            ``mean_played_kbps``     – mean bitrate over playing ticks
            ``mean_buffer_ms``       – mean buffer level (ms)
            ``bitrate_sum``          – sum of selected bitrates (kbps)
            ``bandwidth_sum``        – sum of effective bandwidth (kbps)
            ``utilization_pct``      – utilisation percent or None
        """
        n = len(self._ticks)
        if n == 0:
            return {}

        stall_events = sum(1 for t in self._ticks if t["stall_event"])
        stall_ticks = sum(1 for t in self._ticks if t["stalled"])

        switches = sum(
            1
            for prev, cur in zip(self._ticks, self._ticks[1:])
            if prev["selected_kbps"] != cur["selected_kbps"]
        )

        played = [t["played_kbps"] for t in self._ticks if not t["stalled"]]
        mean_played = sum(played) / len(played) if played else 0.0

        mean_buffer = sum(t["buffer_ms"] for t in self._ticks) / n

        bitrate_sum = sum(t["selected_kbps"] for t in self._ticks)
        bandwidth_sum = sum(t["bandwidth_kbps"] for t in self._ticks)

        return {
            "total_ticks": n,
            "duration_ms": n * self.step_ms,
            "stall_count": stall_events,
            "stall_ticks": stall_ticks,
            "total_stall_time_ms": stall_ticks * self.step_ms,
            "stall_ratio": stall_ticks / n,
            "bitrate_switch_count": switches,
            "mean_played_kbps": mean_played,
            "mean_buffer_ms": mean_buffer,
            "bitrate_sum": bitrate_sum,
            "bandwidth_sum": bandwidth_sum,
            "utilization_pct": utilization_percent(bitrate_sum, bandwidth_sum),
        }

    def reset(self) -> None:
        """Clear all recorded data."""
        self._ticks.clear()
