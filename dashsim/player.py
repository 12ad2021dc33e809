"""DASH player simulation engine.

Advances a single adaptive-bitrate player over a bandwidth trace in fixed
ticks.  Each tick the player

1. reads its share of the trace bandwidth,
2. schedules a new chunk when idle and below its (jittered) target buffer,
3. drains the in-flight chunk by the bits delivered this tick,
4. plays one tick of video or stalls,
5. accumulates the utilisation sums.

Example usage::

    from dashsim.trace import BandwidthTrace
    from dashsim.player import DashPlayer

    trace = BandwidthTrace.from_file("traces/bus.log")
    report = DashPlayer(trace, num_players=1, seed=42).run()
"""

from __future__ import annotations

import logging
from typing import List, Tuple

import numpy as np

from dashsim.abr import BitrateSelector
from dashsim.buffer import STALL_RESUME_THRESHOLD_MS, STEP_DURATION_MS, PlaybackBuffer
from dashsim.estimator import GeometricMeanEstimator, network_overhead_bits
from dashsim.ladder import BITRATE_LADDER, FLOOR_INDEX, BitrateLevel
from dashsim.metrics import PlaybackMetrics, utilization_percent
from dashsim.trace import TRACE_EXHAUSTED, BandwidthTrace


CHUNK_DURATION_MS = 2000
TARGET_BUFFER_MS = 30000
TARGET_BUFFER_JITTER_MS = 1000  # full width, i.e. +/- 500 ms


class DashPlayer:
    """Discrete-time model of one DASH client sharing a bottleneck link.

    Parameters
    ----------
    trace : BandwidthTrace
        Link capacity trace; read only.
    num_players : int
        Number of players sharing the link, self included (default 1).
        The trace bandwidth is divided evenly (integer division).
    seed : int or None
        Seed for the target-buffer jitter.
    step_ms : int
        Tick length in ms (default 200).
    chunk_duration_ms : int
        Video carried by one chunk in ms (default 2000).
    target_buffer_ms : int
        Mean buffer level below which a new chunk is requested
        (default 30000).
    target_buffer_jitter_ms : int
        Full width of the uniform jitter on the target (default 1000).
    stall_resume_threshold_ms : int
        Buffer that must be rebuilt before playback resumes after a stall
        (default 1000).
    selector_kwargs : dict or None
        Keyword arguments forwarded to :class:`~dashsim.abr.BitrateSelector`.
    """

    def __init__(
        self,
        trace: BandwidthTrace,
        num_players: int = 1,
        seed: int = None,
        step_ms: int = STEP_DURATION_MS,
        chunk_duration_ms: int = CHUNK_DURATION_MS,
        target_buffer_ms: int = TARGET_BUFFER_MS,
        target_buffer_jitter_ms: int = TARGET_BUFFER_JITTER_MS,
        stall_resume_threshold_ms: int = STALL_RESUME_THRESHOLD_MS,
        selector_kwargs: dict = None,
    ) -> None:
        if num_players < 1:
            raise ValueError("num_players must be >= 1")
        if chunk_duration_ms <= 0:
            raise ValueError("chunk_duration_ms must be positive")

        self.trace = trace
        self.trace_cursor = trace.cursor()
        self.num_players = num_players
        self.seed = seed
        self.step_ms = step_ms
        self.chunk_duration_ms = chunk_duration_ms
        self.target_buffer_ms = target_buffer_ms
        self.target_buffer_jitter_ms = target_buffer_jitter_ms

        self.buffer = PlaybackBuffer(
            step_ms=step_ms,
            stall_resume_threshold_ms=stall_resume_threshold_ms,
        )
        self.selector = BitrateSelector(**(selector_kwargs or {}))
        self.estimator = GeometricMeanEstimator()
        self.metrics = PlaybackMetrics(step_ms=step_ms)

        self._rng = np.random.default_rng(seed)
        self._init_state()

    def _init_state(self) -> None:
        self.current_time: int = 0
        self.is_downloading: bool = False
        self.remaining_chunk_bits: int = 0
        self.selected_bitrate: BitrateLevel = BITRATE_LADDER[FLOOR_INDEX]
        self.bandwidth_sum: int = 0
        self.bitrate_sum: int = 0
        self.rand_target_buffer: int = self._draw_target_buffer()
        self.timeline: List[dict] = []

    # ------------------------------------------------------------------
    # Public interface
    # ------------------------------------------------------------------

    @property
    def buffer_size(self) -> int:
        return self.buffer.level_ms

    @property
    def utilization(self):
        """Utilisation in percent, or None before any bandwidth was seen."""
        return utilization_percent(self.bitrate_sum, self.bandwidth_sum)

    def effective_bandwidth(self) -> int:
        """Return this player's share of the trace bandwidth at the current
        time, or :data:`~dashsim.trace.TRACE_EXHAUSTED`."""
        total = self.trace_cursor.bandwidth_at(self.current_time)
        if total < 0:
            return TRACE_EXHAUSTED
        return total // self.num_players

    def run(self) -> dict:
        """Play the whole trace and return the run report.

        Returns
        -------
        dict
            Metrics as returned by :meth:`~dashsim.metrics.PlaybackMetrics.compute`
            plus ``utilization_pct`` from the player's own sums and
            ``timeline`` – a list of per-tick state dicts.
        """
        self.reset()

        while True:
            bandwidth = self.effective_bandwidth()
            if bandwidth < 0:
                break
            tick = self.step(bandwidth)
            self.metrics.record(tick)
            self.timeline.append(tick)

        report = self.metrics.compute()
        report["utilization_pct"] = self.utilization
        report["timeline"] = self.timeline
        if self.utilization is None:
            logging.warning("trace exhausted before the first tick, utilization undefined")
        else:
            logging.info(
                "player finished at t=%d ms, utilization %.2f%%",
                self.current_time, self.utilization,
            )
        return report

    def step(self, bandwidth_kbps: int) -> dict:
        """Advance the player by one tick at *bandwidth_kbps*.

        Returns
        -------
        dict with keys:
            ``t``               – simulated time of the tick (ms)
            ``bandwidth_kbps``  – effective bandwidth this tick
            ``selected_kbps``   – rate of the selected rung
            ``played_kbps``     – rate played this tick, 0 when stalled
            ``buffer_ms``       – buffer level after playback
            ``stalled``         – True if playback stalled this tick
            ``stall_event``     – True if a new stall began this tick
            ``scheduled``       – True if a chunk download started
            ``downloading``     – True if a chunk is still in flight
            ``phase``           – selector phase of the last decision
        """
        t = self.current_time

        # 1. Schedule a chunk
        scheduled = False
        if not self.is_downloading and self.buffer.level_ms < self.rand_target_buffer:
            self.is_downloading = True
            self.selected_bitrate = self.selector.select(
                t, self.buffer.level_ms, self.estimator, bandwidth_kbps
            )
            payload_bits = self.chunk_duration_ms * self.selected_bitrate.rate_kbps
            self.remaining_chunk_bits = payload_bits + network_overhead_bits(payload_bits)
            self.rand_target_buffer = self._draw_target_buffer()
            scheduled = True

        # 2. Download
        if self.is_downloading:
            self.remaining_chunk_bits -= self.step_ms * bandwidth_kbps
            if self.remaining_chunk_bits <= 0:
                self.buffer.add_chunk(self.chunk_duration_ms)
                self.is_downloading = False
                self.remaining_chunk_bits = 0

        # 3. Play
        buf = self.buffer.step()
        played_kbps = self.selected_bitrate.rate_kbps if buf["played"] else 0
        if not buf["played"]:
            logging.debug(
                "stall at t=%d: (0, %d, %d)",
                t, self.selected_bitrate.rate_kbps, buf["level_ms"],
            )

        # 4. Utilisation sums
        self.bandwidth_sum += bandwidth_kbps
        self.bitrate_sum += self.selected_bitrate.rate_kbps

        # 5. Advance clock and hysteresis window
        self.selector.tick(self.step_ms)
        self.current_time += self.step_ms

        return {
            "t": t,
            "bandwidth_kbps": bandwidth_kbps,
            "selected_kbps": self.selected_bitrate.rate_kbps,
            "played_kbps": played_kbps,
            "buffer_ms": buf["level_ms"],
            "stalled": not buf["played"],
            "stall_event": buf["stall_event"],
            "scheduled": scheduled,
            "downloading": self.is_downloading,
            "phase": self.selector.phase,
        }

    def playback_log(self) -> List[Tuple[int, int]]:
        """Return the per-tick ``(time_ms, played_kbps_or_0)`` records."""
        return [(tick["t"], tick["played_kbps"]) for tick in self.timeline]

    def reset(self, seed: int = None) -> None:
        """Reset the player to its initial state."""
        if seed is not None:
            self.seed = seed
        self._rng = np.random.default_rng(self.seed)
        self.buffer.reset()
        self.selector.reset()
        self.estimator.reset()
        self.metrics.reset()
        self.trace_cursor.rewind()
        self._init_state()

    # ------------------------------------------------------------------
    # Private helpers
    # ------------------------------------------------------------------

    def _draw_target_buffer(self) -> int:
        jitter = (self._rng.random() - 0.5) * self.target_buffer_jitter_ms
        return self.target_buffer_ms + int(jitter)
