"""Rate-adaptation policy for the DASH player simulation.

The selector is invoked once per chunk, when the player schedules a new
download.  It runs in one of three phases:

* **warm-up** (``current_time < warmup_ms``) – follow the geometric-mean
  capacity estimate, rounded down to a rung.
* **starvation** (``buffer < low_buffer_ms``) – force the floor rung.
* **steady state** – buffer-driven target with hysteresis, a sustainability
  projection and a minimum dwell time between increases.
"""

import logging
import math

from dashsim.estimator import GeometricMeanEstimator
from dashsim.ladder import (
    BITRATE_LADDER,
    FLOOR_INDEX,
    BitrateLevel,
    level_index_for_rate,
    step_down,
    step_up,
)


WARMUP_MS = 1000
LOW_BUFFER_MS = 5000
HYSTERESIS_WINDOW_MS = 5000
INCREASE_DWELL_MS = 5000
PROJECTION_HORIZON_MS = 5000
BUFFER_GAIN = 8.0

PHASE_WARMUP = "warmup"
PHASE_STARVATION = "starvation"
PHASE_STEADY = "steady"


class BitrateSelector:
    """Hybrid estimate/buffer-driven bitrate selection.

    In steady state the candidate rate is::

        target = floor_rate + gain * sqrt(buffer_ms)

    mapped down to a rung, then constrained in order:

    1. an increase is clamped to one rung above the current one;
    2. a decrease opens a new hysteresis window (``transitions = 1``,
       ``timer_ms = 0``);
    3. while ``transitions >= 1`` an increase is vetoed;
    4. if the projected buffer after ``horizon_ms`` at the candidate rate
       falls to ``low_buffer_ms`` or below, the candidate drops one rung;
    5. an increase is accepted only ``dwell_ms`` after the previous
       accepted increase;
    6. a decrease or hold is accepted directly.

    The hysteresis window is advanced by :meth:`tick` every simulation step
    and rolls over (clearing ``transitions``) every ``window_ms``.

    Parameters
    ----------
    warmup_ms : int
        Length of the estimate-driven start-up phase (default 1000).
    low_buffer_ms : int
        Low-buffer threshold shared by the starvation phase and the
        sustainability projection (default 5000).
    window_ms : int
        Hysteresis window length (default 5000).
    dwell_ms : int
        Minimum time between two accepted increases (default 5000).
    horizon_ms : int
        Look-ahead of the sustainability projection (default 5000).
    buffer_gain : float
        Gain on ``sqrt(buffer_ms)`` in the steady-state target (default 8).
    """

    def __init__(
        self,
        warmup_ms: int = WARMUP_MS,
        low_buffer_ms: int = LOW_BUFFER_MS,
        window_ms: int = HYSTERESIS_WINDOW_MS,
        dwell_ms: int = INCREASE_DWELL_MS,
        horizon_ms: int = PROJECTION_HORIZON_MS,
        buffer_gain: float = BUFFER_GAIN,
    ) -> None:
        if window_ms <= 0:
            raise ValueError("window_ms must be positive")
        self.warmup_ms = warmup_ms
        self.low_buffer_ms = low_buffer_ms
        self.window_ms = window_ms
        self.dwell_ms = dwell_ms
        self.horizon_ms = horizon_ms
        self.buffer_gain = buffer_gain

        self.level_index: int = FLOOR_INDEX
        self.transitions: int = 0
        self.timer_ms: int = 0
        self.last_increment_time = None
        self.phase: str = PHASE_WARMUP

    @property
    def current_level(self) -> BitrateLevel:
        return BITRATE_LADDER[self.level_index]

    # ------------------------------------------------------------------
    # Public interface
    # ------------------------------------------------------------------

    def tick(self, step_ms: int) -> None:
        """Advance the hysteresis window by one simulation step."""
        self.timer_ms += step_ms
        if self.timer_ms >= self.window_ms:
            self.timer_ms = 0
            self.transitions = 0

    def select(
        self,
        current_time: int,
        buffer_ms: int,
        estimator: GeometricMeanEstimator,
        bandwidth_kbps: int,
    ) -> BitrateLevel:
        """Choose the rung for the next chunk.

        Parameters
        ----------
        current_time : int
            Simulated clock (ms).
        buffer_ms : int
            Buffered, unplayed video (ms).
        estimator : GeometricMeanEstimator
            Capacity estimator; fed *bandwidth_kbps* during warm-up only.
        bandwidth_kbps : int
            Effective bandwidth observed this tick.
        """
        if current_time < self.warmup_ms:
            self.phase = PHASE_WARMUP
            estimate = estimator.observe(bandwidth_kbps)
            self.level_index = level_index_for_rate(estimate)
            logging.debug(
                "t=%d warm-up estimate %d kbps -> %r",
                current_time, estimate, self.current_level,
            )
        elif buffer_ms < self.low_buffer_ms:
            self.phase = PHASE_STARVATION
            self.level_index = FLOOR_INDEX
        else:
            self.phase = PHASE_STEADY
            self.level_index = self._steady_state_index(
                current_time, buffer_ms, bandwidth_kbps
            )
        return self.current_level

    def reset(self) -> None:
        """Reset the selector to its initial state."""
        self.level_index = FLOOR_INDEX
        self.transitions = 0
        self.timer_ms = 0
        self.last_increment_time = None
        self.phase = PHASE_WARMUP

    # ------------------------------------------------------------------
    # Private helpers
    # ------------------------------------------------------------------

    def _target_rate(self, buffer_ms: int) -> int:
        floor_rate = BITRATE_LADDER[FLOOR_INDEX].rate_kbps
        return int(round(floor_rate + self.buffer_gain * math.sqrt(buffer_ms)))

    def _projected_buffer(
        self, buffer_ms: int, bandwidth_kbps: int, index: int
    ) -> float:
        rate = BITRATE_LADDER[index].rate_kbps
        return (
            buffer_ms
            + (bandwidth_kbps / rate) * self.horizon_ms
            - self.horizon_ms
        )

    def _steady_state_index(
        self, current_time: int, buffer_ms: int, bandwidth_kbps: int
    ) -> int:
        current = self.level_index
        candidate = level_index_for_rate(self._target_rate(buffer_ms))

        if candidate > current:
            candidate = step_up(current)

        if candidate < current:
            # A decrease opens a fresh hysteresis window
            self.transitions = 1
            self.timer_ms = 0

        if self.transitions >= 1 and candidate > current:
            candidate = current

        projected = self._projected_buffer(buffer_ms, bandwidth_kbps, candidate)
        if projected <= self.low_buffer_ms:
            candidate = step_down(candidate)

        if candidate > current:
            if (
                self.last_increment_time is not None
                and current_time - self.last_increment_time < self.dwell_ms
            ):
                return current
            self.last_increment_time = current_time
            logging.debug(
                "t=%d step up %r -> %r",
                current_time, BITRATE_LADDER[current], BITRATE_LADDER[candidate],
            )
        return candidate
