"""Playback buffer for the DASH player simulation.

The buffer level is measured in *milliseconds* of downloaded, not yet
played video.  Completed chunks are added whole; playback drains one
simulation step per tick.  When the buffer runs dry a *stall* (rebuffer)
occurs and playback only resumes once the level exceeds a resume
threshold.
"""


STEP_DURATION_MS = 200
STALL_RESUME_THRESHOLD_MS = 1000


class PlaybackBuffer:
    """Playback buffer with drain dynamics and stall hysteresis.

    Each tick the buffer plays if its level exceeds the current threshold::

        threshold = 0                      normally
        threshold = resume_threshold_ms    after a stall, until exceeded

    so a trivial refill right after a stall does not restart playback; at
    least ``resume_threshold_ms`` must be rebuilt first.

    A starved tick only clamps a negative level up to zero; content below
    the resume threshold is kept and counts towards resuming.  With chunks
    of at least the threshold (2000 ms against 1000 ms by default) a
    starved buffer is always exactly empty, so this is the same as
    resetting it to zero.  Shorter chunks accumulate across starved ticks
    instead of being discarded.

    Parameters
    ----------
    step_ms : int
        Playback drained per tick (default 200).
    stall_resume_threshold_ms : int
        Level that must be exceeded to leave a stall (default 1000).
    """

    def __init__(
        self,
        step_ms: int = STEP_DURATION_MS,
        stall_resume_threshold_ms: int = STALL_RESUME_THRESHOLD_MS,
    ) -> None:
        if step_ms <= 0:
            raise ValueError("step_ms must be positive")
        if stall_resume_threshold_ms < 0:
            raise ValueError("stall_resume_threshold_ms must not be negative")
        self.step_ms = step_ms
        self.stall_resume_threshold_ms = stall_resume_threshold_ms

        self.level_ms: int = 0
        self.threshold_ms: int = 0
        self.is_stalled: bool = False
        self.stall_count: int = 0
        self.total_stall_time_ms: int = 0

    # ------------------------------------------------------------------
    # Public interface
    # ------------------------------------------------------------------

    def add_chunk(self, duration_ms: int) -> None:
        self.level_ms += duration_ms

    def step(self) -> dict:
        """Play (or stall) for one tick.

        Returns
        -------
        dict with keys:
            ``level_ms``      – buffer level after the tick (ms)
            ``played``        – True if video was played this tick
            ``stall_event``   – True if a *new* stall began this tick
            ``resume_event``  – True if playback resumed this tick
            ``threshold_ms``  – threshold in force for the next tick
        """
        stall_event = False
        resume_event = False

        if self.level_ms > self.threshold_ms:
            self.level_ms = max(self.level_ms - self.step_ms, 0)
            self.threshold_ms = 0
            if self.is_stalled:
                self.is_stalled = False
                resume_event = True
            played = True
        else:
            self.level_ms = max(self.level_ms, 0)
            self.threshold_ms = self.stall_resume_threshold_ms
            if not self.is_stalled:
                self.is_stalled = True
                self.stall_count += 1
                stall_event = True
            self.total_stall_time_ms += self.step_ms
            played = False

        return {
            "level_ms": self.level_ms,
            "played": played,
            "stall_event": stall_event,
            "resume_event": resume_event,
            "threshold_ms": self.threshold_ms,
        }

    def reset(self) -> None:
        """Reset the buffer to its initial (empty) state."""
        self.level_ms = 0
        self.threshold_ms = 0
        self.is_stalled = False
        self.stall_count = 0
        self.total_stall_time_ms = 0
