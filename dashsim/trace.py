"""Bandwidth trace for the DASH player simulation.

A trace is an ordered list of link-capacity measurements recorded on a
moving receiver (bus, ferry, metro, tram).  Each line of a trace log has
the shape::

    <label> <timestamp> <gps_lat|NOFIX> <gps_lng|NOFIX> <bytes> <elapsed_ms>

Sample ``i`` covers the interval ending at the cumulative sum of the
``elapsed_ms`` fields up to and including ``i``.  Its bandwidth is the
number of bits it carried divided by its duration, which conveniently
comes out in kbps (bits per ms).
"""

from typing import Iterable, List, Optional, Tuple


TRACE_EXHAUSTED = -1
NO_FIX = "NOFIX"
MIN_FIELDS = 6


class TraceLoadError(Exception):
    """Raised when a trace log cannot be read or does not parse."""


class TraceSample:
    """One trace measurement."""

    def __init__(
        self,
        timestamp: int,
        gps_lat: float,
        gps_lng: float,
        nbr_of_bytes: int,
        ms_increment: int,
    ) -> None:
        self.timestamp = timestamp
        self.gps_lat = gps_lat
        self.gps_lng = gps_lng
        self.nbr_of_bytes = nbr_of_bytes
        self.ms_increment = ms_increment

    @property
    def bandwidth_kbps(self) -> int:
        return (self.nbr_of_bytes * 8) // self.ms_increment

    def __repr__(self) -> str:
        return (
            f"TraceSample({self.nbr_of_bytes} B in {self.ms_increment} ms, "
            f"{self.bandwidth_kbps} kbps)"
        )


def parse_trace_line(line: str) -> TraceSample:
    """Parse a single trace log line.

    Raises
    ------
    TraceLoadError
        If the line has too few fields or a numeric field does not parse.
    """
    fields = line.split()
    if len(fields) < MIN_FIELDS:
        raise TraceLoadError(
            f"expected at least {MIN_FIELDS} fields, got {len(fields)}: {line!r}"
        )
    try:
        timestamp = int(fields[1])
        if fields[2] != NO_FIX and fields[3] != NO_FIX:
            gps_lat = float(fields[2])
            gps_lng = float(fields[3])
        else:
            gps_lat = gps_lng = 0.0
        nbr_of_bytes = int(fields[4])
        ms_increment = int(fields[5])
    except ValueError as exc:
        raise TraceLoadError(f"malformed numeric field in {line!r}") from exc

    if ms_increment <= 0:
        raise TraceLoadError(f"elapsed ms must be positive: {line!r}")
    if nbr_of_bytes < 0:
        raise TraceLoadError(f"byte count must not be negative: {line!r}")
    return TraceSample(timestamp, gps_lat, gps_lng, nbr_of_bytes, ms_increment)


class TraceCursor:
    """Scan position over a :class:`BandwidthTrace`.

    Queries are answered by walking the samples and summing their time
    increments until the running total reaches the query time.  The cursor
    remembers where the walk stopped, so the non-decreasing queries issued
    by a player cost amortised O(1); a query earlier than the cursor
    rewinds to the start and yields the same result as a fresh scan.

    Each player owns its own cursor; the trace itself stays read-only.
    """

    def __init__(self, trace: "BandwidthTrace") -> None:
        self.trace = trace
        self.rewind()

    def rewind(self) -> None:
        self._index = 0
        self._elapsed_before_ms = 0
        self.samples_consumed = 0

    def bandwidth_at(self, time_ms: int) -> int:
        """Return the bandwidth (kbps) available at *time_ms*, or
        :data:`TRACE_EXHAUSTED` if the trace ends before that time."""
        samples = self.trace.samples
        if self._index > 0 and time_ms <= self._elapsed_before_ms:
            self.rewind()

        while self._index < len(samples):
            sample = samples[self._index]
            end_ms = self._elapsed_before_ms + sample.ms_increment
            if end_ms >= time_ms:
                self.samples_consumed = self._index + 1
                return sample.bandwidth_kbps
            self._elapsed_before_ms = end_ms
            self._index += 1

        self.samples_consumed = len(samples)
        return TRACE_EXHAUSTED


class BandwidthTrace:
    """Time-indexed link capacity lookup.

    The trace holds the samples only.  :meth:`bandwidth_at` performs a
    fresh scan; callers issuing many ordered queries should hold a
    :class:`TraceCursor` from :meth:`cursor`.

    Parameters
    ----------
    samples : iterable of TraceSample or None
        Measurements in playback order.
    """

    def __init__(self, samples: Iterable[TraceSample] = None) -> None:
        self.samples: List[TraceSample] = list(samples or [])

    # ------------------------------------------------------------------
    # Loading
    # ------------------------------------------------------------------

    @classmethod
    def from_file(cls, path: str) -> "BandwidthTrace":
        trace = cls()
        trace.load(path)
        return trace

    @classmethod
    def from_lines(cls, lines: Iterable[str]) -> "BandwidthTrace":
        trace = cls()
        trace.load_lines(lines)
        return trace

    def load(self, path: str) -> None:
        """Replace the trace contents with the samples in *path*.

        On failure the trace is left empty and :class:`TraceLoadError` is
        raised.
        """
        self.samples = []
        try:
            with open(path, "r", encoding="utf-8") as f:
                lines = f.readlines()
        except (OSError, UnicodeDecodeError) as exc:
            raise TraceLoadError(f"unable to read trace log {path}: {exc}") from exc
        self.load_lines(lines)

    def load_lines(self, lines: Iterable[str]) -> None:
        self.samples = []
        # Parse into a scratch list so nothing partial is retained
        parsed = [parse_trace_line(line) for line in lines if line.strip()]
        self.samples = parsed

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    def cursor(self) -> TraceCursor:
        return TraceCursor(self)

    def bandwidth_at(self, time_ms: int) -> int:
        """Return the bandwidth (kbps) available at *time_ms*, or
        :data:`TRACE_EXHAUSTED` if the trace ends before that time."""
        return self.cursor().bandwidth_at(time_ms)

    def bandwidth_log(self, step_ms: int = 1000) -> List[Tuple[int, int]]:
        """Sample the trace every *step_ms* until it is exhausted."""
        if step_ms <= 0:
            raise ValueError("step_ms must be positive")
        cursor = self.cursor()
        log = []
        time_ms = 0
        bandwidth = cursor.bandwidth_at(time_ms)
        while bandwidth != TRACE_EXHAUSTED:
            log.append((time_ms, bandwidth))
            time_ms += step_ms
            bandwidth = cursor.bandwidth_at(time_ms)
        return log

    @property
    def duration_ms(self) -> int:
        return sum(s.ms_increment for s in self.samples)

    def sample_at(self, index: int) -> Optional[TraceSample]:
        if 0 <= index < len(self.samples):
            return self.samples[index]
        return None

    def __len__(self) -> int:
        return len(self.samples)
