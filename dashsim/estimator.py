"""Capacity estimation and transfer overhead for the DASH player simulation."""

import math


MTU_BYTES = 1500
HEADER_BYTES = 60  # TCP + IP


class GeometricMeanEstimator:
    """Online geometric mean of per-tick bandwidth samples.

    The geometric mean damps single large spikes, which an arithmetic mean
    of a bursty mobile link would follow too eagerly::

        estimate = round((b_1 * b_2 * ... * b_n) ** (1 / n))

    The running product is kept as a sum of logarithms so that long
    streams do not overflow.  A zero sample pins the product (and thus the
    estimate) to zero.
    """

    def __init__(self) -> None:
        self.history_log_sum: float = 0.0
        self.history_length: int = 0
        self._has_zero = False

    def update(self, bandwidth_kbps: float) -> None:
        if bandwidth_kbps < 0:
            raise ValueError("bandwidth must not be negative")
        self.history_length += 1
        if bandwidth_kbps == 0:
            self._has_zero = True
        else:
            self.history_log_sum += math.log(bandwidth_kbps)

    def estimate(self) -> int:
        """Return the current estimate in kbps (0 with no samples)."""
        if self.history_length == 0 or self._has_zero:
            return 0
        return int(round(math.exp(self.history_log_sum / self.history_length)))

    def observe(self, bandwidth_kbps: float) -> int:
        self.update(bandwidth_kbps)
        return self.estimate()

    def reset(self) -> None:
        self.history_log_sum = 0.0
        self.history_length = 0
        self._has_zero = False


def network_overhead_bits(
    payload_bits: int,
    mtu_bytes: int = MTU_BYTES,
    header_bytes: int = HEADER_BYTES,
) -> int:
    """Return the header bits added when *payload_bits* are packetised.

    The packet count is the ceiling of the payload over the usable bits per
    packet; every packet carries ``header_bytes`` of headers.
    """
    if payload_bits <= 0:
        return 0
    usable_bits = 8 * (mtu_bytes - header_bytes)
    num_packets = -(-payload_bits // usable_bits)
    return num_packets * header_bytes * 8
