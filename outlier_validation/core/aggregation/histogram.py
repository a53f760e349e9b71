"""
Fixed-width integer histogram with a midpoint mean and symmetric confidence bounds.

The binner has two phases. During the append phase `add` accumulates counts
per bin. `finalize` then materializes the sorted bin snapshot and the total
count; `mean` and `confidence_bounds` finalize implicitly. No further `add`
is accepted once finalized.

Bin indices use integer division truncated toward zero, so values in
(-bin_width, bin_width) all land in bin 0. Bounds use the bin midpoint
(index + 0.5) * bin_width regardless of sign.
"""

import math

from outlier_validation.core.errors import EmptyHistogramError, HistogramStateError


def trunc_div(value: int, divisor: int) -> int:
    """Integer division truncated toward zero."""
    quotient = abs(value) // abs(divisor)
    return quotient if (value >= 0) == (divisor > 0) else -quotient


class Bin:
    """Count of observations falling in one bin."""

    __slots__ = ("index", "count")

    def __init__(self, index: int, count: int = 0):
        self.index = index
        self.count = count

    def add_count(self, count: int) -> None:
        self.count += count

    def __repr__(self) -> str:
        return f"Bin(index={self.index}, count={self.count})"


class HistogramBinner:
    """
    Buckets integer observations into fixed-width bins.

    Usage:
        hist = HistogramBinner(bin_width=10)
        for value in values:
            hist.add(value)
        mean = hist.mean()
        lower, upper = hist.confidence_bounds(95)
    """

    def __init__(self, bin_width: int):
        """
        Initialize the binner.

        Args:
            bin_width: Width of every bin, must be a positive integer

        Raises:
            ValueError: If bin_width is not positive
        """
        if isinstance(bin_width, bool) or not isinstance(bin_width, int) or bin_width <= 0:
            raise ValueError(f"bin_width must be a positive integer, got {bin_width!r}")
        self.bin_width = bin_width
        self._bins: dict[int, Bin] = {}
        self._sorted_bins: tuple[Bin, ...] | None = None
        self._total_count = 0

    @property
    def finalized(self) -> bool:
        return self._sorted_bins is not None

    def add(self, value: int, count: int = 1) -> None:
        """
        Add `count` observations of `value`.

        Raises:
            ValueError: If count is not positive
            HistogramStateError: If the histogram was already finalized
        """
        if self.finalized:
            raise HistogramStateError("cannot add observations to a finalized histogram")
        if count <= 0:
            raise ValueError(f"count must be positive, got {count}")

        index = trunc_div(value, self.bin_width)
        bucket = self._bins.get(index)
        if bucket is None:
            bucket = Bin(index)
            self._bins[index] = bucket
        bucket.add_count(count)

    def finalize(self) -> None:
        """Materialize the sorted bin snapshot and the total count (idempotent)."""
        if self.finalized:
            return
        self._sorted_bins = tuple(sorted(self._bins.values(), key=lambda b: b.index))
        self._total_count = sum(b.count for b in self._sorted_bins)

    @property
    def total_count(self) -> int:
        if self.finalized:
            return self._total_count
        return sum(b.count for b in self._bins.values())

    def bins(self) -> list[tuple[int, int]]:
        """(index, count) pairs in ascending index order."""
        return [(b.index, b.count) for b in sorted(self._bins.values(), key=lambda b: b.index)]

    def mean(self) -> int:
        """
        Mean weighted by bin midpoints, floored.

        Raises:
            EmptyHistogramError: If no observation was added
        """
        self.finalize()
        if self._total_count == 0:
            raise EmptyHistogramError("mean requested on an empty histogram")

        weighted_sum = 0.0
        for b in self._sorted_bins:
            weighted_sum += (b.index + 0.5) * self.bin_width * b.count
        return math.floor(weighted_sum / self._total_count)

    def confidence_bounds(self, confidence_percent: int) -> tuple[int, int]:
        """
        Symmetric value range around the mean bin holding `confidence_percent` of observations.

        Starting from the mean bin, bins at mean_index ± offset are added for
        offset = 1, 2, ... until the accumulated count reaches
        total * confidence_percent // 100. Expansion stops at the farthest
        existing bin, so an unreachable threshold yields the full observed
        range. The window always spans at least one bin on each side.

        Args:
            confidence_percent: Target share of observations, in percent

        Returns:
            (lower, upper) bounds, truncated to integers

        Raises:
            ValueError: If confidence_percent is negative
            EmptyHistogramError: If no observation was added
        """
        if confidence_percent < 0:
            raise ValueError(f"confidence_percent must not be negative, got {confidence_percent}")

        mean_index = trunc_div(self.mean(), self.bin_width)
        confidence_limit = (self._total_count * confidence_percent) // 100

        conf_count = 0
        bucket = self._bins.get(mean_index)
        if bucket is not None:
            conf_count += bucket.count

        max_offset = max(1, max(abs(b.index - mean_index) for b in self._sorted_bins))
        offset = 1
        while True:
            for index in (mean_index + offset, mean_index - offset):
                bucket = self._bins.get(index)
                if bucket is not None:
                    conf_count += bucket.count
            if conf_count >= confidence_limit or offset >= max_offset:
                break
            offset += 1

        lower = int((mean_index - offset + 0.5) * self.bin_width)
        upper = int((mean_index + offset + 0.5) * self.bin_width)
        return lower, upper

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}(bin_width={self.bin_width}, bins={len(self._bins)})"
