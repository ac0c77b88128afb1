"""Log-scale histogram over non-negative integers."""

import bisect


# Bucket parameters shared by every histogram in a run. Histograms only
# merge when all three match.
NUM_BUCKETS = 20
FIRST_BUCKET_WIDTH = 10
GROWTH_FACTOR = 3.0


class HistogramConfigError(ValueError):
    """Raised when merging histograms built with different bucket parameters."""


class Histogram:
    """Counts of values in exponentially widening buckets.

    Bucket 0 covers [0, first_width), bucket i covers
    [ranges[i], ranges[i] * growth), the last bucket is open ended.
    """

    def __init__(
        self,
        num_buckets: int = NUM_BUCKETS,
        first_width: int = FIRST_BUCKET_WIDTH,
        growth: float = GROWTH_FACTOR,
    ):
        if num_buckets < 2 or first_width < 1 or growth <= 1.0:
            raise HistogramConfigError(
                f'invalid histogram parameters: buckets={num_buckets}, first={first_width}, growth={growth}'
            )
        self.num_buckets = num_buckets
        self.first_width = first_width
        self.growth = growth

        self.ranges = [0, first_width]
        while len(self.ranges) < num_buckets:
            self.ranges.append(int(self.ranges[-1] * growth))

        self.counts = [0] * num_buckets
        self.min_value: int | None = None
        self.max_value: int | None = None

    @property
    def config(self) -> tuple[int, int, float]:
        return (self.num_buckets, self.first_width, self.growth)

    @property
    def total_count(self) -> int:
        return sum(self.counts)

    def bucket_index(self, value: int) -> int:
        return bisect.bisect_right(self.ranges, value) - 1

    def add(self, value: int, count: int = 1):
        """Add a non-negative value; negative values are rejected."""
        if value < 0:
            raise ValueError(f'histogram values must be non-negative, got {value}')
        self.counts[self.bucket_index(value)] += count
        if self.min_value is None or value < self.min_value:
            self.min_value = value
        if self.max_value is None or value > self.max_value:
            self.max_value = value

    def merge(self, other: 'Histogram'):
        """Add other's bucket counts into this histogram.

        Raises:
            HistogramConfigError: If bucket parameters differ
        """
        if self.config != other.config:
            raise HistogramConfigError(f'cannot merge histogram {other.config} into {self.config}')
        for i, count in enumerate(other.counts):
            self.counts[i] += count
        if other.min_value is not None and (self.min_value is None or other.min_value < self.min_value):
            self.min_value = other.min_value
        if other.max_value is not None and (self.max_value is None or other.max_value > self.max_value):
            self.max_value = other.max_value

    def copy(self) -> 'Histogram':
        h = Histogram(self.num_buckets, self.first_width, self.growth)
        h.merge(self)
        return h

    def __eq__(self, other):
        if not isinstance(other, Histogram):
            return NotImplemented
        return (
            self.config == other.config
            and self.counts == other.counts
            and self.min_value == other.min_value
            and self.max_value == other.max_value
        )

    def __repr__(self):
        return f'Histogram(total={self.total_count}, min={self.min_value}, max={self.max_value})'
