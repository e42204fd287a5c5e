"""Fixed-capacity rolling price history.

The buffer is the only high-frequency mutable structure in the dashboard.
It is written exclusively by the dashboard loop and handed to the renderer
as an immutable tuple.
"""

from collections import deque
from collections.abc import Iterator, Sequence

from cryptowatcher.exceptions import AlreadyPopulated, StaleSample
from cryptowatcher.models import Sample

DEFAULT_CAPACITY = 60


class HistoryBuffer:
    """Insertion-ordered samples with strict FIFO eviction at capacity.

    Timestamps are strictly increasing: a sample that is not newer than the
    last stored one is rejected with StaleSample and the buffer is left
    untouched.
    """

    def __init__(self, capacity: int = DEFAULT_CAPACITY) -> None:
        if capacity < 1:
            raise ValueError(f"capacity must be >= 1, got {capacity}")
        self._capacity = capacity
        self._samples: deque[Sample] = deque(maxlen=capacity)

    @property
    def capacity(self) -> int:
        return self._capacity

    def __len__(self) -> int:
        return len(self._samples)

    def __iter__(self) -> Iterator[Sample]:
        return iter(tuple(self._samples))

    @property
    def last(self) -> Sample | None:
        """Newest sample, or None when empty."""
        return self._samples[-1] if self._samples else None

    def append(self, sample: Sample) -> None:
        """Append one live sample, evicting the oldest when full.

        Raises:
            StaleSample: If sample is not newer than the last stored sample.
        """
        last = self.last
        if last is not None and sample.timestamp_ms <= last.timestamp_ms:
            raise StaleSample(
                f"sample at {sample.timestamp_ms} is not newer than {last.timestamp_ms}"
            )
        # deque(maxlen=...) drops from the left when full
        self._samples.append(sample)

    def bulk_load(self, samples: Sequence[Sample]) -> None:
        """Populate an empty buffer with chronologically ordered samples.

        Raises:
            AlreadyPopulated: If the buffer already holds samples.
            ValueError: If more than capacity samples are given or they are
                not strictly increasing in timestamp.
        """
        if self._samples:
            raise AlreadyPopulated(f"buffer already holds {len(self._samples)} samples")
        if len(samples) > self._capacity:
            raise ValueError(f"{len(samples)} samples exceed capacity {self._capacity}")
        for prev, cur in zip(samples, samples[1:]):
            if cur.timestamp_ms <= prev.timestamp_ms:
                raise ValueError("bulk-loaded samples must be strictly increasing in time")
        self._samples.extend(samples)

    def snapshot(self) -> tuple[Sample, ...]:
        """Return an immutable copy of the current contents, oldest first."""
        return tuple(self._samples)
