# dutycycle/core/samples.py
# Copyright (c) 2024 Brad Edwards
# Licensed under the MIT License - see LICENSE file for details

from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass, field
from typing import Any, Iterable, Iterator, Optional, Tuple, Union


@dataclass(frozen=True)
class Sample:
    """
    A single position fix produced by the sensor driver. Immutable once created.

    :param position: Opaque position value, typically a (latitude, longitude) tuple.
    :param horizontal_accuracy: Radius of uncertainty; lower is better. Must be non-negative.
    :param timestamp: When the fix was taken.
    """

    position: Any
    horizontal_accuracy: float
    timestamp: float

    def __post_init__(self) -> None:
        if self.horizontal_accuracy < 0:
            raise ValueError(f"horizontal_accuracy must be non-negative, got {self.horizontal_accuracy}")


@dataclass(frozen=True)
class SampleBatch(Sequence):
    """
    The batch handed to the delegate when it passes the accuracy gate. Behaves
    as an ordered sequence of samples and also records when it qualified.
    """

    samples: Tuple[Sample, ...]
    qualified_at: float = field(default=0.0)

    def __getitem__(self, index: Union[int, slice]) -> Union[Sample, Tuple[Sample, ...]]:
        return self.samples[index]

    def __len__(self) -> int:
        return len(self.samples)

    def __iter__(self) -> Iterator[Sample]:
        return iter(self.samples)

    @property
    def freshest(self) -> Optional[Sample]:
        return self.samples[-1] if self.samples else None


def qualifies(sample: Sample, threshold: float) -> bool:
    """
    Accuracy gate: does the sample meet the configured threshold?
    """
    return sample.horizontal_accuracy <= threshold


class SampleBuffer:
    """
    Holds the most recent non-empty batch received from the sensor. A new batch
    replaces the previous one; batches are never merged.
    """

    def __init__(self) -> None:
        self._samples: Tuple[Sample, ...] = ()

    def store(self, samples: Iterable[Sample]) -> bool:
        """
        Replace the buffered batch.

        :param samples: Samples in the order the sensor produced them.
        :return: False (and buffer untouched) if the batch was empty.
        """
        batch = tuple(samples)
        if not batch:
            return False
        self._samples = batch
        return True

    def clear(self) -> None:
        self._samples = ()

    @property
    def samples(self) -> Tuple[Sample, ...]:
        return self._samples

    @property
    def last(self) -> Optional[Sample]:
        return self._samples[-1] if self._samples else None

    def qualifies(self, threshold: float) -> bool:
        """Only the freshest sample is gated; an empty buffer never qualifies."""
        last = self.last
        if last is None:
            return False
        return qualifies(last, threshold)

    def snapshot(self, qualified_at: float) -> SampleBatch:
        return SampleBatch(self._samples, qualified_at)

    def __len__(self) -> int:
        return len(self._samples)
