"""Feature points and tracklets as delivered by a feature tracker."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Sequence

import numpy as np

NO_DEPTH = -1.0


@dataclass
class FeaturePoint:
    """Image measurement in pixels, optionally carrying a depth value.

    A depth of ``-1`` marks a point without depth measurement.
    """

    u: float
    v: float
    d: float = NO_DEPTH

    @classmethod
    def from_vector(cls, vector: Sequence[float]) -> "FeaturePoint":
        """Build a point from ``(u, v)`` or ``(u, v, d)``."""
        values = [float(x) for x in np.asarray(vector, dtype=float).ravel()]
        if len(values) == 2:
            return cls(values[0], values[1])
        if len(values) == 3:
            return cls(values[0], values[1], values[2])
        raise ValueError(f"feature point needs 2 or 3 components, got {len(values)}")

    def to_array2d(self) -> np.ndarray:
        """Return ``[u, v]``."""
        return np.array([self.u, self.v], dtype=float)

    def to_array3d(self) -> np.ndarray:
        """Return ``[u, v, d]``."""
        return np.array([self.u, self.v, self.d], dtype=float)


@dataclass
class Tracklet:
    """Track of one feature over several images, newest measurement first."""

    feature_points: list[FeaturePoint] = field(default_factory=list)
    id: int = 0
    age: int = 0
    is_outlier: bool = False
    label: int = -2


@dataclass
class Tracklets:
    """A set of tracks together with the image timestamps (ns) they refer to."""

    stamps: list[int] = field(default_factory=list)
    tracks: list[Tracklet] = field(default_factory=list)

    def index_of(self, stamp: int) -> int:
        """Return the position of ``stamp`` in ``stamps``.

        Raises ValueError if the timestamp is not present.
        """
        try:
            return self.stamps.index(stamp)
        except ValueError:
            raise ValueError(f"timestamp {stamp} not in tracklets") from None