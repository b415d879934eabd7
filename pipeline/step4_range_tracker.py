"""
Step 4: Range Tracking
Accumulates the min/max extent of each tracked angle across a clip.
"""

import threading
from dataclasses import dataclass
from typing import Dict, Mapping, Optional

from utils.angle_calculator import AngleCategory


@dataclass(frozen=True)
class AngleRange:
    """Accumulated extent of one angle over the analyzed frames."""
    min: float
    max: float

    @property
    def span(self) -> float:
        return self.max - self.min

    def contains(self, angle: float) -> bool:
        return self.min <= angle <= self.max


class RangeTracker:
    """
    Running min/max for a single angle category.

    The first reading sets both bounds; until then the range is None
    ("no data"), which is distinct from a zero-degree reading. Updates are
    serialized with a lock so frames may be analyzed on worker threads.
    """

    def __init__(self, category: AngleCategory):
        self.category = category
        self._min: Optional[float] = None
        self._max: Optional[float] = None
        self.sample_count = 0
        self._lock = threading.Lock()

    def observe(self, angle: Optional[float]) -> None:
        """Fold one reading into the range; None (no reading) is ignored."""
        if angle is None:
            return
        angle = float(angle)
        with self._lock:
            if self._min is None or angle < self._min:
                self._min = angle
            if self._max is None or angle > self._max:
                self._max = angle
            self.sample_count += 1

    @property
    def range(self) -> Optional[AngleRange]:
        with self._lock:
            if self._min is None:
                return None
            return AngleRange(min=self._min, max=self._max)

    def reset(self) -> None:
        with self._lock:
            self._min = None
            self._max = None
            self.sample_count = 0


class RangeTrackerSet:
    """One RangeTracker per angle category."""

    def __init__(self):
        self.trackers: Dict[AngleCategory, RangeTracker] = {
            category: RangeTracker(category) for category in AngleCategory
        }

    def __getitem__(self, category: AngleCategory) -> RangeTracker:
        return self.trackers[category]

    def observe_all(self, readings: Mapping[AngleCategory, Optional[float]]) -> None:
        for category, angle in readings.items():
            self.trackers[category].observe(angle)

    def ranges(self) -> Dict[AngleCategory, Optional[AngleRange]]:
        """Snapshot of every category's range (None where nothing was observed)."""
        return {category: tracker.range for category, tracker in self.trackers.items()}

    def reset(self) -> None:
        for tracker in self.trackers.values():
            tracker.reset()
