"""Keyframe and landmark selection schemes."""

from __future__ import annotations

import logging
import random
import time
from dataclasses import dataclass
from enum import Enum
from typing import Callable, Mapping

import numpy as np

from .keyframe import Keyframe, Landmark
from .landmark_helpers import get_sorted_keyframes
from .tracks import FeaturePoint

_log = logging.getLogger(__name__)


class Category(Enum):
    """Observability bin a selected landmark falls into."""

    NEAR_FIELD = "near"
    MIDDLE_FIELD = "middle"
    FAR_FIELD = "far"


class KeyframeSparsificationSchemeTime:
    """Accept a frame only if it is far enough in time from the newest keyframe."""

    identifier = "time"

    def __init__(self, time_difference_nano_sec: float):
        self.time_difference_nano_sec = time_difference_nano_sec

    def is_usable(self, new_frame: Keyframe, last_frames: Mapping[int, Keyframe]) -> bool:
        """Tell whether ``new_frame`` is more than the time difference after the newest frame."""
        if not last_frames:
            return True
        max_ts = max(kf.timestamp for kf in last_frames.values())
        return (new_frame.timestamp - max_ts) > self.time_difference_nano_sec


class LandmarkSparsificationSchemeRandom:
    """Select a fixed number of landmarks at random."""

    identifier = "random"

    def __init__(self, num_landmarks: int, rng: random.Random | None = None):
        if num_landmarks < 0:
            raise ValueError("num_landmarks must not be negative")
        self.num_landmarks = num_landmarks
        self.rng = rng if rng is not None else random.Random()

    def get_selection(
        self, landmarks: Mapping[int, Landmark], keyframes: Mapping[int, Keyframe]
    ) -> set[int]:
        """Return up to ``num_landmarks`` landmark ids picked at random."""
        ids = list(landmarks)
        self.rng.shuffle(ids)
        return set(ids[: self.num_landmarks])


def is_landmark_cheiral(
    keyframes: Mapping[int, Keyframe], lm_id: int, landmark: Landmark
) -> bool:
    """Tell whether the landmark lies in front of every camera of every active keyframe."""
    for kf in keyframes.values():
        if not kf.is_active:
            continue
        projected = kf.get_projected_landmark_position((lm_id, landmark))
        if any(pos[2] < 0.0 for pos in projected.values()):
            return False
    return True


class LandmarkRejectionSchemeCheirality:
    """Reject landmarks that lie behind a camera that observed them."""

    identifier = "cheirality"

    def get_selection(
        self, landmarks: Mapping[int, Landmark], keyframes: Mapping[int, Keyframe]
    ) -> set[int]:
        """Return the ids of all landmarks that fulfil the cheirality constraint."""
        start = time.monotonic()
        out = {
            lm_id
            for lm_id, lm in landmarks.items()
            if is_landmark_cheiral(keyframes, lm_id, lm)
        }
        _log.debug("Duration cheirality check=%.0f ms", (time.monotonic() - start) * 1000.0)
        return out


Comparator = Callable[[Landmark], bool]
Sorter = Callable[[FeaturePoint, np.ndarray], float]


@dataclass
class DepthRule:
    """Add up to ``num_landmarks`` landmarks of one keyframe.

    ``frame_index`` counts the active keyframes from the oldest one. Landmarks
    must satisfy ``comparator``; those with the lowest ``sorter`` cost win.
    """

    frame_index: int
    num_landmarks: int
    comparator: Comparator
    sorter: Sorter


class LandmarkSelectionSchemeAddDepth:
    """Ensure a number of chosen landmarks per keyframe, e.g. with depth."""

    identifier = "add_depth"

    def __init__(self, rules: list[DepthRule] | None = None):
        self.rules = list(rules) if rules is not None else []

    def get_selection(
        self, landmarks: Mapping[int, Landmark], keyframes: Mapping[int, Keyframe]
    ) -> set[int]:
        """Return the ids chosen by all rules together."""
        frames = list(reversed(get_sorted_keyframes(keyframes)))
        out: set[int] = set()
        for rule in self.rules:
            if rule.frame_index < 0 or rule.frame_index >= len(frames):
                continue
            kf = frames[rule.frame_index]
            pose = kf.get_pose()
            scored: list[tuple[int, float]] = []
            for lm_id in sorted(kf.measurements):
                lm = landmarks.get(lm_id)
                if lm is None or not rule.comparator(lm):
                    continue
                local_lm = pose.apply(lm.pos)
                costs = [rule.sorter(meas, local_lm) for meas in kf.measurements[lm_id].values()]
                if costs:
                    scored.append((lm_id, max(costs)))
            scored.sort(key=lambda item: item[1])
            count = max(0, min(rule.num_landmarks, len(scored)))
            out.update(lm_id for lm_id, _ in scored[:count])
        return out