"""Helpers shared by the landmark selection schemes: flow and bin choices."""

from __future__ import annotations

import random
from collections import defaultdict
from typing import Iterable, Mapping, Sequence

import numpy as np

from .keyframe import Keyframe


def _check_count(value: int, name: str) -> int:
    if value < 0:
        raise ValueError(f"{name} must not be negative, got {value}")
    return int(value)


def choose_near_lm_ids(
    max_num_lms: int, near_ids: Iterable[int], map_flow: Mapping[int, float]
) -> list[int]:
    """Return up to ``max_num_lms`` ids with the biggest flow, biggest first.

    Ids missing from ``map_flow`` (for instance because their tracks are too
    short) are left out.
    """
    limit = _check_count(max_num_lms, "max_num_lms")
    ids = [lm_id for lm_id in near_ids if lm_id in map_flow]
    ids.sort(key=lambda lm_id: map_flow[lm_id], reverse=True)
    return ids[:limit]


def choose_middle_lm_ids(
    max_num: int, middle_ids: Sequence[int], rng: random.Random | None = None
) -> list[int]:
    """Return up to ``max_num`` ids picked at random from ``middle_ids``."""
    limit = _check_count(max_num, "max_num")
    generator = rng if rng is not None else random.Random()
    shuffled = list(middle_ids)
    generator.shuffle(shuffled)
    return shuffled[:limit]


def choose_far_lm_ids(
    max_num: int, ids_far: Sequence[int], keyframes: Mapping[int, Keyframe]
) -> list[int]:
    """Return up to ``max_num`` ids observed in the most keyframes, longest tracks first."""
    limit = _check_count(max_num, "max_num")
    frames = list(keyframes.values())
    counts = {
        lm_id: sum(1 for kf in frames if kf.has_measurement(lm_id)) for lm_id in ids_far
    }
    ordered = sorted(ids_far, key=lambda lm_id: counts[lm_id], reverse=True)
    return ordered[:limit]


def _frames_by_time(keyframes) -> list[Keyframe]:
    frames = keyframes.values() if isinstance(keyframes, Mapping) else keyframes
    return sorted(frames, key=lambda kf: kf.timestamp)


def calc_flow(
    valid_lm_ids: Iterable[int], keyframes, use_mean: bool = True
) -> dict[int, float]:
    """Return the optical flow of each landmark, the largest over all cameras.

    For each camera the image distances between consecutive measurements (in
    time order of the keyframes) are summed, or averaged if ``use_mean`` is set.
    Landmarks measured fewer than twice in every camera get no entry.
    ``keyframes`` is a mapping of keyframes or an iterable of them.
    """
    frames = _frames_by_time(keyframes)
    out: dict[int, float] = {}
    for lm_id in valid_lm_ids:
        last_meas: dict[int, np.ndarray] = {}
        total: dict[int, float] = defaultdict(float)
        occurrence: dict[int, int] = defaultdict(int)
        for kf in frames:
            for cam_id, meas in kf.get_measurements(lm_id).items():
                point = meas.to_array2d()
                if cam_id in last_meas:
                    total[cam_id] += float(np.linalg.norm(last_meas[cam_id] - point))
                    occurrence[cam_id] += 1
                last_meas[cam_id] = point
        if not total:
            continue
        if use_mean:
            values = [total[cam] / occurrence[cam] for cam in total]
        else:
            values = list(total.values())
        out[lm_id] = max(values)
    return out


def get_sorted_keyframes(keyframes: Mapping[int, Keyframe]) -> list[Keyframe]:
    """Return the active keyframes, newest first."""
    active = [kf for kf in keyframes.values() if kf.is_active]
    return sorted(active, key=lambda kf: kf.timestamp, reverse=True)