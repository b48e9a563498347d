"""Helpers around tracklets, poses and map output."""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Iterable, Mapping

import numpy as np
import yaml

from .geometry import Isometry
from .keyframe import Keyframe, Landmark
from .tracks import Tracklets

_log = logging.getLogger(__name__)


def pose_to_string(matrix) -> str:
    """Return the upper three rows of a 4x4 pose, row by row, separated by spaces."""
    m = matrix.matrix() if isinstance(matrix, Isometry) else np.asarray(matrix, dtype=float)
    if m.shape != (4, 4):
        raise ValueError("pose matrix must be 4x4")
    return " ".join(f"{x:g}" for x in m[:3].ravel())


def load_set_from_yaml(yaml_path, field_name: str) -> set[int]:
    """Read the integer list ``field_name`` from a YAML file as a set.

    Raises ValueError if the field is missing or not a list.
    """
    with open(yaml_path, encoding="utf-8") as handle:
        root = yaml.safe_load(handle)
    values = root.get(field_name) if isinstance(root, dict) else None
    if not isinstance(values, list):
        raise ValueError(f"LabelReader: vector {field_name} not defined.")
    return {int(v) for v in values}


def _stamp_index(tracklets: Tracklets, stamp: int) -> int:
    try:
        return tracklets.stamps.index(stamp)
    except ValueError:
        return len(tracklets.stamps)


def get_matches(
    tracklets: Tracklets, ts0: int, ts1: int, outlier_labels: Iterable[int]
) -> tuple[np.ndarray, np.ndarray]:
    """Return corresponding image points at the two timestamps as two (N, 2) arrays.

    Tracks not reaching both timestamps and tracks whose label is an outlier
    label are left out.
    """
    excluded = set(outlier_labels)
    index0 = _stamp_index(tracklets, ts0)
    index1 = _stamp_index(tracklets, ts1)
    pairs = [
        (
            (track.feature_points[index0].u, track.feature_points[index0].v),
            (track.feature_points[index1].u, track.feature_points[index1].v),
        )
        for track in tracklets.tracks
        if len(track.feature_points) > max(index0, index1) and track.label not in excluded
    ]
    points0 = np.array([p for p, _ in pairs], dtype=float).reshape(-1, 2)
    points1 = np.array([p for _, p in pairs], dtype=float).reshape(-1, 2)
    return points0, points1


def get_mean_flow(points0, points1) -> float:
    """Return the mean distance between corresponding points; 0 for no points."""
    p0 = np.asarray(points0, dtype=float).reshape(-1, 2)
    p1 = np.asarray(points1, dtype=float).reshape(-1, 2)
    if len(p0) != len(p1):
        raise ValueError("In getMeanFlow: points size not consistent.")
    if len(p0) == 0:
        return 0.0
    return float(np.linalg.norm(p0 - p1, axis=1).mean())


def _fmt(x: float) -> str:
    return f"{x:.12g}"


def _landmark_line(lm: Landmark) -> str:
    return "[" + ", ".join(_fmt(v) for v in (*lm.pos, lm.weight)) + "],\n"


def dump_map(
    filename, landmarks: Mapping[int, Landmark], keyframes: Mapping[int, Keyframe]
) -> None:
    """Write landmarks (split by depth measurement) and keyframe poses to a file."""
    ordered_lms = [landmarks[k] for k in sorted(landmarks)]
    parts = ["landmarks with depth: ["]
    parts += [_landmark_line(lm) for lm in ordered_lms if lm.has_measured_depth]
    parts.append("]\n")
    parts.append("landmarks without depth: [")
    parts += [_landmark_line(lm) for lm in ordered_lms if not lm.has_measured_depth]
    parts.append("]\n")
    parts.append("poses: {")
    for key in sorted(keyframes):
        kf = keyframes[key]
        parts.append(f"{kf.timestamp}: [" + ", ".join(_fmt(v) for v in kf.pose) + "],\n")
    parts.append("}")
    Path(filename).write_text("".join(parts), encoding="utf-8")
    _log.info("Dumped map to %s", filename)