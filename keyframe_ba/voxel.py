"""Landmark sparsification on a voxel grid around the path of the keyframes.

Landmarks are moved into the frame of the newest keyframe and sorted by their
distance to the path of the keyframes. Far landmarks go to the far field.
The remaining ones are thinned out on a voxel grid and then split into near
field and middle field.
"""

from __future__ import annotations

import logging
import random
import time
from dataclasses import dataclass, field
from typing import Mapping, Sequence

import numpy as np

from .geometry import Isometry
from .keyframe import Keyframe, Landmark
from .landmark_helpers import (
    calc_flow,
    choose_far_lm_ids,
    choose_middle_lm_ids,
    choose_near_lm_ids,
)
from .schemes import Category

_log = logging.getLogger(__name__)

_Z_MIN = -20.0
_Z_MAX = 100.0


@dataclass
class VoxelParameters:
    """Bin sizes, voxel size and regions of interest, all lengths in metres."""

    max_num_landmarks_near: int = 300
    max_num_landmarks_middle: int = 300
    max_num_landmarks_far: int = 300
    voxel_size_xyz: tuple[float, float, float] = (0.5, 0.5, 0.3)
    roi_far_xyz: tuple[float, float, float] = (40.0, 40.0, 40.0)
    roi_middle_xyz: tuple[float, float, float] = (15.0, 15.0, 15.0)
    _: None = field(default=None, repr=False, compare=False)


def voxel_grid_filter(
    points, labels: Sequence[int], leaf_size
) -> tuple[np.ndarray, list[int]]:
    """Replace the points of every voxel by their centroid.

    Voxels are the cells ``floor(p / leaf_size)``. Each centroid keeps the label
    of the first point of its voxel. The result is ordered by voxel index.
    """
    pts = np.asarray(points, dtype=float).reshape(-1, 3)
    labs = list(labels)
    if len(labs) != len(pts):
        raise ValueError("every point needs exactly one label")
    leaf = np.asarray(leaf_size, dtype=float).ravel()
    if leaf.shape != (3,) or np.any(leaf <= 0.0):
        raise ValueError("leaf size must have 3 positive components")

    groups: dict[tuple[int, int, int], list[int]] = {}
    for i, p in enumerate(pts):
        key = tuple(int(k) for k in np.floor(p / leaf))
        groups.setdefault(key, []).append(i)

    keys = sorted(groups)
    centroids = np.array([pts[groups[k]].mean(axis=0) for k in keys], dtype=float).reshape(-1, 3)
    return centroids, [labs[groups[k][0]] for k in keys]


def distance_to_polyline(point, path) -> float:
    """Return the shortest distance from a 3D point to a polyline.

    A path of one point is treated as that point; an empty path raises ValueError.
    """
    p = np.asarray(point, dtype=float).ravel()
    line = np.asarray(path, dtype=float).reshape(-1, 3)
    if len(line) == 0:
        raise ValueError("path must hold at least one point")
    if len(line) == 1:
        return float(np.linalg.norm(p - line[0]))
    start = line[:-1]
    seg = line[1:] - start
    length_sq = np.einsum("ij,ij->i", seg, seg)
    safe = np.where(length_sq > 0.0, length_sq, 1.0)
    t = np.where(length_sq > 0.0, np.einsum("ij,ij->i", p - start, seg) / safe, 0.0)
    t = np.clip(t, 0.0, 1.0)
    closest = start + t[:, None] * seg
    return float(np.linalg.norm(p - closest, axis=1).min())


def filter_pipe(
    points,
    labels: Sequence[int],
    ref_pose: Isometry,
    keyframes: Mapping[int, Keyframe],
    dist_thres: float,
) -> tuple[np.ndarray, list[int], set[int]]:
    """Keep the points closer than ``dist_thres`` to the path of the keyframes.

    Points are given in the frame of ``ref_pose``; the keyframe positions are
    moved into that frame. Returns the kept points, their labels and the set of
    labels of the removed points.
    """
    pts = np.asarray(points, dtype=float).reshape(-1, 3)
    labs = list(labels)
    if len(labs) != len(pts):
        raise ValueError("every point needs exactly one label")
    path = [ref_pose.apply(keyframes[key].get_pose().inverse().translation) for key in sorted(keyframes)]

    kept_points: list[np.ndarray] = []
    kept_labels: list[int] = []
    removed: set[int] = set()
    for p, label in zip(pts, labs):
        if distance_to_polyline(p, path) < dist_thres:
            kept_points.append(p)
            kept_labels.append(label)
        else:
            removed.add(label)
    return np.array(kept_points, dtype=float).reshape(-1, 3), kept_labels, removed


class LandmarkSparsificationSchemeVoxel:
    """Categorise and thin out landmarks by their distance to the driven path."""

    identifier = "voxel"

    def __init__(self, params: VoxelParameters | None = None, rng: random.Random | None = None):
        self.params = params if params is not None else VoxelParameters()
        self.rng = rng if rng is not None else random.Random()

    def get_selection(
        self, landmarks: Mapping[int, Landmark], keyframes: Mapping[int, Keyframe]
    ) -> set[int]:
        """Return the ids of all selected landmarks."""
        return set(self.get_categorized_selection(landmarks, keyframes))

    def get_categorized_selection(
        self, landmarks: Mapping[int, Landmark], keyframes: Mapping[int, Keyframe]
    ) -> dict[int, Category]:
        """Return the selected landmark ids with their field category.

        Raises ValueError if there are no keyframes.
        """
        if not keyframes:
            raise ValueError("voxel selection needs at least one keyframe")
        newest = max(keyframes.values(), key=lambda kf: kf.timestamp)
        cur_pos = newest.get_pose()

        lut = list(landmarks)
        start = time.monotonic()
        if lut:
            cloud = cur_pos.apply(np.array([landmarks[i].pos for i in lut], dtype=float))
        else:
            cloud = np.zeros((0, 3))
        labels = list(range(len(lut)))
        _log.debug("Size before voxelization=%d", len(lut))

        plausible = (cloud[:, 2] >= _Z_MIN) & (cloud[:, 2] <= _Z_MAX)
        cloud = cloud[plausible]
        labels = [label for label, ok in zip(labels, plausible) if ok]

        p = self.params
        middle_pts, middle_labels, labels_far = filter_pipe(
            cloud, labels, cur_pos, keyframes, p.roi_far_xyz[0]
        )
        middle_pts, middle_labels = voxel_grid_filter(middle_pts, middle_labels, p.voxel_size_xyz)
        _, near_labels, labels_middle = filter_pipe(
            middle_pts, middle_labels, cur_pos, keyframes, p.roi_middle_xyz[0]
        )
        _log.debug("Duration voxel filtering=%.0f ms", (time.monotonic() - start) * 1000.0)

        ids_near = [lut[label] for label in near_labels]
        map_flow = calc_flow(ids_near, keyframes, False)

        out: dict[int, Category] = {}
        for lm_id in choose_near_lm_ids(p.max_num_landmarks_near, ids_near, map_flow):
            out[lm_id] = Category.NEAR_FIELD

        ids_middle = [lut[label] for label in sorted(labels_middle)]
        for lm_id in choose_middle_lm_ids(p.max_num_landmarks_middle, ids_middle, self.rng):
            out[lm_id] = Category.MIDDLE_FIELD

        ids_far = [lut[label] for label in sorted(labels_far)]
        for lm_id in choose_far_lm_ids(p.max_num_landmarks_far, ids_far, keyframes):
            out[lm_id] = Category.FAR_FIELD

        counts = {c: sum(1 for v in out.values() if v is c) for c in Category}
        _log.debug(
            "After voxelization: near=%d middle=%d far=%d",
            counts[Category.NEAR_FIELD],
            counts[Category.MIDDLE_FIELD],
            counts[Category.FAR_FIELD],
        )
        return out