"""Motion model regularisation: vehicle motion along a circular arc in the plane."""

from __future__ import annotations

import logging
import math

import numpy as np

from .geometry import Isometry, rotation_to_quaternion

_log = logging.getLogger(__name__)

_YAW_EPS = 1.0e-6


def delta_y_on_circle(d_yaw: float, d_x: float) -> float:
    """Return the lateral offset of a circular motion with yaw ``d_yaw`` and forward ``d_x``.

    The radius is ``d_x / sin(yaw)`` and the offset ``r * (1 - cos(yaw))``; for a
    yaw below 1e-6 the offset is 0.
    """
    if abs(d_yaw) < _YAW_EPS:
        return 0.0
    return d_x / math.sin(d_yaw) * (1.0 - math.cos(d_yaw))


def _as_isometry(pose) -> Isometry:
    return pose if isinstance(pose, Isometry) else Isometry.from_pose_array(pose)


def _yaw_of(rotation: np.ndarray) -> float:
    w, _, _, z = rotation_to_quaternion(rotation)
    norm = math.hypot(w, z)
    if norm > 0.0:
        w, z = w / norm, z / norm
    sign = -1.0 if z < 0.0 else 1.0
    return sign * 2.0 * math.acos(max(-1.0, min(1.0, w)))


def motion_model_residual(pose_keyframe1_origin, pose_keyframe0_origin) -> np.ndarray:
    """Return the two residuals of the motion between two keyframes.

    Poses are Isometry objects or 7-element pose arrays, from keyframe to origin.
    The first residual is the lateral deviation from the circular arc that the
    yaw and forward motion describe, the second the vertical motion.
    """
    p1 = _as_isometry(pose_keyframe1_origin)
    p0 = _as_isometry(pose_keyframe0_origin)
    motion = p1 @ p0.inverse()
    yaw = _yaw_of(motion.rotation)
    t = motion.translation
    d_y = delta_y_on_circle(yaw, float(t[0]))
    _log.debug("y motion_model=%s translation=%s %s yaw=%s", d_y, t[0], t[1], yaw)
    return np.array([t[1] - d_y, t[2]], dtype=float)