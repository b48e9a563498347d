"""Residuals of the bundle adjustment problem.

Poses are Isometry objects or 7-element pose arrays ``(qw, qx, qy, qz, tx,
ty, tz)`` and map from keyframe (or camera) to origin. Functors that cannot
be evaluated for the given parameters return None.
"""

from __future__ import annotations

import math

import numpy as np

from .geometry import Isometry

_MIN_DEPTH = 0.01
_MIN_ROT_COMP_SQ = 0.01


def _as_isometry(pose) -> Isometry:
    return pose if isinstance(pose, Isometry) else Isometry.from_pose_array(pose)


def _vec3(values) -> np.ndarray:
    v = np.asarray(values, dtype=float).ravel()
    if v.shape != (3,):
        raise ValueError("vector must have 3 components")
    return v


class ReprojectionError:
    """Pixel error of a landmark projected into a pinhole camera without distortion.

    With ``compensate_rotation`` the error is divided by the error that the
    rotation of the keyframe alone would give.
    """

    def __init__(
        self,
        observed_x: float,
        observed_y: float,
        focal_length: float,
        principal_point_x: float,
        principal_point_y: float,
        pose_cam_veh,
        compensate_rotation: bool = False,
    ):
        self.observed_x = float(observed_x)
        self.observed_y = float(observed_y)
        self.focal_length = float(focal_length)
        self.principal_point_x = float(principal_point_x)
        self.principal_point_y = float(principal_point_y)
        self.pose_c_x = _as_isometry(pose_cam_veh)
        self.compensate_rotation = compensate_rotation

    def project(self, point_c) -> tuple[float, float] | None:
        """Return the pixel of a point in camera frame, None if its depth is below 0.01."""
        p = _vec3(point_c)
        if abs(p[2]) < _MIN_DEPTH:
            return None
        x = p[0] / p[2]
        y = p[1] / p[2]
        return (
            self.focal_length * x + self.principal_point_x,
            self.focal_length * y + self.principal_point_y,
        )

    def __call__(self, pose_x_o, point_o) -> np.ndarray | None:
        """Return the two pixel residuals, or None if they cannot be evaluated."""
        pose = _as_isometry(pose_x_o)
        point = _vec3(point_o)
        predicted = self.project((self.pose_c_x @ pose).apply(point))
        if predicted is None:
            return None

        rot_comp = 1.0
        if self.compensate_rotation:
            predicted_rot = self.project((self.pose_c_x @ pose.rotation_only()).apply(point))
            if predicted_rot is None:
                return None
            dx = predicted_rot[0] - self.observed_x
            dy = predicted_rot[1] - self.observed_y
            rot_comp_sq = dx * dx + dy * dy
            if rot_comp_sq < _MIN_ROT_COMP_SQ:
                return None
            rot_comp = math.sqrt(rot_comp_sq)

        return np.array(
            [
                (predicted[0] - self.observed_x) / rot_comp,
                (predicted[1] - self.observed_y) / rot_comp,
            ]
        )


class LandmarkDepthError:
    """Difference between a landmark's depth in the camera and its measured depth."""

    def __init__(self, depth: float, pose_cam_veh):
        self.depth = float(depth)
        self.pose_c_x = _as_isometry(pose_cam_veh)

    def __call__(self, pose_x_o, point_o) -> np.ndarray:
        """Return ``[z_camera - depth]``."""
        point_c = (self.pose_c_x @ _as_isometry(pose_x_o)).apply(_vec3(point_o))
        return np.array([point_c[2] - self.depth])


class PoseRegularization:
    """Hold the distance between two poses at a given scale."""

    def __init__(self, scale: float):
        self.scale = float(scale)

    def __call__(self, pose1, pose0) -> np.ndarray:
        """Return ``[|t(pose1 * pose0^-1)| - scale]``."""
        diff = _as_isometry(pose1) @ _as_isometry(pose0).inverse()
        return np.array([np.linalg.norm(diff.translation) - self.scale])


class SpeedRegularization:
    """Penalise a change of speed over three consecutive poses."""

    def __init__(self, ts_cur: float, ts_before: float, ts_before2: float):
        self.dt_cur = float(ts_cur) - float(ts_before)
        self.dt_before = float(ts_before) - float(ts_before2)
        if self.dt_cur <= 0.0 or self.dt_before <= 0.0:
            raise ValueError("In PoseRegularizationSpeed: invalid timestamps")

    def __call__(self, pose_cur_origin, pose_before_origin, pose_before2_origin) -> np.ndarray:
        """Return ``[speed now - speed before]``."""
        cur = _as_isometry(pose_cur_origin)
        before = _as_isometry(pose_before_origin)
        before2 = _as_isometry(pose_before2_origin)
        vel_cur = np.linalg.norm((cur @ before.inverse()).translation) / self.dt_cur
        vel_before = np.linalg.norm((before @ before2.inverse()).translation) / self.dt_before
        return np.array([vel_cur - vel_before])


class SpeedRegularizationVector:
    """Penalise a change of the velocity vector against two fixed earlier poses."""

    def __init__(self, ts_cur: float, ts_before: float, ts_before2: float, pose_before, pose_before2):
        self.dt_cur = float(ts_cur) - float(ts_before)
        dt_before = float(ts_before) - float(ts_before2)
        if self.dt_cur <= 0.0 or dt_before <= 0.0:
            raise ValueError("In PoseRegularizationSpeed: invalid timestamps")
        before = _as_isometry(pose_before)
        before2 = _as_isometry(pose_before2)
        self.vel_before_before2 = (before @ before2.inverse()).translation / dt_before
        self.pose_origin_before = before.inverse()

    def __call__(self, pose_cur_origin) -> np.ndarray:
        """Return the three components of the velocity difference."""
        pose_cur_before = _as_isometry(pose_cur_origin) @ self.pose_origin_before
        return pose_cur_before.translation / self.dt_cur - self.vel_before_before2


class VectorDifferenceToFixed:
    """Difference between a fixed direction and a free one."""

    def __init__(self, direction):
        self.direction = _vec3(direction)

    def __call__(self, plane_dir1) -> np.ndarray:
        """Return ``direction - plane_dir1``."""
        return self.direction - _vec3(plane_dir1)


class TranslationDifferenceToFixed:
    """Change of translation from a fixed step ``pose0 -> pose1`` to the step ``pose1 -> pose2``."""

    def __init__(self, pose0_origin, pose1_origin):
        pose1 = _as_isometry(pose1_origin)
        self.pose_origin_1 = pose1.inverse()
        self.pose1_0 = pose1 @ _as_isometry(pose0_origin).inverse()

    def __call__(self, pose2_origin) -> np.ndarray:
        """Return the three components of the translation difference."""
        diff21 = _as_isometry(pose2_origin) @ self.pose_origin_1
        return diff21.translation - self.pose1_0.translation


def ground_plane_height_residual(pose_x_o, plane_dir, dist, point_o) -> np.ndarray:
    """Return the signed distance of a landmark to the keyframe's ground plane."""
    point_x = _as_isometry(pose_x_o).apply(_vec3(point_o))
    d = float(np.asarray(dist, dtype=float).ravel()[0])
    return np.array([float(np.dot(_vec3(plane_dir), point_x)) + d])


def vector_difference_residual(plane_dir0, plane_dir1) -> np.ndarray:
    """Return ``plane_dir0 - plane_dir1``."""
    return _vec3(plane_dir0) - _vec3(plane_dir1)


def translation_difference_residual(pose0, pose1, pose2) -> np.ndarray:
    """Return the change of translation between the steps ``0 -> 1`` and ``1 -> 2``."""
    p0 = _as_isometry(pose0)
    p1 = _as_isometry(pose1)
    p2 = _as_isometry(pose2)
    diff10 = p1 @ p0.inverse()
    diff21 = p2 @ p1.inverse()
    return diff21.translation - diff10.translation


def ground_plane_distance_residual(dist0, dist1) -> np.ndarray:
    """Return ``[dist0 - dist1]``."""
    d0 = float(np.asarray(dist0, dtype=float).ravel()[0])
    d1 = float(np.asarray(dist1, dtype=float).ravel()[0])
    return np.array([d0 - d1])


def ground_plane_motion_residual(pose_0, pose_1, plane_dir0) -> np.ndarray:
    """Return the component of the normalised motion along the plane normal."""
    delta = (_as_isometry(pose_0) @ _as_isometry(pose_1).inverse()).translation
    norm = np.linalg.norm(delta)
    if norm > 0.0:
        delta = delta / norm
    return np.array([float(np.dot(_vec3(plane_dir0), delta))])