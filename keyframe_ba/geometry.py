"""Rigid transforms and the 7-element pose layout used throughout the package.

A pose array holds a quaternion ``(w, x, y, z)`` followed by a translation
``(tx, ty, tz)``.
"""

from __future__ import annotations

from typing import Sequence

import numpy as np


def quaternion_to_rotation(quaternion: Sequence[float]) -> np.ndarray:
    """Return the rotation matrix of a quaternion ``(w, x, y, z)``.

    The quaternion is normalised first; a zero quaternion raises ValueError.
    """
    q = np.asarray(quaternion, dtype=float).ravel()
    if q.shape != (4,):
        raise ValueError("quaternion must have 4 components")
    norm = np.linalg.norm(q)
    if norm == 0.0:
        raise ValueError("zero quaternion has no rotation")
    w, x, y, z = q / norm
    return np.array(
        [
            [1 - 2 * (y * y + z * z), 2 * (x * y - w * z), 2 * (x * z + w * y)],
            [2 * (x * y + w * z), 1 - 2 * (x * x + z * z), 2 * (y * z - w * x)],
            [2 * (x * z - w * y), 2 * (y * z + w * x), 1 - 2 * (x * x + y * y)],
        ]
    )


def rotation_to_quaternion(rotation: np.ndarray) -> np.ndarray:
    """Return the unit quaternion ``(w, x, y, z)`` of a rotation matrix, with ``w >= 0``."""
    r = np.asarray(rotation, dtype=float)
    if r.shape != (3, 3):
        raise ValueError("rotation must be a 3x3 matrix")
    diag_sum = r[0, 0] + r[1, 1] + r[2, 2]
    if diag_sum > 0.0:
        s = 2.0 * np.sqrt(diag_sum + 1.0)
        q = np.array(
            [0.25 * s, (r[2, 1] - r[1, 2]) / s, (r[0, 2] - r[2, 0]) / s, (r[1, 0] - r[0, 1]) / s]
        )
    elif r[0, 0] > r[1, 1] and r[0, 0] > r[2, 2]:
        s = 2.0 * np.sqrt(1.0 + r[0, 0] - r[1, 1] - r[2, 2])
        q = np.array(
            [(r[2, 1] - r[1, 2]) / s, 0.25 * s, (r[0, 1] + r[1, 0]) / s, (r[0, 2] + r[2, 0]) / s]
        )
    elif r[1, 1] > r[2, 2]:
        s = 2.0 * np.sqrt(1.0 + r[1, 1] - r[0, 0] - r[2, 2])
        q = np.array(
            [(r[0, 2] - r[2, 0]) / s, (r[0, 1] + r[1, 0]) / s, 0.25 * s, (r[1, 2] + r[2, 1]) / s]
        )
    else:
        s = 2.0 * np.sqrt(1.0 + r[2, 2] - r[0, 0] - r[1, 1])
        q = np.array(
            [(r[1, 0] - r[0, 1]) / s, (r[0, 2] + r[2, 0]) / s, (r[1, 2] + r[2, 1]) / s, 0.25 * s]
        )
    q /= np.linalg.norm(q)
    if q[0] < 0.0:
        q = -q
    return q


class Isometry:
    """Rigid 3D transform ``p -> R p + t``."""

    __slots__ = ("rotation", "translation")

    def __init__(self, rotation=None, translation=None):
        self.rotation = np.eye(3) if rotation is None else np.array(rotation, dtype=float)
        self.translation = (
            np.zeros(3) if translation is None else np.array(translation, dtype=float).ravel()
        )
        if self.rotation.shape != (3, 3):
            raise ValueError("rotation must be a 3x3 matrix")
        if self.translation.shape != (3,):
            raise ValueError("translation must have 3 components")

    @classmethod
    def identity(cls) -> "Isometry":
        """Return the identity transform."""
        return cls()

    @classmethod
    def from_pose_array(cls, pose: Sequence[float]) -> "Isometry":
        """Build a transform from ``(qw, qx, qy, qz, tx, ty, tz)``."""
        values = np.asarray(pose, dtype=float).ravel()
        if values.shape != (7,):
            raise ValueError("pose array must have 7 components")
        return cls(quaternion_to_rotation(values[:4]), values[4:])

    def to_pose_array(self) -> np.ndarray:
        """Return ``(qw, qx, qy, qz, tx, ty, tz)``."""
        return np.concatenate([rotation_to_quaternion(self.rotation), self.translation])

    @classmethod
    def from_matrix(cls, matrix) -> "Isometry":
        """Build a transform from a homogeneous 4x4 matrix."""
        m = np.asarray(matrix, dtype=float)
        if m.shape != (4, 4):
            raise ValueError("matrix must be 4x4")
        if not np.allclose(m[3], [0.0, 0.0, 0.0, 1.0]):
            raise ValueError("last row of a homogeneous transform must be [0, 0, 0, 1]")
        return cls(m[:3, :3], m[:3, 3])

    def matrix(self) -> np.ndarray:
        """Return the homogeneous 4x4 matrix."""
        m = np.eye(4)
        m[:3, :3] = self.rotation
        m[:3, 3] = self.translation
        return m

    def inverse(self) -> "Isometry":
        """Return the inverse transform."""
        rt = self.rotation.T
        return Isometry(rt, -rt @ self.translation)

    def apply(self, point) -> np.ndarray:
        """Transform one point of shape (3,) or an array of points of shape (N, 3)."""
        p = np.asarray(point, dtype=float)
        if p.shape == (3,):
            return self.rotation @ p + self.translation
        if p.ndim == 2 and p.shape[1] == 3:
            return p @ self.rotation.T + self.translation
        raise ValueError("points must have shape (3,) or (N, 3)")

    def rotation_only(self) -> "Isometry":
        """Return the transform with the same rotation and no translation."""
        return Isometry(self.rotation, np.zeros(3))

    def __matmul__(self, other):
        if isinstance(other, Isometry):
            return Isometry(
                self.rotation @ other.rotation,
                self.rotation @ other.translation + self.translation,
            )
        if isinstance(other, (np.ndarray, list, tuple)):
            return self.apply(other)
        return NotImplemented

    def __repr__(self) -> str:
        return f"Isometry(rotation={self.rotation.tolist()}, translation={self.translation.tolist()})"