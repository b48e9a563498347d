"""Keyframes: a timestamped vehicle pose with the measurements taken at that instant."""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from enum import Enum
from typing import Iterable, Mapping

import numpy as np

from .geometry import Isometry
from .tracks import FeaturePoint, Tracklets

MONO_CAMERA_ID = 0


class FixationStatus(Enum):
    """Which part of a keyframe pose is held fixed during optimisation."""

    POSE = "pose"
    SCALE = "scale"
    NONE = "none"


@dataclass
class Camera:
    """Pinhole camera with intrinsics and extrinsics from vehicle to camera frame."""

    focal_length: float
    principal_point: np.ndarray = field(default_factory=lambda: np.zeros(2))
    pose_camera_vehicle: Isometry = field(default_factory=Isometry.identity)

    def __post_init__(self):
        self.principal_point = np.asarray(self.principal_point, dtype=float).ravel()
        if self.principal_point.shape != (2,):
            raise ValueError("principal point must have 2 components")


@dataclass
class Landmark:
    """3D point in the origin frame."""

    pos: np.ndarray = field(default_factory=lambda: np.zeros(3))
    has_measured_depth: bool = False
    is_ground_plane: bool = False
    weight: float = 1.0

    def __post_init__(self):
        self.pos = np.asarray(self.pos, dtype=float).ravel()
        if self.pos.shape != (3,):
            raise ValueError("landmark position must have 3 components")


@dataclass
class Plane:
    """Ground plane given by its normal direction and its distance."""

    direction: np.ndarray = field(default_factory=lambda: np.array([0.0, 0.0, 1.0]))
    distance: float = 0.0

    def __post_init__(self):
        self.direction = np.asarray(self.direction, dtype=float).ravel()
        if self.direction.shape != (3,):
            raise ValueError("plane direction must have 3 components")


def _identity_pose() -> np.ndarray:
    return Isometry.identity().to_pose_array()


@dataclass(eq=False)
class Keyframe:
    """Pose from keyframe to origin together with the measurements seen from it.

    Measurements are stored as ``measurements[landmark_id][camera_id]``.
    """

    timestamp: int
    cameras: dict[int, Camera] = field(default_factory=dict)
    fixation_status: FixationStatus = FixationStatus.NONE
    pose: np.ndarray = field(default_factory=_identity_pose)
    local_ground_plane: Plane = field(default_factory=Plane)
    measurements: dict[int, dict[int, FeaturePoint]] = field(default_factory=dict)
    is_active: bool = True

    def __post_init__(self):
        self.pose = np.asarray(self.pose, dtype=float).ravel()
        if self.pose.shape != (7,):
            raise ValueError("pose must have 7 components")

    def __lt__(self, other: "Keyframe") -> bool:
        if not isinstance(other, Keyframe):
            return NotImplemented
        return self.timestamp < other.timestamp

    def assign_measurements(
        self, tracklets: Tracklets, landmark_to_cameras: Mapping[int, Iterable[int]]
    ) -> None:
        """Store the measurements of ``tracklets`` taken at this keyframe's timestamp.

        Each track is stored for the cameras that ``landmark_to_cameras`` names for
        its id. Outlier tracks, tracks too short to reach the timestamp and cameras
        unknown to the keyframe are left out. Raises ValueError if the timestamp is
        not among the tracklets' stamps.
        """
        index = tracklets.index_of(self.timestamp)
        for track in tracklets.tracks:
            if track.is_outlier or len(track.feature_points) <= index:
                continue
            cam_ids = [c for c in landmark_to_cameras.get(track.id, ()) if c in self.cameras]
            if not cam_ids:
                continue
            point = track.feature_points[index]
            per_cam = self.measurements.setdefault(track.id, {})
            for cam_id in cam_ids:
                per_cam[cam_id] = replace(point)

    def assign_pose(self, pose: Isometry) -> None:
        """Set the pose from keyframe to origin."""
        self.pose = pose.to_pose_array()

    def get_measurement(self, lm_id: int, cam_id: int) -> FeaturePoint:
        """Return the measurement of a landmark in one camera; KeyError if absent."""
        try:
            return self.measurements[lm_id][cam_id]
        except KeyError:
            raise KeyError(f"no measurement of landmark {lm_id} in camera {cam_id}") from None

    def get_measurements(self, lm_id: int) -> dict[int, FeaturePoint]:
        """Return the measurements of a landmark by camera id, empty if unseen."""
        return dict(self.measurements.get(lm_id, {}))

    def has_measurement(self, lm_id: int, cam_id: int | None = None) -> bool:
        """Tell whether the landmark was measured, in ``cam_id`` or in any camera."""
        per_cam = self.measurements.get(lm_id)
        if not per_cam:
            return False
        return cam_id is None or cam_id in per_cam

    def get_projected_landmark_position(
        self, landmark: tuple[int, Landmark]
    ) -> dict[int, np.ndarray]:
        """Return the landmark in the frame of every camera that measured it.

        ``landmark`` is a pair of landmark id and landmark in the origin frame.
        """
        lm_id, lm = landmark
        pose = self.get_pose()
        return {
            cam_id: (self.cameras[cam_id].pose_camera_vehicle @ pose).apply(lm.pos)
            for cam_id in self.measurements.get(lm_id, {})
            if cam_id in self.cameras
        }

    def get_pose(self) -> Isometry:
        """Return the pose from keyframe to origin."""
        return Isometry.from_pose_array(self.pose)


def make_keyframe(
    timestamp: int,
    tracklets: Tracklets,
    cameras: Mapping[int, Camera],
    landmark_to_cameras: Mapping[int, Iterable[int]],
    pose: Isometry,
    fixation_status: FixationStatus = FixationStatus.NONE,
    ground_plane: Plane | None = None,
) -> Keyframe:
    """Create a keyframe for several cameras and assign its measurements."""
    keyframe = Keyframe(
        timestamp=timestamp,
        cameras=dict(cameras),
        fixation_status=fixation_status,
        pose=pose.to_pose_array(),
        local_ground_plane=ground_plane if ground_plane is not None else Plane(),
    )
    keyframe.assign_measurements(tracklets, landmark_to_cameras)
    return keyframe


def make_mono_keyframe(
    timestamp: int,
    tracklets: Tracklets,
    camera: Camera,
    pose: Isometry,
    fixation_status: FixationStatus = FixationStatus.NONE,
    ground_plane: Plane | None = None,
) -> Keyframe:
    """Create a keyframe with a single camera; every track is seen by it."""
    lookup = {track.id: (MONO_CAMERA_ID,) for track in tracklets.tracks}
    return make_keyframe(
        timestamp,
        tracklets,
        {MONO_CAMERA_ID: camera},
        lookup,
        pose,
        fixation_status,
        ground_plane,
    )