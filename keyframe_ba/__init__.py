"""Keyframes, landmark selection schemes, geometry and residuals for keyframe bundle adjustment."""

__version__ = "0.1.0"

__all__ = [
    "colors",
    "cost_functors",
    "geometry",
    "helpers",
    "keyframe",
    "landmark_helpers",
    "motion_model",
    "observability",
    "schemes",
    "tracks",
    "voxel",
]