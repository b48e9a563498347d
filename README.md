# keyframe_ba

This package holds building blocks for keyframe-based bundle adjustment of
camera sequences. Some of the image points may also carry a measured depth.
It covers the data types, the rigid-body geometry, the rules for choosing
keyframes and landmarks, and the residual functions of the optimisation
problem.

## Modules

- `keyframe_ba.tracks`: the tracker's output.
  - `FeaturePoint` holds `u`, `v` and a depth `d`, which is `-1` when there is
    no depth.
  - `Tracklet` is one tracked feature, newest measurement first.
  - `Tracklets` holds the tracks together with their timestamps in
    nanoseconds. `Tracklets.index_of` raises `ValueError` for an unknown
    stamp.
- `keyframe_ba.geometry`: the `Isometry` rigid transform.
  - `Isometry` has `identity`, `from_pose_array` / `to_pose_array`,
    `from_matrix` / `matrix`, `inverse`, `apply`, `rotation_only` and
    composition with `@`.
  - A pose array has seven elements, `(qw, qx, qy, qz, tx, ty, tz)`.
  - `quaternion_to_rotation` and `rotation_to_quaternion` convert between the
    two forms.
- `keyframe_ba.keyframe`: `FixationStatus`, `Camera`, `Landmark`, `Plane` and
  `Keyframe`.
  - A keyframe stores its measurements as `measurements[landmark_id][camera_id]`.
  - `make_keyframe` builds a keyframe with several cameras and
    `make_mono_keyframe` one with a single camera. Both pick the measurements
    at the keyframe's timestamp out of a `Tracklets`.
- `keyframe_ba.schemes`: keyframe and landmark selection schemes.
  - `KeyframeSparsificationSchemeTime` sparsifies keyframes by time.
  - `LandmarkSparsificationSchemeRandom` picks landmarks at random.
  - `LandmarkRejectionSchemeCheirality` rejects landmarks that lie behind a
    camera that saw them. `is_landmark_cheiral` makes the same check for one
    landmark.
  - `LandmarkSelectionSchemeAddDepth` picks landmarks per keyframe, following
    a list of `DepthRule`s.
  - `Category` names the three bins: near, middle and far field.
- `keyframe_ba.observability`: `LandmarkSparsificationSchemeObservability`.
  - It sorts landmarks into near, middle and far bins by their optical flow,
    relative to the largest flow.
  - Landmarks with measured depth are preferred in the near and middle bins.
  - Its settings are `ObservabilityParameters` and `BinParameters`.
  - `assign_measure` returns the bin of a single value.
- `keyframe_ba.voxel`: `LandmarkSparsificationSchemeVoxel` with
  `VoxelParameters`.
  - Landmarks are moved into the frame of the newest keyframe.
  - Landmarks far from the keyframe path go to the far field.
  - The rest are thinned out on a voxel grid, then split into near and middle
    field.
  - The steps are also available alone: `voxel_grid_filter`,
    `distance_to_polyline` and `filter_pipe`.
- `keyframe_ba.landmark_helpers`: helpers shared by the landmark schemes.
  - `calc_flow` computes the flow of each landmark.
  - `choose_near_lm_ids`, `choose_middle_lm_ids` and `choose_far_lm_ids`
    choose the landmarks of each bin.
  - `get_sorted_keyframes` returns the active keyframes, newest first.
- `keyframe_ba.cost_functors`: residuals as plain functions and callable
  objects.
  - `ReprojectionError` has optional rotation compensation.
  - Also: `LandmarkDepthError`, `PoseRegularization`, `SpeedRegularization`,
    `SpeedRegularizationVector`, `VectorDifferenceToFixed` and
    `TranslationDifferenceToFixed`.
  - The functions are `ground_plane_height_residual`,
    `vector_difference_residual`, `translation_difference_residual`,
    `ground_plane_distance_residual` and `ground_plane_motion_residual`.
  - A functor that cannot be evaluated returns `None`, for example for a point
    too close to the image plane.
- `keyframe_ba.motion_model`: `motion_model_residual` and `delta_y_on_circle`.
  They penalise motion that leaves a circular arc in the ground plane.
- `keyframe_ba.helpers`: tools for matching, flow and output.
  - `get_matches` returns the point pairs between two timestamps and
    `get_mean_flow` their mean flow.
  - `pose_to_string` prints a pose on one line.
  - `load_set_from_yaml` reads a set of integer labels from a YAML file.
  - `dump_map` writes landmarks and keyframe poses to a text file.
- `keyframe_ba.colors`: BGR colours for debug drawings. These are
  `hsv_to_bgr`, `color_by_index` and `random_color`.

The schemes that draw at random take an optional `random.Random`. Pass a
seeded one to get results you can reproduce. Timings and counts go to the
standard `logging` module at debug level.

## Installation

```
pip install .
```

To run the tests:

```
pip install .[test]
pytest
```

## Example

```python
import numpy as np
from keyframe_ba.geometry import Isometry
from keyframe_ba.cost_functors import ReprojectionError

pose_cam_vehicle = Isometry.identity().to_pose_array()
error = ReprojectionError(320.0, 240.0, 500.0, 320.0, 240.0, pose_cam_vehicle)
residual = error(Isometry.identity().to_pose_array(), np.array([0.0, 0.0, 10.0]))
# residual == array([0., 0.])
```

Keyframe poses map from keyframe to origin in this sense: the pose maps points
given in the origin frame into the keyframe frame. That is how
`Keyframe.get_projected_landmark_position` uses it.

## What the package does not do

The package has no solver and no bundle adjuster object that collects
keyframes and runs an optimisation. The residuals are here, but nothing
minimises them. There is also no keyframe selector that chains the schemes,
and no estimation of relative motion from image points. The package has no
command line, does not connect to a robot middleware, and does not draw or
publish anything. `colors` only computes colour values.