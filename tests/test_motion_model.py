import math

import numpy as np
import pytest

from keyframe_ba.geometry import Isometry
from keyframe_ba.motion_model import delta_y_on_circle, motion_model_residual


def _yaw_rotation(yaw):
    c, s = math.cos(yaw), math.sin(yaw)
    return np.array([[c, -s, 0.0], [s, c, 0.0], [0.0, 0.0, 1.0]])


def test_delta_y_zero_for_tiny_yaw():
    assert delta_y_on_circle(1e-8, 5.0) == 0.0
    assert delta_y_on_circle(0.0, 5.0) == 0.0


def test_delta_y_quarter_circle():
    assert delta_y_on_circle(math.pi / 2, 2.0) == pytest.approx(2.0)


def test_delta_y_is_odd_in_yaw():
    assert delta_y_on_circle(-0.3, 4.0) == pytest.approx(-delta_y_on_circle(0.3, 4.0))


def test_identity_motion_has_zero_residual():
    res = motion_model_residual(Isometry.identity(), Isometry.identity())
    assert np.allclose(res, [0.0, 0.0])


def test_straight_forward_motion_has_zero_residual():
    p1 = Isometry(translation=[7.0, 0.0, 0.0])
    res = motion_model_residual(p1, Isometry.identity())
    assert np.allclose(res, [0.0, 0.0])


def test_lateral_and_vertical_offsets_are_residuals():
    p1 = Isometry(translation=[2.0, 1.5, -0.5])
    res = motion_model_residual(p1.to_pose_array(), Isometry.identity().to_pose_array())
    assert np.allclose(res, [1.5, -0.5])


@pytest.mark.parametrize("yaw", [0.2, -0.4, 1.0])
def test_motion_on_circle_has_zero_residual(yaw):
    radius = 10.0
    translation = [radius * math.sin(yaw), radius * (1.0 - math.cos(yaw)), 0.0]
    p1 = Isometry(_yaw_rotation(yaw), translation)
    res = motion_model_residual(p1, Isometry.identity())
    assert np.allclose(res, [0.0, 0.0], atol=1e-9)


def test_residual_depends_only_on_relative_motion():
    base = Isometry(_yaw_rotation(0.7), [3.0, -2.0, 1.0])
    motion = Isometry(_yaw_rotation(0.1), [1.0, 0.3, 0.2])
    a = motion_model_residual(motion, Isometry.identity())
    b = motion_model_residual(motion @ base, base)
    assert np.allclose(a, b)