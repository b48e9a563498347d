import numpy as np
import pytest

from keyframe_ba.geometry import Isometry
from keyframe_ba.helpers import (
    dump_map,
    get_matches,
    get_mean_flow,
    load_set_from_yaml,
    pose_to_string,
)
from keyframe_ba.keyframe import Keyframe, Landmark
from keyframe_ba.tracks import FeaturePoint, Tracklet, Tracklets


def test_pose_to_string_identity():
    assert pose_to_string(np.eye(4)) == "1 0 0 0 0 1 0 0 0 0 1 0"


def test_pose_to_string_accepts_isometry():
    iso = Isometry(np.eye(3), [1.5, -2.0, 3.0])
    assert pose_to_string(iso) == pose_to_string(iso.matrix())
    assert pose_to_string(iso).split()[3] == "1.5"


def test_pose_to_string_bad_shape():
    with pytest.raises(ValueError):
        pose_to_string(np.eye(3))


def test_load_set_from_yaml(tmp_path):
    path = tmp_path / "labels.yaml"
    path.write_text("outlier_labels: [23, 24, 24]\nshrubbery_labels: [8]\n")
    assert load_set_from_yaml(path, "outlier_labels") == {23, 24}
    assert load_set_from_yaml(str(path), "shrubbery_labels") == {8}


def test_load_set_from_yaml_missing_field(tmp_path):
    path = tmp_path / "labels.yaml"
    path.write_text("other: 3\nscalar: 5\n")
    with pytest.raises(ValueError):
        load_set_from_yaml(path, "outlier_labels")
    with pytest.raises(ValueError):
        load_set_from_yaml(path, "scalar")


@pytest.fixture
def tracklets():
    return Tracklets(
        stamps=[300, 200, 100],
        tracks=[
            Tracklet([FeaturePoint(1.0, 2.0), FeaturePoint(3.0, 4.0), FeaturePoint(5.0, 6.0)], id=1, label=0),
            Tracklet([FeaturePoint(7.0, 8.0), FeaturePoint(9.0, 10.0)], id=2, label=0),
            Tracklet([FeaturePoint(11.0, 12.0), FeaturePoint(13.0, 14.0), FeaturePoint(15.0, 16.0)], id=3, label=23),
        ],
    )


def test_get_matches(tracklets):
    p0, p1 = get_matches(tracklets, 100, 300, {23})
    np.testing.assert_array_equal(p0, [[5.0, 6.0]])
    np.testing.assert_array_equal(p1, [[1.0, 2.0]])


def test_get_matches_shorter_window(tracklets):
    p0, p1 = get_matches(tracklets, 200, 300, set())
    assert p0.shape == (3, 2)
    np.testing.assert_array_equal(p0[:, 0], [3.0, 9.0, 13.0])
    np.testing.assert_array_equal(p1[:, 0], [1.0, 7.0, 11.0])


def test_get_matches_unknown_stamp_gives_nothing(tracklets):
    p0, p1 = get_matches(tracklets, 999, 300, set())
    assert p0.shape == (0, 2)
    assert p1.shape == (0, 2)


def test_mean_flow():
    assert get_mean_flow([[0.0, 0.0], [1.0, 1.0]], [[3.0, 4.0], [1.0, 1.0]]) == pytest.approx(2.5)
    assert get_mean_flow([], []) == 0.0


def test_mean_flow_size_mismatch():
    with pytest.raises(ValueError):
        get_mean_flow([[0.0, 0.0]], [[1.0, 1.0], [2.0, 2.0]])


def test_mean_flow_is_symmetric():
    a = np.array([[1.0, 2.0], [5.0, -1.0]])
    b = np.array([[0.5, 7.0], [2.0, 2.0]])
    assert get_mean_flow(a, b) == pytest.approx(get_mean_flow(b, a))


def test_dump_map(tmp_path):
    landmarks = {
        2: Landmark(pos=[4.0, 5.0, 6.0]),
        1: Landmark(pos=[1.0, 2.0, 3.0], has_measured_depth=True, weight=0.5),
    }
    keyframes = {100: Keyframe(100)}
    path = tmp_path / "map.yaml"
    dump_map(path, landmarks, keyframes)
    assert path.read_text() == (
        "landmarks with depth: [[1, 2, 3, 0.5],\n]\n"
        "landmarks without depth: [[4, 5, 6, 1],\n]\n"
        "poses: {100: [1, 0, 0, 0, 0, 0, 0],\n}"
    )


def test_dump_map_is_yaml_readable(tmp_path):
    landmarks = {1: Landmark(pos=[0.25, 0.5, 0.75], has_measured_depth=True)}
    keyframes = {7: Keyframe(7, pose=Isometry(np.eye(3), [1.0, 2.0, 3.0]).to_pose_array())}
    path = tmp_path / "map.yaml"
    dump_map(path, landmarks, keyframes)
    import yaml

    data = yaml.safe_load(path.read_text())
    assert data["landmarks with depth"] == [[0.25, 0.5, 0.75, 1]]
    assert data["landmarks without depth"] == []
    assert data["poses"][7][4:] == [1, 2, 3]