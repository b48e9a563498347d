import random

import numpy as np
import pytest

from keyframe_ba.keyframe import Camera, Keyframe, Landmark
from keyframe_ba.schemes import (
    DepthRule,
    KeyframeSparsificationSchemeTime,
    LandmarkRejectionSchemeCheirality,
    LandmarkSelectionSchemeAddDepth,
    LandmarkSparsificationSchemeRandom,
    is_landmark_cheiral,
)
from keyframe_ba.tracks import FeaturePoint


def make_kf(ts, lm_ids, active=True):
    return Keyframe(
        timestamp=ts,
        cameras={0: Camera(focal_length=1.0)},
        measurements={lm: {0: FeaturePoint(1.0, 2.0)} for lm in lm_ids},
        is_active=active,
    )


def test_time_scheme_empty_is_usable():
    scheme = KeyframeSparsificationSchemeTime(10)
    assert scheme.is_usable(make_kf(5, []), {}) is True


@pytest.mark.parametrize("diff,expected", [(10, True), (60, False), (50, False)])
def test_time_scheme_uses_newest_frame(diff, expected):
    scheme = KeyframeSparsificationSchemeTime(diff)
    last = {1: make_kf(20, []), 2: make_kf(50, [])}
    assert scheme.is_usable(make_kf(100, []), last) is expected


def test_random_scheme_subset_and_size():
    landmarks = {i: Landmark() for i in range(10)}
    scheme = LandmarkSparsificationSchemeRandom(4, random.Random(1))
    sel = scheme.get_selection(landmarks, {})
    assert len(sel) == 4
    assert sel <= set(landmarks)


def test_random_scheme_takes_all_when_few():
    landmarks = {i: Landmark() for i in range(3)}
    assert LandmarkSparsificationSchemeRandom(10).get_selection(landmarks, {}) == {0, 1, 2}


def test_random_scheme_negative_raises():
    with pytest.raises(ValueError):
        LandmarkSparsificationSchemeRandom(-1)


def test_cheirality():
    kfs = {1: make_kf(1, [1, 2])}
    landmarks = {1: Landmark(pos=[0, 0, 5]), 2: Landmark(pos=[0, 0, -1]), 3: Landmark(pos=[0, 0, -1])}
    sel = LandmarkRejectionSchemeCheirality().get_selection(landmarks, kfs)
    assert sel == {1, 3}


def test_cheirality_ignores_inactive_keyframes():
    kfs = {1: make_kf(1, [2], active=False)}
    assert is_landmark_cheiral(kfs, 2, Landmark(pos=[0, 0, -1])) is True
    kfs[1].is_active = True
    assert is_landmark_cheiral(kfs, 2, Landmark(pos=[0, 0, -1])) is False


def _norm_sorter(meas, local_lm):
    return float(np.linalg.norm(local_lm))


def _ground(lm):
    return lm.is_ground_plane


def test_add_depth_picks_lowest_cost():
    kfs = {1: make_kf(1, [1, 2, 3, 4])}
    landmarks = {
        1: Landmark(pos=[0, 0, 9], is_ground_plane=True),
        2: Landmark(pos=[0, 0, 1], is_ground_plane=True),
        3: Landmark(pos=[0, 0, 3], is_ground_plane=True),
        4: Landmark(pos=[0, 0, 0.5], is_ground_plane=False),
    }
    scheme = LandmarkSelectionSchemeAddDepth([DepthRule(0, 2, _ground, _norm_sorter)])
    assert scheme.get_selection(landmarks, kfs) == {2, 3}


def test_add_depth_index_out_of_range_is_skipped():
    kfs = {1: make_kf(1, [1])}
    landmarks = {1: Landmark(pos=[0, 0, 1], is_ground_plane=True)}
    scheme = LandmarkSelectionSchemeAddDepth([DepthRule(1, 5, _ground, _norm_sorter)])
    assert scheme.get_selection(landmarks, kfs) == set()


def test_add_depth_counts_from_oldest_keyframe():
    kfs = {1: make_kf(10, [1]), 2: make_kf(20, [2])}
    landmarks = {
        1: Landmark(pos=[0, 0, 1], is_ground_plane=True),
        2: Landmark(pos=[0, 0, 1], is_ground_plane=True),
    }
    first = LandmarkSelectionSchemeAddDepth([DepthRule(0, 5, _ground, _norm_sorter)])
    second = LandmarkSelectionSchemeAddDepth([DepthRule(1, 5, _ground, _norm_sorter)])
    assert first.get_selection(landmarks, kfs) == {1}
    assert second.get_selection(landmarks, kfs) == {2}