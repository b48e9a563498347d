import math
import random

import pytest

from keyframe_ba.keyframe import Camera, Keyframe, Landmark
from keyframe_ba.observability import (
    BinParameters,
    LandmarkSparsificationSchemeObservability,
    ObservabilityParameters,
    assign_measure,
)
from keyframe_ba.schemes import Category
from keyframe_ba.tracks import FeaturePoint


def make_kf(ts, points):
    return Keyframe(
        timestamp=ts,
        cameras={0: Camera(focal_length=1.0)},
        measurements={lm: {0: FeaturePoint(u, v)} for lm, (u, v) in points.items()},
    )


def flow_keyframes(flows):
    first = make_kf(1, {lm: (0.0, 0.0) for lm in flows})
    second = make_kf(2, {lm: (f, 0.0) for lm, f in flows.items()})
    return {1: first, 2: second}


def test_bin_parameter_defaults():
    p = ObservabilityParameters()
    assert p.histogram_cache_size == 500
    assert p.bin_params.max_num_landmarks_near == 300
    assert p.bin_params.bound_near_middle == 0.4
    assert p.bin_params.bound_middle_far == 0.2


@pytest.mark.parametrize(
    "value,expected",
    [(0.5, Category.NEAR_FIELD), (0.3, Category.MIDDLE_FIELD), (0.2, Category.FAR_FIELD)],
)
def test_assign_measure(value, expected):
    assert assign_measure(0.5, 0.2, value) is expected


def test_assign_measure_nan_raises():
    with pytest.raises(ValueError):
        assign_measure(0.5, 0.2, math.nan)


def test_categorized_selection_bins():
    kfs = flow_keyframes({1: 10.0, 2: 3.0, 3: 0.5})
    landmarks = {i: Landmark() for i in (1, 2, 3)}
    scheme = LandmarkSparsificationSchemeObservability(rng=random.Random(0))
    out = scheme.get_categorized_selection(landmarks, kfs)
    assert out == {1: Category.NEAR_FIELD, 2: Category.MIDDLE_FIELD, 3: Category.FAR_FIELD}


def test_near_limit_prefers_depth():
    kfs = flow_keyframes({1: 10.0, 2: 9.0, 3: 8.0})
    landmarks = {1: Landmark(), 2: Landmark(has_measured_depth=True), 3: Landmark()}
    params = ObservabilityParameters(bin_params=BinParameters(max_num_landmarks_near=2))
    out = LandmarkSparsificationSchemeObservability(params).get_categorized_selection(landmarks, kfs)
    assert out == {2: Category.NEAR_FIELD, 1: Category.NEAR_FIELD}


def test_selection_matches_categorized_keys():
    kfs = flow_keyframes({1: 10.0, 2: 3.0, 3: 0.5, 4: 6.0})
    landmarks = {i: Landmark() for i in (1, 2, 3, 4)}
    scheme = LandmarkSparsificationSchemeObservability(rng=random.Random(3))
    cat = scheme.get_categorized_selection(landmarks, kfs)
    assert scheme.get_selection(landmarks, kfs) == set(cat)


def test_middle_limit_respected():
    kfs = flow_keyframes({1: 10.0, 2: 3.0, 3: 3.1, 4: 3.2})
    landmarks = {i: Landmark() for i in (1, 2, 3, 4)}
    params = ObservabilityParameters(bin_params=BinParameters(max_num_landmarks_middle=2))
    out = LandmarkSparsificationSchemeObservability(params, random.Random(5)).get_categorized_selection(
        landmarks, kfs
    )
    middle = [k for k, c in out.items() if c is Category.MIDDLE_FIELD]
    assert len(middle) == 2
    assert set(middle) <= {2, 3, 4}


def test_empty_landmarks():
    scheme = LandmarkSparsificationSchemeObservability()
    assert scheme.get_categorized_selection({}, {}) == {}