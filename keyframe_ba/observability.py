"""Landmark sparsification by observability: near, middle and far field bins."""

from __future__ import annotations

import logging
import math
import random
from dataclasses import dataclass, field
from typing import Mapping

from .keyframe import Keyframe, Landmark
from .landmark_helpers import (
    calc_flow,
    choose_far_lm_ids,
    choose_middle_lm_ids,
    choose_near_lm_ids,
)
from .schemes import Category

_log = logging.getLogger(__name__)


@dataclass
class BinParameters:
    """Bin sizes and bounds, the bounds relative to the maximum flow."""

    max_num_landmarks_near: int = 300
    max_num_landmarks_middle: int = 300
    max_num_landmarks_far: int = 300
    bound_near_middle: float = 0.4
    bound_middle_far: float = 0.2


@dataclass
class ObservabilityParameters:
    """Parameters of the observability scheme."""

    histogram_cache_size: int = 500
    bin_params: BinParameters = field(default_factory=BinParameters)


def assign_measure(bound_near_middle: float, bound_middle_far: float, value: float) -> Category:
    """Return the bin of ``value`` given the two absolute bounds.

    Raises ValueError if the value fits no bin (e.g. NaN).
    """
    if bound_near_middle <= value:
        return Category.NEAR_FIELD
    if bound_near_middle > value > bound_middle_far:
        return Category.MIDDLE_FIELD
    if bound_middle_far >= value:
        return Category.FAR_FIELD
    raise ValueError(f"there is something wrong with the bins, angle={value}")


class LandmarkSparsificationSchemeObservability:
    """Keep a fixed number of landmarks in each of three flow bins.

    Near landmarks (large flow) are good for translation, far ones (small flow)
    for rotation. Landmarks with measured depth are preferred in the near and
    middle bins.
    """

    identifier = "observability"

    def __init__(
        self, params: ObservabilityParameters | None = None, rng: random.Random | None = None
    ):
        self.params = params if params is not None else ObservabilityParameters()
        self.rng = rng if rng is not None else random.Random()

    def get_selection(
        self, landmarks: Mapping[int, Landmark], keyframes: Mapping[int, Keyframe]
    ) -> set[int]:
        """Return the ids of all selected landmarks."""
        return set(self.get_categorized_selection(landmarks, keyframes))

    def get_categorized_selection(
        self, landmarks: Mapping[int, Landmark], keyframes: Mapping[int, Keyframe]
    ) -> dict[int, Category]:
        """Return the selected landmark ids with the bin each fell into."""
        if not landmarks:
            return {}
        flows = calc_flow(list(landmarks), keyframes)
        map_data = {lm_id: abs(flows.get(lm_id, 0.0)) for lm_id in landmarks}
        max_flow = max(map_data.values())

        bins = self.params.bin_params
        upper = bins.bound_near_middle * max_flow
        lower = bins.bound_middle_far * max_flow

        near: list[int] = []
        middle: list[int] = []
        near_depth: list[int] = []
        middle_depth: list[int] = []
        far: list[int] = []
        for lm_id, lm in landmarks.items():
            value = map_data[lm_id]
            if math.isnan(value):
                raise ValueError(f"there is something wrong with the bins, angle={value}")
            category = assign_measure(upper, lower, value)
            if category is Category.FAR_FIELD:
                far.append(lm_id)
            elif category is Category.NEAR_FIELD:
                (near_depth if lm.has_measured_depth else near).append(lm_id)
            else:
                (middle_depth if lm.has_measured_depth else middle).append(lm_id)

        _log.debug(
            "near with depth=%d, near without depth=%d, middle with depth=%d, "
            "middle without depth=%d, far=%d",
            len(near_depth), len(near), len(middle_depth), len(middle), len(far),
        )

        chosen_near = choose_near_lm_ids(bins.max_num_landmarks_near, near_depth, map_data)
        chosen_near += choose_near_lm_ids(
            max(0, bins.max_num_landmarks_near - len(chosen_near)), near, map_data
        )

        chosen_middle = choose_middle_lm_ids(bins.max_num_landmarks_middle, middle_depth, self.rng)
        chosen_middle += choose_middle_lm_ids(
            max(0, bins.max_num_landmarks_middle - len(chosen_middle)), middle, self.rng
        )

        chosen_far = choose_far_lm_ids(bins.max_num_landmarks_far, far, keyframes)

        out: dict[int, Category] = {}
        out.update((lm_id, Category.NEAR_FIELD) for lm_id in chosen_near)
        out.update((lm_id, Category.MIDDLE_FIELD) for lm_id in chosen_middle)
        out.update((lm_id, Category.FAR_FIELD) for lm_id in chosen_far)
        return out