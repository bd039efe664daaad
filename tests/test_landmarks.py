"""Tests for landmark access, head cropping and body height strategies."""

import pytest

from poseproof.landmarks import (
    LEFT_HIP,
    LEFT_SHOULDER,
    NOSE,
    TORSO_ONLY_STRATEGIES,
    Landmark,
    body_height_reference,
    body_height_strategy,
    center_of,
    hip_center,
    is_complete_pose,
    is_head_cropped,
    shoulder_center,
    to_landmark,
    to_landmarks,
    visible_landmark,
)
from tests.factories import make_pose


class TestCoercion:
    def test_dict_defaults(self):
        lm = to_landmark({"x": 0.1, "y": 0.2})
        assert lm == Landmark(x=0.1, y=0.2, z=0.0, visibility=0.0)
        assert not lm.is_visible

    def test_object_with_attributes(self):
        class Raw:
            x, y, z, visibility = 0.3, 0.4, -0.1, 0.9

        lm = to_landmark(Raw())
        assert lm.x == 0.3 and lm.visibility == 0.9
        assert lm.is_visible

    def test_none_stays_none(self):
        assert to_landmarks(None) is None


class TestAccess:
    def test_complete_pose_needs_33(self):
        assert is_complete_pose(make_pose())
        assert not is_complete_pose(make_pose(count=2))
        assert not is_complete_pose(None)

    def test_low_visibility_is_ignored(self):
        pose = make_pose(nose_visibility=0.4)
        assert visible_landmark(pose, NOSE) is None

    def test_threshold_is_inclusive(self):
        pose = make_pose(nose_visibility=0.5)
        assert visible_landmark(pose, NOSE) is not None

    def test_out_of_range_index(self):
        assert visible_landmark(make_pose(count=2), LEFT_HIP) is None


class TestHeadCropped:
    def test_normal_head(self):
        assert not is_head_cropped(make_pose(nose_y=0.2))

    def test_nose_above_frame(self):
        assert is_head_cropped(make_pose(nose_y=-0.05, hip_y=0.5))

    def test_nose_just_below_threshold(self):
        assert is_head_cropped(make_pose(nose_y=0.01))

    def test_invisible_nose(self):
        assert is_head_cropped(make_pose(nose_visibility=0.1))

    def test_missing_landmarks(self):
        assert is_head_cropped(None)

    def test_short_array_counts_as_cropped(self):
        # the nose entry is present and visible, but the pose is incomplete
        assert is_head_cropped(make_pose(nose_y=0.45, count=5))


class TestCenters:
    def test_shoulder_midpoint(self):
        center = shoulder_center(make_pose(shoulder_y=0.3, center_x=0.4))
        assert center.x == pytest.approx(0.4)
        assert center.y == pytest.approx(0.3)

    def test_single_visible_shoulder(self):
        pose = make_pose(shoulder_y=0.3)
        pose[LEFT_SHOULDER] = Landmark(x=0.2, y=0.35, visibility=0.1)
        center = shoulder_center(pose)
        assert center.x == pytest.approx(0.6)
        assert center.y == pytest.approx(0.3)

    def test_no_visible_hips(self):
        assert hip_center(make_pose(hip_visibility=0.0)) is None

    def test_incomplete_pose(self):
        assert shoulder_center(make_pose(count=20)) is None

    def test_center_of_nothing_visible(self):
        assert center_of(make_pose(nose_visibility=0.0), (NOSE,)) is None


class TestBodyHeight:
    def test_nose_to_hip_center(self):
        name, value = body_height_strategy(make_pose(nose_y=0.2, hip_y=0.6))
        assert name == "nose_to_hip_center"
        assert value == pytest.approx(0.4)

    def test_single_hip(self):
        pose = make_pose(nose_y=0.2, hip_y=0.6)
        pose[LEFT_HIP] = Landmark(x=0.45, y=0.6, visibility=0.0)
        name, value = body_height_strategy(pose)
        assert name == "nose_to_single_hip"
        assert value == pytest.approx(0.4)

    def test_shoulder_to_hip_without_nose(self):
        pose = make_pose(nose_y=0.2, hip_y=0.6, shoulder_y=0.3, nose_visibility=0.0)
        name, value = body_height_strategy(pose)
        assert name == "shoulder_to_hip"
        assert value == pytest.approx(0.3)

    def test_torso_only(self):
        pose = make_pose(nose_y=0.2, hip_y=0.6, shoulder_y=0.3)
        assert body_height_reference(pose, TORSO_ONLY_STRATEGIES) == pytest.approx(0.3)

    def test_nothing_usable(self):
        pose = make_pose(nose_visibility=0.0, hip_visibility=0.0)
        assert body_height_reference(pose) is None

    def test_incomplete_pose(self):
        assert body_height_strategy(make_pose(count=2)) == (None, None)
