"""Tests for joint angle geometry, confidence gating and the head tilt convention."""

import math

import pytest

from conftest import make_keypoints
from utils.angle_calculator import AngleCalculator, AngleCategory
from utils.pose_types import Keypoint, REFERENCE_INDEX


# ============================================================================
# calculate_angle
# ============================================================================

class TestCalculateAngle:

    @pytest.mark.parametrize("a, b, expected", [
        ((1, 0), (0, 1), 90.0),
        ((1, 0), (-1, 0), 180.0),
        ((1, 0), (5, 0), 0.0),
        ((1, 0), (1, 1), 45.0),
        ((0, -1), (1, math.sqrt(3) * -1), 30.0),
    ])
    def test_known_angles(self, a, b, expected):
        assert AngleCalculator.calculate_angle((0, 0), a, b) == pytest.approx(expected, abs=1e-6)

    def test_vertex_offset_does_not_matter(self):
        base = AngleCalculator.calculate_angle((0, 0), (3, 0), (0, 4))
        shifted = AngleCalculator.calculate_angle((100, 50), (103, 50), (100, 54))
        assert base == pytest.approx(shifted)

    @pytest.mark.parametrize("vertex, a, b", [
        ((1, 1), (1, 1), (2, 2)),
        ((1, 1), (2, 2), (1, 1)),
        ((0, 0), (0, 0), (0, 0)),
    ])
    def test_zero_length_ray_gives_no_reading(self, vertex, a, b):
        assert AngleCalculator.calculate_angle(vertex, a, b) is None

    def test_random_points_stay_in_range(self, rng):
        points = rng.uniform(-500, 500, size=(500, 3, 2))
        for vertex, a, b in points:
            angle = AngleCalculator.calculate_angle(vertex, a, b)
            assert angle is not None
            assert not math.isnan(angle)
            assert 0.0 <= angle <= 180.0


# ============================================================================
# angle_if_confident
# ============================================================================

class TestConfidenceGate:

    def test_confident_points_give_reading(self, runner_keypoints):
        angle = AngleCalculator.angle_if_confident(runner_keypoints, 7, 5, 9)
        assert angle == pytest.approx(90.0)

    @pytest.mark.parametrize("index", [13, 11, 15])
    def test_confidence_at_threshold_is_rejected(self, index):
        x, y = make_keypoints()[index].position
        keypoints = make_keypoints(overrides={index: (x, y, 0.5)})
        assert AngleCalculator.angle_if_confident(keypoints, 13, 11, 15) is None

    def test_randomized_confidence_straddling_threshold(self, rng):
        for _ in range(300):
            confs = 0.5 + rng.uniform(-0.05, 0.05, size=3)
            if rng.rand() < 0.3:
                confs[rng.randint(3)] = 0.5
            keypoints = make_keypoints()
            for idx, conf in zip((13, 11, 15), confs):
                x, y = keypoints[idx].position
                keypoints[idx] = Keypoint(x=x, y=y, confidence=float(conf))

            angle = AngleCalculator.angle_if_confident(keypoints, 13, 11, 15)
            if any(c <= 0.5 for c in confs):
                assert angle is None
            else:
                assert angle == pytest.approx(180.0)

    @pytest.mark.parametrize("bad", [float("nan"), float("inf"), float("-inf")])
    def test_non_finite_confidence_is_rejected(self, bad):
        x, y = make_keypoints()[13].position
        keypoints = make_keypoints(overrides={13: (x, y, bad)})
        assert keypoints[13].confidence == 0.0
        assert AngleCalculator.angle_if_confident(keypoints, 13, 11, 15) is None

    def test_nan_eye_blocks_head_tilt(self):
        keypoints = make_keypoints(overrides={1: (110, 100, float("nan")), 2: (98, 52, 0.2)})
        assert AngleCalculator.head_tilt_angle(keypoints) is None

    def test_index_beyond_keypoint_count(self, runner_keypoints):
        # Reference point 17 was never added
        assert AngleCalculator.angle_if_confident(runner_keypoints, 11, 5, 17) is None

    def test_custom_threshold(self, runner_keypoints):
        assert AngleCalculator.angle_if_confident(runner_keypoints, 7, 5, 9, threshold=0.95) is None


# ============================================================================
# Head tilt
# ============================================================================

class TestHeadTilt:

    def _head(self, ear, eye, ear_conf=0.9, eye_conf=0.9, right=None):
        overrides = {3: (*ear, ear_conf), 1: (*eye, eye_conf)}
        if right is not None:
            overrides.update(right)
        return make_keypoints(overrides=overrides)

    def test_level_gaze_is_zero(self):
        keypoints = self._head(ear=(100, 100), eye=(110, 100))
        assert AngleCalculator.head_tilt_angle(keypoints) == pytest.approx(0.0)

    def test_eye_below_right_of_ear_is_positive(self):
        keypoints = self._head(ear=(100, 100), eye=(110, 105))
        angle = AngleCalculator.head_tilt_angle(keypoints)
        assert angle == pytest.approx(math.degrees(math.atan2(5, 10)))
        assert angle > 0

    def test_eye_above_right_of_ear_is_negative(self):
        keypoints = self._head(ear=(100, 100), eye=(110, 95))
        assert AngleCalculator.head_tilt_angle(keypoints) == pytest.approx(-26.565, abs=1e-3)

    def test_bearing_is_not_folded_into_0_180(self):
        # Facing left: eye left of ear and slightly above
        assert AngleCalculator.horizontal_angle((100, 100), (90, 99)) == pytest.approx(
            math.degrees(math.atan2(-1, -10)))

    def test_falls_back_to_right_pair(self):
        keypoints = self._head(
            ear=(100, 100), eye=(110, 100), ear_conf=0.3,
            right={4: (200, 200, 0.9), 2: (210, 210, 0.9)}
        )
        assert AngleCalculator.head_tilt_angle(keypoints) == pytest.approx(45.0)

    def test_no_reliable_pair(self):
        keypoints = self._head(
            ear=(100, 100), eye=(110, 100), eye_conf=0.2,
            right={4: (200, 200, 0.9), 2: (210, 210, 0.5)}
        )
        assert AngleCalculator.head_tilt_angle(keypoints) is None


# ============================================================================
# Reference point and full frame
# ============================================================================

class TestReferencePoint:

    def test_point_above_hip(self):
        keypoints = make_keypoints(overrides={11: (200, 300, 0.9), 5: (205, 200, 0.9)})
        result = AngleCalculator.add_reference_point(keypoints)

        assert len(result) == 18
        ref = result[REFERENCE_INDEX]
        assert (ref.x, ref.y) == (200, 100)
        assert ref.confidence == 1.0

    def test_input_not_mutated(self, runner_keypoints):
        AngleCalculator.add_reference_point(runner_keypoints)
        assert len(runner_keypoints) == 17

    def test_not_added_when_shoulder_unreliable(self):
        keypoints = make_keypoints(overrides={5: (100, 100, 0.4)})
        assert len(AngleCalculator.add_reference_point(keypoints)) == 17

    def test_not_added_twice(self, runner_keypoints):
        once = AngleCalculator.add_reference_point(runner_keypoints)
        assert len(AngleCalculator.add_reference_point(once)) == 18


class TestAllAngles:

    def test_reference_runner(self, runner_keypoints):
        keypoints = AngleCalculator.add_reference_point(runner_keypoints)
        readings = AngleCalculator.calculate_all_angles(keypoints)

        assert set(readings) == set(AngleCategory)
        assert readings[AngleCategory.LEFT_KNEE] == pytest.approx(180.0)
        assert readings[AngleCategory.RIGHT_KNEE] == pytest.approx(180.0)
        assert readings[AngleCategory.LEFT_ELBOW] == pytest.approx(90.0)
        assert readings[AngleCategory.RIGHT_ELBOW] == pytest.approx(90.0)
        assert readings[AngleCategory.BODY_LEAN] == pytest.approx(0.0)
        assert readings[AngleCategory.HEAD_TILT] == pytest.approx(0.0)

    def test_forward_lean(self):
        keypoints = make_keypoints(overrides={11: (100, 200, 0.9), 5: (150, 100, 0.9)})
        keypoints = AngleCalculator.add_reference_point(keypoints)
        readings = AngleCalculator.calculate_all_angles(keypoints)
        assert readings[AngleCategory.BODY_LEAN] == pytest.approx(math.degrees(math.atan2(50, 100)))

    def test_low_confidence_frame_gives_no_readings(self):
        keypoints = AngleCalculator.add_reference_point(make_keypoints(confidence=0.2))
        readings = AngleCalculator.calculate_all_angles(keypoints)
        assert all(value is None for value in readings.values())


class TestKeypoint:

    @pytest.mark.parametrize("raw, expected", [
        (1.2, 1.0), (-0.1, 0.0), (0.7, 0.7), (float("nan"), 0.0),
    ])
    def test_confidence_kept_in_unit_interval(self, raw, expected):
        assert Keypoint(1.0, 2.0, raw).confidence == pytest.approx(expected)


class TestAngleCategory:

    @pytest.mark.parametrize("name", [
        "LeftKnee", "left_knee", "Left Knee Angles", AngleCategory.LEFT_KNEE,
    ])
    def test_parse_aliases(self, name):
        assert AngleCategory.parse(name) is AngleCategory.LEFT_KNEE

    def test_parse_head_label(self):
        assert AngleCategory.parse("Head Horizontal Angles") is AngleCategory.HEAD_TILT
        assert AngleCategory.parse("HeadTilt") is AngleCategory.HEAD_TILT

    def test_parse_unknown(self):
        assert AngleCategory.parse("Hip Angles") is None

    def test_every_category_has_label(self):
        assert all(category.label.endswith("Angles") for category in AngleCategory)
