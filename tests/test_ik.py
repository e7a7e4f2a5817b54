"""
Tests for the single-chain inverse kinematics sweep.
"""

import pytest
import numpy as np
from scipy.spatial.transform import Rotation as R

from bvh_player import BvhDocument
from bvh_player.solver import build_ik_chain, solve_ik
from bvh_player.utils import clamp_rotation_angle, rotation_between, rotation_to_axis_angle

from conftest import ARM_BVH, STICK_BVH


def load(text, **kwargs):
    document = BvhDocument(**kwargs)
    document.loads(text)
    return document


class TestRotationHelpers:

    def test_rotation_between(self):
        rotation = rotation_between([0, 1, 0], [1, 0, 0])
        np.testing.assert_allclose(rotation.apply([0, 1, 0]), [1, 0, 0], atol=1e-12)

    def test_rotation_between_antiparallel(self):
        rotation = rotation_between([0, 1, 0], [0, -1, 0])
        np.testing.assert_allclose(rotation.apply([0, 1, 0]), [0, -1, 0], atol=1e-12)

    def test_rotation_between_zero_vector(self):
        rotation = rotation_between([0, 0, 0], [1, 0, 0])
        np.testing.assert_allclose(rotation.as_matrix(), np.eye(3))

    def test_clamp_keeps_axis(self):
        rotation = R.from_rotvec([0, 0, np.radians(90)])
        clamped = clamp_rotation_angle(rotation, 170, 190)
        axis, angle = rotation_to_axis_angle(clamped)
        np.testing.assert_allclose(axis, [0, 0, 1], atol=1e-12)
        assert angle == pytest.approx(170)

    def test_clamp_invalid_range(self):
        with pytest.raises(ValueError):
            clamp_rotation_angle(R.identity(), 10, 5)


class TestSolveIk:

    def test_chain_goes_up_to_root(self):
        document = load(ARM_BVH)
        chain = build_ik_chain(document.get_joint("Arm_Site"))
        assert [j.name for j in chain] == ["Arm", "Base"]
        assert build_ik_chain(document.get_root()) == []

    def test_single_bone_reaches_target(self):
        document = load(STICK_BVH, min_swing=0.0, max_swing=180.0)
        adjusted = document.update_ik([1, 0, 0], "Base_Site")
        assert [j.name for j in adjusted] == ["Base"]
        np.testing.assert_allclose(document.get_joint("Base_Site").get_position(), [1, 0, 0], atol=1e-9)

    def test_two_bone_sweep_points_chain_at_target(self):
        document = load(ARM_BVH, min_swing=0.0, max_swing=180.0)
        document.update_ik([2, 0, 0], "Arm_Site")
        effector = document.get_joint("Arm_Site").get_position()
        # 最后一步调整根关节，末端落在根与目标的连线上
        np.testing.assert_allclose(effector / np.linalg.norm(effector), [1, 0, 0], atol=1e-9)

    def test_translation_unchanged(self):
        document = load(ARM_BVH, min_swing=0.0, max_swing=180.0)
        document.update_ik([2, 0, 0], "Arm_Site")
        np.testing.assert_allclose(document.get_joint("Arm").local_transform[:3, 3], [0, 1, 0])
        np.testing.assert_allclose(document.get_joint("Arm").get_position(),
                                   document.get_root().global_transform[:3, :3] @ [0, 1, 0], atol=1e-12)

    def test_default_swing_range_clamps(self):
        document = load(STICK_BVH)
        document.update_ik([1, 0, 0], "Base_Site")
        rotation = R.from_matrix(document.get_root().local_transform[:3, :3])
        assert np.degrees(rotation.magnitude()) == pytest.approx(170)

    def test_root_effector_is_noop(self):
        document = load(ARM_BVH)
        before = document.get_root().local_transform.copy()
        assert document.update_ik([5, 5, 5], "Base") == []
        np.testing.assert_allclose(document.get_root().local_transform, before)

    def test_uses_selected_joint(self):
        document = load(STICK_BVH, min_swing=0.0, max_swing=180.0)
        with pytest.raises(ValueError):
            document.update_ik([1, 0, 0])
        assert document.select_joint([0.1, 1.2, 0.0], threshold=0.5) == 1
        document.update_ik([1, 0, 0])
        np.testing.assert_allclose(document.get_joint(1).get_position(), [1, 0, 0], atol=1e-9)

    def test_unknown_joint(self):
        document = load(STICK_BVH)
        with pytest.raises(ValueError):
            document.update_ik([1, 0, 0], "Nope")

    def test_invalid_swing_range(self):
        document = load(STICK_BVH)
        with pytest.raises(ValueError):
            solve_ik(document.get_root(), document.get_joint(1), [1, 0, 0], min_swing=90, max_swing=10)
        with pytest.raises(ValueError):
            BvhDocument(min_swing=90, max_swing=10)

    def test_pose_survives_update_without_frame_change(self):
        document = load(STICK_BVH, min_swing=0.0, max_swing=180.0)
        document.update_ik([1, 0, 0], "Base_Site")
        document.update(0.01)
        np.testing.assert_allclose(document.get_joint("Base_Site").get_position(), [1, 0, 0], atol=1e-9)

    def test_next_frame_overrides_ik_pose(self):
        document = load(STICK_BVH, min_swing=0.0, max_swing=180.0)
        document.update_ik([1, 0, 0], "Base_Site")
        document.set_frame(1)
        document.update(0.0)
        np.testing.assert_allclose(document.get_joint("Base_Site").get_position(), [0, 1, 0], atol=1e-9)
