"""
Tests for forward kinematics: channel consumption order, composition and examples.
"""

import pytest
import numpy as np
from scipy.spatial.transform import Rotation as R

from bvh_player import BvhDocument
from bvh_player.model import Channel, Joint
from bvh_player.solver import evaluate_frame, evaluate_joint, capture_frame, capture_joint

from conftest import TWO_JOINT_BVH


def make_joint(channels, offset=(0, 0, 0)):
    joint = Joint("j", offset)
    joint.channels = list(channels)
    return joint


class TestEvaluateJoint:

    def test_offset_only_example(self):
        text = ("HIERARCHY\nROOT A\n{\n OFFSET 0 10 0\n CHANNELS 3 Yrotation Xrotation Zrotation\n}\n"
                "MOTION\nFrames: 1\nFrame Time: 0.1\n0 0 0\n")
        document = BvhDocument()
        document.loads(text)
        root = document.get_root()
        np.testing.assert_allclose(root.global_transform[:3, 3], [0, 10, 0])
        np.testing.assert_allclose(root.global_transform[:3, :3], np.eye(3), atol=1e-12)

    def test_position_channels_add_to_offset(self):
        joint = make_joint([Channel.X_POSITION, Channel.Y_POSITION, Channel.Z_POSITION], offset=(1, 0, 0))
        evaluate_joint(joint, [1, 2, 3])
        np.testing.assert_allclose(joint.offset, [2, 2, 3])
        np.testing.assert_allclose(joint.local_transform[:3, 3], [2, 2, 3])
        np.testing.assert_allclose(joint.initial_offset, [1, 0, 0])

    def test_rotation_composed_in_declared_order(self):
        joint = make_joint([Channel.Z_ROTATION, Channel.X_ROTATION])
        evaluate_joint(joint, [90, 90])
        # R = Rz(90) · Rx(90)
        rotated = joint.local_transform[:3, :3] @ np.array([0, 1, 0])
        np.testing.assert_allclose(rotated, [0, 0, 1], atol=1e-12)

    def test_channel_order_changes_result(self):
        yxz = make_joint([Channel.Y_ROTATION, Channel.X_ROTATION, Channel.Z_ROTATION])
        xyz = make_joint([Channel.X_ROTATION, Channel.Y_ROTATION, Channel.Z_ROTATION])
        evaluate_joint(yxz, [30, 40, 50])
        evaluate_joint(xyz, [30, 40, 50])
        assert not np.allclose(yxz.global_transform, xyz.global_transform)

    def test_channel_order_irrelevant_for_zero_angles(self):
        yxz = make_joint([Channel.Y_ROTATION, Channel.X_ROTATION, Channel.Z_ROTATION])
        xyz = make_joint([Channel.X_ROTATION, Channel.Y_ROTATION, Channel.Z_ROTATION])
        evaluate_joint(yxz, [0, 0, 0])
        evaluate_joint(xyz, [0, 0, 0])
        np.testing.assert_allclose(yxz.global_transform, xyz.global_transform)

    def test_translate_then_rotate(self):
        joint = make_joint([Channel.Z_ROTATION], offset=(0, 5, 0))
        evaluate_joint(joint, [90])
        # 平移不受自身旋转影响
        np.testing.assert_allclose(joint.local_transform[:3, 3], [0, 5, 0])
        expected = R.from_euler('z', 90, degrees=True).as_matrix()
        np.testing.assert_allclose(joint.local_transform[:3, :3], expected, atol=1e-12)


class TestEvaluateFrame:

    def test_frame_zero(self, doc):
        np.testing.assert_allclose(doc.get_joint("Hips").get_position(), [1, 2, 3])
        np.testing.assert_allclose(doc.get_joint("Chest").get_position(), [1, 7, 3])
        np.testing.assert_allclose(doc.get_joint("Chest_Site").get_position(), [1, 12, 3])

    def test_parent_rotation_carries_children(self, doc):
        consumed = evaluate_frame(doc.get_root(), doc.frames[1])
        assert consumed == doc.total_channels
        np.testing.assert_allclose(doc.get_joint("Chest").get_position(), [-5, 0, 0], atol=1e-12)
        np.testing.assert_allclose(doc.get_joint("Chest_Site").get_position(), [-10, 0, 0], atol=1e-12)

    def test_child_rotation_about_bone_axis(self, doc):
        evaluate_frame(doc.get_root(), doc.frames[2])
        np.testing.assert_allclose(doc.get_joint("Chest_Site").get_position(), [0, 10, 0], atol=1e-12)

    def test_global_is_parent_global_times_local(self, sample_doc):
        evaluate_frame(sample_doc.get_root(), sample_doc.frames[3])
        for joint in sample_doc.joints:
            if joint.parent is None:
                expected = joint.local_transform
            else:
                expected = joint.parent.global_transform @ joint.local_transform
            np.testing.assert_allclose(joint.global_transform, expected)

    def test_deterministic(self, sample_doc):
        root = sample_doc.get_root()
        evaluate_frame(root, sample_doc.frames[2])
        first = [j.global_transform.copy() for j in sample_doc.joints]
        evaluate_frame(root, sample_doc.frames[2])
        for before, joint in zip(first, sample_doc.joints):
            np.testing.assert_array_equal(before, joint.global_transform)

    def test_short_frame_raises(self, doc):
        with pytest.raises(IndexError):
            evaluate_frame(doc.get_root(), np.zeros(doc.total_channels - 1))


class TestCapture:

    def test_capture_inverts_evaluate(self, sample_doc):
        root = sample_doc.get_root()
        evaluate_frame(root, sample_doc.frames[3])
        np.testing.assert_allclose(capture_frame(root), sample_doc.frames[3], atol=1e-9)

    def test_capture_requires_three_rotation_axes(self):
        joint = make_joint([Channel.X_ROTATION, Channel.Y_ROTATION])
        evaluate_joint(joint, [10, 20])
        with pytest.raises(ValueError):
            capture_joint(joint)

    def test_capture_position_only(self):
        joint = make_joint([Channel.Y_POSITION], offset=(0, 1, 0))
        evaluate_joint(joint, [4])
        np.testing.assert_allclose(capture_joint(joint), [4])
