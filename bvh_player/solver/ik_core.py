"""
IK核心算法实现：单链、自末端向根逐个关节调整
"""
import numpy as np
from scipy.spatial.transform import Rotation as R
from typing import List

from bvh_player.model.joint import Joint
from bvh_player.utils.rotation_utils import (
    clamp_rotation_angle,
    make_transform,
    rotation_between,
    transform_point
)

# 摆动角度的默认范围（度）。取值沿用最初的编写值，尚待确认
DEFAULT_MIN_SWING = 170.0
DEFAULT_MAX_SWING = 190.0


def build_ik_chain(effector: Joint) -> List[Joint]:
    """
    构建IK Chain：从末端执行器向上直到根节点，每一步要调整的关节（即当前关节的父关节）。

    :param effector: 末端执行器节点
    :return: 需要依次调整的关节列表，顺序为从末端的父关节到根节点；effector 为根时为空
    """
    chain: List[Joint] = []
    current = effector
    while current.parent is not None:
        chain.append(current.parent)
        current = current.parent
    return chain


def compute_swing(joint: Joint, effector_pos: np.ndarray, target: np.ndarray) -> R:
    """
    在 joint 的坐标系中计算把末端对准目标的最小旋转

    :param joint: 被调整的关节
    :param effector_pos: 末端执行器世界坐标
    :param target: 目标点世界坐标
    :return: joint 局部坐标系下的增量旋转
    """
    world_to_joint = np.linalg.inv(joint.global_transform)
    local_target = transform_point(world_to_joint, target)
    local_effector = transform_point(world_to_joint, effector_pos)
    return rotation_between(local_effector, local_target)


def apply_swing(joint: Joint, swing: R,
                min_swing: float = DEFAULT_MIN_SWING,
                max_swing: float = DEFAULT_MAX_SWING) -> R:
    """
    把增量旋转复合到关节现有的局部旋转上，限制摆动角后写回 local_transform（平移不变）

    :return: 写回的局部旋转
    """
    current = R.from_matrix(joint.local_transform[:3, :3])
    composed = current * swing
    clamped = clamp_rotation_angle(composed, min_swing, max_swing)
    joint.local_transform = make_transform(joint.local_transform[:3, 3], clamped.as_matrix())
    return clamped
