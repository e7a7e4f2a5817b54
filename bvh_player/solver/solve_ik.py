"""
IK求解器实现
自末端执行器向根节点单次扫描，每个祖先关节只调整一次（不做迭代收敛）
"""
import logging
import numpy as np
from typing import List

from bvh_player.model.joint import Joint
from .ik_core import (
    DEFAULT_MAX_SWING,
    DEFAULT_MIN_SWING,
    apply_swing,
    build_ik_chain,
    compute_swing
)

log = logging.getLogger(__name__)


def solve_ik(
    root: Joint,
    effector: Joint,
    target,
    min_swing: float = DEFAULT_MIN_SWING,
    max_swing: float = DEFAULT_MAX_SWING
) -> List[Joint]:
    """
    让 effector 朝 target 靠近。直接修改骨骼的当前姿态。

    :param root: 骨骼树根节点，每一步之后从这里刷新全局变换
    :param effector: 末端执行器
    :param target: 目标点世界坐标 [x, y, z]
    :param min_swing: 摆动角下限（度）
    :param max_swing: 摆动角上限（度）
    :return: 被调整过的关节，按调整顺序
    """
    if min_swing > max_swing:
        raise ValueError(f"Invalid swing range: min {min_swing} > max {max_swing}")
    target = np.asarray(target, dtype=np.float64)

    ik_chain = build_ik_chain(effector)
    for joint in ik_chain:
        swing = compute_swing(joint, effector.get_position(), target)
        rotation = apply_swing(joint, swing, min_swing, max_swing)
        # FK更新：刷新全树变换
        root.update_global_transform()
        log.debug("IK step %s: rotvec=%s, effector=%s",
                  joint.name, rotation.as_rotvec(), effector.get_position())

    return ik_chain
