"""
正向运动学：把一帧通道数据应用到骨骼树上
"""
import numpy as np
from scipy.spatial.transform import Rotation as R
from typing import Sequence

from bvh_player.model.joint import Joint
from bvh_player.utils.rotation_utils import axis_rotation, make_transform


def rest_frame(total_channels: int) -> np.ndarray:
    """全零帧，文档没有任何帧数据时用来求静止姿态"""
    return np.zeros(total_channels, dtype=np.float64)


def evaluate_joint(joint: Joint, values: Sequence[float]):
    """
    用该关节自己的通道值计算局部与全局变换。父节点的 global_transform 必须已经是最新的。

    :param joint: 关节
    :param values: 按通道声明顺序排列的数值，长度等于 joint.num_channels
    """
    translate = np.zeros(3, dtype=np.float64)
    rotate = R.identity()

    for channel, value in zip(joint.channels, values):
        if channel.is_position:
            translate[channel.axis_index] = value
        else:
            # 按声明顺序依次复合，顺序不能交换
            rotate = rotate * axis_rotation(channel.axis, value)

    translate += joint.initial_offset

    joint.local_transform = make_transform(translate, rotate.as_matrix())
    if joint.parent is None:
        joint.global_transform = joint.local_transform.copy()
    else:
        joint.global_transform = joint.parent.global_transform @ joint.local_transform
    joint.offset = translate


def evaluate_frame(root: Joint, frame: Sequence[float]) -> int:
    """
    先序遍历骨骼树，按解析时的顺序消费帧数据。

    :param root: 根关节
    :param frame: 一帧的全部通道值
    :return: 消费的数值个数
    """
    cursor = 0
    for joint in root.walk():
        count = joint.num_channels
        if cursor + count > len(frame):
            raise IndexError(
                f"Frame has {len(frame)} values but joint {joint.name!r} "
                f"needs values {cursor}..{cursor + count - 1}"
            )
        evaluate_joint(joint, frame[cursor:cursor + count])
        cursor += count
    return cursor


def capture_joint(joint: Joint) -> np.ndarray:
    """
    evaluate_joint 的逆过程：从当前 local_transform 反求该关节的通道值。
    平移通道 = 局部平移 - 初始偏移；旋转通道按声明顺序做欧拉角分解。

    :param joint: 关节
    :return: 按通道声明顺序排列的数值
    """
    translate = joint.local_transform[:3, 3] - joint.initial_offset
    rotation_channels = [channel for channel in joint.channels if channel.is_rotation]

    angles = []
    if rotation_channels:
        axes = ''.join(channel.axis.upper() for channel in rotation_channels)
        if len(axes) != 3 or len(set(axes)) != 3:
            raise ValueError(
                f"Joint {joint.name!r} rotation channels {axes!r} cannot be recovered; "
                "three distinct rotation axes are required"
            )
        # 大写为内旋，对应 R = R_c1 · R_c2 · R_c3
        angles = list(R.from_matrix(joint.local_transform[:3, :3]).as_euler(axes, degrees=True))

    values = []
    for channel in joint.channels:
        if channel.is_position:
            values.append(translate[channel.axis_index])
        else:
            values.append(angles.pop(0))
    return np.array(values, dtype=np.float64)


def capture_frame(root: Joint) -> np.ndarray:
    """按先序遍历顺序收集整棵树的通道值，得到一帧数据"""
    values = [capture_joint(joint) for joint in root.walk()]
    if not values:
        return np.zeros(0, dtype=np.float64)
    return np.concatenate(values)
