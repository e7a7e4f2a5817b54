"""
旋转与齐次变换工具函数
BVH 中的角度一律使用角度制 (degrees)
"""
import numpy as np
from scipy.spatial.transform import Rotation as R
from typing import Tuple, Union

Vector = Union[np.ndarray, list, tuple]

# 数值容差：小于该值的向量长度/角度视为零
EPSILON = 1e-9


def axis_rotation(axis: str, angle_deg: float) -> R:
    """
    构造绕单个坐标轴旋转的 Rotation

    :param axis: 'x' / 'y' / 'z'
    :param angle_deg: 旋转角度（度）
    :return: scipy Rotation
    """
    return R.from_euler(axis, angle_deg, degrees=True)


def make_transform(translation: Vector, rotation_matrix: np.ndarray = None) -> np.ndarray:
    """
    组装 4x4 变换矩阵：先平移后旋转，即 T · R

    :param translation: 平移 [x, y, z]
    :param rotation_matrix: 3x3 旋转矩阵，None 表示无旋转
    :return: 4x4 变换矩阵
    """
    transform = np.identity(4, dtype=np.float64)
    if rotation_matrix is not None:
        transform[:3, :3] = rotation_matrix
    transform[:3, 3] = np.asarray(translation, dtype=np.float64)
    return transform


def transform_point(matrix: np.ndarray, point: Vector) -> np.ndarray:
    """用 4x4 矩阵变换一个点（齐次坐标 w=1）"""
    point = np.asarray(point, dtype=np.float64)
    return matrix[:3, :3] @ point + matrix[:3, 3]


def rotation_between(v_from: Vector, v_to: Vector) -> R:
    """
    计算把 v_from 方向旋转到 v_to 方向的最小旋转

    :param v_from: 起始向量
    :param v_to: 目标向量
    :return: scipy Rotation；任一向量长度为零时返回单位旋转
    """
    a = np.asarray(v_from, dtype=np.float64)
    b = np.asarray(v_to, dtype=np.float64)
    norm_a = np.linalg.norm(a)
    norm_b = np.linalg.norm(b)
    if norm_a < EPSILON or norm_b < EPSILON:
        return R.identity()

    a = a / norm_a
    b = b / norm_b
    cross = np.cross(a, b)
    sin_angle = np.linalg.norm(cross)
    cos_angle = float(np.dot(a, b))

    if sin_angle < EPSILON:
        if cos_angle > 0.0:
            return R.identity()
        # 反向共线：绕任意一条与 a 垂直的轴转 180 度
        helper = np.array([1.0, 0.0, 0.0]) if abs(a[0]) < 0.9 else np.array([0.0, 1.0, 0.0])
        axis = np.cross(a, helper)
        axis = axis / np.linalg.norm(axis)
        return R.from_rotvec(axis * np.pi)

    angle = np.arctan2(sin_angle, cos_angle)
    return R.from_rotvec(cross / sin_angle * angle)


def rotation_to_axis_angle(rotation: R) -> Tuple[np.ndarray, float]:
    """
    将旋转分解为 (单位旋转轴, 角度[度])。
    角度范围为 [0, 180]；零旋转时轴取 Z 轴。
    """
    rotvec = rotation.as_rotvec()
    angle = np.linalg.norm(rotvec)
    if angle < EPSILON:
        return np.array([0.0, 0.0, 1.0]), 0.0
    return rotvec / angle, float(np.degrees(angle))


def clamp_rotation_angle(rotation: R, min_deg: float, max_deg: float) -> R:
    """
    把旋转角限制在 [min_deg, max_deg] 内并保持旋转轴不变

    :param rotation: 待限制的旋转
    :param min_deg: 最小角度（度）
    :param max_deg: 最大角度（度）
    :return: 限制后的 Rotation
    """
    if min_deg > max_deg:
        raise ValueError(f"Invalid swing range: min {min_deg} > max {max_deg}")
    axis, angle = rotation_to_axis_angle(rotation)
    clamped = float(np.clip(angle, min_deg, max_deg))
    return R.from_rotvec(axis * np.radians(clamped))
