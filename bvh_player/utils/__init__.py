"""
工具函数：旋转/变换计算与资源路径
"""

from .rotation_utils import (
    axis_rotation,
    make_transform,
    transform_point,
    rotation_between,
    rotation_to_axis_angle,
    clamp_rotation_angle
)
from .resource_path import project_root, resolve_path, get_data_path

__all__ = [
    'axis_rotation',
    'make_transform',
    'transform_point',
    'rotation_between',
    'rotation_to_axis_angle',
    'clamp_rotation_angle',
    'project_root',
    'resolve_path',
    'get_data_path'
]
