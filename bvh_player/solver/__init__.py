"""
求解层 (Solver Layer)
纯数学计算，负责正向运动学更新以及单链IK扫描
"""

from .fk_core import (
    evaluate_frame,
    evaluate_joint,
    rest_frame,
    capture_joint,
    capture_frame
)
from .ik_core import (
    DEFAULT_MIN_SWING,
    DEFAULT_MAX_SWING,
    build_ik_chain,
    compute_swing,
    apply_swing
)
from .solve_ik import solve_ik

__all__ = [
    'evaluate_frame',
    'evaluate_joint',
    'rest_frame',
    'capture_joint',
    'capture_frame',
    'DEFAULT_MIN_SWING',
    'DEFAULT_MAX_SWING',
    'build_ik_chain',
    'compute_swing',
    'apply_swing',
    'solve_ik'
]
