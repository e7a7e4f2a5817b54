"""
错误与警告类型
"""
from typing import List, Optional

import numpy as np


class BvhError(Exception):
    """所有 BVH 相关错误的基类"""


class FormatError(BvhError):
    """
    BVH 文本格式错误：缺少 HIERARCHY/MOTION 段、非法通道名、括号不匹配等。
    出现时整个加载中止。
    """


class ChannelMismatchError(BvhError):
    """
    MOTION 数据行的数值个数与层级中声明的通道总数不一致。
    已解析的帧保存在 frames 中，调用方可以把文件当作“部分可用”处理。
    """

    def __init__(self, line_number: int, expected: int, actual: int,
                 frames: Optional[List[np.ndarray]] = None):
        """
        :param line_number: 出错行在 MOTION 段中的行号（从1开始）
        :param expected: 期望的通道数 (total_channels)
        :param actual: 实际读到的数值个数
        :param frames: 出错行之前已成功解析的帧
        """
        super().__init__(
            f"Channel count mismatch at motion line {line_number}: "
            f"expected {expected} values, got {actual}"
        )
        self.line_number = line_number
        self.expected = expected
        self.actual = actual
        self.frames: List[np.ndarray] = list(frames) if frames is not None else []


class FrameCountWarning(UserWarning):
    """声明的帧数 (Frames:) 与实际解析出的帧数不一致，非致命"""
