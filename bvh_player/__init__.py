"""
BVH 动作捕捉文件的解析、播放、正向/逆向运动学与写回

- model: 骨骼树（Joint / Channel）
- solver: 正向运动学与单链 IK
- data_io: BVH 文本读写
- playback: 播放时钟
- document: BvhDocument，把以上部分组织在一起
"""

from .errors import BvhError, FormatError, ChannelMismatchError, FrameCountWarning
from .model import Joint, Channel
from .playback import PlaybackClock
from .document import BvhDocument

__all__ = [
    'BvhError',
    'FormatError',
    'ChannelMismatchError',
    'FrameCountWarning',
    'Joint',
    'Channel',
    'PlaybackClock',
    'BvhDocument'
]
