"""
播放时钟：把经过的时间映射为帧序号
"""
import math
from typing import Optional

FRAME_EPSILON = 1e-9


class PlaybackClock:
    """
    持有播放头 (playhead)、播放/循环/速率状态。
    不持有帧数据本身，只知道帧数与每帧时长。
    """

    def __init__(self, frame_time: float = 0.0, frame_count: int = 0):
        """
        :param frame_time: 每帧秒数
        :param frame_count: 实际可用的帧数
        """
        self.reset(frame_time, frame_count)

    def reset(self, frame_time: float = 0.0, frame_count: int = 0):
        """恢复默认状态：rate=1, playhead=0, 停止, 不循环"""
        self.frame_time = frame_time
        self.frame_count = frame_count
        self.playhead = 0.0
        self.frame = 0
        self.rate = 1.0
        self.playing = False
        self.loop = False
        self.need_update = False
        self.frame_new = False

    def play(self):
        self.playing = True

    def stop(self):
        self.playing = False

    def is_playing(self) -> bool:
        return self.playing

    def set_loop(self, loop: bool):
        self.loop = bool(loop)

    def is_loop(self) -> bool:
        return self.loop

    def set_rate(self, rate: float):
        """速率可以为负（倒放）"""
        self.rate = float(rate)

    def get_rate(self) -> float:
        return self.rate

    def get_frame(self) -> int:
        """当前已选中（应用）的帧序号"""
        return self.frame

    def index_at(self, playhead: float) -> int:
        """播放头时间对应的帧序号 floor(playhead / frame_time)，带浮点容差"""
        if self.frame_time <= 0.0:
            return 0
        # index * frame_time / frame_time 可能略小于 index
        return int(math.floor(playhead / self.frame_time + FRAME_EPSILON))

    def clamp_index(self, index: int) -> int:
        return min(max(index, 0), max(self.frame_count - 1, 0))

    def tick(self, delta_time: float) -> Optional[int]:
        """
        开始新的一个周期：清除 frame_new，播放中则推进播放头。
        只有应用的帧序号真正改变（或循环回绕）时才标记脏。

        :param delta_time: 距上次调用经过的秒数
        :return: 帧序号变化时返回应当应用的帧序号（已限制在有效范围内），否则 None
        """
        self.frame_new = False

        if not self.playing or self.frame_count == 0 or self.frame_time <= 0.0:
            return None

        self.playhead += delta_time * self.rate
        index = self.index_at(self.playhead)
        if index == self.frame:
            return None

        wrapped = False
        if index >= self.frame_count:
            if self.loop:
                self.playhead = 0.0
                wrapped = True
            else:
                self.playing = False
        if self.playhead < 0.0:
            self.playhead = 0.0

        index = self.clamp_index(self.index_at(self.playhead))
        if index == self.frame and not wrapped:
            return None

        self.frame = index
        self.need_update = True
        return index

    def seek(self, index: int) -> bool:
        """
        跳到指定帧。越界或与当前帧相同时不做任何事。

        :return: 是否发生了跳转
        """
        if not (0 <= index < self.frame_count) or self.frame == index:
            return False
        self.playhead = index * self.frame_time
        self.frame = index
        self.need_update = True
        return True

    def take_update(self) -> bool:
        """
        消费脏标记：有待应用的帧变化时返回 True 并置位 frame_new
        """
        if not self.need_update:
            return False
        self.need_update = False
        self.frame_new = True
        return True

    def is_frame_new(self) -> bool:
        return self.frame_new

    def position_to_index(self, position: float) -> int:
        """[0, 1] 的归一化位置换算为帧序号"""
        return int(math.floor(self.frame_count * position))

    def set_position(self, position: float) -> bool:
        """按 [0, 1] 的归一化位置跳帧"""
        return self.seek(self.position_to_index(position))

    def get_position(self) -> float:
        if self.frame_count == 0:
            return 0.0
        return self.get_frame() / self.frame_count

    def get_duration(self) -> float:
        return self.frame_count * self.frame_time
