"""
BVH 文档：持有骨骼树、帧数据与播放时钟，对外提供加载/播放/查询/IK/写回接口
"""
import logging
import numpy as np
from typing import Dict, List, Optional, Union

from bvh_player.data_io import (
    HierarchyParser,
    MotionParser,
    frames_to_array,
    read_bvh_text,
    serialize_bvh,
    split_sections,
    write_bvh
)
from bvh_player.errors import ChannelMismatchError
from bvh_player.model.joint import Joint
from bvh_player.playback import PlaybackClock
from bvh_player.solver.fk_core import capture_frame, evaluate_frame, rest_frame
from bvh_player.solver.ik_core import DEFAULT_MAX_SWING, DEFAULT_MIN_SWING
from bvh_player.solver.solve_ik import solve_ik

log = logging.getLogger(__name__)

# 拾取关节时的包围盒半边长
DEFAULT_SELECT_THRESHOLD = 2.0

JointKey = Union[int, str, Joint]


class BvhDocument:
    """
    一个已加载的 BVH 文件。
    单线程使用：每个 tick 依次 update -> 读取变换 -> （可选）IK 编辑。
    """

    def __init__(self,
                 min_swing: float = DEFAULT_MIN_SWING,
                 max_swing: float = DEFAULT_MAX_SWING,
                 select_threshold: float = DEFAULT_SELECT_THRESHOLD):
        """
        :param min_swing: IK 摆动角下限（度）
        :param max_swing: IK 摆动角上限（度）
        :param select_threshold: select_joint 的默认包围盒半边长
        """
        if min_swing > max_swing:
            raise ValueError(f"Invalid swing range: min {min_swing} > max {max_swing}")
        self.min_swing = min_swing
        self.max_swing = max_swing
        self.select_threshold = select_threshold
        self.clock = PlaybackClock()
        self._reset()

    def _reset(self):
        self.root: Optional[Joint] = None
        self.joints: List[Joint] = []
        self.joint_map: Dict[str, Joint] = {}
        self.total_channels = 0
        self.frame_time = 0.0
        self.declared_frame_count = 0
        self.frames: np.ndarray = np.zeros((0, 0), dtype=np.float64)
        self.current_frame: Optional[np.ndarray] = None
        self.selected_joint: Optional[int] = None
        self.clock.reset()

    # ------------------------------------------------------------------
    # 生命周期

    def load(self, path: str, strict: bool = False):
        """
        读取并解析 BVH 文件。

        :param path: 文件路径
        :param strict: True 时数据行通道数不符会丢弃全部数据；False 时保留出错行之前的帧
        """
        self.loads(read_bvh_text(path), strict=strict)
        log.info("Loaded %s: %d joints, %d channels, %d frames",
                 path, len(self.joints), self.total_channels, len(self.frames))

    def loads(self, text: str, strict: bool = False):
        """
        从文本解析 BVH。格式错误时文档保持为空。

        :raises FormatError: 层级或头部格式错误
        :raises ChannelMismatchError: 数据行通道数不符（非 strict 时已保留之前的帧）
        """
        self.unload()

        hierarchy_text, motion_text = split_sections(text)
        hierarchy = HierarchyParser()
        root = hierarchy.parse(hierarchy_text)

        motion_parser = MotionParser(hierarchy.total_channels)
        try:
            motion = motion_parser.parse(motion_text)
        except ChannelMismatchError as e:
            if strict:
                raise
            frames = frames_to_array(e.frames, hierarchy.total_channels)
            self._commit(hierarchy, root, frames, motion_parser.frame_time, motion_parser.frame_count)
            raise

        self._commit(hierarchy, root, motion.frames, motion.frame_time, motion.frame_count)

    def _commit(self, hierarchy: HierarchyParser, root: Joint, frames: np.ndarray,
                frame_time: float, declared_frame_count: int):
        self.root = root
        self.joints = hierarchy.joints
        self.joint_map = hierarchy.joint_map
        self.total_channels = hierarchy.total_channels
        self.frames = frames
        self.frame_time = frame_time
        self.declared_frame_count = declared_frame_count
        self.clock.reset(frame_time, len(frames))

        if len(frames) > 0:
            self.current_frame = self.frames[0]
        else:
            self.current_frame = rest_frame(self.total_channels)
        evaluate_frame(self.root, self.current_frame)

    def unload(self):
        """销毁骨骼与帧数据，播放状态恢复默认"""
        if self.root is not None:
            log.info("Unloading document with %d joints", len(self.joints))
        self._reset()

    def is_loaded(self) -> bool:
        return self.root is not None

    # ------------------------------------------------------------------
    # 播放

    def play(self):
        self.clock.play()

    def stop(self):
        self.clock.stop()

    def is_playing(self) -> bool:
        return self.clock.is_playing()

    def set_loop(self, loop: bool):
        self.clock.set_loop(loop)

    def is_loop(self) -> bool:
        return self.clock.is_loop()

    def set_rate(self, rate: float):
        self.clock.set_rate(rate)

    def get_rate(self) -> float:
        return self.clock.get_rate()

    def update(self, delta_time: float):
        """
        每个 tick 调用一次：推进时钟，帧变化时重新计算正向运动学

        :param delta_time: 距上一次调用的秒数
        """
        index = self.clock.tick(delta_time)
        if index is not None:
            self.current_frame = self.frames[index]

        if self.clock.take_update():
            evaluate_frame(self.root, self.current_frame)

    def is_frame_new(self) -> bool:
        return self.clock.is_frame_new()

    def set_frame(self, index: int):
        """跳到指定帧，越界或与当前帧相同时无效果。新姿态在下一次 update 中计算"""
        if self.clock.seek(index):
            self.current_frame = self.frames[index]

    def get_frame(self) -> int:
        return self.clock.get_frame()

    def set_position(self, position: float):
        self.set_frame(self.clock.position_to_index(position))

    def get_position(self) -> float:
        return self.clock.get_position()

    def get_duration(self) -> float:
        return self.clock.get_duration()

    def get_num_frames(self) -> int:
        return len(self.frames)

    def get_frame_time(self) -> float:
        return self.frame_time

    def get_declared_frame_count(self) -> int:
        """文件头 Frames: 声明的帧数，可能与实际解析的帧数不同"""
        return self.declared_frame_count

    # ------------------------------------------------------------------
    # 关节查询

    def get_root(self) -> Optional[Joint]:
        return self.root

    def get_num_joints(self) -> int:
        return len(self.joints)

    def get_joint(self, key: Union[int, str]) -> Optional[Joint]:
        """
        按序号（解析顺序）或名称查找关节。返回的关节只读，调用方不应修改。

        :return: 关节，找不到时为 None
        """
        if isinstance(key, str):
            return self.joint_map.get(key)
        if 0 <= key < len(self.joints):
            return self.joints[key]
        return None

    def select_joint(self, point, threshold: Optional[float] = None) -> Optional[int]:
        """
        拾取位于 point 周围轴对齐包围盒（半边长 threshold）内的关节，多个命中时取最近的。
        命中时记为当前选中关节，供 update_ik 使用。

        :param point: 世界坐标 [x, y, z]
        :param threshold: 包围盒半边长，None 时使用文档默认值
        :return: 关节序号，没有命中时为 None
        """
        if threshold is None:
            threshold = self.select_threshold
        point = np.asarray(point, dtype=np.float64)

        best_index = None
        best_distance = np.inf
        for index, joint in enumerate(self.joints):
            delta = point - joint.get_position()
            if np.all(np.abs(delta) <= threshold):
                distance = np.linalg.norm(delta)
                if distance < best_distance:
                    best_index = index
                    best_distance = distance

        if best_index is not None:
            self.selected_joint = best_index
        return best_index

    def _resolve_joint(self, joint: Optional[JointKey]) -> Joint:
        if joint is None:
            if self.selected_joint is None:
                raise ValueError("No joint selected for IK")
            joint = self.selected_joint
        if isinstance(joint, Joint):
            return joint
        resolved = self.get_joint(joint)
        if resolved is None:
            raise ValueError(f"Joint not found: {joint!r}")
        return resolved

    # ------------------------------------------------------------------
    # 编辑与写回

    def update_ik(self, target, joint: Optional[JointKey] = None) -> List[Joint]:
        """
        以 joint（默认当前选中关节）为末端执行器向 target 做一次 IK 扫描，直接修改当前姿态

        :param target: 目标点世界坐标
        :param joint: 末端关节（序号、名称或 Joint）
        :return: 被调整过的关节
        """
        if self.root is None:
            raise ValueError("No BVH document loaded")
        effector = self._resolve_joint(joint)
        return solve_ik(self.root, effector, target, self.min_swing, self.max_swing)

    def store_pose(self, index: Optional[int] = None):
        """
        把当前（例如 IK 编辑后的）姿态写回帧数据

        :param index: 目标帧序号，None 时为当前帧
        """
        if self.root is None or len(self.frames) == 0:
            raise ValueError("No frame data to store the pose into")
        if index is None:
            index = self.get_frame()
        if not 0 <= index < len(self.frames):
            raise IndexError(f"Frame index out of range: {index}")

        self.frames[index] = capture_frame(self.root)
        if index == self.get_frame():
            self.current_frame = self.frames[index]

    def serialize(self, canonical: bool = False) -> str:
        """当前骨骼与帧数据的 BVH 文本"""
        if self.root is None:
            raise ValueError("No BVH document loaded")
        return serialize_bvh(self.root, self.frames, self.frame_time, canonical=canonical)

    def save(self, path: str, canonical: bool = False):
        write_bvh(path, self.serialize(canonical=canonical))
        log.info("Saved %s", path)
