"""
数据交换功能实现
BVH 文本的解析（HIERARCHY / MOTION 两段）与写回，以及关节位置导出
"""
import json
import logging
import os
import re
import warnings
import numpy as np
from typing import Dict, List, Optional, Sequence, Tuple

from bvh_player.errors import ChannelMismatchError, FormatError, FrameCountWarning
from bvh_player.model.joint import Channel, Joint

log = logging.getLogger(__name__)

_HIERARCHY_RE = re.compile(r'^\s*HIERARCHY\b', re.MULTILINE)
_MOTION_RE = re.compile(r'^\s*MOTION\b', re.MULTILINE)

# 规范通道布局：根关节 6 个通道，普通关节 3 个旋转通道，End Site 无通道
CANONICAL_ROOT_CHANNELS = [
    Channel.X_POSITION, Channel.Y_POSITION, Channel.Z_POSITION,
    Channel.Y_ROTATION, Channel.X_ROTATION, Channel.Z_ROTATION
]
CANONICAL_JOINT_CHANNELS = [Channel.Y_ROTATION, Channel.X_ROTATION, Channel.Z_ROTATION]


def read_bvh_text(path: str) -> str:
    """读取 BVH 文件全文"""
    with open(path, 'r', encoding='utf-8') as f:
        return f.read()


def write_bvh(path: str, text: str):
    """把 BVH 文本写入文件，必要时创建目录"""
    directory = os.path.dirname(os.path.abspath(path))
    os.makedirs(directory, exist_ok=True)
    with open(path, 'w', encoding='utf-8') as f:
        f.write(text)


def split_sections(text: str) -> Tuple[str, str]:
    """
    把 BVH 文本拆分成 HIERARCHY 段与 MOTION 段

    :param text: BVH 全文
    :return: (hierarchy_text, motion_text)
    """
    hierarchy_match = _HIERARCHY_RE.search(text)
    motion_match = _MOTION_RE.search(text)
    if hierarchy_match is None or motion_match is None:
        raise FormatError("Invalid BVH format: missing HIERARCHY or MOTION section")
    if motion_match.start() < hierarchy_match.start():
        raise FormatError("Invalid BVH format: MOTION section precedes HIERARCHY")
    return text[hierarchy_match.start():motion_match.start()], text[motion_match.start():]


class TokenCursor:
    """
    词法游标：token 列表加当前位置，解析过程中显式传递
    """

    def __init__(self, tokens: List[str]):
        self.tokens = tokens
        self.position = 0

    def has_next(self) -> bool:
        return self.position < len(self.tokens)

    def next(self, what: str = "token") -> str:
        if not self.has_next():
            raise FormatError(f"Unexpected end of HIERARCHY section while reading {what}")
        token = self.tokens[self.position]
        self.position += 1
        return token

    def next_float(self, what: str) -> float:
        token = self.next(what)
        try:
            return float(token)
        except ValueError:
            raise FormatError(f"Invalid number {token!r} for {what}") from None

    def next_int(self, what: str) -> int:
        token = self.next(what)
        try:
            return int(token)
        except ValueError:
            raise FormatError(f"Invalid integer {token!r} for {what}") from None


class HierarchyParser:
    """
    HIERARCHY 段的递归下降解析器。
    关节的创建顺序（根，然后子节点从左到右递归）就是 MOTION 数据中通道的排列顺序。
    """

    def __init__(self):
        self.root: Optional[Joint] = None
        self.joints: List[Joint] = []
        self.joint_map: Dict[str, Joint] = {}
        self.total_channels = 0

    def parse(self, text: str) -> Joint:
        """
        解析 HIERARCHY 段

        :param text: HIERARCHY 段文本（可以包含 'HIERARCHY' 关键字本身）
        :return: 根关节
        """
        cursor = TokenCursor(text.split())
        while cursor.has_next():
            if cursor.next() == 'ROOT':
                if self.root is not None:
                    raise FormatError("Multiple ROOT joints are not supported")
                self.root = self._parse_joint(cursor, None, cursor.next("ROOT name"))

        if self.root is None:
            raise FormatError("Invalid BVH format: no ROOT joint in HIERARCHY section")
        return self.root

    def _register(self, joint: Joint):
        if joint.name in self.joint_map:
            raise FormatError(f"Duplicate joint name: {joint.name!r}")
        self.joints.append(joint)
        self.joint_map[joint.name] = joint

    def _parse_joint(self, cursor: TokenCursor, parent: Optional[Joint], name: str) -> Joint:
        joint = Joint(name)
        if parent is not None:
            parent.add_child(joint)
        self._register(joint)

        while True:
            token = cursor.next(f"body of joint {name!r}")

            if token == 'OFFSET':
                joint.set_offset([
                    cursor.next_float(f"OFFSET of {name!r}"),
                    cursor.next_float(f"OFFSET of {name!r}"),
                    cursor.next_float(f"OFFSET of {name!r}")
                ])
            elif token == 'CHANNELS':
                count = cursor.next_int(f"CHANNELS count of {name!r}")
                if count < 0:
                    raise FormatError(f"Negative channel count for joint {name!r}")
                joint.channels = [
                    Channel.from_token(cursor.next(f"CHANNELS of {name!r}"))
                    for _ in range(count)
                ]
                self.total_channels += count
            elif token == 'JOINT':
                self._parse_joint(cursor, joint, cursor.next("JOINT name"))
            elif token == 'End':
                # "End Site"：名字 "Site" 在各末端之间会重复，改用父关节名生成
                cursor.next("End Site")
                self._parse_joint(cursor, joint, f"{joint.name}_Site")
            elif token == '}':
                return joint


class MotionData:
    """MOTION 段的解析结果"""

    def __init__(self, frame_count: int, frame_time: float, frames: np.ndarray):
        """
        :param frame_count: 文件中声明的帧数 (Frames:)
        :param frame_time: 每帧秒数 (Frame Time:)
        :param frames: 实际解析的帧，形状 (n_frames, total_channels)
        """
        self.frame_count = frame_count
        self.frame_time = frame_time
        self.frames = frames


class MotionParser:
    """
    MOTION 段解析器（按行）。需要层级解析得到的通道总数。
    """

    def __init__(self, total_channels: int):
        self.total_channels = total_channels
        # 头部解析完成后即可读取，即使后续数据行出错
        self.frame_count: Optional[int] = None
        self.frame_time: Optional[float] = None

    def _parse_header(self, lines: List[str]) -> Tuple[Optional[int], Optional[float], int]:
        frame_count = None
        frame_time = None
        index = 0

        while index < len(lines):
            line = lines[index].strip()
            if not line or line.startswith('MOTION'):
                pass
            elif 'Frames:' in line:
                value = line.split(':', 1)[1].strip()
                try:
                    frame_count = int(value)
                except ValueError:
                    raise FormatError(f"Invalid frame count: {value!r}") from None
            elif 'Frame Time:' in line:
                value = line.split(':', 1)[1].strip()
                try:
                    frame_time = float(value)
                except ValueError:
                    raise FormatError(f"Invalid frame time: {value!r}") from None
            else:
                break
            index += 1

        return frame_count, frame_time, index

    def parse(self, text: str) -> MotionData:
        """
        解析 MOTION 段

        :param text: MOTION 段文本（从 'MOTION' 关键字开始）
        :return: MotionData
        """
        lines = text.splitlines()
        frame_count, frame_time, index = self._parse_header(lines)

        if frame_count is None:
            raise FormatError("Invalid BVH format: missing 'Frames:' in MOTION section")
        if frame_time is None:
            raise FormatError("Invalid BVH format: missing 'Frame Time:' in MOTION section")
        if frame_time <= 0.0:
            raise FormatError(f"Invalid frame time: {frame_time}")
        self.frame_count = frame_count
        self.frame_time = frame_time

        frames: List[np.ndarray] = []
        for line_number in range(index + 1, len(lines) + 1):
            tokens = lines[line_number - 1].split()
            if not tokens:
                continue

            if len(tokens) != self.total_channels:
                log.error("Channel size mismatch at motion line %d: expected %d, got %d",
                          line_number, self.total_channels, len(tokens))
                raise ChannelMismatchError(line_number, self.total_channels, len(tokens), frames)

            try:
                frames.append(np.array([float(t) for t in tokens], dtype=np.float64))
            except ValueError as e:
                raise FormatError(f"Invalid motion value at motion line {line_number}: {e}") from None

        if frame_count != len(frames):
            message = f"Frame count mismatch: header declares {frame_count}, parsed {len(frames)}"
            log.warning(message)
            warnings.warn(message, FrameCountWarning, stacklevel=2)

        return MotionData(frame_count, frame_time, frames_to_array(frames, self.total_channels))


def frames_to_array(frames: Sequence[np.ndarray], total_channels: int) -> np.ndarray:
    """帧列表转为 (n_frames, total_channels) 数组，空列表得到 0 行数组"""
    if len(frames) == 0:
        return np.zeros((0, total_channels), dtype=np.float64)
    return np.vstack(frames).astype(np.float64)


def _channel_layout(joint: Joint, canonical: bool) -> List[Channel]:
    if not canonical:
        return joint.channels

    if joint.is_root:
        expected = CANONICAL_ROOT_CHANNELS
    elif joint.is_site:
        expected = []
    else:
        expected = CANONICAL_JOINT_CHANNELS
    if joint.num_channels != len(expected):
        raise FormatError(
            f"Joint {joint.name!r} has {joint.num_channels} channels, "
            f"canonical layout needs {len(expected)}"
        )
    return expected


def _write_joint(joint: Joint, depth: int, lines: List[str], canonical: bool, indent: str):
    pad = indent * depth
    inner = indent * (depth + 1)

    if joint.is_root:
        lines.append(f"{pad}ROOT {joint.name}")
    elif joint.is_site:
        lines.append(f"{pad}End Site")
    else:
        lines.append(f"{pad}JOINT {joint.name}")
    lines.append(f"{pad}{{")

    x, y, z = joint.initial_offset
    lines.append(f"{inner}OFFSET {x:.6f} {y:.6f} {z:.6f}")

    if not joint.is_site:
        channels = _channel_layout(joint, canonical)
        names = ''.join(f" {channel.token}" for channel in channels)
        lines.append(f"{inner}CHANNELS {len(channels)}{names}")

    for child in joint.children:
        _write_joint(child, depth + 1, lines, canonical, indent)

    lines.append(f"{pad}}}")


def serialize_bvh(root: Joint, frames: np.ndarray, frame_time: float,
                  canonical: bool = False, indent: str = '\t') -> str:
    """
    把骨骼树和帧数据写回 BVH 文本

    :param root: 根关节
    :param frames: 帧数据，形状 (n_frames, total_channels)
    :param frame_time: 每帧秒数
    :param canonical: True 时使用规范通道布局（根 6 通道，其余 YXZ 旋转），通道数不符时报错
    :param indent: 每层缩进
    :return: BVH 文本
    """
    lines = ["HIERARCHY"]
    _write_joint(root, 0, lines, canonical, indent)

    lines.append("MOTION")
    lines.append(f"Frames: {len(frames)}")
    lines.append(f"Frame Time: {frame_time:.8g}")
    for frame in frames:
        lines.append(' '.join(f"{value:.6f}" for value in frame))

    return '\n'.join(lines) + '\n'


def extract_joint_positions(joints: Sequence[Joint]) -> Dict[str, List[float]]:
    """提取所有关节当前的世界坐标"""
    return {joint.name: [float(v) for v in joint.get_position()] for joint in joints}


def export_positions(frames_data: List[Dict], output_path: str):
    """
    导出每帧的关节世界坐标到 JSON

    :param frames_data: [{'frame': int, 'joints': {name: [x, y, z]}}, ...]
    :param output_path: 输出文件路径
    """
    os.makedirs(os.path.dirname(os.path.abspath(output_path)), exist_ok=True)
    output = {'frames': frames_data}
    with open(output_path, 'w', encoding='utf-8') as f:
        json.dump(output, f, indent=2, ensure_ascii=False)
