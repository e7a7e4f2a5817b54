"""
关节与通道的数据模型
"""
import numpy as np
from enum import Enum
from typing import Iterator, List, Optional

from bvh_player.errors import FormatError


class Channel(Enum):
    """
    单个动画自由度：某一坐标轴上的平移或旋转。
    值为 (轴, 类型)，类型 'p' 表示 position，'r' 表示 rotation
    """
    X_POSITION = ('x', 'p')
    Y_POSITION = ('y', 'p')
    Z_POSITION = ('z', 'p')
    X_ROTATION = ('x', 'r')
    Y_ROTATION = ('y', 'r')
    Z_ROTATION = ('z', 'r')

    @classmethod
    def from_token(cls, token: str) -> 'Channel':
        """
        根据 BVH 通道名解析通道类型：首字母决定轴，第二个字母决定平移/旋转（不区分大小写）

        :param token: 如 'Xposition'、'Zrotation'
        :return: Channel
        """
        if len(token) < 2:
            raise FormatError(f"Invalid channel name: {token!r}")
        key = (token[0].lower(), token[1].lower())
        for channel in cls:
            if channel.value == key:
                return channel
        raise FormatError(f"Invalid channel name: {token!r}")

    @property
    def axis(self) -> str:
        return self.value[0]

    @property
    def axis_index(self) -> int:
        return 'xyz'.index(self.value[0])

    @property
    def is_position(self) -> bool:
        return self.value[1] == 'p'

    @property
    def is_rotation(self) -> bool:
        return self.value[1] == 'r'

    @property
    def token(self) -> str:
        """写回 BVH 时使用的通道名"""
        kind = 'position' if self.is_position else 'rotation'
        return f"{self.axis.upper()}{kind}"


class Joint:
    """
    骨骼树中的一个关节。
    父节点通过 children 拥有子节点，子节点的 parent 只是反向引用。
    """

    def __init__(self, name: str, offset=(0.0, 0.0, 0.0)):
        """
        初始化关节

        :param name: 关节名称，在同一文档内唯一
        :param offset: 文件中声明的相对父级的静态偏移 (Vec3)
        """
        self.name = name
        self.parent: Optional['Joint'] = None
        self.children: List['Joint'] = []
        self.channels: List[Channel] = []
        self.initial_offset: np.ndarray = np.asarray(offset, dtype=np.float64).copy()
        self.offset: np.ndarray = self.initial_offset.copy()
        self.local_transform: np.ndarray = np.identity(4, dtype=np.float64)
        self.global_transform: np.ndarray = np.identity(4, dtype=np.float64)

    def add_child(self, child: 'Joint'):
        """添加子节点并设置其父节点"""
        child.parent = self
        self.children.append(child)

    def set_offset(self, offset):
        """设置静态偏移，同时重置当前偏移"""
        self.initial_offset = np.asarray(offset, dtype=np.float64).copy()
        self.offset = self.initial_offset.copy()

    @property
    def is_root(self) -> bool:
        return self.parent is None

    @property
    def is_site(self) -> bool:
        """End Site：既没有子节点也没有通道"""
        return not self.children and not self.channels

    @property
    def num_channels(self) -> int:
        return len(self.channels)

    def walk(self) -> Iterator['Joint']:
        """
        先序遍历：自身，然后从左到右递归遍历子节点。
        这是通道数据的消费顺序，解析、正向运动学、序列化都依赖同一个顺序。
        """
        yield self
        for child in self.children:
            yield from child.walk()

    def get_position(self) -> np.ndarray:
        """关节在世界坐标系中的位置"""
        return self.global_transform[:3, 3].copy()

    def update_global_transform(self):
        """
        根据当前的 local_transform 递归更新此关节及其所有子关节的 global_transform。
        不读取通道数据，IK 修改局部旋转之后使用。
        """
        if self.parent is None:
            self.global_transform = self.local_transform.copy()
        else:
            # global = parent_global @ local
            self.global_transform = self.parent.global_transform @ self.local_transform

        for child in self.children:
            child.update_global_transform()

    def __repr__(self):
        return f"<{self.__class__.__name__}: {self.name}>"
