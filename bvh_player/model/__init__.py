"""
模型层 (Model Layer)
骨骼树：关节对象、通道类型、父子层级

- Joint: 关节节点，保存偏移、通道、局部/全局变换
- Channel: 通道类型（XYZ 平移 / XYZ 旋转）
"""

from .joint import Joint, Channel

__all__ = [
    'Joint',
    'Channel'
]
