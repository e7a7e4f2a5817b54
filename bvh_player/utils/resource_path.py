"""
路径工具函数
配置文件里的相对路径、随项目附带的示例数据
"""
import os
from typing import Optional


def project_root() -> str:
    """项目根目录：bvh_player/utils 的上两级"""
    return os.path.dirname(os.path.dirname(os.path.dirname(os.path.abspath(__file__))))


def resolve_path(path: Optional[str], base_dir: Optional[str] = None) -> Optional[str]:
    """
    解析配置中的路径：绝对路径原样返回，相对路径基于 base_dir（通常是配置文件所在目录）

    :param path: 配置中的路径，None 原样返回
    :param base_dir: 相对路径的基准目录，None 时使用项目根目录
    :return: 绝对路径
    """
    if path is None:
        return None
    path = os.path.expanduser(path)
    if os.path.isabs(path):
        return path
    return os.path.join(os.path.abspath(base_dir or project_root()), path)


def get_data_path(filename: str) -> str:
    """
    获取data目录下示例文件的路径

    :param filename: 文件名（如 'sample.bvh'）
    :return: 文件的绝对路径
    """
    return os.path.join(project_root(), 'data', filename)
