import json
import os
import sys
import time

from bvh_player.data_io import export_positions, extract_joint_positions
from bvh_player.document import DEFAULT_SELECT_THRESHOLD, BvhDocument
from bvh_player.errors import BvhError, ChannelMismatchError
from bvh_player.solver.ik_core import DEFAULT_MAX_SWING, DEFAULT_MIN_SWING
from bvh_player.utils.resource_path import get_data_path, resolve_path


def load_config(config_path="config.json"):
    """
    读取 JSON 配置并补全默认值，相对路径基于配置文件所在目录
    """
    with open(config_path, 'r', encoding='utf-8') as f:
        config = json.load(f)

    base_dir = os.path.dirname(os.path.abspath(config_path))
    mode = config.get('mode', 0)
    default_output = 'output/positions.json' if mode == 0 else 'output/edited.bvh'

    bvh_path = config.get('bvh_path')
    return {
        'bvh_path': resolve_path(bvh_path, base_dir) if bvh_path else get_data_path('sample.bvh'),
        'output_path': resolve_path(config.get('output_path', default_output), base_dir),
        'mode': mode,
        'rate': config.get('rate', 1.0),
        'loop': config.get('loop', False),
        'delta_time': config.get('delta_time', 1.0 / 60.0),
        'max_steps': config.get('max_steps', 1000),
        'frame': config.get('frame', 0),
        'effector': config.get('effector'),
        'target': config.get('target'),
        'min_swing': config.get('min_swing', DEFAULT_MIN_SWING),
        'max_swing': config.get('max_swing', DEFAULT_MAX_SWING),
        'select_threshold': config.get('select_threshold', DEFAULT_SELECT_THRESHOLD),
        'canonical': config.get('canonical', False),
        'strict': config.get('strict', False)
    }


def run_player(config_path="config.json"):
    # 1. 加载配置
    if not os.path.exists(config_path):
        print(f"❌ 找不到配置文件: {config_path}")
        return False

    config = load_config(config_path)

    print("----------- BVH Player Headless -----------")
    print(f"配置加载: {config_path}")

    document = BvhDocument(
        min_swing=config['min_swing'],
        max_swing=config['max_swing'],
        select_threshold=config['select_threshold']
    )

    # 2. 加载 BVH
    print(f"正在加载动作: {config['bvh_path']} ...")
    try:
        document.load(config['bvh_path'], strict=config['strict'])
    except ChannelMismatchError as e:
        if not document.is_loaded():
            print(f"❌ 动作加载失败: {e}")
            return False
        print(f"⚠️ {e}，保留前 {document.get_num_frames()} 帧")
    except (BvhError, OSError) as e:
        print(f"❌ 动作加载失败: {e}")
        return False

    print(f"骨骼加载成功，共 {document.get_num_joints()} 个关节，"
          f"{document.total_channels} 个通道，{document.get_num_frames()} 帧，"
          f"时长 {document.get_duration():.2f} 秒")
    if document.get_declared_frame_count() != document.get_num_frames():
        print(f"⚠️ 文件头声明 {document.get_declared_frame_count()} 帧，实际读取 {document.get_num_frames()} 帧")

    start_time = time.time()
    if config['mode'] == 0:
        print(">>> 模式 0: 播放并导出关节位置")
        ok = play_mode(document, config)
    else:
        print(">>> 模式 1: IK 编辑并写回 BVH")
        ok = ik_mode(document, config)

    duration = time.time() - start_time
    print(f"处理完成，耗时: {duration:.2f} 秒")
    if ok:
        print("✅ 任务完成！")
    return ok


def play_mode(document, config):
    """模式0：按固定步长播放，记录每个新帧的关节位置"""
    document.set_loop(config['loop'])
    document.set_rate(config['rate'])

    frames_data = [{
        'frame': document.get_frame(),
        'joints': extract_joint_positions(document.joints)
    }]

    document.play()
    steps = 0
    while document.is_playing() and steps < config['max_steps']:
        document.update(config['delta_time'])
        steps += 1
        if document.is_frame_new():
            frames_data.append({
                'frame': document.get_frame(),
                'joints': extract_joint_positions(document.joints)
            })

        if steps % 10 == 0:
            sys.stdout.write(f"\r进度: 第 {steps} 步，帧 {document.get_frame()}/{document.get_num_frames()}")
            sys.stdout.flush()

    print()  # 换行
    print(f"正在导出到: {config['output_path']} ...")
    export_positions(frames_data, config['output_path'])
    return True


def ik_mode(document, config):
    """模式1：跳到指定帧，对末端关节做一次 IK，把姿态写回该帧后保存"""
    if config['target'] is None:
        print("❌ 配置缺少 IK 目标点 target")
        return False

    document.set_frame(config['frame'])
    document.update(0.0)

    effector = config['effector']
    if effector is None:
        print("❌ 配置缺少末端关节 effector")
        return False
    if document.get_joint(effector) is None:
        print(f"❌ 找不到末端关节: {effector}")
        return False

    adjusted = document.update_ik(config['target'], effector)
    print(f"IK 调整了 {len(adjusted)} 个关节，末端位置: "
          f"{document.get_joint(effector).get_position()}")

    try:
        document.store_pose()
    except ValueError as e:
        print(f"❌ 姿态无法写回帧数据: {e}")
        return False

    print(f"正在导出到: {config['output_path']} ...")
    try:
        document.save(config['output_path'], canonical=config['canonical'])
    except BvhError as e:
        print(f"❌ 导出失败: {e}")
        return False
    return True


def main():
    if len(sys.argv) > 1:
        ok = run_player(sys.argv[1])
    else:
        ok = run_player()
    sys.exit(0 if ok else 1)


if __name__ == "__main__":
    main()
