#!/usr/bin/env python3
# -*- coding: utf-8 -*-
"""
常量定义：集中管理规划器的默认参数
"""

# =============================
# 地图相关常量
# =============================

# 默认地图边长（米，仅支持正方形地图）
DEFAULT_MAP_SIZE: float = 20.0

# 默认栅格分辨率（米/格）
DEFAULT_RESOLUTION: float = 0.1

# 默认机器人直径（米）
DEFAULT_ROBOT_DIAMETER: float = 0.2

# =============================
# 路网相关常量
# =============================

# 每个顶点最多的邻居数量
DEFAULT_MAX_DENSITY: int = 5

# 两个顶点之间允许的最大边长（米）
DEFAULT_MAX_DISTANCE: float = 2.5

# 随机扩展阶段的采样上限
DEFAULT_MAX_SAMPLES: int = 1000

# 随机采样坐标保留的小数位数
DEFAULT_SAMPLE_DECIMALS: int = 1

# 低离散度采样半径（米）：新采样点与已有顶点的最小间距
DEFAULT_MIN_SEPARATION: float = 0.5

# =============================
# 服务相关常量
# =============================

# build 失败后的外层重试次数（含第一次）
DEFAULT_MAX_BUILD_ATTEMPTS: int = 3
