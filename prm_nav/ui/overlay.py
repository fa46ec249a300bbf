#!/usr/bin/env python3
# -*- coding: utf-8 -*-
"""
路网叠加图模块：把 PRM 路网和路径画到占用栅格上

仅用于调试显示。
"""

from typing import List, Tuple

import cv2
import numpy as np

from prm_nav.roadmap.roadmap_builder import RoadmapBuilder
from prm_nav.roadmap.spatial_oracle import CellState

Ordinate = Tuple[float, float]

# BGR 颜色
COLOR_FREE = (255, 255, 255)
COLOR_OCCUPIED = (0, 0, 0)
COLOR_UNKNOWN = (127, 127, 127)
COLOR_ROADMAP = (255, 0, 0)   # 蓝色
COLOR_PATH = (0, 0, 255)      # 红色


def grid_to_bgr(grid: np.ndarray) -> np.ndarray:
    """CellState 栅格 -> BGR 彩色图"""
    image = np.empty(grid.shape + (3,), dtype=np.uint8)
    image[:] = COLOR_UNKNOWN
    image[grid == CellState.FREE] = COLOR_FREE
    image[grid == CellState.OCCUPIED] = COLOR_OCCUPIED
    return image


def _to_point(builder: RoadmapBuilder, ordinate: Ordinate) -> Tuple[int, int]:
    # cv2 的点是 (x, y) = (col, row)
    row, col = builder.oracle.to_cell(ordinate)
    return (col, row)


def draw_overlay(grid: np.ndarray, builder: RoadmapBuilder, path: List[Ordinate]) -> np.ndarray:
    """
    绘制路网（蓝色）和路径（红色）

    Args:
        grid: 占用栅格（CellState 编码）
        builder: 路网构建器
        path: 路径坐标序列，空列表表示只画路网

    Returns:
        BGR 图像
    """
    image = grid_to_bgr(grid)

    for a, b in builder.roadmap_edges():
        pa = _to_point(builder, a)
        pb = _to_point(builder, b)
        if pa == pb:
            cv2.circle(image, pa, 1, COLOR_ROADMAP, -1)
        else:
            cv2.line(image, pa, pb, COLOR_ROADMAP, 1)

    if len(path) >= 2:
        points = np.array([_to_point(builder, p) for p in path], dtype=np.int32)
        cv2.polylines(image, [points], False, COLOR_PATH, 1)
    for p in path:
        cv2.circle(image, _to_point(builder, p), 2, COLOR_PATH, -1)

    return image
