#!/usr/bin/env python3
# -*- coding: utf-8 -*-
"""
栅格加载模块

把灰度占用图（白色=可通行，黑色=障碍，灰色=未知）转换为 CellState 栅格。
"""

from pathlib import Path
from typing import Union

import cv2
import numpy as np
from loguru import logger

from prm_nav.common.exceptions import GridFormatError
from prm_nav.roadmap.spatial_oracle import CellState

# 灰度阈值：>= FREE_THRESHOLD 可通行，<= OCCUPIED_THRESHOLD 障碍，其余未知
FREE_THRESHOLD = 192
OCCUPIED_THRESHOLD = 63


def grid_from_image(image: np.ndarray) -> np.ndarray:
    """
    灰度图 -> CellState 栅格

    Args:
        image: HxW 灰度图（0-255）

    Returns:
        HxW uint8 栅格（0=FREE，1=OCCUPIED，2=UNKNOWN）
    """
    if image is None or image.ndim != 2:
        raise GridFormatError(f"占用图必须是二维灰度图: {None if image is None else image.shape}")

    grid = np.full(image.shape, CellState.UNKNOWN, dtype=np.uint8)
    grid[image >= FREE_THRESHOLD] = CellState.FREE
    grid[image <= OCCUPIED_THRESHOLD] = CellState.OCCUPIED
    return grid


def load_grid(path: Union[str, Path]) -> np.ndarray:
    """
    从图片文件加载占用栅格

    Raises:
        FileNotFoundError: 文件不存在或无法读取
    """
    image = cv2.imread(str(path), cv2.IMREAD_GRAYSCALE)
    if image is None:
        raise FileNotFoundError(f"无法读取占用图: {path}")

    grid = grid_from_image(image)
    free_ratio = float(np.mean(grid == CellState.FREE))
    logger.info(f"占用图加载完成: {path}, 尺寸={grid.shape}, 可通行比例={free_ratio:.2%}")
    return grid
