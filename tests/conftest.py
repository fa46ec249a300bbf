#!/usr/bin/env python3
# -*- coding: utf-8 -*-
"""
测试公共夹具
"""

import numpy as np
import pytest

from prm_nav.roadmap.spatial_oracle import CellState

GRID_CELLS = 200  # 20m / 0.1m


@pytest.fixture
def free_grid() -> np.ndarray:
    """200x200 全可通行栅格"""
    return np.full((GRID_CELLS, GRID_CELLS), CellState.FREE, dtype=np.uint8)


@pytest.fixture
def wall_grid() -> np.ndarray:
    """x=0 处一整列障碍，把地图分成左右两半"""
    grid = np.full((GRID_CELLS, GRID_CELLS), CellState.FREE, dtype=np.uint8)
    grid[:, GRID_CELLS // 2] = CellState.OCCUPIED
    return grid


@pytest.fixture
def block_grid() -> np.ndarray:
    """中心 4m x 4m 的方形障碍"""
    grid = np.full((GRID_CELLS, GRID_CELLS), CellState.FREE, dtype=np.uint8)
    grid[80:120, 80:120] = CellState.OCCUPIED
    return grid
