#!/usr/bin/env python3
# -*- coding: utf-8 -*-
"""
空间查询模块：基于占用栅格的几何判断

功能：
- 世界坐标（米）与栅格坐标 (row, col) 之间的转换
- 判断某个栅格是否可通行
- 使用Bresenham算法检测两点间是否无障碍
- 按机器人直径膨胀障碍，得到配置空间
"""

import hashlib
import math
import weakref
from enum import IntEnum
from typing import Tuple

import cv2
import numpy as np
from loguru import logger

from prm_nav.common.constants import DEFAULT_MAP_SIZE, DEFAULT_RESOLUTION
from prm_nav.common.exceptions import GridFormatError

Ordinate = Tuple[float, float]  # (x, y) 米
GridCell = Tuple[int, int]      # (row, col)


class CellState(IntEnum):
    """栅格状态"""
    FREE = 0
    OCCUPIED = 1
    UNKNOWN = 2


def grid_digest(grid: np.ndarray) -> str:
    h = hashlib.sha1()
    h.update(str((grid.shape, grid.dtype.str)).encode("utf-8"))
    h.update(np.ascontiguousarray(grid).tobytes())
    return h.hexdigest()


def round_half_away(value: float) -> int:
    """四舍五入（.5 远离零），不使用 round 的银行家舍入"""
    return int(math.copysign(math.floor(abs(value) + 0.5), value))


class SpatialOracle:
    """
    占用栅格上的空间查询

    地图是以参考坐标（通常是机器人当前位置）为中心、边长为 map_size 的正方形。
    栅格行号向下增长，所以世界坐标 +y 对应行号减小。
    """

    def __init__(
        self,
        map_size: float = DEFAULT_MAP_SIZE,
        resolution: float = DEFAULT_RESOLUTION,
        reference: Ordinate = (0.0, 0.0),
    ):
        """
        Args:
            map_size: 地图边长（米）
            resolution: 分辨率（米/格）
            reference: 参考坐标（地图中心对应的世界坐标）

        Raises:
            ValueError: 输入参数无效
        """
        if map_size <= 0:
            raise ValueError(f"map_size必须大于0: {map_size}")
        if resolution <= 0:
            raise ValueError(f"resolution必须大于0: {resolution}")

        self.map_size_ = float(map_size)
        self.resolution_ = float(resolution)
        self.reference_: Ordinate = (float(reference[0]), float(reference[1]))

        # (id(array), radius) -> array，弱引用本对象产出过的配置空间数组
        self._expanded: "weakref.WeakValueDictionary[Tuple[int, int], np.ndarray]" = weakref.WeakValueDictionary()

    # ---------------- 参数 ----------------
    @property
    def map_size(self) -> float:
        return self.map_size_

    @property
    def resolution(self) -> float:
        return self.resolution_

    @property
    def reference(self) -> Ordinate:
        return self.reference_

    @property
    def cells(self) -> int:
        """地图每条边的栅格数"""
        return int(round(self.map_size_ / self.resolution_))

    @property
    def center(self) -> float:
        return self.cells / 2.0

    def set_reference(self, reference: Ordinate) -> None:
        self.reference_ = (float(reference[0]), float(reference[1]))

    def set_map_size(self, map_size: float) -> None:
        if map_size <= 0:
            raise ValueError(f"map_size必须大于0: {map_size}")
        self.map_size_ = float(map_size)
        self._expanded.clear()

    def set_resolution(self, resolution: float) -> None:
        if resolution <= 0:
            raise ValueError(f"resolution必须大于0: {resolution}")
        self.resolution_ = float(resolution)
        self._expanded.clear()

    # ---------------- 坐标转换 ----------------
    def to_cell(self, ordinate: Ordinate) -> GridCell:
        """
        世界坐标 -> 栅格坐标

        结果不做截断，超出范围的栅格需要调用方用 in_bounds 检查。
        """
        x, y = ordinate
        ref_x, ref_y = self.reference_
        col = round_half_away((x - ref_x) / self.resolution_ + self.center)
        row = round_half_away(self.center - (y - ref_y) / self.resolution_)
        return (row, col)

    def to_ordinate(self, cell: GridCell) -> Ordinate:
        """栅格坐标 -> 世界坐标（to_cell 的逆变换）"""
        row, col = cell
        ref_x, ref_y = self.reference_
        x = (col - self.center) * self.resolution_ + ref_x
        y = (self.center - row) * self.resolution_ + ref_y
        return (x, y)

    def in_bounds(self, cell: GridCell) -> bool:
        row, col = cell
        n = self.cells
        return 0 <= row < n and 0 <= col < n

    # ---------------- 可通行性 ----------------
    def validate_grid(self, grid: np.ndarray) -> None:
        """
        检查栅格尺寸是否与当前地图参数一致

        Raises:
            GridFormatError: 非二维、非正方形或尺寸不匹配
        """
        if grid is None or not isinstance(grid, np.ndarray):
            raise GridFormatError("grid必须是numpy数组")
        if grid.ndim != 2:
            raise GridFormatError(f"grid必须是二维数组: shape={grid.shape}")
        h, w = grid.shape
        if h != w:
            raise GridFormatError(f"grid必须是正方形: shape={grid.shape}")
        if h != self.cells:
            raise GridFormatError(
                f"grid尺寸与地图参数不匹配: shape={grid.shape}, "
                f"期望=({self.cells}, {self.cells}) (map_size={self.map_size_}, resolution={self.resolution_})"
            )

    def is_accessible(self, grid: np.ndarray, cell: GridCell) -> bool:
        """栅格在地图内且为 FREE 时可通行"""
        row, col = cell
        h, w = grid.shape
        if row < 0 or row >= h or col < 0 or col >= w:
            return False
        return bool(grid[row, col] == CellState.FREE)

    def ordinate_accessible(self, grid: np.ndarray, ordinate: Ordinate) -> bool:
        return self.is_accessible(grid, self.to_cell(ordinate))

    def can_connect(self, grid: np.ndarray, a: GridCell, b: GridCell) -> bool:
        """
        Bresenham 视线检测（四邻接步进，不允许斜穿障碍角）

        Args:
            grid: 栅格地图
            a: 起点栅格 (row, col)
            b: 终点栅格 (row, col)

        Returns:
            True: 两点之间直线经过的所有栅格都可通行
        """
        y0, x0 = a
        y1, x1 = b

        dx = abs(x1 - x0)
        dy = abs(y1 - y0)

        x, y = x0, y0
        n = 1 + dx + dy
        x_inc = 1 if x1 > x0 else -1
        y_inc = 1 if y1 > y0 else -1

        error = dx - dy
        dx *= 2
        dy *= 2

        h, w = grid.shape

        for _ in range(n):
            # 检查边界
            if x < 0 or x >= w or y < 0 or y >= h:
                return False

            # 检查障碍
            if grid[y, x] != CellState.FREE:
                return False

            if (x, y) == (x1, y1):
                break

            if error > 0:
                x += x_inc
                error -= dy
            else:
                y += y_inc
                error += dx

        return True

    # ---------------- 配置空间 ----------------
    def inflation_radius(self, robot_diameter: float) -> int:
        """机器人半径对应的膨胀栅格数"""
        if robot_diameter < 0:
            raise ValueError(f"robot_diameter不能为负数: {robot_diameter}")
        # round 去掉 0.2/2/0.1 = 1.0000000000000002 这类浮点误差
        return int(math.ceil(round(robot_diameter / 2.0 / self.resolution_, 9)))

    def expand_config_space(self, grid: np.ndarray, robot_diameter: float) -> np.ndarray:
        """
        按机器人直径膨胀障碍，得到配置空间

        返回新数组，不修改输入。OCCUPIED 栅格向外膨胀
        ceil(robot_diameter / 2 / resolution) 格，被覆盖的 FREE 栅格变为 OCCUPIED，
        UNKNOWN 保持不变。如果输入就是本对象用同一直径返回过的数组（按对象识别，
        不按内容），直接返回副本，不会重复膨胀；内容相同的新快照仍会正常膨胀。

        Args:
            grid: 栅格地图（CellState 编码）
            robot_diameter: 机器人直径（米）

        Returns:
            膨胀后的配置空间
        """
        self.validate_grid(grid)
        radius = self.inflation_radius(robot_diameter)

        if self._expanded.get((id(grid), radius)) is grid:
            logger.debug(f"配置空间已膨胀过，跳过: radius={radius}")
            return self._remember(grid.copy(), radius)

        cspace = grid.copy()
        if radius > 0:
            obstacle = (grid == CellState.OCCUPIED).astype(np.uint8)
            k = 2 * radius + 1
            kernel = np.ones((k, k), np.uint8)
            inflated = cv2.dilate(obstacle, kernel, iterations=1)
            cspace[(inflated != 0) & (grid == CellState.FREE)] = CellState.OCCUPIED

        logger.debug(f"配置空间膨胀完成: 膨胀半径={radius}格, 核大小={2 * radius + 1}")
        return self._remember(cspace, radius)

    def _remember(self, cspace: np.ndarray, radius: int) -> np.ndarray:
        # 弱引用，数组被回收后条目自动消失，id 复用不会误判
        self._expanded[(id(cspace), radius)] = cspace
        return cspace
