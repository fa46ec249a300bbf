#!/usr/bin/env python3
# -*- coding: utf-8 -*-

import threading
from collections import deque
from typing import Deque, Optional, Tuple

import numpy as np
from loguru import logger

Ordinate = Tuple[float, float]


class WorldDataBuffer:
    """
    WorldDataBuffer：世界数据缓冲区
    - 数据采集线程写入占用栅格和机器人位置
    - 规划线程以"取出即删除"的方式读取
    - 线程安全读写
    - 默认每种数据只保留最新一条，没有目标时采集方高频写入也不会堆积
    """

    def __init__(self, maxlen: Optional[int] = 1) -> None:
        """
        Args:
            maxlen: 每个队列保留的最大条数，None 表示不限
        """
        self._lock = threading.Lock()
        self._grids: Deque[np.ndarray] = deque(maxlen=maxlen)
        self._poses: Deque[Ordinate] = deque(maxlen=maxlen)

    # --------------------------------------------------------
    # 写入（由数据采集线程调用）
    # --------------------------------------------------------
    def push_grid(self, grid: np.ndarray) -> None:
        if grid is None:
            return
        with self._lock:
            self._grids.append(grid)

    def push_pose(self, pose: Ordinate) -> None:
        if pose is None:
            return
        with self._lock:
            self._poses.append((float(pose[0]), float(pose[1])))

    # --------------------------------------------------------
    # 读取（由规划线程调用）
    # --------------------------------------------------------
    def latest_occupancy_grid(self) -> Optional[np.ndarray]:
        """取出最新的一帧栅格（更早的帧一并丢弃），没有时返回 None"""
        with self._lock:
            if not self._grids:
                return None
            grid = self._grids.pop()
            self._grids.clear()
            return grid

    def latest_robot_pose(self) -> Optional[Ordinate]:
        """取出最新的机器人位置（更早的位置一并丢弃），没有时返回 None"""
        with self._lock:
            if not self._poses:
                return None
            pose = self._poses.pop()
            self._poses.clear()
            return pose

    def has_data(self) -> bool:
        """栅格和位置是否都至少有一条"""
        with self._lock:
            return len(self._grids) > 0 and len(self._poses) > 0

    def wait_for_data(self, shutdown: threading.Event, poll_s: float = 0.1) -> bool:
        """
        阻塞直到栅格和位置都可用

        Returns:
            True: 数据已就绪；False: 等待期间收到退出信号
        """
        logged = False
        while not shutdown.is_set():
            if self.has_data():
                return True
            if not logged:
                logger.info("等待世界数据（占用栅格 + 机器人位置）...")
                logged = True
            shutdown.wait(poll_s)
        return False
