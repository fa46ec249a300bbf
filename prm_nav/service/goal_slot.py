#!/usr/bin/env python3
# -*- coding: utf-8 -*-
"""
目标槽模块：容量为 1 的"最新目标"通道

- 接收方（put）从不阻塞，新目标覆盖尚未处理的旧目标
- 规划线程在 wait_for_goal 中阻塞，直到有目标或收到退出信号
"""

import threading
from typing import Optional, Tuple

Ordinate = Tuple[float, float]


class GoalSlot:
    """最新目标槽（线程安全）"""

    def __init__(self, shutdown: Optional[threading.Event] = None):
        """
        Args:
            shutdown: 退出事件，None 时内部创建
        """
        self._cond = threading.Condition()
        self._goal: Optional[Ordinate] = None
        self._ready = False
        self._shutdown = shutdown if shutdown is not None else threading.Event()

    @property
    def shutdown_event(self) -> threading.Event:
        return self._shutdown

    def put(self, goal: Ordinate) -> None:
        """记录最新目标并唤醒规划线程"""
        with self._cond:
            self._goal = (float(goal[0]), float(goal[1]))
            self._ready = True
            self._cond.notify_all()

    def wait_for_goal(self, timeout: Optional[float] = None) -> Optional[Ordinate]:
        """
        等待目标（规划线程调用）

        Args:
            timeout: 超时时间（秒），None 表示一直等待

        Returns:
            最新目标；超时或收到退出信号时返回 None
        """
        with self._cond:
            self._cond.wait_for(lambda: self._ready or self._shutdown.is_set(), timeout)
            if self._shutdown.is_set() or not self._ready:
                return None
            self._ready = False
            return self._goal

    def pending(self) -> bool:
        with self._cond:
            return self._ready

    def close(self) -> None:
        """发出退出信号并唤醒所有等待者"""
        self._shutdown.set()
        with self._cond:
            self._cond.notify_all()
