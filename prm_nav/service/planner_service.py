#!/usr/bin/env python3
# -*- coding: utf-8 -*-
"""
规划服务模块

封装"接收目标 -> 读取世界数据 -> 构建路网 -> 发布路径"的完整流程。

线程模型：
- 目标接收方（request_goal）只记录最新目标并唤醒规划线程，从不阻塞
- 单个规划线程等待目标，规划期间到达的多个目标只保留最新一个
- 路网只由规划线程访问，RoadmapBuilder 内部不加锁
"""

import threading
from typing import Callable, List, Optional, Tuple

import numpy as np
from loguru import logger

from prm_nav.common.exceptions import GridFormatError, RoadmapInvariantError
from prm_nav.config.models import PlannerConfig
from prm_nav.roadmap.roadmap_builder import RoadmapBuilder
from prm_nav.service.goal_slot import GoalSlot
from prm_nav.service.world_buffer import WorldDataBuffer
from prm_nav.ui.overlay import draw_overlay

Ordinate = Tuple[float, float]
PathPublisher = Callable[[List[Ordinate]], None]
OverlayPublisher = Callable[[np.ndarray], None]


class PlannerService:
    """路径规划服务"""

    def __init__(
        self,
        config: PlannerConfig,
        buffer: WorldDataBuffer,
        publish_path: PathPublisher,
        publish_overlay: Optional[OverlayPublisher] = None,
        builder: Optional[RoadmapBuilder] = None,
    ):
        """
        初始化规划服务

        Args:
            config: PlannerConfig配置对象
            buffer: 世界数据缓冲区（由数据采集方写入）
            publish_path: 路径发布回调，空列表表示"没有路径"
            publish_overlay: 叠加图发布回调（可选）
            builder: 路网构建器，None 时按配置创建
        """
        self.config_ = config
        self.buffer_ = buffer
        self.publish_path_ = publish_path
        self.publish_overlay_ = publish_overlay
        self.builder_ = builder if builder is not None else RoadmapBuilder.from_config(config)

        self._shutdown = threading.Event()
        self.goal_slot_ = GoalSlot(self._shutdown)
        self._thread: Optional[threading.Thread] = None

        # 最近一次取到的世界数据，没有新数据时沿用
        self._grid: Optional[np.ndarray] = None
        self._pose: Optional[Ordinate] = None

        self.fatal_error_: Optional[BaseException] = None

    @property
    def builder(self) -> RoadmapBuilder:
        return self.builder_

    # ---------------- 目标接收 ----------------
    def request_goal(self, x: float, y: float) -> bool:
        """
        接收新目标（总是返回 True，目标是否可达由规划线程判断）
        """
        logger.info(f"收到目标请求: ({x}, {y})")
        if self.goal_slot_.pending():
            logger.debug("上一个目标尚未处理，将被覆盖")
        self.goal_slot_.put((x, y))
        return True

    # ---------------- 规划 ----------------
    def plan_once(
        self,
        grid: np.ndarray,
        pose: Ordinate,
        goal: Ordinate,
        reference: Optional[Ordinate] = None,
    ) -> List[Ordinate]:
        """
        以机器人位置为起点规划一次路径，失败时按配置重试

        Args:
            grid: 占用栅格
            pose: 机器人位置（起点）
            goal: 终点
            reference: 地图中心对应的世界坐标，None 时使用机器人位置

        Returns:
            路径坐标序列，全部尝试失败时返回 []
        """
        self.builder_.set_reference(reference if reference is not None else pose)
        start = (float(pose[0]), float(pose[1]))
        max_attempts = self.config_.service.max_build_attempts

        logger.info(f"开始规划: {start} -> {goal}")
        for attempt in range(1, max_attempts + 1):
            path = self.builder_.build(grid, start, goal)
            if path:
                logger.info(f"路径规划成功: 路径点数={len(path)}, 尝试次数={attempt}")
                return path
            if attempt < max_attempts:
                logger.info(f"路径规划失败，重试: 第 {attempt + 1}/{max_attempts} 次")

        logger.warning(f"目标不可达: {goal}")
        return []

    def _refresh_world(self) -> None:
        grid = self.buffer_.latest_occupancy_grid()
        if grid is not None:
            self._grid = grid
        pose = self.buffer_.latest_robot_pose()
        if pose is not None:
            self._pose = pose

    def _publish(self, path: List[Ordinate]) -> None:
        self.publish_path_(path)
        if self.publish_overlay_ is not None and self.config_.service.publish_overlay and self._grid is not None:
            self.publish_overlay_(draw_overlay(self._grid, self.builder_, path))

    def handle_goal(self, goal: Ordinate) -> List[Ordinate]:
        """处理一个目标：刷新世界数据、规划、发布"""
        self._refresh_world()
        if self._grid is None or self._pose is None:
            logger.error("没有可用的占用栅格或机器人位置，跳过本次规划")
            self.publish_path_([])
            return []

        try:
            path = self.plan_once(self._grid, self._pose, goal)
        except (RoadmapInvariantError, GridFormatError):
            raise
        except Exception as e:
            logger.exception(f"路径规划异常: {e}")
            path = []

        self._publish(path)
        return path

    # ---------------- 线程 ----------------
    def run(self) -> None:
        """规划线程主循环"""
        logger.info("规划线程启动")
        if not self.buffer_.wait_for_data(self._shutdown, poll_s=self.config_.service.wait_timeout_s):
            logger.info("规划线程退出（未收到世界数据）")
            return

        logger.info("世界数据就绪，等待目标请求...")
        while not self._shutdown.is_set():
            goal = self.goal_slot_.wait_for_goal(timeout=self.config_.service.wait_timeout_s)
            if goal is None:
                continue
            try:
                self.handle_goal(goal)
            except (RoadmapInvariantError, GridFormatError) as e:
                logger.critical(f"规划器不变量被破坏，停止规划线程: {e}")
                self.fatal_error_ = e
                self._shutdown.set()
                break

        logger.info("规划线程已停止")

    def start(self) -> bool:
        """
        启动规划线程

        Returns:
            是否成功启动
        """
        if self.is_running():
            logger.warning("规划线程已在运行")
            return False

        self._shutdown.clear()
        self._thread = threading.Thread(target=self.run, name="prm-planner", daemon=True)
        self._thread.start()
        return True

    def stop(self, timeout: float = 2.0) -> None:
        """发出退出信号并等待规划线程结束（正在进行的 build 会执行完）"""
        self.goal_slot_.close()
        if self._thread is not None and self._thread.is_alive():
            self._thread.join(timeout=timeout)
            if self._thread.is_alive():
                logger.warning("规划线程未能在超时内退出")

    def is_running(self) -> bool:
        return self._thread is not None and self._thread.is_alive()
