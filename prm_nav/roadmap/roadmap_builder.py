#!/usr/bin/env python3
# -*- coding: utf-8 -*-
"""
路网构建模块：低离散度 PRM（Probabilistic Roadmap）

给定占用栅格、起点和终点，先查询已有路网，必要时随机采样扩展路网，
返回一条无碰撞的路径（世界坐标序列）。找不到路径时返回空列表。

路网（图 + 顶点表 + 下一个顶点ID）在对象生命周期内只增不减，
之前的构建结果会在后续查询中复用。本类不加锁，只能由一个线程持有。

规模假设：顶点查找是线性扫描，连接新顶点是 O(n)，适用于几十到几百个顶点的路网。
"""

# 标准库导入
import math
from typing import Dict, Iterator, List, Optional, Tuple

# 第三方库导入
import numpy as np
from loguru import logger

from prm_nav.common.constants import (
    DEFAULT_MAP_SIZE,
    DEFAULT_RESOLUTION,
    DEFAULT_ROBOT_DIAMETER,
    DEFAULT_MAX_DENSITY,
    DEFAULT_MAX_DISTANCE,
    DEFAULT_MAX_SAMPLES,
    DEFAULT_SAMPLE_DECIMALS,
    DEFAULT_MIN_SEPARATION,
)
from prm_nav.common.exceptions import RoadmapInvariantError
from prm_nav.roadmap.graph import Graph, Vertex
from prm_nav.roadmap.spatial_oracle import SpatialOracle, Ordinate, GridCell, grid_digest


def _as_ordinate(ordinate) -> Ordinate:
    return (float(ordinate[0]), float(ordinate[1]))


class RoadmapBuilder:
    """
    低离散度 PRM 规划器

    示例:
        ```python
        builder = RoadmapBuilder(map_size=20.0, resolution=0.1, robot_diameter=0.2)
        builder.set_reference(robot_pos)
        path = builder.build(grid, start=(-5.0, -5.0), goal=(5.0, 5.0))
        if not path:
            ...  # 没有找到路径
        ```
    """

    def __init__(
        self,
        map_size: float = DEFAULT_MAP_SIZE,
        resolution: float = DEFAULT_RESOLUTION,
        robot_diameter: float = DEFAULT_ROBOT_DIAMETER,
        max_density: int = DEFAULT_MAX_DENSITY,
        max_distance: float = DEFAULT_MAX_DISTANCE,
        max_samples: int = DEFAULT_MAX_SAMPLES,
        min_separation: float = DEFAULT_MIN_SEPARATION,
        sample_decimals: int = DEFAULT_SAMPLE_DECIMALS,
        optimise: bool = True,
        seed: Optional[int] = None,
    ):
        """
        初始化路网构建器

        Args:
            map_size: 地图边长（米）
            resolution: 栅格分辨率（米/格）
            robot_diameter: 机器人直径（米）
            max_density: 每个顶点最多的邻居数量
            max_distance: 最大边长（米）
            max_samples: 随机扩展阶段的采样上限
            min_separation: 低离散度采样半径（米），0 表示不做间距筛选
            sample_decimals: 随机采样坐标保留的小数位数
            optimise: 是否对返回的路径做捷径优化
            seed: 随机种子

        Raises:
            ValueError: 输入参数无效
        """
        if robot_diameter < 0:
            raise ValueError(f"robot_diameter不能为负数: {robot_diameter}")
        if max_samples <= 0:
            raise ValueError(f"max_samples必须大于0: {max_samples}")
        if min_separation < 0:
            raise ValueError(f"min_separation不能为负数: {min_separation}")

        self.graph_ = Graph(max_density, max_distance)
        self.oracle_ = SpatialOracle(map_size, resolution)
        self.robot_diameter_ = float(robot_diameter)
        self.max_samples_ = max_samples
        self.min_separation_ = float(min_separation)
        self.sample_decimals_ = sample_decimals
        self.optimise_ = optimise

        # 顶点 -> 世界坐标 查找表
        self._network: Dict[Vertex, Ordinate] = {}
        self._next_vertex_id: Vertex = 0
        self._rng = np.random.default_rng(seed)

        # 最近一次原始栅格的配置空间缓存：(digest, radius) -> cspace
        self._cspace_key: Optional[Tuple[str, int]] = None
        self._cspace: Optional[np.ndarray] = None

    @classmethod
    def from_config(cls, config) -> "RoadmapBuilder":
        """从 PlannerConfig 创建"""
        return cls(
            map_size=config.map.map_size,
            resolution=config.map.resolution,
            robot_diameter=config.robot.diameter,
            max_density=config.roadmap.max_density,
            max_distance=config.roadmap.max_distance,
            max_samples=config.roadmap.max_samples,
            min_separation=config.roadmap.min_separation,
            sample_decimals=config.roadmap.sample_decimals,
            optimise=config.roadmap.optimise_path,
            seed=config.roadmap.seed,
        )

    # ---------------- 状态访问 ----------------
    @property
    def graph(self) -> Graph:
        return self.graph_

    @property
    def oracle(self) -> SpatialOracle:
        return self.oracle_

    @property
    def reference(self) -> Ordinate:
        return self.oracle_.reference

    @property
    def vertex_count(self) -> int:
        return len(self._network)

    @property
    def vertices(self) -> Dict[Vertex, Ordinate]:
        return dict(self._network)

    def ordinate_of(self, v: Vertex) -> Ordinate:
        return self._network[v]

    def set_reference(self, reference: Ordinate) -> None:
        self.oracle_.set_reference(_as_ordinate(reference))

    def set_map_size(self, map_size: float) -> None:
        self.oracle_.set_map_size(map_size)
        self._invalidate_cspace()

    def set_resolution(self, resolution: float) -> None:
        self.oracle_.set_resolution(resolution)
        self._invalidate_cspace()

    # ---------------- 顶点表 ----------------
    @staticmethod
    def distance(a: Ordinate, b: Ordinate) -> float:
        return math.hypot(b[0] - a[0], b[1] - a[1])

    def lookup(self, ordinate: Ordinate) -> Optional[Vertex]:
        """线性扫描顶点表，坐标必须完全相等"""
        x, y = ordinate
        for v, (vx, vy) in self._network.items():
            if vx == x and vy == y:
                return v
        return None

    def exists_as_vertex(self, ordinate: Ordinate) -> bool:
        return self.lookup(ordinate) is not None

    def find_or_add(self, ordinate: Ordinate) -> Vertex:
        """
        查找坐标对应的顶点，不存在时分配新ID加入图和顶点表

        Raises:
            RoadmapInvariantError: 新分配的ID已存在于图中
        """
        ordinate = _as_ordinate(ordinate)
        v = self.lookup(ordinate)
        if v is not None:
            return v

        v = self._next_vertex_id
        self._next_vertex_id += 1
        if not self.graph_.add_vertex(v) or v in self._network:
            raise RoadmapInvariantError(f"顶点ID冲突: {v}")
        self._network[v] = ordinate
        return v

    def violating_space(self, ordinate: Ordinate, r: float) -> bool:
        """坐标是否落在任意已有顶点半径 r 以内"""
        for other in self._network.values():
            if self.distance(ordinate, other) < r:
                return True
        return False

    def prioritise_nodes(self) -> List[Vertex]:
        """按度数升序排列所有顶点（连接最少的在前）"""
        return sorted(self._network.keys(), key=lambda v: (self.graph_.degree(v), v))

    # ---------------- 连接 ----------------
    def _cell_of(self, v: Vertex) -> GridCell:
        return self.oracle_.to_cell(self._network[v])

    def _nearest(self, node: Vertex) -> List[Tuple[Vertex, float]]:
        origin = self._network[node]
        others = [
            (v, self.distance(origin, ordinate))
            for v, ordinate in self._network.items()
            if v != node
        ]
        others.sort(key=lambda item: (item[1], item[0]))
        return others

    def _iter_neighbours(self, cspace: np.ndarray, node: Vertex, should_connect: bool) -> Iterator[Tuple[Vertex, float]]:
        node_cell = self._cell_of(node)
        for v, dist in self._nearest(node):
            if should_connect:
                cell = self._cell_of(v)
                if not self.oracle_.is_accessible(cspace, cell):
                    continue
                if not self.oracle_.can_connect(cspace, node_cell, cell):
                    continue
            yield v, dist

    def get_neighbours(self, cspace: np.ndarray, node: Vertex, should_connect: bool = False) -> List[Vertex]:
        """
        返回 node 的所有其他顶点，按距离升序

        Args:
            cspace: 配置空间
            node: 顶点
            should_connect: 为 True 时只保留可通行且视线可达的顶点

        Returns:
            顶点列表（最近的在前）
        """
        return [v for v, _ in self._iter_neighbours(cspace, node, should_connect)]

    def connect_to_existing(self, cspace: np.ndarray, node: Vertex) -> int:
        """
        尝试把 node 与路网中所有其他顶点相连（由近到远）

        Returns:
            新增的边数
        """
        node_cell = self._cell_of(node)
        max_density = self.graph_.max_density
        max_distance = self.graph_.max_distance
        connected = 0

        for v, dist in self._nearest(node):
            if self.graph_.degree(node) >= max_density or dist > max_distance:
                # 之后的顶点只会更远，加边必然被拒绝
                break
            if self.graph_.has_edge(node, v) or self.graph_.degree(v) >= max_density:
                continue
            if self.oracle_.can_connect(cspace, node_cell, self._cell_of(v)):
                if self.graph_.add_edge(node, v, dist):
                    connected += 1

        return connected

    def embed_node(self, cspace: np.ndarray, node: Vertex, k: int, retry: bool = False) -> int:
        """
        把 node 连接到最近的 k 个可达邻居

        Args:
            cspace: 配置空间
            node: 要嵌入的顶点
            k: 目标连接数
            retry: 为 True 时如果前 k 个候选有加边失败的，继续尝试更远的候选，
                   直到成功连接 k 个或候选用完（路网稀疏或度数已满时可能少于 k）

        Returns:
            新增的边数
        """
        made = 0
        for attempted, (v, dist) in enumerate(self._iter_neighbours(cspace, node, should_connect=True)):
            if made >= k:
                break
            if not retry and attempted >= k:
                break
            if self.graph_.add_edge(node, v, dist):
                made += 1

        if made < k:
            logger.debug(f"顶点 {node} 只连接了 {made}/{k} 个邻居")
        return made

    def join_network(self, cspace: np.ndarray, k: int) -> int:
        """对每个顶点（连接最少的优先）做一次 embed_node"""
        total = 0
        for v in self.prioritise_nodes():
            total += self.embed_node(cspace, v, k, retry=False)
        logger.debug(f"路网连接完成: 新增边数={total}")
        return total

    # ---------------- 配置空间 ----------------
    def _invalidate_cspace(self) -> None:
        self._cspace_key = None
        self._cspace = None

    def expand_config_space(self, grid: np.ndarray) -> np.ndarray:
        """
        返回 grid 的配置空间

        同一份栅格快照只膨胀一次，重复调用返回缓存，避免在同一块缓冲区上累积膨胀。
        """
        self.oracle_.validate_grid(grid)
        key = (grid_digest(grid), self.oracle_.inflation_radius(self.robot_diameter_))
        if key != self._cspace_key or self._cspace is None:
            self._cspace = self.oracle_.expand_config_space(grid, self.robot_diameter_)
            self._cspace_key = key
        return self._cspace

    # ---------------- 路径 ----------------
    def to_ord_path(self, path: List[Vertex]) -> List[Ordinate]:
        return [self._network[v] for v in path]

    def to_cell_path(self, path: List[Ordinate]) -> List[GridCell]:
        return [self.oracle_.to_cell(p) for p in path]

    def optimise_path(self, cspace: np.ndarray, path: List[Ordinate]) -> List[Ordinate]:
        """
        捷径优化：尽量用更远的点替代中间折线点

        从起点开始，找到序列中最远的可直连点，删除中间所有点，再从该点继续。
        起点和终点保持不变，返回的路径点数不会多于输入。

        Args:
            cspace: 配置空间
            path: 原始路径（第一个是起点，最后一个是终点）

        Returns:
            优化后的路径
        """
        if len(path) <= 2:
            return list(path)

        cells = self.to_cell_path(path)
        optimised = [path[0]]
        i = 0
        n = len(path)

        while i < n - 1:
            j = n - 1
            # 从尾部往回找最远可直连点
            while j > i + 1 and not self.oracle_.can_connect(cspace, cells[i], cells[j]):
                j -= 1
            optimised.append(path[j])
            i = j

        logger.debug(f"路径捷径优化: 原始点数={len(path)}, 优化后={len(optimised)}")
        return optimised

    def _finish(self, cspace: np.ndarray, v_path: List[Vertex]) -> List[Ordinate]:
        path = self.to_ord_path(v_path)
        if self.optimise_:
            path = self.optimise_path(cspace, path)
        return path

    def _resolve_endpoints(self, cspace: np.ndarray, start: Ordinate, goal: Ordinate) -> Optional[Tuple[Vertex, Vertex]]:
        # 两个端点都已是顶点时直接复用，不再检查可通行性
        if not self.exists_as_vertex(start) or not self.exists_as_vertex(goal):
            if not self.oracle_.ordinate_accessible(cspace, start):
                logger.warning(f"起点不可达: {start} -> 栅格 {self.oracle_.to_cell(start)}")
                return None
            if not self.oracle_.ordinate_accessible(cspace, goal):
                logger.warning(f"终点不可达: {goal} -> 栅格 {self.oracle_.to_cell(goal)}")
                return None

        return self.find_or_add(start), self.find_or_add(goal)

    def build(self, grid: np.ndarray, start: Ordinate, goal: Ordinate) -> List[Ordinate]:
        """
        在 grid 中构建/查询从 start 到 goal 的路径

        流程：
            1. 膨胀配置空间
            2. 新端点必须可通行
            3. 端点加入路网
            4. 已有路网能连通则直接返回
            5. 端点直接连接已有顶点后再查询
            6. 随机采样扩展路网，直到连通或采样预算耗尽

        Args:
            grid: 占用栅格（CellState 编码）
            start: 起点世界坐标，通常是机器人位置
            goal: 终点世界坐标

        Returns:
            从 start 到 goal 的坐标序列，没有找到路径时返回 []
        """
        start = _as_ordinate(start)
        goal = _as_ordinate(goal)
        cspace = self.expand_config_space(grid)

        endpoints = self._resolve_endpoints(cspace, start, goal)
        if endpoints is None:
            return []
        v_start, v_goal = endpoints

        # 已有路网是否已经连通
        v_path = self.graph_.shortest_path(v_start, v_goal)
        if v_path:
            logger.debug(f"路网已连通 {start} -> {goal}，直接返回")
            return self._finish(cspace, v_path)

        # 尝试直接把端点接入路网
        self.connect_to_existing(cspace, v_start)
        self.connect_to_existing(cspace, v_goal)
        v_path = self.graph_.shortest_path(v_start, v_goal)
        if v_path:
            logger.info(f"端点接入路网后找到路径: 顶点数={len(v_path)}")
            return self._finish(cspace, v_path)

        v_path = self._grow_roadmap(cspace, v_start, v_goal)
        if not v_path:
            return []
        return self._finish(cspace, v_path)

    def _grow_roadmap(self, cspace: np.ndarray, v_start: Vertex, v_goal: Vertex) -> List[Vertex]:
        """随机采样扩展路网，直到 start 与 goal 连通或采样次数用完"""
        half = self.oracle_.map_size / 2.0
        ref_x, ref_y = self.oracle_.reference
        blocked = 0
        crowded = 0

        for attempt in range(1, self.max_samples_ + 1):
            x = round(float(self._rng.uniform(ref_x - half, ref_x + half)), self.sample_decimals_)
            y = round(float(self._rng.uniform(ref_y - half, ref_y + half)), self.sample_decimals_)
            sample = (x, y)

            # 只保留可通行的采样点
            if not self.oracle_.ordinate_accessible(cspace, sample):
                blocked += 1
                continue

            # 低离散度：与已有顶点距离过近的采样点丢弃
            if self.min_separation_ > 0 and self.violating_space(sample, self.min_separation_):
                crowded += 1
                continue

            v = self.find_or_add(sample)
            self.connect_to_existing(cspace, v)

            v_path = self.graph_.shortest_path(v_start, v_goal)
            if v_path:
                logger.info(
                    f"路网扩展找到路径: 采样次数={attempt}, 顶点数={len(v_path)}, "
                    f"路网规模={self.vertex_count}"
                )
                return v_path

        logger.warning(
            f"采样预算耗尽仍未找到路径: 采样次数={self.max_samples_}, "
            f"障碍丢弃={blocked}, 间距丢弃={crowded}, 路网规模={self.vertex_count}"
        )
        return []

    def query(self, grid: np.ndarray, start: Ordinate, goal: Ordinate) -> List[Ordinate]:
        """
        只用已有路网查询路径，不做随机扩展

        新端点会通过 embed_node 接入最近的可达邻居。

        Returns:
            路径坐标序列，没有找到时返回 []
        """
        start = _as_ordinate(start)
        goal = _as_ordinate(goal)
        cspace = self.expand_config_space(grid)

        endpoints = self._resolve_endpoints(cspace, start, goal)
        if endpoints is None:
            return []
        v_start, v_goal = endpoints

        v_path = self.graph_.shortest_path(v_start, v_goal)
        if not v_path:
            k = self.graph_.max_density
            self.embed_node(cspace, v_start, k, retry=True)
            self.embed_node(cspace, v_goal, k, retry=True)
            v_path = self.graph_.shortest_path(v_start, v_goal)

        if not v_path:
            logger.info(f"已有路网中没有 {start} -> {goal} 的路径")
            return []
        return self._finish(cspace, v_path)

    # ---------------- 可视化辅助 ----------------
    def roadmap_edges(self) -> List[Tuple[Ordinate, Ordinate]]:
        """
        路网的所有无向边（每条只出现一次）

        没有邻居的顶点与自身配对。
        """
        edges = [(self._network[u], self._network[v]) for u, v, _ in self.graph_.edges()]
        for v, ordinate in self._network.items():
            if self.graph_.degree(v) == 0:
                edges.append((ordinate, ordinate))
        return edges
