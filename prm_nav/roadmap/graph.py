#!/usr/bin/env python3
# -*- coding: utf-8 -*-
"""
路网图模块：带度数上限的无向加权图 + Dijkstra 最短路径

顶点用整数ID表示，边权为两个顶点之间的欧氏距离（米）。
加边失败（度数已满、边过长）是正常结果，返回 False，不抛异常。
"""

# 标准库导入
from typing import Dict, List, Tuple, Iterator
import heapq

# 第三方库导入
from loguru import logger

from prm_nav.common.constants import DEFAULT_MAX_DENSITY, DEFAULT_MAX_DISTANCE

Vertex = int
Edge = Tuple[Vertex, Vertex, float]


class Graph:
    """
    有界度数的无向加权图

    不变量：
        - 每个顶点的度数 <= max_density
        - 每条边的权重 <= max_distance
        - 边是对称的：edge(u, v) 存在当且仅当 edge(v, u) 存在，且权重相同

    示例:
        ```python
        graph = Graph(max_density=5, max_distance=2.5)
        graph.add_vertex(0)
        graph.add_vertex(1)
        graph.add_edge(0, 1, 1.2)
        path = graph.shortest_path(0, 1)  # [0, 1]
        ```
    """

    def __init__(self, max_density: int = DEFAULT_MAX_DENSITY, max_distance: float = DEFAULT_MAX_DISTANCE):
        """
        初始化路网图

        Args:
            max_density: 每个顶点最多的邻居数量
            max_distance: 允许的最大边长（米）

        Raises:
            ValueError: 输入参数无效
        """
        if not isinstance(max_density, int) or max_density <= 0:
            raise ValueError(f"max_density必须是正整数: {max_density}")
        if max_distance <= 0:
            raise ValueError(f"max_distance必须大于0: {max_distance}")

        self.max_density_ = max_density
        self.max_distance_ = float(max_distance)

        # 邻接表：vertex -> {neighbour: weight}
        self._adjacency: Dict[Vertex, Dict[Vertex, float]] = {}

    @property
    def max_density(self) -> int:
        return self.max_density_

    @property
    def max_distance(self) -> float:
        return self.max_distance_

    def __len__(self) -> int:
        return len(self._adjacency)

    def __contains__(self, v: Vertex) -> bool:
        return v in self._adjacency

    def has_vertex(self, v: Vertex) -> bool:
        return v in self._adjacency

    def has_edge(self, u: Vertex, v: Vertex) -> bool:
        return u in self._adjacency and v in self._adjacency[u]

    def vertices(self) -> List[Vertex]:
        return list(self._adjacency.keys())

    def degree(self, v: Vertex) -> int:
        """返回顶点的度数，顶点不存在时返回 0"""
        return len(self._adjacency.get(v, {}))

    def add_vertex(self, v: Vertex) -> bool:
        """
        添加一个孤立顶点

        Returns:
            是否添加成功（顶点已存在时返回 False，图不变）
        """
        if v in self._adjacency:
            return False
        self._adjacency[v] = {}
        return True

    def add_edge(self, u: Vertex, v: Vertex, weight: float) -> bool:
        """
        添加无向边

        只有在两个顶点都存在、u != v、权重不超过 max_distance、
        且两个端点的度数都未达到 max_density 时才会添加。

        Returns:
            是否添加成功
        """
        if u == v:
            return False
        if u not in self._adjacency or v not in self._adjacency:
            return False
        if weight < 0 or weight > self.max_distance_:
            return False
        if v in self._adjacency[u]:
            return False
        if len(self._adjacency[u]) >= self.max_density_ or len(self._adjacency[v]) >= self.max_density_:
            return False

        self._adjacency[u][v] = weight
        self._adjacency[v][u] = weight
        return True

    def neighbors(self, v: Vertex) -> Dict[Vertex, float]:
        """返回顶点的邻居及边权（副本），顶点不存在时返回空字典"""
        return dict(self._adjacency.get(v, {}))

    def edges(self) -> Iterator[Edge]:
        """遍历所有无向边，每条边只出现一次 (u, v, w)，u < v"""
        for u, nbrs in self._adjacency.items():
            for v, w in nbrs.items():
                if u < v:
                    yield (u, v, w)

    def container(self) -> Dict[Vertex, Dict[Vertex, float]]:
        """返回邻接表的只读快照"""
        return {v: dict(nbrs) for v, nbrs in self._adjacency.items()}

    def shortest_path(self, start: Vertex, goal: Vertex) -> List[Vertex]:
        """
        Dijkstra 最短路径

        Args:
            start: 起点顶点
            goal: 终点顶点

        Returns:
            顶点序列（包含起点和终点），顶点不存在或不连通时返回 []
        """
        if start not in self._adjacency or goal not in self._adjacency:
            return []
        if start == goal:
            return [start]

        # 优先队列：(距离, 顶点)
        open_heap: List[Tuple[float, Vertex]] = [(0.0, start)]
        dist: Dict[Vertex, float] = {start: 0.0}
        came_from: Dict[Vertex, Vertex] = {}
        visited = set()

        while open_heap:
            current_dist, current = heapq.heappop(open_heap)
            if current in visited:
                continue
            visited.add(current)

            if current == goal:
                # 回溯路径
                path = [goal]
                while path[-1] in came_from:
                    path.append(came_from[path[-1]])
                path.reverse()
                logger.debug(f"[Dijkstra] 找到路径: 顶点数={len(path)}, 总长度={current_dist:.2f}, 探索顶点数={len(visited)}")
                return path

            for nbr, weight in self._adjacency[current].items():
                if nbr in visited:
                    continue
                new_dist = current_dist + weight
                if nbr not in dist or new_dist < dist[nbr]:
                    dist[nbr] = new_dist
                    came_from[nbr] = current
                    heapq.heappush(open_heap, (new_dist, nbr))

        return []
