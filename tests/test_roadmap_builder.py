#!/usr/bin/env python3
# -*- coding: utf-8 -*-
"""
路网构建测试
"""

import itertools
import math
from unittest.mock import patch

import numpy as np
import pytest

from prm_nav.common.constants import DEFAULT_MIN_SEPARATION
from prm_nav.common.exceptions import GridFormatError, RoadmapInvariantError
from prm_nav.config import PlannerConfig
from prm_nav.roadmap.roadmap_builder import RoadmapBuilder
from prm_nav.roadmap.spatial_oracle import CellState


def make_builder(**kwargs) -> RoadmapBuilder:
    params = dict(map_size=20.0, resolution=0.1, robot_diameter=0.2, seed=42)
    params.update(kwargs)
    return RoadmapBuilder(**params)


def assert_path_clear(builder: RoadmapBuilder, grid: np.ndarray, path):
    cspace = builder.expand_config_space(grid)
    cells = builder.to_cell_path(path)
    for a, b in zip(cells, cells[1:]):
        assert builder.oracle.can_connect(cspace, a, b), f"{a} -> {b} 被阻挡"


# ---------------- 顶点表 ----------------
def test_find_or_add_is_idempotent():
    builder = make_builder()
    v0 = builder.find_or_add((1.0, 2.0))
    assert builder.find_or_add([1.0, 2.0]) == v0
    assert builder.find_or_add((2.0, 1.0)) == v0 + 1
    assert builder.vertex_count == 2
    assert builder.graph.has_vertex(v0)


def test_lookup_requires_exact_match():
    builder = make_builder()
    v = builder.find_or_add((1.0, 2.0))
    assert builder.lookup((1.0, 2.0)) == v
    assert builder.lookup((1.0, 2.0000001)) is None
    assert builder.exists_as_vertex((1.0, 2.0))
    assert not builder.exists_as_vertex((2.0, 1.0))


def test_vertex_ids_are_never_reused():
    builder = make_builder()
    ids = [builder.find_or_add((float(i), 0.0)) for i in range(5)]
    assert ids == sorted(ids)
    assert len(set(ids)) == 5


def test_find_or_add_detects_id_collision():
    builder = make_builder()
    builder.graph.add_vertex(0)
    with pytest.raises(RoadmapInvariantError):
        builder.find_or_add((0.0, 0.0))


def test_violating_space():
    builder = make_builder()
    assert not builder.violating_space((0.0, 0.0), 1.0)
    builder.find_or_add((0.0, 0.0))
    assert builder.violating_space((0.5, 0.0), 1.0)
    # 距离正好等于 r 不算违规
    assert not builder.violating_space((1.0, 0.0), 1.0)


def test_prioritise_nodes_orders_by_degree():
    builder = make_builder()
    a = builder.find_or_add((0.0, 0.0))
    b = builder.find_or_add((1.0, 0.0))
    c = builder.find_or_add((2.0, 0.0))
    builder.graph.add_edge(a, b, 1.0)
    assert builder.prioritise_nodes() == [c, a, b]


# ---------------- 连接 ----------------
def test_connect_to_existing_respects_max_distance(free_grid):
    builder = make_builder()
    node = builder.find_or_add((0.0, 0.0))
    near = builder.find_or_add((2.0, 0.0))
    far = builder.find_or_add((3.0, 0.0))

    assert builder.connect_to_existing(free_grid, node) == 1
    assert builder.graph.has_edge(node, near)
    assert not builder.graph.has_edge(node, far)
    assert builder.graph.neighbors(node)[near] == pytest.approx(2.0)


def test_connect_to_existing_respects_line_of_sight(free_grid):
    free_grid[:, 105] = CellState.OCCUPIED
    builder = make_builder()
    node = builder.find_or_add((0.0, 0.0))
    builder.find_or_add((1.0, 0.0))

    assert builder.connect_to_existing(free_grid, node) == 0
    assert builder.graph.degree(node) == 0


def test_connect_to_existing_respects_max_density(free_grid):
    builder = make_builder(max_density=2)
    node = builder.find_or_add((0.0, 0.0))
    for i in range(1, 5):
        builder.find_or_add((0.3 * i, 0.3))

    assert builder.connect_to_existing(free_grid, node) == 2
    assert builder.graph.degree(node) == 2


def test_get_neighbours_sorted_by_distance(free_grid):
    builder = make_builder()
    v0 = builder.find_or_add((0.0, 0.0))
    v3 = builder.find_or_add((3.0, 0.0))
    v1 = builder.find_or_add((1.0, 0.0))
    v2 = builder.find_or_add((2.0, 0.0))

    assert builder.get_neighbours(free_grid, v0) == [v1, v2, v3]

    free_grid[:, 115] = CellState.OCCUPIED
    assert builder.get_neighbours(free_grid, v0, should_connect=True) == [v1]


def test_embed_node_retry_reaches_further_candidates(free_grid):
    builder = make_builder(max_density=1)
    n = builder.find_or_add((0.0, 0.0))
    a = builder.find_or_add((0.5, 0.0))
    b = builder.find_or_add((1.0, 0.0))
    c = builder.find_or_add((1.5, 0.0))
    assert builder.graph.add_edge(a, b, 0.5)

    # 最近的候选已满，不重试时放弃
    assert builder.embed_node(free_grid, n, k=1, retry=False) == 0
    assert builder.graph.degree(n) == 0

    assert builder.embed_node(free_grid, n, k=1, retry=True) == 1
    assert builder.graph.has_edge(n, c)


def test_join_network_connects_isolated_vertices(free_grid):
    builder = make_builder()
    vs = [builder.find_or_add((float(i), 0.0)) for i in range(4)]

    assert builder.join_network(free_grid, k=2) > 0
    for v in vs:
        assert builder.graph.degree(v) >= 1
    assert builder.graph.shortest_path(vs[0], vs[-1])


# ---------------- 路径优化 ----------------
def test_optimise_path_removes_zigzag(free_grid):
    builder = make_builder()
    path = [(0.0, 0.0), (0.5, 0.5), (1.0, 0.0), (1.5, 0.5), (2.0, 0.0)]
    assert builder.optimise_path(free_grid, path) == [(0.0, 0.0), (2.0, 0.0)]


def test_optimise_path_keeps_corner_around_obstacle(free_grid):
    free_grid[98:103, 108:113] = CellState.OCCUPIED
    builder = make_builder()
    path = [(0.0, 0.0), (0.0, 1.0), (2.0, 1.0), (2.0, 0.0)]

    assert builder.optimise_path(free_grid, path) == [(0.0, 0.0), (2.0, 1.0), (2.0, 0.0)]


@pytest.mark.parametrize("path", [[], [(1.0, 1.0)], [(0.0, 0.0), (1.0, 0.0)]])
def test_optimise_short_paths_unchanged(free_grid, path):
    builder = make_builder()
    assert builder.optimise_path(free_grid, path) == path


# ---------------- build ----------------
def test_build_open_space(free_grid):
    builder = make_builder()
    path = builder.build(free_grid, (-5.0, -5.0), (5.0, 5.0))

    assert path
    assert path[0] == (-5.0, -5.0)
    assert path[-1] == (5.0, 5.0)
    assert_path_clear(builder, free_grid, path)


def test_build_keeps_graph_invariants(free_grid):
    builder = make_builder(optimise=False, seed=7)
    assert builder.build(free_grid, (-5.0, -5.0), (5.0, 5.0))

    graph = builder.graph
    for v in graph.vertices():
        assert graph.degree(v) <= graph.max_density
    for u, v, w in graph.edges():
        assert w <= graph.max_distance
        assert w == pytest.approx(builder.distance(builder.ordinate_of(u), builder.ordinate_of(v)))
        assert graph.neighbors(v)[u] == w


def path_length(path) -> float:
    return sum(math.hypot(b[0] - a[0], b[1] - a[1]) for a, b in zip(path, path[1:]))


def test_build_around_obstacle_without_shortcuts(block_grid):
    builder = make_builder(optimise=False, seed=3)
    path = builder.build(block_grid, (-5.0, 0.0), (5.0, 0.0))

    assert path
    assert path[0] == (-5.0, 0.0) and path[-1] == (5.0, 0.0)
    assert_path_clear(builder, block_grid, path)


def test_optimise_found_path_keeps_endpoints_and_clearance(block_grid):
    builder = make_builder(optimise=False, seed=3)
    path = builder.build(block_grid, (-5.0, 0.0), (5.0, 0.0))
    assert path

    cspace = builder.expand_config_space(block_grid)
    short = builder.optimise_path(cspace, path)

    assert short[0] == path[0] and short[-1] == path[-1]
    assert len(short) <= len(path)
    assert path_length(short) <= path_length(path) + 1e-9
    assert set(short) <= set(path)
    assert_path_clear(builder, block_grid, short)
    # 中心障碍挡住直线，至少要绕一个拐点
    assert len(short) >= 3


def test_build_same_start_and_goal(free_grid):
    builder = make_builder()
    assert builder.build(free_grid, (1.0, 1.0), (1.0, 1.0)) == [(1.0, 1.0)]
    assert builder.vertex_count == 1


def test_build_rejects_blocked_goal(block_grid):
    builder = make_builder()
    assert builder.build(block_grid, (-5.0, 0.0), (0.0, 0.0)) == []
    assert builder.vertex_count == 0


def test_build_rejects_goal_outside_map(free_grid):
    builder = make_builder()
    assert builder.build(free_grid, (0.0, 0.0), (15.0, 0.0)) == []
    assert builder.vertex_count == 0


def test_build_reuses_existing_roadmap(free_grid):
    builder = make_builder()
    first = builder.build(free_grid, (0.0, 0.0), (1.0, 0.0))
    assert first == [(0.0, 0.0), (1.0, 0.0)]
    count = builder.vertex_count

    with patch.object(builder, "_grow_roadmap", side_effect=AssertionError("不应再采样")), \
            patch.object(builder, "connect_to_existing", side_effect=AssertionError("不应再连接")):
        assert builder.build(free_grid, (0.0, 0.0), (1.0, 0.0)) == first

    assert builder.vertex_count == count


def test_build_gives_up_after_max_samples(wall_grid):
    builder = make_builder(max_samples=50)
    assert builder.build(wall_grid, (-5.0, 0.0), (5.0, 0.0)) == []
    assert builder.vertex_count <= 52


def test_build_min_separation_spreads_samples(wall_grid):
    builder = make_builder(max_samples=200, min_separation=1.0)
    assert builder.build(wall_grid, (-5.0, 0.0), (5.0, 0.0)) == []

    ordinates = list(builder.vertices.values())
    assert len(ordinates) > 2
    for a, b in itertools.combinations(ordinates, 2):
        assert math.hypot(a[0] - b[0], a[1] - b[1]) >= 1.0


def test_default_build_keeps_samples_apart(wall_grid):
    config = PlannerConfig()
    config.roadmap.seed = 1
    config.roadmap.max_samples = 300
    builder = RoadmapBuilder.from_config(config)
    assert builder.min_separation_ == DEFAULT_MIN_SEPARATION > 0

    assert builder.build(wall_grid, (-5.0, 0.0), (5.0, 0.0)) == []

    ordinates = list(builder.vertices.values())
    assert len(ordinates) > 2
    for a, b in itertools.combinations(ordinates, 2):
        assert math.hypot(a[0] - b[0], a[1] - b[1]) >= DEFAULT_MIN_SEPARATION


def test_build_samples_inside_reference_square(wall_grid):
    builder = make_builder(max_samples=100)
    builder.set_reference((50.0, 50.0))
    assert builder.build(wall_grid, (45.0, 50.0), (55.0, 50.0)) == []

    for x, y in builder.vertices.values():
        assert 40.0 <= x <= 60.0
        assert 40.0 <= y <= 60.0
        assert round(x, 1) == x and round(y, 1) == y


def test_build_rejects_wrong_grid_size():
    builder = make_builder()
    with pytest.raises(GridFormatError):
        builder.build(np.zeros((100, 100), dtype=np.uint8), (0.0, 0.0), (1.0, 0.0))


def test_expand_config_space_is_cached(block_grid):
    builder = make_builder()
    first = builder.expand_config_space(block_grid)
    with patch.object(builder.oracle, "expand_config_space", side_effect=AssertionError("重复膨胀")):
        second = builder.expand_config_space(block_grid)
    assert second is first


def test_resolution_change_invalidates_cache(free_grid):
    builder = make_builder()
    builder.expand_config_space(free_grid)
    builder.set_resolution(0.2)
    with pytest.raises(GridFormatError):
        builder.expand_config_space(free_grid)


# ---------------- query ----------------
def test_query_uses_existing_roadmap_only(free_grid):
    builder = make_builder()
    with patch.object(builder, "_grow_roadmap", side_effect=AssertionError("query 不应采样")):
        assert builder.query(free_grid, (-5.0, 0.0), (5.0, 0.0)) == []
    assert builder.vertex_count == 2


def test_query_embeds_new_endpoint(free_grid):
    builder = make_builder()
    assert builder.build(free_grid, (0.0, 0.0), (1.0, 0.0))

    path = builder.query(free_grid, (0.5, 0.5), (1.0, 0.0))
    assert path == [(0.5, 0.5), (1.0, 0.0)]


def test_roadmap_edges_include_isolated_vertices():
    builder = make_builder()
    a = builder.find_or_add((0.0, 0.0))
    b = builder.find_or_add((1.0, 0.0))
    builder.find_or_add((5.0, 5.0))
    builder.graph.add_edge(a, b, 1.0)

    assert builder.roadmap_edges() == [((0.0, 0.0), (1.0, 0.0)), ((5.0, 5.0), (5.0, 5.0))]
