#!/usr/bin/env python3
# -*- coding: utf-8 -*-
"""
路网模块

提供图结构、空间查询和 PRM 路网构建。
"""

from .graph import Graph
from .spatial_oracle import SpatialOracle, CellState
from .roadmap_builder import RoadmapBuilder
from .grid_io import grid_from_image, load_grid

__all__ = [
    'Graph',
    'SpatialOracle',
    'CellState',
    'RoadmapBuilder',
    'grid_from_image',
    'load_grid',
]
