#!/usr/bin/env python3
# -*- coding: utf-8 -*-
"""
prm_nav：基于低离散度 PRM 的机器人路径规划

提供路网构建、路径查询和规划服务。
"""

from .roadmap import Graph, SpatialOracle, CellState, RoadmapBuilder
from .service import PlannerService

__version__ = "0.1.0"

__all__ = ['Graph', 'SpatialOracle', 'CellState', 'RoadmapBuilder', 'PlannerService']
