#!/usr/bin/env python3
# -*- coding: utf-8 -*-
"""
规划服务模块
"""

from .world_buffer import WorldDataBuffer
from .goal_slot import GoalSlot
from .planner_service import PlannerService

__all__ = ['WorldDataBuffer', 'GoalSlot', 'PlannerService']
