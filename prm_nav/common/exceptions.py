#!/usr/bin/env python3
# -*- coding: utf-8 -*-
"""
自定义异常类：定义路径规划模块的专用异常

注意：规划失败（终点不可达、采样预算耗尽）不是异常，统一用空路径表示。
这里只定义真正的编程错误/输入格式错误。
"""


class PlannerError(Exception):
    """规划模块基础异常类"""
    pass


class RoadmapInvariantError(PlannerError):
    """路网不变量被破坏（例如顶点ID冲突），属于致命错误"""
    pass


class GridFormatError(PlannerError, ValueError):
    """栅格地图格式错误（非二维、非正方形或尺寸不匹配）"""
    pass


class ConfigurationError(PlannerError):
    """配置错误异常"""
    pass
