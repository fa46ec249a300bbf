#!/usr/bin/env python3
# -*- coding: utf-8 -*-
"""
公共模块：异常和常量
"""

from .exceptions import (
    PlannerError,
    RoadmapInvariantError,
    GridFormatError,
    ConfigurationError,
)

__all__ = [
    'PlannerError',
    'RoadmapInvariantError',
    'GridFormatError',
    'ConfigurationError',
]
