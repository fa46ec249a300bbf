#!/usr/bin/env python3
# -*- coding: utf-8 -*-
"""
规划器配置模型

使用Pydantic定义类型安全的配置模型，所有字段都有默认值，
YAML 中只需要写出需要覆盖的部分。
"""

from typing import Optional
from pydantic import BaseModel, Field, field_validator, AliasChoices

from prm_nav.common.constants import (
    DEFAULT_MAP_SIZE,
    DEFAULT_RESOLUTION,
    DEFAULT_ROBOT_DIAMETER,
    DEFAULT_MAX_DENSITY,
    DEFAULT_MAX_DISTANCE,
    DEFAULT_MAX_SAMPLES,
    DEFAULT_SAMPLE_DECIMALS,
    DEFAULT_MIN_SEPARATION,
    DEFAULT_MAX_BUILD_ATTEMPTS,
)


class MapConfig(BaseModel):
    """地图配置"""
    map_size: float = Field(
        DEFAULT_MAP_SIZE,
        description="地图边长（米），仅支持正方形地图",
        validation_alias=AliasChoices("map_size", "size"),
    )
    resolution: float = Field(DEFAULT_RESOLUTION, description="栅格分辨率（米/格）")

    @field_validator('map_size', 'resolution')
    @classmethod
    def validate_positive_float(cls, v: float) -> float:
        """验证正浮点数"""
        if v <= 0:
            raise ValueError(f"值必须大于0: {v}")
        return v


class RobotConfig(BaseModel):
    """机器人配置"""
    diameter: float = Field(
        DEFAULT_ROBOT_DIAMETER,
        description="机器人直径（米），用于膨胀配置空间",
        validation_alias=AliasChoices("diameter", "robot_diameter"),
    )

    @field_validator('diameter')
    @classmethod
    def validate_diameter(cls, v: float) -> float:
        """验证机器人直径"""
        if v < 0:
            raise ValueError(f"机器人直径不能为负数: {v}")
        return v


class RoadmapConfig(BaseModel):
    """路网（PRM）配置"""
    max_density: int = Field(
        DEFAULT_MAX_DENSITY,
        description="每个顶点最多的邻居数量",
        validation_alias=AliasChoices("max_density", "density"),
    )
    max_distance: float = Field(DEFAULT_MAX_DISTANCE, description="最大边长（米）")
    max_samples: int = Field(DEFAULT_MAX_SAMPLES, description="随机扩展阶段的采样上限")
    min_separation: float = Field(
        DEFAULT_MIN_SEPARATION,
        description="低离散度采样半径（米），新采样点与已有顶点的最小间距，0 表示关闭",
    )
    sample_decimals: int = Field(DEFAULT_SAMPLE_DECIMALS, description="随机采样坐标保留的小数位数")
    optimise_path: bool = Field(True, description="是否对找到的路径做捷径优化")
    seed: Optional[int] = Field(None, description="随机种子（None 表示不固定）")

    @field_validator('max_density', 'max_samples')
    @classmethod
    def validate_positive_int(cls, v: int) -> int:
        """验证正整数"""
        if v <= 0:
            raise ValueError(f"值必须大于0: {v}")
        return v

    @field_validator('max_distance')
    @classmethod
    def validate_max_distance(cls, v: float) -> float:
        """验证最大边长"""
        if v <= 0:
            raise ValueError(f"最大边长必须大于0: {v}")
        return v

    @field_validator('min_separation')
    @classmethod
    def validate_min_separation(cls, v: float) -> float:
        """验证低离散度半径"""
        if v < 0:
            raise ValueError(f"低离散度半径不能为负数: {v}")
        return v

    @field_validator('sample_decimals')
    @classmethod
    def validate_sample_decimals(cls, v: int) -> int:
        if not 0 <= v <= 6:
            raise ValueError(f"小数位数必须在0-6之间: {v}")
        return v


class ServiceConfig(BaseModel):
    """规划服务配置"""
    max_build_attempts: int = Field(DEFAULT_MAX_BUILD_ATTEMPTS, description="build 失败后的总尝试次数")
    wait_timeout_s: float = Field(0.5, description="等待目标/世界数据时的轮询超时（秒）")
    publish_overlay: bool = Field(True, description="是否发布路网叠加图")

    @field_validator('max_build_attempts')
    @classmethod
    def validate_max_build_attempts(cls, v: int) -> int:
        """验证尝试次数"""
        if v <= 0:
            raise ValueError(f"尝试次数必须大于0: {v}")
        return v

    @field_validator('wait_timeout_s')
    @classmethod
    def validate_wait_timeout(cls, v: float) -> float:
        """验证等待超时"""
        if v <= 0:
            raise ValueError(f"等待超时必须大于0: {v}")
        return v


class LoggingConfig(BaseModel):
    """日志配置"""
    level: str = Field("INFO", description="日志级别")
    log_dir: Optional[str] = Field(None, description="日志目录（None 表示只输出到控制台）")

    @field_validator('level')
    @classmethod
    def validate_level(cls, v: str) -> str:
        """验证日志级别"""
        level = v.upper()
        if level not in ['TRACE', 'DEBUG', 'INFO', 'SUCCESS', 'WARNING', 'ERROR', 'CRITICAL']:
            raise ValueError(f"未知的日志级别: {v}")
        return level


class PlannerConfig(BaseModel):
    """规划器主配置"""
    map: MapConfig = Field(default_factory=MapConfig, description="地图配置")
    robot: RobotConfig = Field(default_factory=RobotConfig, description="机器人配置")
    roadmap: RoadmapConfig = Field(default_factory=RoadmapConfig, description="路网配置")
    service: ServiceConfig = Field(default_factory=ServiceConfig, description="规划服务配置")
    logging: LoggingConfig = Field(default_factory=LoggingConfig, description="日志配置")
