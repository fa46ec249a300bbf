#!/usr/bin/env python3
# -*- coding: utf-8 -*-
"""
配置加载器

从YAML文件加载配置并使用Pydantic验证。
"""

import yaml
from pathlib import Path
from typing import Optional, Any, Dict
from loguru import logger
from pydantic import ValidationError

from prm_nav.common.exceptions import ConfigurationError
from prm_nav.config.models import PlannerConfig


def load_config(config_path: Optional[Path] = None) -> PlannerConfig:
    """
    从YAML文件加载配置

    Args:
        config_path: 配置文件路径，None 时返回全部默认值

    Returns:
        验证后的PlannerConfig对象

    Raises:
        FileNotFoundError: 配置文件不存在
        ConfigurationError: YAML格式错误或配置验证失败
    """
    if config_path is None:
        logger.info("未指定配置文件，使用默认配置")
        return PlannerConfig()

    config_path = Path(config_path)

    # 检查文件是否存在
    if not config_path.exists():
        error_msg = f"配置文件不存在: {config_path}"
        logger.error(error_msg)
        raise FileNotFoundError(error_msg)

    # 加载YAML文件
    try:
        with open(config_path, 'r', encoding='utf-8') as f:
            raw_config = yaml.safe_load(f)
    except yaml.YAMLError as e:
        error_msg = f"YAML格式错误: {e}"
        logger.error(error_msg)
        raise ConfigurationError(error_msg) from e

    # 空文件视为全部默认值
    if raw_config is None:
        logger.warning(f"配置文件为空，使用默认配置: {config_path}")
        raw_config = {}

    if not isinstance(raw_config, dict):
        error_msg = f"配置文件顶层必须是字典: {config_path}"
        logger.error(error_msg)
        raise ConfigurationError(error_msg)

    return parse_config(raw_config, source=str(config_path))


def parse_config(raw_config: Dict[str, Any], source: str = "<dict>") -> PlannerConfig:
    """
    使用Pydantic验证原始配置字典

    Args:
        raw_config: 原始配置
        source: 配置来源（仅用于日志）

    Returns:
        验证后的PlannerConfig对象
    """
    try:
        config = PlannerConfig(**raw_config)
    except ValidationError as e:
        logger.error(f"配置验证失败: {source}")
        # 输出详细的验证错误信息
        for error in e.errors():
            field_path = " -> ".join(str(loc) for loc in error['loc'])
            logger.error(f"  {field_path}: {error['msg']}")
        raise ConfigurationError(f"配置验证失败:\n{e}") from e

    logger.info(f"配置加载成功: {source}")
    return config
