#!/usr/bin/env python3
# -*- coding: utf-8 -*-
"""
规划器命令行入口

加载占用图，从 start 规划到 goal，打印路径点，可选保存路网叠加图。

示例:
    prm-nav --map lab.png --start -5 -5 --goal 5 5 --overlay prm.png
"""

import argparse
import sys
from pathlib import Path
from typing import List, Optional

import cv2
from loguru import logger

from prm_nav.config.loader import load_config
from prm_nav.roadmap.grid_io import load_grid
from prm_nav.service.planner_service import PlannerService
from prm_nav.service.world_buffer import WorldDataBuffer
from prm_nav.ui.overlay import draw_overlay
from prm_nav.utils.logger import setup_logger


def parse_args(argv: Optional[List[str]] = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="低离散度 PRM 路径规划")
    parser.add_argument("--map", required=True, type=Path, help="占用图（灰度，白色=可通行）")
    parser.add_argument("--start", required=True, nargs=2, type=float, metavar=("X", "Y"), help="起点（米）")
    parser.add_argument("--goal", required=True, nargs=2, type=float, metavar=("X", "Y"), help="终点（米）")
    parser.add_argument("--reference", nargs=2, type=float, metavar=("X", "Y"),
                        help="地图中心对应的世界坐标，默认与起点相同")
    parser.add_argument("--config", type=Path, default=None, help="YAML 配置文件")
    parser.add_argument("--overlay", type=Path, default=None, help="保存路网叠加图的路径")
    parser.add_argument("--seed", type=int, default=None, help="随机种子（覆盖配置）")
    return parser.parse_args(argv)


def main(argv: Optional[List[str]] = None) -> int:
    args = parse_args(argv)

    config = load_config(args.config)
    if args.seed is not None:
        config.roadmap.seed = args.seed
    setup_logger(config.logging.log_dir, config.logging.level)

    grid = load_grid(args.map)
    start = tuple(args.start)
    goal = tuple(args.goal)

    service = PlannerService(config, WorldDataBuffer(), publish_path=lambda path: None)
    reference = tuple(args.reference) if args.reference is not None else None
    path = service.plan_once(grid, start, goal, reference=reference)

    if args.overlay is not None:
        cv2.imwrite(str(args.overlay), draw_overlay(grid, service.builder, path))
        logger.info(f"路网叠加图已保存: {args.overlay}")

    if not path:
        print("no path")
        return 1

    for x, y in path:
        print(f"{x:.3f} {y:.3f}")
    return 0


if __name__ == "__main__":
    sys.exit(main())
