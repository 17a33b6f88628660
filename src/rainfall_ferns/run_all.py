#!/usr/bin/env python3
"""
Rainfall Ferns - Orchestrator

Load boundaries and rainfall, then either open the interactive viewer
or export one GLB frame per month of the selected year(s).

Usage:
    rainfall-ferns --boundaries data/india_subdivisions.topo.json --data data/rainfall.csv --show
    rainfall-ferns --config config.yaml --year 2010 --year 2015 --output outputs
    python -m rainfall_ferns.run_all --data https://example.org/rainfall.csv --all-years
"""

import argparse
import asyncio
import json
import logging
import sys
from datetime import datetime
from pathlib import Path
from typing import List, Optional

from .common.config import Config
from .app.controller import FernMapController
from .app.state import load_sources
from .geometry.gltf_exporter import GLTFExporter

logger = logging.getLogger(__name__)


def resolve_year_indices(controller: FernMapController, years: Optional[List[int]], all_years: bool) -> List[int]:
    """
    Map requested years to stepper indices.

    Unknown years are logged and skipped. With no request, the most
    recent year is used.
    """
    available = controller.stepper.years
    if not available:
        return []
    if all_years:
        return list(range(len(available)))
    if not years:
        return [len(available) - 1]

    indices = []
    for year in years:
        if year in available:
            indices.append(available.index(year))
        else:
            logger.warning(f"Year {year} not in data ({available[0]}-{available[-1]}), skipping")
    return indices


def export_years(
    controller: FernMapController,
    year_indices: List[int],
    output_dir: Path,
    exporter: Optional[GLTFExporter] = None
) -> List[dict]:
    """
    Export twelve monthly frames for each selected year.

    Returns:
        One summary entry per exported frame
    """
    exporter = exporter or GLTFExporter()
    frames = []
    for index in year_indices:
        year = controller.stepper.years[index]
        paths = exporter.export_frames(
            controller.year_frames(index),
            output_dir / "frames" / str(year),
            total=len(controller.stepper.months),
        )
        for month, path in zip(controller.stepper.months, paths):
            frames.append({"year": year, "month": month, "path": str(path)})
    return frames


def run_all(config: Config, years: Optional[List[int]] = None, all_years: bool = False) -> dict:
    """
    Load both sources and export monthly frames.

    Args:
        config: Configuration
        years: Years to export (default: most recent)
        all_years: Export every available year

    Returns:
        Summary dictionary
    """
    summary = {
        "timestamp": datetime.now().isoformat(),
        "config": config.to_dict(),
        "frames": [],
        "unresolved": {},
        "errors": []
    }

    controller = FernMapController(config)
    result = asyncio.run(load_sources(config))
    controller.apply_load(result)

    if result.boundary_error is not None:
        summary["errors"].append({"stage": "boundaries", "error": str(result.boundary_error)})
    if result.data_error is not None:
        summary["errors"].append({"stage": "rainfall", "error": str(result.data_error)})

    no_anchor, no_data = controller.resolution_misses()
    summary["unresolved"] = {
        "no_anchor": no_anchor,
        "no_data": no_data,
        "duplicate_keys": [region for region, _ in controller.table_key_collisions()],
    }

    year_indices = resolve_year_indices(controller, years, all_years)
    if not year_indices:
        logger.warning("No years to export")
        # A map without rainfall still gets one frame
        summary["frames"] = [{
            "year": None,
            "month": controller.stepper.month,
            "path": str(GLTFExporter().export(controller.compose(), config.output_dir / "frames" / "map.glb")),
        }]
        return summary

    try:
        summary["frames"] = export_years(controller, year_indices, config.output_dir)
    except OSError as e:
        logger.error(f"Export failed: {e}")
        summary["errors"].append({"stage": "export", "error": str(e)})

    return summary


def main():
    parser = argparse.ArgumentParser(
        description="Rainfall Ferns - animated rainfall map with fractal ferns"
    )
    parser.add_argument(
        "--config", "-c",
        type=Path,
        help="JSON or YAML config file"
    )
    parser.add_argument(
        "--boundaries", "-b",
        help="Boundary document (TopoJSON/GeoJSON), path or URL"
    )
    parser.add_argument(
        "--data", "-d",
        help="Rainfall table (delimited text), path or URL"
    )
    parser.add_argument(
        "--year", "-y",
        type=int,
        action="append",
        help="Year to export (repeatable; default: most recent)"
    )
    parser.add_argument(
        "--all-years",
        action="store_true",
        help="Export every available year"
    )
    parser.add_argument(
        "--width",
        type=int,
        help="Viewport width in pixels"
    )
    parser.add_argument(
        "--height",
        type=int,
        help="Viewport height in pixels"
    )
    parser.add_argument(
        "--seed",
        type=int,
        help="Random seed for fern scatter"
    )
    parser.add_argument(
        "--output", "-o",
        type=Path,
        help="Output directory"
    )
    parser.add_argument(
        "--show",
        action="store_true",
        help="Open the interactive viewer instead of exporting"
    )
    parser.add_argument(
        "--verbose", "-v",
        action="store_true",
        help="Verbose logging"
    )

    args = parser.parse_args()

    # Setup logging
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format='%(asctime)s - %(levelname)s - %(message)s'
    )

    # Build config
    config = Config.from_file(args.config) if args.config else Config()
    if args.boundaries:
        config.boundary_source = args.boundaries
    if args.data:
        config.data_source = args.data
    if args.width:
        config.width = args.width
    if args.height:
        config.height = args.height
    if args.seed is not None:
        config.seed = args.seed
    if args.output:
        config.output_dir = args.output

    logger.info(f"Boundaries: {config.boundary_source}")
    logger.info(f"Rainfall: {config.data_source}")

    if args.show:
        from .app.viewer import FernMapViewer

        viewer = FernMapViewer(FernMapController(config))
        viewer.show()
        return

    summary = run_all(config, years=args.year, all_years=args.all_years)

    # Save summary
    summary_path = config.output_dir / "run_summary.json"
    summary_path.parent.mkdir(parents=True, exist_ok=True)
    with open(summary_path, 'w') as f:
        json.dump(summary, f, indent=2, default=str)

    logger.info(f"Summary saved to: {summary_path}")

    n_frames = len(summary["frames"])
    n_errors = len(summary["errors"])
    logger.info(f"COMPLETE: {n_frames} frames, {n_errors} errors")

    boundary_failed = any(e["stage"] == "boundaries" for e in summary["errors"])
    if boundary_failed or n_frames == 0:
        sys.exit(1)


if __name__ == "__main__":
    main()
