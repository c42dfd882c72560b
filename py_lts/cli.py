"""Command line entry point: OSM file in, stress level and island files out."""

import argparse
import logging
import sys
import time
from contextlib import contextmanager
from pathlib import Path
from typing import List, Optional

import structlog

from .config import Settings, settings
from .core.boundary import trace_islands
from .core.errors import LTSError
from .core.islands import segment
from .core.stress import StressModel
from .io.export import write_island_files, write_level_geojson
from .io.osm import load_osm, write_level_osm

logger = structlog.get_logger()


def configure_logging(level: str = "INFO", log_format: str = "plain"):
    """Route structlog through the standard library logger."""
    logging.basicConfig(format="%(message)s", stream=sys.stderr, level=level.upper())
    renderer = (
        structlog.processors.JSONRenderer()
        if log_format == "json"
        else structlog.dev.ConsoleRenderer(colors=False)
    )
    structlog.configure(
        processors=[
            structlog.stdlib.filter_by_level,
            structlog.stdlib.add_logger_name,
            structlog.stdlib.add_log_level,
            structlog.stdlib.PositionalArgumentsFormatter(),
            structlog.processors.TimeStamper(fmt="iso"),
            renderer,
        ],
        wrapper_class=structlog.stdlib.BoundLogger,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )


def _positive_int(value: str) -> int:
    number = int(value)
    if number < 1:
        raise argparse.ArgumentTypeError(f"expected a positive integer, got {value}")
    return number


def build_parser(defaults: Settings) -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="py-lts",
        description="OSM cycling stress analyzer: writes one file per stress level "
        "and the boundaries of low-stress islands.",
    )
    parser.add_argument("-f", "--file", required=True, help="OSM XML file to analyze")
    parser.add_argument(
        "-p", "--prefix", default=defaults.output_prefix,
        help=f"Prefix for level files (default: {defaults.output_prefix})",
    )
    parser.add_argument(
        "-d", "--directory", default=".", help="Output directory (default: current directory)"
    )
    parser.add_argument(
        "--format", choices=["geojson", "osm"], default=defaults.output_format,
        help="Format of the level files",
    )
    parser.add_argument(
        "--threshold", type=_positive_int, default=defaults.passability_threshold,
        help="Highest stress level that can still be crossed",
    )
    parser.add_argument(
        "--workers", type=_positive_int, default=defaults.trace_workers,
        help="Number of islands traced in parallel",
    )
    parser.add_argument("-v", "--verbose", action="store_true", help="Log every stage")
    parser.add_argument("-t", "--timers", action="store_true", help="Log elapsed times")
    return parser


@contextmanager
def _stage(name: str, timers: bool):
    start = time.perf_counter()
    logger.debug("Stage started", stage=name)
    yield
    if timers:
        logger.info("Stage finished", stage=name, elapsed_s=round(time.perf_counter() - start, 3))


def run(args: argparse.Namespace, config: Settings) -> int:
    path = Path(args.file)
    if not path.is_file():
        logger.error("Input file does not exist", path=str(path))
        return 1

    output_dir = Path(args.directory)
    output_dir.mkdir(parents=True, exist_ok=True)
    start = time.perf_counter()

    with _stage("load", args.timers):
        network = load_osm(path)

    with _stage("stress", args.timers):
        StressModel(config.level_count).run_analysis(network)

    with _stage("islands", args.timers):
        result = segment(network.ways, network.nodes, args.threshold)
        logger.info(
            "Islands found",
            islands=result.island_count,
            size_histogram=result.size_histogram,
        )

    with _stage("level files", args.timers):
        for level in range(1, config.level_count + 1):
            if args.format == "osm":
                write_level_osm(network, level, output_dir / f"{args.prefix}{level}.osm")
            else:
                write_level_geojson(network, level, output_dir / f"{args.prefix}{level}.json")

    with _stage("island files", args.timers):
        report = trace_islands(
            result.islands,
            result.ways,
            result.nodes,
            max_points=config.trace_max_points,
            workers=args.workers,
        )
        write_island_files(result, report, output_dir, config.island_prefix)

    if args.timers or args.verbose:
        logger.info("Analysis complete", elapsed_s=round(time.perf_counter() - start, 3))
    return 0


def main(argv: Optional[List[str]] = None) -> int:
    args = build_parser(settings).parse_args(argv)
    level = "DEBUG" if args.verbose else settings.log_level
    configure_logging(level, settings.log_format)

    try:
        return run(args, settings)
    except LTSError as e:
        logger.error("Analysis failed", error=str(e), error_type=type(e).__name__)
        return 1


if __name__ == "__main__":
    sys.exit(main())
