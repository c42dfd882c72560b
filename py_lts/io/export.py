"""
GeoJSON export of stress levels and islands.

Builds GeoDataFrames in EPSG:4326 (lon, lat axis order) and writes them as
FeatureCollections.
"""

from pathlib import Path
from typing import Dict, List, Tuple, Union

import geopandas as gpd
import structlog
from shapely.geometry import LineString, Polygon

from ..core.boundary import Coordinate, TraceReport
from ..core.islands import SegmentationResult
from ..core.network import Network, Node, Way

logger = structlog.get_logger()

CRS = "EPSG:4326"


def _way_line(way: Way, nodes: Dict[str, Node]) -> LineString:
    return LineString([(float(nodes[n].lon), float(nodes[n].lat)) for n in way.nodes])


def _ring_geometry(ring: List[Coordinate]):
    """
    Geometry for a traced ring.

    Spurs and cycle-free islands are walked out and back, which leaves
    zero-width spikes in the ring. Those are dropped; a ring that encloses
    nothing at all is written as the walked line instead.
    """
    coords = [(lon, lat) for lat, lon in ring]
    if len(coords) < 4:
        return LineString(coords)

    polygon = Polygon(coords)
    if polygon.is_valid and polygon.area > 0:
        return polygon

    cleaned = polygon.buffer(0)
    if cleaned.is_empty or cleaned.area == 0:
        return LineString(coords)
    return cleaned


def level_frame(network: Network, level: int) -> gpd.GeoDataFrame:
    """Ways of one stress level as LineString features."""
    ids, geometries = [], []
    for way_id, way in network.ways.items():
        if way.level == level:
            ids.append(f"way/{way_id}")
            geometries.append(_way_line(way, network.nodes))
    return gpd.GeoDataFrame(
        {"id": ids, "geometry": geometries}, index=ids, geometry="geometry", crs=CRS
    )


def island_ways_frame(result: SegmentationResult) -> gpd.GeoDataFrame:
    """Every way that belongs to an island, tagged with its island id."""
    ids, levels, island_ids, geometries = [], [], [], []
    for island_id, way_ids in sorted(result.islands.items()):
        for way_id in way_ids:
            way = result.ways[way_id]
            ids.append(f"way/{way_id}")
            levels.append(way.level)
            island_ids.append(island_id)
            geometries.append(_way_line(way, result.nodes))
    return gpd.GeoDataFrame(
        {"id": ids, "level": levels, "island": island_ids, "geometry": geometries},
        index=ids,
        geometry="geometry",
        crs=CRS,
    )


def island_polygons_frame(result: SegmentationResult, report: TraceReport) -> gpd.GeoDataFrame:
    """One feature per traced island boundary."""
    island_ids = sorted(report.rings)
    return gpd.GeoDataFrame(
        {
            "island": island_ids,
            "ways": [len(result.islands[i]) for i in island_ids],
            "geometry": [_ring_geometry(report.rings[i]) for i in island_ids],
        },
        index=[f"island/{i}" for i in island_ids],
        geometry="geometry",
        crs=CRS,
    )


def write_frame(frame: gpd.GeoDataFrame, path: Union[str, Path]):
    Path(path).write_text(frame.to_json(drop_id=False), encoding="utf-8")


def write_level_geojson(network: Network, level: int, path: Union[str, Path]):
    frame = level_frame(network, level)
    write_frame(frame, path)
    logger.info("Level file written", path=str(path), level=level, ways=len(frame))


def write_island_files(
    result: SegmentationResult,
    report: TraceReport,
    directory: Union[str, Path],
    prefix: str = "island_",
) -> Tuple[Path, Path]:
    """
    Write island boundaries and island-tagged ways as GeoJSON.

    Returns:
        Paths of the boundary file and the ways file
    """
    directory = Path(directory)
    boundaries_path = directory / f"{prefix}boundaries.json"
    ways_path = directory / f"{prefix}ways.json"

    write_frame(island_polygons_frame(result, report), boundaries_path)
    write_frame(island_ways_frame(result), ways_path)

    logger.info(
        "Island files written",
        boundaries=str(boundaries_path),
        ways=str(ways_path),
        islands=len(report.rings),
        failed=len(report.failures),
    )
    return boundaries_path, ways_path
