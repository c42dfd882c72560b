"""
Island boundary tracing.

Walks around the outside of a connected set of ways and returns the
enclosing ring. The walk starts at the easternmost node, which is always
on the outer boundary, and at every node takes the most clockwise turn
relative to the direction it arrived from.

Holes inside an island are not traced; only the outer ring is produced.
"""

import concurrent.futures
from dataclasses import dataclass, field
from typing import Dict, Iterable, List, Optional, Tuple

import numpy as np
import structlog

from .errors import LTSError, NonTerminatingTraceError, StructuralError
from .network import Node, Way

logger = structlog.get_logger()

DEFAULT_MAX_POINTS = 100000

Coordinate = Tuple[float, float]  # (lat, lon)


@dataclass
class TraceReport:
    """Rings traced for a batch of islands, plus the islands that failed."""

    rings: Dict[int, List[Coordinate]] = field(default_factory=dict)
    failures: Dict[int, str] = field(default_factory=dict)


class BoundaryTracer:
    """Traces outer rings of islands over a shared, read-only network."""

    def __init__(
        self,
        ways: Dict[str, Way],
        nodes: Dict[str, Node],
        max_points: int = DEFAULT_MAX_POINTS,
    ):
        self.ways = ways
        self.nodes = nodes
        self.max_points = max_points

    def trace(self, way_ids: Iterable[str], island_id: Optional[int] = None) -> List[Coordinate]:
        """
        Trace the outer ring of a connected set of ways.

        Args:
            way_ids: Ways of one island
            island_id: Only used to label errors and log events

        Returns:
            Closed list of (lat, lon) coordinates, first point repeated last

        Raises:
            NonTerminatingTraceError: if the walk exceeds max_points
            StructuralError: if the ways are empty or a node has no neighbours
        """
        ordered = list(dict.fromkeys(way_ids))
        island = set(ordered)
        cache = self._build_node_cache(ordered)
        if not cache:
            raise StructuralError(f"Island {island_id} has no ways to trace")

        start_id = self._starting_point(cache)
        current_id = start_id
        prev_id: Optional[str] = None
        first_id: Optional[str] = None
        ref_angle = 0.0
        first_pass = True
        result = [cache[current_id]]

        while True:
            next_id, next_angle = self._next_node(current_id, prev_id, ref_angle, island, cache)

            if first_pass:
                # Other ways may meet at the start node, so arriving back at
                # the start only closes the ring when we would leave the same way.
                first_pass = False
                first_id = next_id
            elif current_id == start_id and next_id == first_id:
                break

            prev_id = current_id
            current_id = next_id
            ref_angle = (next_angle + 180.0) % 360.0
            result.append(cache[current_id])

            if len(result) > self.max_points:
                raise NonTerminatingTraceError(
                    f"Boundary of island {island_id} did not close after "
                    f"{self.max_points} points",
                    island_id=island_id,
                    vertex_id=current_id,
                    points=len(result),
                )

        return result

    def _build_node_cache(self, island: Iterable[str]) -> Dict[str, Coordinate]:
        cache: Dict[str, Coordinate] = {}
        for way_id in island:
            for node_id in self.ways[way_id].nodes:
                if node_id not in cache:
                    cache[node_id] = self.nodes[node_id].coordinates
        return cache

    @staticmethod
    def _starting_point(cache: Dict[str, Coordinate]) -> str:
        """Easternmost node; the first one found wins ties."""
        node_ids = list(cache)
        lons = np.array([cache[node_id][1] for node_id in node_ids])
        return node_ids[int(np.argmax(lons))]

    def _referenced_nodes(self, node_id: str, island: set) -> List[str]:
        """All distinct nodes one step away from ``node_id`` along the island's ways."""
        result: Dict[str, None] = {}
        for way_id in self.nodes[node_id].ways:
            if way_id not in island:
                continue
            way_nodes = self.ways[way_id].nodes
            for n, ref in enumerate(way_nodes):
                if ref != node_id:
                    continue
                if n > 0:
                    result.setdefault(way_nodes[n - 1])
                if n < len(way_nodes) - 1:
                    result.setdefault(way_nodes[n + 1])
        return list(result)

    def _next_node(
        self,
        current_id: str,
        prev_id: Optional[str],
        ref_angle: float,
        island: set,
        cache: Dict[str, Coordinate],
    ) -> Tuple[str, float]:
        """
        Pick the neighbour at the smallest clockwise turn from ``ref_angle``.

        Returns:
            (node id, bearing from the current node in degrees clockwise from east)
        """
        candidates = [n for n in self._referenced_nodes(current_id, island) if n in cache]
        if not candidates:
            raise StructuralError(
                f"Node {current_id} has no neighbours inside its island",
                vertex_id=current_id,
            )

        lat, lon = cache[current_id]
        coords = np.array([cache[n] for n in candidates], dtype=float)
        degrees = np.degrees(np.arctan2(coords[:, 0] - lat, coords[:, 1] - lon))
        bearings = np.mod(-degrees, 360.0)
        effective = np.mod((360.0 - ref_angle) + bearings + 360.0, 360.0)

        next_id: Optional[str] = None
        next_angle = 0.0
        min_angle = 360.0
        for node_id, bearing, angle in zip(candidates, bearings.tolist(), effective.tolist()):
            if node_id == prev_id:
                # Going straight back is only allowed at a dead end
                if next_id is None:
                    next_id = node_id
                    min_angle = 360.0
                    next_angle = bearing
            elif angle < min_angle:
                min_angle = angle
                next_id = node_id
                next_angle = bearing

        return next_id, next_angle


def trace(
    island_ways: Iterable[str],
    ways: Dict[str, Way],
    nodes: Dict[str, Node],
    max_points: int = DEFAULT_MAX_POINTS,
) -> List[Coordinate]:
    """Trace the outer ring of one island. See BoundaryTracer.trace."""
    return BoundaryTracer(ways, nodes, max_points).trace(island_ways)


def trace_islands(
    islands: Dict[int, List[str]],
    ways: Dict[str, Way],
    nodes: Dict[str, Node],
    max_points: int = DEFAULT_MAX_POINTS,
    workers: int = 1,
) -> TraceReport:
    """
    Trace every island, optionally on a thread pool.

    A failed island is recorded in the report and does not stop the others.

    Args:
        islands: Island id -> way ids, as produced by segmentation
        ways: Island-tagged ways
        nodes: Nodes including any fabricated during segmentation
        max_points: Point cap for each individual trace
        workers: Number of worker threads; 1 traces sequentially

    Returns:
        TraceReport with rings and failure messages keyed by island id
    """
    tracer = BoundaryTracer(ways, nodes, max_points)
    report = TraceReport()

    def record(island_id: int, trace_call):
        try:
            report.rings[island_id] = trace_call()
        except LTSError as e:
            logger.error("Boundary trace failed", island_id=island_id, error=str(e))
            report.failures[island_id] = str(e)

    if workers <= 1:
        for island_id, way_ids in islands.items():
            record(island_id, lambda w=way_ids, i=island_id: tracer.trace(w, i))
    else:
        with concurrent.futures.ThreadPoolExecutor(max_workers=workers) as executor:
            future_to_island = {
                executor.submit(tracer.trace, way_ids, island_id): island_id
                for island_id, way_ids in islands.items()
            }
            for future in concurrent.futures.as_completed(future_to_island):
                record(future_to_island[future], future.result)

    logger.info("Boundaries traced", traced=len(report.rings), failed=len(report.failures))
    return report
