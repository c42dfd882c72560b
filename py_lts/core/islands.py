"""
Low-stress island detection.

This module splits the low-stress part of a classified street network into
islands: groups of ways that can be ridden between without crossing a way
whose stress level is above the passability threshold.

The analysis runs in three passes over a private copy of the network:
- Pass 1 cuts ways at impassable crossings, severing shared nodes and
  splitting ways where the crossing is in the middle
- Pass 2 flood-fills the remaining low-stress ways into numbered islands
- Pass 3 groups ways by island and builds the island size histogram
"""

from collections import deque
from dataclasses import dataclass, field
from typing import Dict, List, Optional

import numpy as np
import structlog

from .errors import InvariantViolation
from .network import (
    EXCLUDED,
    FIRST_ISLAND,
    SEED,
    UNVISITED,
    Node,
    Way,
    max_numeric_id,
    validate_network,
)

logger = structlog.get_logger()

DEFAULT_PASSABILITY_THRESHOLD = 2


@dataclass
class SegmentationResult:
    """Output of an island analysis run."""

    ways: Dict[str, Way]
    nodes: Dict[str, Node]
    island_count: int
    size_histogram: Dict[int, int]  # ways per island -> number of islands
    islands: Dict[int, List[str]]  # island id -> way ids
    fabricated_nodes: List[str] = field(default_factory=list)
    fabricated_ways: List[str] = field(default_factory=list)


class IslandModel:
    """Runs the three-pass island analysis on a copy of a classified network."""

    def __init__(
        self,
        ways: Dict[str, Way],
        nodes: Dict[str, Node],
        passability_threshold: int = DEFAULT_PASSABILITY_THRESHOLD,
    ):
        """
        Copy and validate the network.

        Args:
            ways: Classified ways by id (level set by the stress model)
            nodes: Nodes by id with back-references to their ways
            passability_threshold: Highest level a crossing way may have
                and still be crossable

        Raises:
            StructuralError: if the network is not a consistent graph
        """
        if passability_threshold < 1:
            raise ValueError("passability_threshold must be a positive integer")
        validate_network(ways, nodes)

        self.max_stress_level = passability_threshold
        self.ways = {way_id: way.copy() for way_id, way in ways.items()}
        self.nodes = {node_id: node.copy() for node_id, node in nodes.items()}

        # Fabricated ids continue above anything seen in the input
        self._max_way = max_numeric_id(self.ways)
        self._max_node = max_numeric_id(self.nodes)

        self.fabricated_nodes: List[str] = []
        self.fabricated_ways: List[str] = []
        self.island_count = 0

    def run_analysis(self) -> SegmentationResult:
        self.cut_ways()
        self.label_islands()
        return self.aggregate()

    # Pass 1

    def cut_ways(self):
        """Cut every way at the crossings it cannot pass."""
        way_ids = list(self.ways)

        # Ways created by a split are evaluated straight after the way they
        # came from, the same order a recursive evaluation would give.
        for way_id in way_ids:
            pending = [way_id]
            while pending:
                new_way_id = self._evaluate_way(pending.pop())
                if new_way_id is not None:
                    pending.append(new_way_id)

        excluded = sum(1 for way in self.ways.values() if way.island == EXCLUDED)
        logger.info(
            "Pass 1 complete",
            ways=len(self.ways),
            excluded=excluded,
            split_ways=len(self.fabricated_ways),
            severed_nodes=len(self.fabricated_nodes),
        )

    def _evaluate_way(self, way_id: str) -> Optional[str]:
        """
        Tag a way and cut it at its first impassable interior crossing.

        Returns:
            Id of the way split off the remainder, or None if no split happened
        """
        way = self.ways[way_id]
        if way.island != UNVISITED:
            return None

        if way.level <= 0 or way.level > self.max_stress_level:
            way.island = EXCLUDED
            return None

        way.island = SEED
        node_start = 0
        node_end = len(way.nodes) - 1

        # Iterate over a snapshot since severing rewrites way.nodes
        for node_no, node_id in enumerate(list(way.nodes)):
            if not self._is_impassable(way_id, node_id):
                continue

            if node_no == node_start:
                self._sever(way_id, way, node_start)
            elif node_no == node_end:
                self._sever(way_id, way, node_end)
            else:
                return self._split_way(way_id, way, node_no)

        return None

    def _is_impassable(self, way_id: str, node_id: str) -> bool:
        node = self.nodes[node_id]
        if len(node.ways) <= 1:
            return False
        # A crossing way exactly at the threshold is still passable
        return any(
            self.ways[cross_id].level > self.max_stress_level
            for cross_id in node.ways
            if cross_id != way_id
        )

    def _sever(self, way_id: str, way: Way, position: int) -> str:
        """Replace the node at ``position`` with a private copy used only by this way."""
        node_id = way.nodes[position]
        new_node_id = self._next_node_id()
        self.nodes[new_node_id] = self.nodes[node_id].clone_for(way_id)
        way.nodes[position] = new_node_id

        # Closed ways can still use the original node at their other end
        if node_id not in way.nodes:
            self.nodes[node_id].remove_way(way_id)

        self.fabricated_nodes.append(new_node_id)
        logger.debug("Severed node", way_id=way_id, node_id=node_id, new_node_id=new_node_id)
        return new_node_id

    def _split_way(self, way_id: str, way: Way, node_no: int) -> str:
        """
        Split a way at an interior impassable crossing.

        The way keeps nodes [0..node_no] and the remainder moves to a new way.
        Both ends meeting at the crossing are severed.

        Returns:
            Id of the new way, still unvisited
        """
        new_way_id = self._next_way_id()
        tail = way.nodes[node_no:]
        new_way = Way(nodes=list(tail), level=way.level, tags=dict(way.tags))
        self.ways[new_way_id] = new_way
        del way.nodes[node_no + 1:]

        # Move back-references of the remainder over to the new way
        for node_id in tail:
            node = self.nodes[node_id]
            node.add_way(new_way_id)
            if node_id not in way.nodes:
                node.remove_way(way_id)

        self._sever(way_id, way, node_no)
        self._sever(new_way_id, new_way, 0)

        self.fabricated_ways.append(new_way_id)
        logger.debug("Split way", way_id=way_id, new_way_id=new_way_id, position=node_no)
        return new_way_id

    def _next_node_id(self) -> str:
        self._max_node += 1
        return str(self._max_node)

    def _next_way_id(self) -> str:
        self._max_way += 1
        return str(self._max_way)

    # Pass 2

    def label_islands(self) -> int:
        """
        Flood-fill seed ways into islands.

        Uses an explicit stack; components can hold far more ways than the
        interpreter's recursion limit.

        Returns:
            Number of islands found
        """
        island = FIRST_ISLAND
        pending = deque(self.ways)
        connected: List[str] = []

        while pending:
            connected.append(pending.popleft())
            ways_in_island = 0

            while connected:
                way_id = connected.pop()
                way = self.ways[way_id]
                if way.island != SEED:
                    continue

                way.island = island
                ways_in_island += 1
                for node_id in way.nodes:
                    for connected_way in self.nodes[node_id].ways:
                        if connected_way != way_id and self.ways[connected_way].island == SEED:
                            connected.append(connected_way)

            if ways_in_island:
                island += 1

        self.island_count = island - FIRST_ISLAND
        logger.info("Pass 2 complete", islands=self.island_count)
        return self.island_count

    # Pass 3

    def aggregate(self) -> SegmentationResult:
        """
        Group ways by island and compute the island size histogram.

        Raises:
            InvariantViolation: if any way was left seeded or unvisited
        """
        islands: Dict[int, List[str]] = {}
        for way_id, way in self.ways.items():
            if way.island in (SEED, UNVISITED):
                raise InvariantViolation(
                    f"Way {way_id} finished segmentation with island tag {way.island}; "
                    "every way must be excluded or belong to an island",
                    edge_id=way_id,
                    pass_number=3,
                )
            if way.island >= FIRST_ISLAND:
                islands.setdefault(way.island, []).append(way_id)

        size_histogram: Dict[int, int] = {}
        if islands:
            sizes = np.array([len(way_ids) for way_ids in islands.values()])
            values, counts = np.unique(sizes, return_counts=True)
            size_histogram = dict(zip(values.tolist(), counts.tolist()))

        logger.info(
            "Pass 3 complete",
            islands=len(islands),
            largest=max(size_histogram) if size_histogram else 0,
        )

        return SegmentationResult(
            ways=self.ways,
            nodes=self.nodes,
            island_count=self.island_count,
            size_histogram=size_histogram,
            islands=islands,
            fabricated_nodes=list(self.fabricated_nodes),
            fabricated_ways=list(self.fabricated_ways),
        )


def segment(
    ways: Dict[str, Way],
    nodes: Dict[str, Node],
    passability_threshold: int = DEFAULT_PASSABILITY_THRESHOLD,
) -> SegmentationResult:
    """
    Split a classified network into low-stress islands.

    The input ways and nodes are not modified.

    Args:
        ways: Classified ways by id
        nodes: Nodes by id with back-references to their ways
        passability_threshold: Highest level a crossing way may have and
            still be crossable

    Returns:
        SegmentationResult with the island-tagged copy of the network
    """
    return IslandModel(ways, nodes, passability_threshold).run_analysis()
