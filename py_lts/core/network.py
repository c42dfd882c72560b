"""
Street network data structures.

The network is an arena of OSM nodes and ways addressed by their string
ids. Ways reference nodes by id and nodes keep back-references to the
ways that pass through them, so adjacency is always looked up through
the dictionaries rather than through object references.
"""

from dataclasses import dataclass, field
from typing import Dict, Iterable, List, Optional, Set, Tuple

from .errors import StructuralError

# Island tag values
UNVISITED = 0
SEED = 1
EXCLUDED = -1
FIRST_ISLAND = 2


@dataclass
class Node:
    """An OSM node: exact coordinate text plus the ways that reference it."""

    lat: str
    lon: str
    ways: List[str] = field(default_factory=list)
    levels: Set[int] = field(default_factory=set)  # stress levels using this node

    @property
    def coordinates(self) -> Tuple[float, float]:
        return float(self.lat), float(self.lon)

    def add_way(self, way_id: str):
        if way_id not in self.ways:
            self.ways.append(way_id)

    def remove_way(self, way_id: str):
        if way_id in self.ways:
            self.ways.remove(way_id)

    def set_level_reference(self, level: int):
        self.levels.add(level)

    def is_level(self, level: int) -> bool:
        return level in self.levels

    def clone_for(self, way_id: str) -> "Node":
        """Copy of this node referenced only by ``way_id``."""
        return Node(lat=self.lat, lon=self.lon, ways=[way_id], levels=set(self.levels))

    def copy(self) -> "Node":
        return Node(lat=self.lat, lon=self.lon, ways=list(self.ways), levels=set(self.levels))


@dataclass
class Way:
    """An OSM way with its stress level and island tag."""

    nodes: List[str]
    level: int = 0
    island: int = UNVISITED
    tags: Dict[str, str] = field(default_factory=dict)

    def has_tag(self, key: str, value: Optional[str] = None) -> bool:
        if value is None:
            return key in self.tags
        return self.tags.get(key) == value

    def copy(self) -> "Way":
        """Copy with a fresh island tag, as used for a segmentation run."""
        return Way(nodes=list(self.nodes), level=self.level, tags=dict(self.tags))


@dataclass
class Network:
    """A loaded street network plus the document metadata needed to write it back."""

    ways: Dict[str, Way] = field(default_factory=dict)
    nodes: Dict[str, Node] = field(default_factory=dict)
    osm_base: Optional[str] = None
    bounds: Optional[Dict[str, str]] = None

    def add_way(self, way_id: str, way: Way):
        """Register a way and its back-references on every node it uses."""
        self.ways[way_id] = way
        for node_id in way.nodes:
            if node_id not in self.nodes:
                raise StructuralError(
                    f"Way {way_id} references unknown node {node_id}",
                    edge_id=way_id,
                    vertex_id=node_id,
                )
            self.nodes[node_id].add_way(way_id)

    def referenced_nodes(self) -> Set[str]:
        return {node_id for way in self.ways.values() for node_id in way.nodes}

    def drop_unreferenced_nodes(self) -> int:
        """Remove nodes that no way uses. Returns how many were removed."""
        referenced = self.referenced_nodes()
        orphans = [node_id for node_id in self.nodes if node_id not in referenced]
        for node_id in orphans:
            del self.nodes[node_id]
        return len(orphans)


def validate_network(ways: Dict[str, Way], nodes: Dict[str, Node]):
    """
    Check that ways and nodes form a consistent graph.

    Every way needs at least two nodes, no immediately repeated node,
    and only nodes that exist. A way must appear in a node's back-references
    exactly when the node appears in the way.

    Raises:
        StructuralError: on the first inconsistency found
    """
    for way_id, way in ways.items():
        if len(way.nodes) < 2:
            raise StructuralError(
                f"Way {way_id} has {len(way.nodes)} node(s), at least 2 are required",
                edge_id=way_id,
            )
        for position, node_id in enumerate(way.nodes):
            node = nodes.get(node_id)
            if node is None:
                raise StructuralError(
                    f"Way {way_id} references unknown node {node_id}",
                    edge_id=way_id,
                    vertex_id=node_id,
                )
            if position > 0 and way.nodes[position - 1] == node_id:
                raise StructuralError(
                    f"Way {way_id} repeats node {node_id} at position {position}",
                    edge_id=way_id,
                    vertex_id=node_id,
                )
            if way_id not in node.ways:
                raise StructuralError(
                    f"Node {node_id} is missing a back-reference to way {way_id}",
                    edge_id=way_id,
                    vertex_id=node_id,
                )

    for node_id, node in nodes.items():
        for way_id in node.ways:
            way = ways.get(way_id)
            if way is None or node_id not in way.nodes:
                raise StructuralError(
                    f"Node {node_id} references way {way_id} which does not use it",
                    edge_id=way_id,
                    vertex_id=node_id,
                )


def max_numeric_id(ids: Iterable[str]) -> int:
    """Largest integer id in ``ids`` (0 if none parse as integers)."""
    highest = 0
    for key in ids:
        try:
            value = int(key)
        except ValueError:
            continue
        if value > highest:
            highest = value
    return highest
