"""
Level of traffic stress classification.

Assigns every way a stress level from its OSM tags:
- 0: not usable by bicycle (motorways, driveways, bicycle=no, ...)
- 1: separated paths (cycleways, footways, paths)
- 2: quiet streets, service roads, cycle tracks
- 3: busier or faster streets
- 4: multi-lane roads above 40 km/h without a bike lane
"""

from typing import Dict

import structlog

from .errors import TagValueError
from .network import Network, Way

logger = structlog.get_logger()

LEVEL_COUNT = 4
DEFAULT_LANES = 2
NATIONAL_SPEED = 40
MOTORWAY_SPEED = 100
DEFAULT_SPEED = 50

PATH_HIGHWAYS = ("cycleway", "footway", "walkway", "path")


def lanes(way: Way) -> int:
    """Number of lanes; the largest value of a ``;`` list, 2 when untagged."""
    value = way.tags.get("lanes")
    if value is None:
        return DEFAULT_LANES
    try:
        if ";" in value:
            return max([1] + [int(part) for part in value.split(";")])
        return int(value)
    except ValueError:
        raise TagValueError(f"Unknown lanes value '{value}'", key="lanes", value=value)


def max_speed(way: Way) -> int:
    """Maximum speed in km/h."""
    value = way.tags.get("maxspeed")
    if value is None:
        return MOTORWAY_SPEED if way.has_tag("highway", "motorway") else DEFAULT_SPEED
    if value == "national":
        return NATIONAL_SPEED
    try:
        return int(value)
    except ValueError:
        raise TagValueError(f"Unknown maxspeed value '{value}'", key="maxspeed", value=value)


def evaluate_way(way: Way) -> int:
    """Stress level of a single way."""
    if not (way.has_tag("highway") or way.has_tag("bicycle")):
        return 0

    if way.has_tag("bicycle", "no"):
        return 0
    if way.has_tag("highway", "motorway") or way.has_tag("highway", "motorway_link"):
        return 0
    if way.has_tag("highway", "service"):
        if way.has_tag("service", "driveway") or way.has_tag("service", "parking_aisle"):
            return 0
        return 2

    # Sidewalks only count when bikes are explicitly allowed
    if (
        way.has_tag("footway", "sidewalk")
        and not way.has_tag("bicycle", "yes")
        and (way.has_tag("highway", "footway") or way.has_tag("highway", "path"))
    ):
        return 0

    if way.tags.get("highway") in PATH_HIGHWAYS:
        return 1
    if way.has_tag("cycleway", "track"):
        return 2

    way_lanes = lanes(way)
    speed = max_speed(way)
    bike_lane = way.has_tag("cycleway", "lane")

    if way_lanes > 2 or (
        not way.has_tag("highway", "residential")
        and way_lanes > 1
        and way.has_tag("oneway", "yes")
    ):
        if speed <= 40:
            return 2 if bike_lane else 3
        return 3 if bike_lane else 4

    if way.has_tag("highway", "residential"):
        return 3 if speed > 50 else 2

    return 2 if speed <= 40 else 3


class StressModel:
    """Classifies all ways of a network and marks the levels each node serves."""

    def __init__(self, level_count: int = LEVEL_COUNT):
        self.level_count = level_count

    def run_analysis(self, network: Network) -> Dict[int, int]:
        """
        Set ``level`` on every way and record level references on its nodes.

        Returns:
            Number of ways per level
        """
        counts = {level: 0 for level in range(self.level_count + 1)}
        for way in network.ways.values():
            level = min(evaluate_way(way), self.level_count)
            way.level = level
            counts[level] += 1
            if level > 0:
                for node_id in way.nodes:
                    network.nodes[node_id].set_level_reference(level)

        logger.info("Stress levels assigned", **{f"level_{k}": v for k, v in counts.items()})
        return counts
