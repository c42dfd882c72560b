"""
OSM XML input and output.

Only ways tagged ``highway`` are kept when loading, together with the nodes
they reference. Coordinates stay as the exact text found in the file.
"""

import xml.etree.ElementTree as ET
from pathlib import Path
from typing import Union

import structlog

from ..core.errors import OSMFormatError
from ..core.network import Network, Node, Way

logger = structlog.get_logger()

OSM_NOTE = (
    "The data included in this document originated from www.openstreetmap.org "
    "and was converted by py-lts. The data is made available under ODbL."
)


def _require_empty(element: ET.Element):
    if len(element):
        raise OSMFormatError(f"Unexpected content in <{element.tag}> element")


def _parse_node(element: ET.Element) -> Node:
    for child in element:
        if child.tag != "tag":
            raise OSMFormatError(f"Unexpected element <{child.tag}> in node {element.get('id')}")
    return Node(lat=element.get("lat"), lon=element.get("lon"))


def _parse_way(element: ET.Element) -> Way:
    way = Way(nodes=[])
    for child in element:
        if child.tag == "tag":
            way.tags[child.get("k")] = child.get("v")
        elif child.tag == "nd":
            way.nodes.append(child.get("ref"))
        else:
            raise OSMFormatError(f"Unexpected element <{child.tag}> in way {element.get('id')}")
    return way


def load_osm(path: Union[str, Path]) -> Network:
    """
    Load an OSM XML document.

    Args:
        path: Path to a .osm file

    Returns:
        Network with highway ways and the nodes they use

    Raises:
        OSMFormatError: on unknown elements, unexpected content in nodes or ways,
            or ways referencing undeclared nodes
    """
    logger.info("Loading OSM file", path=str(path))
    try:
        root = ET.parse(path).getroot()
    except ET.ParseError as e:
        raise OSMFormatError(f"Could not parse {path}: {e}") from e
    if root.tag != "osm":
        raise OSMFormatError(f"Expected <osm> root element, found <{root.tag}>")

    network = Network()
    counts = {"note": 0, "meta": 0, "bounds": 0, "node": 0, "way": 0, "relation": 0}

    for element in root:
        if element.tag not in counts:
            raise OSMFormatError(f"Unknown element type: {element.tag}")
        counts[element.tag] += 1

        if element.tag == "meta":
            _require_empty(element)
            network.osm_base = element.get("osm_base")
        elif element.tag == "bounds":
            _require_empty(element)
            network.bounds = {
                key: element.get(key) for key in ("minlat", "minlon", "maxlat", "maxlon")
            }
        elif element.tag == "node":
            network.nodes[element.get("id")] = _parse_node(element)
        elif element.tag == "way":
            way = _parse_way(element)
            if not way.has_tag("highway"):
                continue
            way_id = element.get("id")
            missing = [ref for ref in way.nodes if ref not in network.nodes]
            if missing:
                raise OSMFormatError(f"Way {way_id} references undeclared node {missing[0]}")
            network.add_way(way_id, way)

    removed = network.drop_unreferenced_nodes()
    logger.info(
        "OSM file loaded",
        nodes=len(network.nodes),
        ways=len(network.ways),
        skipped_nodes=removed,
        **{f"{tag}_elements": count for tag, count in counts.items()},
    )
    return network


def write_level_osm(network: Network, level: int, path: Union[str, Path]):
    """Write the nodes and ways of one stress level as an OSM XML document."""
    root = ET.Element("osm", version="0.6", generator="py-lts")
    ET.SubElement(root, "note").text = OSM_NOTE
    if network.osm_base is not None:
        ET.SubElement(root, "meta", osm_base=network.osm_base)
    if network.bounds is not None:
        ET.SubElement(
            root, "bounds", {k: v for k, v in network.bounds.items() if v is not None}
        )

    for node_id, node in network.nodes.items():
        if node.is_level(level):
            ET.SubElement(root, "node", id=node_id, lat=node.lat, lon=node.lon)

    way_count = 0
    for way_id, way in network.ways.items():
        if way.level != level:
            continue
        way_element = ET.SubElement(root, "way", id=way_id)
        for node_id in way.nodes:
            ET.SubElement(way_element, "nd", ref=node_id)
        way_count += 1

    tree = ET.ElementTree(root)
    ET.indent(tree)
    tree.write(path, encoding="utf-8", xml_declaration=True)
    logger.info("Level file written", path=str(path), level=level, ways=way_count)
