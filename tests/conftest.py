"""Shared fixtures for building small street networks."""

import pytest

from py_lts.core.network import Network, Node, Way


@pytest.fixture
def network_factory():
    """Return a builder taking {node_id: (lat, lon)} and {way_id: (node_ids, level)}."""

    def build(nodes, ways):
        network = Network()
        for node_id, (lat, lon) in nodes.items():
            network.nodes[node_id] = Node(lat=str(lat), lon=str(lon))
        for way_id, (node_ids, level) in ways.items():
            network.add_way(way_id, Way(nodes=list(node_ids), level=level))
        return network

    return build


@pytest.fixture
def lollipop(network_factory):
    """Triangle of residential ways, a footway spur, and a busy road at the spur's end."""
    return network_factory(
        {
            "1": (0, 0),
            "2": (1, 0),
            "3": (0, 1),
            "4": (0, -1),
            "5": (0, -2),
        },
        {
            "11": (["1", "2"], 2),
            "12": (["2", "3"], 2),
            "13": (["3", "1"], 2),
            "14": (["1", "4"], 1),
            "15": (["4", "5"], 4),
        },
    )


@pytest.fixture
def triangle(network_factory):
    """Three ways joining A(0, 0), B(1, 0) and C(0, 1)."""
    return network_factory(
        {"1": (0, 0), "2": (1, 0), "3": (0, 1)},
        {
            "11": (["1", "2"], 1),
            "12": (["2", "3"], 1),
            "13": (["3", "1"], 1),
        },
    )
