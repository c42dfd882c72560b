"""Tests for OSM XML loading and level file writing."""

import xml.etree.ElementTree as ET

import pytest

from py_lts.core.errors import OSMFormatError
from py_lts.io.osm import load_osm, write_level_osm

SAMPLE = """<?xml version="1.0" encoding="UTF-8"?>
<osm version="0.6" generator="test">
  <note>Sample</note>
  <meta osm_base="2024-01-01T00:00:00Z"/>
  <bounds minlat="51.0" minlon="-0.1" maxlat="51.1" maxlon="0.1"/>
  <node id="1" lat="51.0500000" lon="-0.0100000"/>
  <node id="2" lat="51.0510000" lon="0.0000000">
    <tag k="highway" v="traffic_signals"/>
  </node>
  <node id="3" lat="51.0520000" lon="0.0100000"/>
  <node id="4" lat="51.0600000" lon="0.0500000"/>
  <way id="100">
    <nd ref="1"/>
    <nd ref="2"/>
    <tag k="highway" v="residential"/>
    <tag k="name" v="High Street"/>
  </way>
  <way id="200">
    <nd ref="2"/>
    <nd ref="3"/>
    <tag k="highway" v="cycleway"/>
  </way>
  <way id="300">
    <nd ref="3"/>
    <nd ref="4"/>
    <tag k="building" v="yes"/>
  </way>
  <relation id="9">
    <member type="way" ref="100" role=""/>
  </relation>
</osm>
"""


@pytest.fixture
def sample_file(tmp_path):
    path = tmp_path / "sample.osm"
    path.write_text(SAMPLE, encoding="utf-8")
    return path


class TestLoad:
    def test_only_highways_kept(self, sample_file):
        network = load_osm(sample_file)

        assert list(network.ways) == ["100", "200"]
        assert network.ways["100"].tags["name"] == "High Street"
        assert network.ways["200"].nodes == ["2", "3"]

    def test_unreferenced_nodes_dropped(self, sample_file):
        network = load_osm(sample_file)

        assert sorted(network.nodes) == ["1", "2", "3"]
        assert network.nodes["2"].ways == ["100", "200"]

    def test_coordinate_text_preserved(self, sample_file):
        network = load_osm(sample_file)

        assert network.nodes["1"].lat == "51.0500000"
        assert network.nodes["1"].lon == "-0.0100000"
        assert network.nodes["1"].coordinates == (51.05, -0.01)

    def test_document_metadata(self, sample_file):
        network = load_osm(sample_file)

        assert network.osm_base == "2024-01-01T00:00:00Z"
        assert network.bounds == {
            "minlat": "51.0",
            "minlon": "-0.1",
            "maxlat": "51.1",
            "maxlon": "0.1",
        }

    def test_unknown_element(self, tmp_path):
        path = tmp_path / "bad.osm"
        path.write_text('<osm version="0.6"><changeset id="1"/></osm>', encoding="utf-8")

        with pytest.raises(OSMFormatError, match="Unknown element type"):
            load_osm(path)

    def test_undeclared_node(self, tmp_path):
        path = tmp_path / "bad.osm"
        path.write_text(
            '<osm version="0.6"><node id="1" lat="0" lon="0"/>'
            '<way id="5"><nd ref="1"/><nd ref="2"/><tag k="highway" v="path"/></way></osm>',
            encoding="utf-8",
        )

        with pytest.raises(OSMFormatError, match="undeclared node 2"):
            load_osm(path)

    def test_unexpected_node_content(self, tmp_path):
        path = tmp_path / "bad.osm"
        path.write_text(
            '<osm version="0.6"><node id="1" lat="0" lon="0"><nd ref="2"/></node></osm>',
            encoding="utf-8",
        )

        with pytest.raises(OSMFormatError, match="in node 1"):
            load_osm(path)

    def test_not_xml(self, tmp_path):
        path = tmp_path / "bad.osm"
        path.write_text("this is not xml", encoding="utf-8")

        with pytest.raises(OSMFormatError):
            load_osm(path)

    def test_wrong_root(self, tmp_path):
        path = tmp_path / "bad.osm"
        path.write_text("<gpx/>", encoding="utf-8")

        with pytest.raises(OSMFormatError, match="root"):
            load_osm(path)


class TestWriteLevel:
    def test_level_file_contents(self, sample_file, tmp_path):
        network = load_osm(sample_file)
        network.ways["100"].level = 2
        network.ways["200"].level = 1
        for node_id in ("1", "2"):
            network.nodes[node_id].set_level_reference(2)

        out = tmp_path / "level_2.osm"
        write_level_osm(network, 2, out)
        root = ET.parse(out).getroot()

        assert root.tag == "osm"
        assert root.get("generator") == "py-lts"
        assert root.find("note").text.startswith("The data included")
        assert root.find("meta").get("osm_base") == "2024-01-01T00:00:00Z"
        assert root.find("bounds").get("maxlon") == "0.1"
        assert [n.get("id") for n in root.findall("node")] == ["1", "2"]
        assert root.find("node").get("lat") == "51.0500000"
        ways = root.findall("way")
        assert [w.get("id") for w in ways] == ["100"]
        assert [nd.get("ref") for nd in ways[0].findall("nd")] == ["1", "2"]

    def test_empty_level(self, sample_file, tmp_path):
        network = load_osm(sample_file)

        out = tmp_path / "level_4.osm"
        write_level_osm(network, 4, out)
        root = ET.parse(out).getroot()

        assert root.findall("node") == []
        assert root.findall("way") == []
