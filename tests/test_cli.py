"""End-to-end tests for the command line entry point."""

import json

import pytest
import structlog

from py_lts.cli import main

LOLLIPOP = """<?xml version="1.0" encoding="UTF-8"?>
<osm version="0.6" generator="test">
  <meta osm_base="2024-01-01T00:00:00Z"/>
  <bounds minlat="50.9" minlon="-0.1" maxlat="51.1" maxlon="0.1"/>
  <node id="1" lat="51.0000000" lon="0.0000000"/>
  <node id="2" lat="51.0100000" lon="0.0000000"/>
  <node id="3" lat="51.0000000" lon="0.0100000"/>
  <node id="4" lat="51.0000000" lon="-0.0100000"/>
  <node id="5" lat="51.0000000" lon="-0.0200000"/>
  <way id="100"><nd ref="1"/><nd ref="2"/><tag k="highway" v="residential"/></way>
  <way id="101"><nd ref="2"/><nd ref="3"/><tag k="highway" v="residential"/></way>
  <way id="102"><nd ref="3"/><nd ref="1"/><tag k="highway" v="residential"/></way>
  <way id="103"><nd ref="1"/><nd ref="4"/><tag k="highway" v="footway"/></way>
  <way id="104">
    <nd ref="4"/><nd ref="5"/>
    <tag k="highway" v="primary"/>
    <tag k="lanes" v="4"/>
    <tag k="maxspeed" v="60"/>
  </way>
</osm>
"""


@pytest.fixture(autouse=True)
def reset_logging():
    yield
    structlog.reset_defaults()


@pytest.fixture
def osm_file(tmp_path):
    path = tmp_path / "lollipop.osm"
    path.write_text(LOLLIPOP, encoding="utf-8")
    return path


def read_features(path):
    return json.loads(path.read_text(encoding="utf-8"))["features"]


class TestMain:
    def test_geojson_outputs(self, osm_file, tmp_path):
        out = tmp_path / "out"

        assert main(["-f", str(osm_file), "-d", str(out), "-t"]) == 0

        assert [f["id"] for f in read_features(out / "level_1.json")] == ["way/103"]
        assert len(read_features(out / "level_2.json")) == 3
        assert read_features(out / "level_3.json") == []
        assert [f["id"] for f in read_features(out / "level_4.json")] == ["way/104"]

        boundaries = read_features(out / "island_boundaries.json")
        assert [f["id"] for f in boundaries] == ["island/2"]
        assert boundaries[0]["geometry"]["type"] == "Polygon"
        assert boundaries[0]["properties"]["ways"] == 4
        assert len(read_features(out / "island_ways.json")) == 4

    def test_osm_level_files(self, osm_file, tmp_path):
        assert main(["-f", str(osm_file), "-d", str(tmp_path), "--format", "osm", "-p", "lts"]) == 0

        for level in range(1, 5):
            assert (tmp_path / f"lts{level}.osm").is_file()
        assert "way id=\"104\"" in (tmp_path / "lts4.osm").read_text(encoding="utf-8")

    def test_higher_threshold_joins_islands(self, osm_file, tmp_path):
        assert main(["-f", str(osm_file), "-d", str(tmp_path), "--threshold", "4"]) == 0

        ways = read_features(tmp_path / "island_ways.json")
        assert {f["properties"]["island"] for f in ways} == {2}
        assert "way/104" in {f["id"] for f in ways}
        assert len(ways) == 5

    def test_missing_file(self, tmp_path):
        assert main(["-f", str(tmp_path / "nope.osm"), "-d", str(tmp_path)]) == 1

    def test_malformed_file(self, tmp_path):
        path = tmp_path / "bad.osm"
        path.write_text('<osm version="0.6"><changeset id="1"/></osm>', encoding="utf-8")

        assert main(["-f", str(path), "-d", str(tmp_path)]) == 1

    def test_threshold_must_be_positive(self, osm_file, tmp_path):
        with pytest.raises(SystemExit):
            main(["-f", str(osm_file), "-d", str(tmp_path), "--threshold", "0"])
