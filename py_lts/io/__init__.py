"""
Reading and writing of OSM and GeoJSON files.
"""

from .osm import load_osm, write_level_osm
from .export import write_island_files, write_level_geojson

__all__ = ['load_osm', 'write_level_osm', 'write_island_files', 'write_level_geojson']
