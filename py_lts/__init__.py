"""Level of traffic stress analysis and low-stress island detection for OSM data."""

__version__ = "0.1.0"
