"""Mapping portal: control plane of the geospatial processing platform."""

__version__ = "0.1.0"
