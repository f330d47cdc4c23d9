"""Shared constants for the geometry codec."""

from __future__ import annotations

from typing import Final

# RD New (EPSG:28992): oblique stereographic on the Bessel ellipsoid with the
# 7-parameter datum shift to WGS 84.
RD_NEW_PROJ4 = (
    "+proj=sterea +lat_0=52.15616055555555 +lon_0=5.38763888888889 "
    "+k=0.9999079 +x_0=155000 +y_0=463000 +ellps=bessel "
    "+towgs84=565.2369,50.0087,465.658,-0.406857,0.350733,-1.87035,4.0812 "
    "+units=m +no_defs"
)
WGS84_CRS = "EPSG:4326"

# srsName written on encoded GML geometries
RD_NEW_SRS_NAME = "urn:ogc:def:crs:EPSG::28992"

# Fixed-point decimals per projected coordinate (0.1 mm)
COORDINATE_DECIMALS = 4

GEOJSON_POLYGON: Final = "Polygon"
GEOJSON_MULTIPOLYGON: Final = "MultiPolygon"
