"""Geometry codec: GML in RD New (EPSG:28992) <-> GeoJSON in WGS 84.

The codec is split into focused stages:
- **_poslist**: ``posList`` text -> projected points
- **_projection**: RD New <-> WGS 84 point transforms (pyproj)
- **_gml**: polygon / multipolygon decode and encode
- **_validation**: advisory shapely well-formedness report

Every function is pure; failures surface to the caller with their
specific exception type and are never recovered internally.
"""

from rvo_connector.geometry._constants import (
    COORDINATE_DECIMALS,
    RD_NEW_PROJ4,
    RD_NEW_SRS_NAME,
    WGS84_CRS,
)
from rvo_connector.geometry._gml import (
    build_gml_element,
    decode_gml_geometry,
    decode_gml_polygon,
    encode_geojson_to_gml,
    format_position_list,
)
from rvo_connector.geometry._poslist import parse_position_list
from rvo_connector.geometry._projection import to_geographic, to_projected
from rvo_connector.geometry._validation import geometry_issues

__all__ = [
    "COORDINATE_DECIMALS",
    "RD_NEW_PROJ4",
    "RD_NEW_SRS_NAME",
    "WGS84_CRS",
    "build_gml_element",
    "decode_gml_geometry",
    "decode_gml_polygon",
    "encode_geojson_to_gml",
    "format_position_list",
    "geometry_issues",
    "parse_position_list",
    "to_geographic",
    "to_projected",
]
