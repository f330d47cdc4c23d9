"""GML (RD New) <-> GeoJSON (WGS 84) polygon codec."""

from __future__ import annotations

from collections.abc import Mapping, Sequence
from typing import TYPE_CHECKING, Any

from lxml import etree

from rvo_connector.core.constants import GML_NS
from rvo_connector.core.exceptions import MalformedInputError, UnsupportedGeometryError
from rvo_connector.geometry._constants import (
    COORDINATE_DECIMALS,
    GEOJSON_MULTIPOLYGON,
    GEOJSON_POLYGON,
    RD_NEW_SRS_NAME,
)
from rvo_connector.geometry._poslist import parse_position_list
from rvo_connector.geometry._projection import to_geographic, to_projected
from rvo_connector.xmltree import as_list, child, text_of

if TYPE_CHECKING:
    from lxml.etree import _Element

    from rvo_connector.models.contracts import GeoJsonGeometry, GeoJsonPolygon
    from rvo_connector.xmltree import Node


_NSMAP = {"gml": GML_NS}


# ---------------------------------------------------------------------------
# Decode: parsed GML tree -> GeoJSON
# ---------------------------------------------------------------------------


def decode_gml_polygon(node: Node | None) -> GeoJsonPolygon | None:
    """Decode a GML polygon node (``exterior`` / ``interior`` children).

    Returns ``None`` when the exterior ring is absent or yields no points;
    callers treat that as "no geometry", never as a zero-area shape.
    Interior rings without points are dropped.
    """
    exterior = _ring_coordinates(child(node, "exterior"))
    if not exterior:
        return None

    holes: list[list[list[float]]] = []
    for interior in as_list(child(node, "interior")):
        ring = _ring_coordinates(interior)
        if ring:
            holes.append(ring)

    return {"type": GEOJSON_POLYGON, "coordinates": [exterior, *holes]}


def decode_gml_geometry(node: Node | None) -> GeoJsonGeometry | None:
    """Decode a polygon, a ``Polygon`` wrapper, or a ``MultiSurface``.

    Returns a GeoJSON Polygon or MultiPolygon, or ``None`` if nothing
    decodes to a geometry.
    """
    if child(node, "exterior") is not None:
        return decode_gml_polygon(node)

    polygon = child(node, "Polygon")
    if polygon is not None:
        return decode_gml_polygon(polygon)

    multi = child(node, "MultiSurface")
    if multi is None and child(node, "surfaceMember") is not None:
        multi = node
    if multi is None:
        return None

    members: list[Node] = []
    for member in as_list(child(multi, "surfaceMember")):
        members.extend(as_list(child(member, "Polygon")))
    members.extend(as_list(child(multi, "surfaceMembers", "Polygon")))

    polygons: list[Any] = []
    for member in members:
        decoded = decode_gml_polygon(member)
        if decoded is not None:
            polygons.append(decoded["coordinates"])

    if not polygons:
        return None
    return {"type": GEOJSON_MULTIPOLYGON, "coordinates": polygons}


def _ring_coordinates(container: Node | None) -> list[list[float]]:
    """Read a ``LinearRing`` (posList or pos sequence) and reproject it."""
    ring = child(container, "LinearRing")
    if ring is None:
        return []

    # posList keeps its srsName/srsDimension attributes in the tree.
    text = text_of(child(ring, "posList"))
    if text:
        points = parse_position_list(text)
    else:
        points = []
        for pos in as_list(child(ring, "pos")):
            points.extend(parse_position_list(text_of(pos)))

    return to_geographic(points)


# ---------------------------------------------------------------------------
# Encode: GeoJSON -> GML
# ---------------------------------------------------------------------------


def build_gml_element(geometry: object) -> _Element:
    """Build a ``gml:Polygon`` / ``gml:MultiSurface`` element in RD New.

    Accepts a GeoJSON mapping or any object exposing ``__geo_interface__``
    (e.g. a shapely geometry).

    Raises:
        UnsupportedGeometryError: For geometry types other than Polygon
            and MultiPolygon.
        MalformedInputError: If the geometry or its coordinates are malformed.
    """
    if hasattr(geometry, "__geo_interface__"):
        geometry = geometry.__geo_interface__
    if not isinstance(geometry, Mapping):
        msg = f"Geometry must be a GeoJSON mapping, got {type(geometry).__name__}"
        raise MalformedInputError(msg)

    geometry_type = geometry.get("type")
    coordinates = geometry.get("coordinates") or []

    if geometry_type == GEOJSON_POLYGON:
        return _polygon_element(coordinates, root=True)

    if geometry_type == GEOJSON_MULTIPOLYGON:
        multi = etree.Element(_gml("MultiSurface"), nsmap=_NSMAP)
        multi.set("srsName", RD_NEW_SRS_NAME)
        for polygon in _as_sequence(coordinates, "MultiPolygon coordinates"):
            member = etree.SubElement(multi, _gml("surfaceMember"))
            member.append(_polygon_element(polygon, root=False))
        return multi

    raise UnsupportedGeometryError(geometry_type)


def encode_geojson_to_gml(geometry: object) -> str:
    """Serialise a GeoJSON Polygon / MultiPolygon to GML text in RD New.

    Coordinates are written fixed-point with four decimals (0.1 mm). A
    Polygon without rings yields an explicit empty ``gml:Polygon``.
    """
    return etree.tostring(build_gml_element(geometry), encoding="unicode")


def _polygon_element(rings: object, *, root: bool) -> _Element:
    polygon = etree.Element(_gml("Polygon"), nsmap=_NSMAP)
    if root:
        polygon.set("srsName", RD_NEW_SRS_NAME)

    for index, ring in enumerate(_as_sequence(rings, "Polygon coordinates")):
        boundary = etree.SubElement(polygon, _gml("exterior" if index == 0 else "interior"))
        linear_ring = etree.SubElement(boundary, _gml("LinearRing"))
        pos_list = etree.SubElement(linear_ring, _gml("posList"))
        pos_list.set("srsDimension", "2")
        pos_list.text = format_position_list(to_projected(_coerce_ring(ring, index)))

    return polygon


def format_position_list(points: Sequence[Sequence[float]]) -> str:
    """Format projected points as fixed-point ``"x y x y ..."`` text."""
    return " ".join(
        f"{x:.{COORDINATE_DECIMALS}f} {y:.{COORDINATE_DECIMALS}f}" for x, y in points
    )


def _coerce_ring(ring: object, ring_index: int) -> list[tuple[float, float]]:
    """Convert a GeoJSON ring to ``(lon, lat)`` tuples, dropping any altitude.

    Raises:
        MalformedInputError: If a position is not a numeric pair.
    """
    points: list[tuple[float, float]] = []
    for idx, position in enumerate(_as_sequence(ring, f"ring {ring_index}")):
        if not isinstance(position, Sequence) or isinstance(position, str) or len(position) < 2:
            msg = f"Malformed position at ring {ring_index}, index {idx}: {position!r}"
            raise MalformedInputError(msg)
        try:
            points.append((float(position[0]), float(position[1])))
        except (TypeError, ValueError) as exc:
            msg = f"Non-numeric position at ring {ring_index}, index {idx}: {position!r}"
            raise MalformedInputError(msg) from exc
    return points


def _as_sequence(value: object, context: str) -> Sequence[Any]:
    if not isinstance(value, Sequence) or isinstance(value, str):
        msg = f"{context} must be a sequence, got {type(value).__name__}"
        raise MalformedInputError(msg)
    return value


def _gml(local_name: str) -> str:
    return f"{{{GML_NS}}}{local_name}"
