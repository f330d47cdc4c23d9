"""Shapely-based well-formedness report for outgoing geometries."""

from __future__ import annotations


def geometry_issues(geometry: object) -> list[str]:
    """Return human-readable well-formedness problems of a GeoJSON geometry.

    An empty list means shapely considers the geometry valid. The report
    is advisory: the service's own validation result is authoritative.
    """
    from shapely.errors import ShapelyError
    from shapely.geometry import shape
    from shapely.validation import explain_validity

    try:
        geom = shape(geometry)
    except (ShapelyError, ValueError, TypeError, KeyError, IndexError, AttributeError) as exc:
        return [f"Cannot build geometry: {exc}"]

    if geom.is_empty:
        return ["Geometry is empty"]

    issues: list[str] = []
    if not geom.is_valid:
        issues.append(explain_validity(geom))
    if geom.area == 0:
        issues.append("Zero-area geometry")
    return issues
