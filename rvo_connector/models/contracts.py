"""GeoJSON payload contracts returned by the connector.

Every ``to_dict()`` on the feature models produces one of these shapes.
They are ``TypedDict``s because callers usually hand the result straight
to a JSON encoder or a GIS library that expects plain dicts.
"""

from __future__ import annotations

from typing import Any, Literal, TypedDict


class GeoJsonPolygon(TypedDict):
    """GeoJSON Polygon: ``[exterior, *holes]``, each ring a list of ``[lon, lat]``."""

    type: Literal["Polygon"]
    coordinates: list[list[list[float]]]


class GeoJsonMultiPolygon(TypedDict):
    """GeoJSON MultiPolygon: one coordinate block per member polygon."""

    type: Literal["MultiPolygon"]
    coordinates: list[list[list[list[float]]]]


GeoJsonGeometry = GeoJsonPolygon | GeoJsonMultiPolygon


class GeoJsonFeature(TypedDict):
    """Serialised ``CropFieldFeature``."""

    type: Literal["Feature"]
    geometry: GeoJsonGeometry
    properties: dict[str, Any]


class GeoJsonFeatureCollection(TypedDict):
    """Serialised ``FeatureCollection``."""

    type: Literal["FeatureCollection"]
    features: list[GeoJsonFeature]


class ValidationMessagePayload(TypedDict):
    """Serialised ``ValidationMessage``."""

    code: str
    message: str
    severity: str
    field_id: str
