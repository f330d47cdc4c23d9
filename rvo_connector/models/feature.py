"""Data model for crop fields projected from an OpvragenBedrijfspercelen response.

A ``CropFieldFeature`` is one ``CropField`` node with a decoded WGS 84
geometry and its simplified properties. Quality indicators stay inside
the property map in their source shape (single or list); the
``quality_indicators`` view reads them back as typed values.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from collections.abc import Iterator, Mapping

    from rvo_connector.models.contracts import (
        GeoJsonFeature,
        GeoJsonFeatureCollection,
        GeoJsonGeometry,
    )

#: Property key holding the quality indicator(s) of a crop field.
QUALITY_INDICATOR_KEY = "QualityIndicatorType"

_TYPED_KEYS: dict[str, tuple[str, ...]] = {
    "code": ("Code", "IndicatorCode", "QualityIndicatorCode"),
    "severity": ("Severity", "SeverityCode", "IndicatorSeverity"),
    "description": ("Description", "IndicatorDescription", "MessageDescription"),
}


@dataclass(frozen=True, slots=True)
class QualityIndicator:
    """A diagnostic annotation attached to a crop field.

    Attributes:
        code: Indicator code.
        severity: Indicator severity as reported by the service.
        description: Human-readable description.
        geometry: Decoded GeoJSON geometry of the flagged area, if any.
        attributes: All remaining simplified indicator properties.
        source_keys: Property key each typed field was read from, so
            ``to_dict()`` writes it back under the same name.
    """

    code: str = ""
    severity: str = ""
    description: str = ""
    geometry: dict[str, Any] | None = None
    attributes: dict[str, Any] = field(default_factory=dict)
    source_keys: dict[str, str] = field(default_factory=dict, repr=False)

    @classmethod
    def from_properties(cls, data: Mapping[str, Any]) -> QualityIndicator:
        """Build from a projected indicator property map."""
        remaining = dict(data)
        geometry = remaining.get("geometry")
        if isinstance(geometry, dict):
            del remaining["geometry"]
        else:
            geometry = None
        source_keys: dict[str, str] = {}
        values: dict[str, str] = {}
        for name, candidates in _TYPED_KEYS.items():
            key = _first_text_key(remaining, candidates)
            if key is not None:
                values[name] = remaining.pop(key)
                source_keys[name] = key
        return cls(geometry=geometry, attributes=remaining, source_keys=source_keys, **values)

    def to_dict(self) -> dict[str, Any]:
        """Property-map form, as found under ``QualityIndicatorType``.

        Typed fields go back under their source key. A field that was not
        read from a source key is written under its default key only when
        it is non-empty.
        """
        result: dict[str, Any] = dict(self.attributes)
        for name, candidates in _TYPED_KEYS.items():
            value = getattr(self, name)
            key = self.source_keys.get(name)
            if key is None:
                if not value:
                    continue
                key = candidates[0]
            result[key] = value
        if self.geometry is not None:
            result["geometry"] = self.geometry
        return result


@dataclass(frozen=True, slots=True)
class CropFieldFeature:
    """A single crop field with its geometry and properties.

    Attributes:
        geometry: GeoJSON Polygon or MultiPolygon in WGS 84. Never ``None``:
            fields without a decodable border are not projected.
        properties: Simplified CropField properties, ``Border`` and
            ``Geometry`` excluded.
    """

    geometry: GeoJsonGeometry
    properties: dict[str, Any] = field(default_factory=dict)

    @property
    def quality_indicators(self) -> list[QualityIndicator]:
        """Typed view of the ``QualityIndicatorType`` property (0, 1 or N)."""
        raw = self.properties.get(QUALITY_INDICATOR_KEY)
        if raw is None:
            return []
        items = raw if isinstance(raw, list) else [raw]
        return [QualityIndicator.from_properties(item) for item in items if isinstance(item, dict)]

    def to_dict(self) -> GeoJsonFeature:
        """Serialise to a GeoJSON Feature."""
        return {
            "type": "Feature",
            "geometry": self.geometry,
            "properties": dict(self.properties),
        }


@dataclass(frozen=True, slots=True)
class FeatureCollection:
    """Ordered, immutable collection of crop field features (source order)."""

    features: tuple[CropFieldFeature, ...] = ()

    def __len__(self) -> int:
        return len(self.features)

    def __iter__(self) -> Iterator[CropFieldFeature]:
        return iter(self.features)

    def to_dict(self) -> GeoJsonFeatureCollection:
        """Serialise to a GeoJSON FeatureCollection."""
        return {
            "type": "FeatureCollection",
            "features": [feature.to_dict() for feature in self.features],
        }


def _first_text_key(data: Mapping[str, Any], keys: tuple[str, ...]) -> str | None:
    for key in keys:
        if isinstance(data.get(key), str):
            return key
    return None
