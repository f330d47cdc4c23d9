"""Project an OpvragenBedrijfspercelen response into GeoJSON crop field features.

Walks ``Envelope/Body/OpvragenBedrijfspercelenResponse/Farm/Field/CropField``
(each level may occur 0, 1 or N times). A crop field whose ``Border``
does not decode to a geometry is skipped, never emitted with a null
geometry. Missing farm or field data is an empty collection, not an error.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any

from rvo_connector.geometry import decode_gml_geometry
from rvo_connector.models.feature import QUALITY_INDICATOR_KEY, CropFieldFeature, FeatureCollection
from rvo_connector.transformers.mutation import raise_for_fault
from rvo_connector.xmltree import as_list, child, simplify, text_of

if TYPE_CHECKING:
    from rvo_connector.xmltree import Node

logger = logging.getLogger("rvo_connector.transformers.crop_fields")

QUERY_RESPONSE = "OpvragenBedrijfspercelenResponse"
GEOMETRY_KEYS = frozenset({"Border", "Geometry"})


def project_crop_fields(tree: Node | None) -> FeatureCollection:
    """Build a ``FeatureCollection`` from a parsed bedrijfspercelen response.

    The envelope levels are optional: a tree rooted at ``Body`` or at the
    response node itself is walked the same way.

    Raises:
        SoapFaultError: If the body holds a SOAP ``Fault``.
    """
    root = _response_root(tree)

    features: list[CropFieldFeature] = []
    skipped = 0
    for farm in as_list(child(root, "Farm")):
        for field_node in as_list(child(farm, "Field")):
            for crop_field in as_list(child(field_node, "CropField")):
                feature = project_crop_field(crop_field)
                if feature is None:
                    skipped += 1
                    logger.debug(
                        "crop field skipped | reason=no_geometry | crop_field_id=%s",
                        _crop_field_id(crop_field),
                    )
                    continue
                features.append(feature)

    logger.info("crop fields projected | features=%d | skipped=%d", len(features), skipped)
    return FeatureCollection(features=tuple(features))


def project_crop_field(crop_field: Node) -> CropFieldFeature | None:
    """Project one ``CropField`` node; ``None`` if its border has no geometry."""
    if not isinstance(crop_field, dict):
        return None
    geometry = decode_gml_geometry(crop_field.get("Border"))
    if geometry is None:
        return None
    return CropFieldFeature(geometry=geometry, properties=crop_field_properties(crop_field))


def crop_field_properties(crop_field: dict[str, Node]) -> dict[str, Any]:
    """Every key except the geometry keys, deep-simplified.

    ``QualityIndicatorType`` keeps its shape (single or list); each
    indicator's ``Geometry`` is decoded into a ``geometry`` entry.
    """
    properties: dict[str, Any] = {}
    for key, value in crop_field.items():
        if key in GEOMETRY_KEYS:
            continue
        if key == QUALITY_INDICATOR_KEY:
            if isinstance(value, list):
                properties[key] = [_project_indicator(item) for item in value]
            else:
                properties[key] = _project_indicator(value)
            continue
        properties[key] = simplify(value)
    return properties


def _project_indicator(node: Node) -> Any:
    if not isinstance(node, dict):
        return simplify(node)

    indicator = {key: simplify(value) for key, value in node.items() if key != "Geometry"}
    raw_geometry = node.get("Geometry")
    if raw_geometry is not None:
        geometry = decode_gml_geometry(raw_geometry)
        if geometry is not None:
            indicator["geometry"] = geometry
    return indicator


def _response_root(tree: Node | None) -> Node | None:
    root = tree
    envelope = child(root, "Envelope")
    if envelope is not None:
        root = envelope
    body = child(root, "Body")
    if body is not None:
        root = body
        if isinstance(body, dict):
            raise_for_fault(body)
    response = child(root, QUERY_RESPONSE)
    if response is not None:
        root = response
    return root


def _crop_field_id(crop_field: Node) -> str:
    for key in ("CropFieldID", "CropFieldId", "CropFieldDesignator"):
        value = text_of(child(crop_field, key))
        if value:
            return value
    return ""
