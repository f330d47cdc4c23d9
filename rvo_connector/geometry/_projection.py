"""RD New <-> WGS 84 point transforms (pyproj)."""

from __future__ import annotations

from functools import lru_cache
from typing import TYPE_CHECKING

from rvo_connector.geometry._constants import RD_NEW_PROJ4, WGS84_CRS

if TYPE_CHECKING:
    from collections.abc import Sequence

    from pyproj import Transformer


@lru_cache(maxsize=1)
def _rd_to_wgs84() -> Transformer:
    from pyproj import Transformer

    return Transformer.from_crs(RD_NEW_PROJ4, WGS84_CRS, always_xy=True)


@lru_cache(maxsize=1)
def _wgs84_to_rd() -> Transformer:
    from pyproj import Transformer

    return Transformer.from_crs(WGS84_CRS, RD_NEW_PROJ4, always_xy=True)


def to_geographic(points: Sequence[Sequence[float]]) -> list[list[float]]:
    """Transform RD New ``(x, y)`` points to WGS 84 ``[lon, lat]``."""
    if not points:
        return []
    transformer = _rd_to_wgs84()
    result: list[list[float]] = []
    for point in points:
        lon, lat = transformer.transform(point[0], point[1])
        result.append([lon, lat])
    return result


def to_projected(points: Sequence[Sequence[float]]) -> list[list[float]]:
    """Transform WGS 84 ``(lon, lat)`` points to RD New ``[x, y]``."""
    if not points:
        return []
    transformer = _wgs84_to_rd()
    result: list[list[float]] = []
    for point in points:
        x, y = transformer.transform(point[0], point[1])
        result.append([x, y])
    return result
