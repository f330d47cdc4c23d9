"""RVO EDI-Crop connector.

Client for the Dutch RVO EDI-Crop exchange service: queries a farm's
crop fields as GeoJSON (WGS 84) and drives crop field mutations through
submit, poll, validate and formalize/cancel. Geometries travel to and
from the service as GML in RD New (EPSG:28992).
"""

__version__ = "0.1.0"
