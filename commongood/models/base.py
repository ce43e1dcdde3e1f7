"""Serialization helpers shared by the models."""


def utc_isoformat(dt):
    """Convert datetime to ISO format with Z suffix to indicate UTC."""
    if dt is None:
        return None
    return dt.isoformat() + 'Z'


def geo_point(latitude, longitude):
    """GeoJSON point for a coordinate pair, or None when either is missing.

    GeoJSON orders coordinates as [longitude, latitude].
    """
    if latitude is None or longitude is None:
        return None
    return {'type': 'Point', 'coordinates': [longitude, latitude]}
