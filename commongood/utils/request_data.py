"""Body parsing shared by routes that accept JSON or multipart forms."""

from flask import request

from commongood.utils.errors import AppError

# Form fields that are always read as lists (repeated keys or key[])
LIST_FORM_FIELDS = {'tags', 'delete_photos', 'skills_offered', 'skills_sought', 'coordinates'}


def get_request_data():
    """Return the request body as a dict, from JSON or form fields."""
    if request.is_json:
        data = request.get_json(silent=True)
        if data is None:
            raise AppError('Malformed JSON body.', 400)
        if not isinstance(data, dict):
            raise AppError('Request body must be a JSON object.', 400)
        return data

    data = {}
    for raw_key in request.form:
        key = raw_key[:-2] if raw_key.endswith('[]') else raw_key
        values = request.form.getlist(raw_key)
        if key in LIST_FORM_FIELDS or raw_key.endswith('[]'):
            data.setdefault(key, [])
            data[key].extend(values)
        else:
            data[key] = values[-1]
    return data


def parse_string_list(value):
    """Normalize a list or comma-separated string into a list of trimmed strings."""
    if value is None:
        return []
    if isinstance(value, str):
        value = [value]
    if not isinstance(value, (list, tuple)):
        raise AppError('Expected a list of strings.', 400)

    items = []
    for entry in value:
        if not isinstance(entry, str):
            raise AppError('Expected a list of strings.', 400)
        items.extend(part.strip() for part in entry.split(','))
    return [item for item in items if item]


def _to_float(value):
    if isinstance(value, bool):
        raise ValueError(value)
    return float(value)


def parse_coordinates(data):
    """Extract ``(latitude, longitude)`` from a request body.

    Accepts, in order:
    - ``coordinates``: [longitude, latitude]
    - ``coordinates``: {"type": "Point", "coordinates": [longitude, latitude]}
    - ``latitude`` and ``longitude`` fields

    Returns None when no coordinates were sent.
    """
    coordinates = data.get('coordinates')
    pair = None

    if isinstance(coordinates, dict):
        if coordinates.get('type') != 'Point':
            raise AppError('Coordinates type must be "Point".', 400)
        pair = coordinates.get('coordinates')
    elif coordinates not in (None, '', []):
        pair = coordinates

    # "lng,lat" as a single string or form value
    if isinstance(pair, str):
        pair = pair.split(',')
    elif isinstance(pair, list) and len(pair) == 1 and isinstance(pair[0], str):
        pair = pair[0].split(',')

    if pair is not None:
        if not isinstance(pair, (list, tuple)) or len(pair) != 2:
            raise AppError('Coordinates must be an array of two numbers [longitude, latitude].', 400)
        raw_lng, raw_lat = pair
    elif data.get('latitude') not in (None, '') and data.get('longitude') not in (None, ''):
        raw_lat, raw_lng = data['latitude'], data['longitude']
    else:
        return None

    try:
        latitude, longitude = _to_float(raw_lat), _to_float(raw_lng)
    except (TypeError, ValueError):
        raise AppError('Longitude and latitude must be numbers.', 400)

    if not -90 <= latitude <= 90:
        raise AppError('latitude must be between -90 and 90', 400)
    if not -180 <= longitude <= 180:
        raise AppError('longitude must be between -180 and 180', 400)

    return latitude, longitude
