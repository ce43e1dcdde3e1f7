"""Query-string driven filtering, search, geo radius, sorting and pagination.

Usage:
    features = APIFeatures(Listing, Listing.query, request.args) \\
        .filter().search().geospatial().sort().limit_fields().paginate()
    items = features.execute()

Supported query parameters:
- ``<field>=value`` / ``<field>[gte|gt|lte|lt]=value`` on the model's FILTERABLE_FIELDS
- ``search=terms`` matched against SEARCHABLE_FIELDS (any term, case-insensitive)
- ``latlng=lat,lng&distance=km`` radius filter, adds ``distance`` to each item
- ``sort=field,-other`` on SORTABLE_FIELDS, default ``-created_at``
- ``fields=a,b`` to trim the serialized items
- ``page`` / ``limit`` pagination
"""

import logging
import operator
import re
from datetime import datetime, timezone

from sqlalchemy import or_, cast, String

from commongood.services.geolocation import calculate_distance
from commongood.utils.errors import AppError

logger = logging.getLogger(__name__)

RESERVED_PARAMS = {'page', 'sort', 'limit', 'fields', 'search', 'latlng', 'distance'}

OPERATORS = {
    'gte': operator.ge,
    'gt': operator.gt,
    'lte': operator.le,
    'lt': operator.lt,
}

FILTER_KEY_REGEX = re.compile(r'^(\w+)(?:\[(gte|gt|lte|lt)\])?$')

DEFAULT_PAGE = 1
DEFAULT_LIMIT = 100
MAX_LIMIT = 100

LIKE_ESCAPE = '\\'


def _positive_int(value, default):
    try:
        number = int(value)
    except (TypeError, ValueError):
        return default
    return number if number > 0 else default


def _escape_like(term):
    """Make % and _ in a search term match literally."""
    for char in (LIKE_ESCAPE, '%', '_'):
        term = term.replace(char, LIKE_ESCAPE + char)
    return term


def _parse_datetime(raw):
    parsed = datetime.fromisoformat(raw.replace('Z', '+00:00'))
    if parsed.tzinfo is not None:
        parsed = parsed.astimezone(timezone.utc).replace(tzinfo=None)
    return parsed


class APIFeatures:
    """Chainable query builder over a SQLAlchemy query."""

    def __init__(self, model, query, query_args, default_sort='-created_at'):
        self.model = model
        self.query = query
        self.query_args = query_args
        self.default_sort = default_sort
        self.page = DEFAULT_PAGE
        self.limit = DEFAULT_LIMIT
        self.total = 0
        self._geo = None
        self._fields = None

    def _column(self, name):
        return self.model.__table__.c[name]

    def _coerce(self, name, raw):
        column = self._column(name)
        python_type = column.type.python_type
        try:
            if python_type is bool:
                if raw.lower() in ('true', '1', 'yes'):
                    return True
                if raw.lower() in ('false', '0', 'no'):
                    return False
                raise ValueError(raw)
            if python_type is datetime:
                return _parse_datetime(raw)
            return python_type(raw)
        except (TypeError, ValueError):
            raise AppError(f'Invalid {name}: {raw}.', 400)

    def filter(self):
        filterable = getattr(self.model, 'FILTERABLE_FIELDS', ())
        for key, raw in self.query_args.items():
            if key in RESERVED_PARAMS:
                continue
            match = FILTER_KEY_REGEX.match(key)
            if not match or match.group(1) not in filterable:
                continue

            name, op = match.groups()
            value = self._coerce(name, raw)
            column = self._column(name)
            if op:
                self.query = self.query.filter(OPERATORS[op](column, value))
            else:
                self.query = self.query.filter(column == value)
        return self

    def search(self):
        term_string = (self.query_args.get('search') or '').strip()
        searchable = getattr(self.model, 'SEARCHABLE_FIELDS', ())
        if not term_string or not searchable:
            return self

        clauses = []
        for term in term_string.split():
            pattern = f'%{_escape_like(term)}%'
            for name in searchable:
                column = self._column(name)
                if column.type.python_type is str:
                    clauses.append(column.ilike(pattern, escape=LIKE_ESCAPE))
                else:
                    # JSON arrays (tags) are matched on their text form
                    clauses.append(cast(column, String).ilike(pattern, escape=LIKE_ESCAPE))
        self.query = self.query.filter(or_(*clauses))
        return self

    def geospatial(self):
        latlng = self.query_args.get('latlng')
        distance = self.query_args.get('distance')
        if not latlng or not distance:
            return self

        try:
            lat, lng = (float(part) for part in latlng.split(','))
        except ValueError:
            logger.warning(f'Invalid latlng format for geospatial query: {latlng}')
            return self

        try:
            radius = float(distance)
        except ValueError:
            radius = 0
        if radius <= 0:
            logger.warning(f'Invalid distance for geospatial query: {distance}')
            return self

        if 'latitude' not in self.model.__table__.c:
            return self

        self._geo = (lat, lng, radius)
        self.query = self.query.filter(
            self.model.latitude.isnot(None),
            self.model.longitude.isnot(None)
        )
        return self

    def sort(self):
        sortable = getattr(self.model, 'SORTABLE_FIELDS', ())
        sort_param = self.query_args.get('sort') or self.default_sort

        order_by = []
        for key in sort_param.split(','):
            key = key.strip()
            descending = key.startswith('-')
            name = key.lstrip('-')
            if name not in sortable:
                continue
            column = self._column(name)
            order_by.append(column.desc() if descending else column.asc())

        if not order_by:
            order_by.append(self._column('created_at').desc())

        # Stable ordering between rows sharing a timestamp
        order_by.append(self.model.id.desc())
        self.query = self.query.order_by(*order_by)
        return self

    def limit_fields(self):
        fields = self.query_args.get('fields')
        if fields:
            self._fields = {name.strip() for name in fields.split(',') if name.strip()}
            self._fields.add('id')
        return self

    def paginate(self):
        self.page = _positive_int(self.query_args.get('page'), DEFAULT_PAGE)
        self.limit = min(_positive_int(self.query_args.get('limit'), DEFAULT_LIMIT), MAX_LIMIT)
        return self

    def _trim(self, item):
        if self._fields is None:
            return item
        return {key: value for key, value in item.items() if key in self._fields}

    def execute(self, serializer=None):
        """Run the query and return the serialized page, setting ``self.total``."""
        serializer = serializer or (lambda obj: obj.to_dict())
        offset = (self.page - 1) * self.limit

        if self._geo:
            lat, lng, radius = self._geo
            within = []
            for obj in self.query.all():
                distance = calculate_distance(lat, lng, obj.latitude, obj.longitude)
                if distance <= radius:
                    within.append((obj, distance))

            self.total = len(within)
            items = []
            for obj, distance in within[offset:offset + self.limit]:
                item = self._trim(serializer(obj))
                item['distance'] = round(distance, 2)
                items.append(item)
            return items

        self.total = self.query.count()
        rows = self.query.offset(offset).limit(self.limit).all()
        return [self._trim(serializer(obj)) for obj in rows]

    def meta(self, items):
        """Top-level pagination keys for the success envelope."""
        return {
            'results': len(items),
            'total': self.total,
            'page': self.page,
        }
