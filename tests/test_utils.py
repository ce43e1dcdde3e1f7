"""
Tests for request parsing, validation and upload helpers.
"""

import pytest

from commongood.utils.errors import AppError
from commongood.utils.request_data import parse_coordinates, parse_string_list
from commongood.utils.uploads import detect_image_type, allowed_image
from commongood.utils.validators import validate_listing, validate_signup, validate_review

from conftest import PNG_BYTES, JPEG_BYTES


class TestParseCoordinates:

    def test_lng_lat_array(self):
        assert parse_coordinates({'coordinates': [-122.6, 45.5]}) == (45.5, -122.6)

    def test_geojson_point(self):
        assert parse_coordinates({'coordinates': {'type': 'Point', 'coordinates': [2.35, 48.85]}}) == (48.85, 2.35)

    def test_latitude_longitude_fields(self):
        assert parse_coordinates({'latitude': '45.5', 'longitude': '-122.6'}) == (45.5, -122.6)

    def test_comma_separated_form_value(self):
        assert parse_coordinates({'coordinates': ['-122.6,45.5']}) == (45.5, -122.6)

    def test_nothing_sent(self):
        assert parse_coordinates({'title': 'No coordinates'}) is None

    @pytest.mark.parametrize('coordinates', [
        [1, 2, 3],
        ['east', 'north'],
        [0, 95],
        [-181, 0],
        {'type': 'Polygon', 'coordinates': [0, 0]},
    ])
    def test_invalid(self, coordinates):
        with pytest.raises(AppError) as excinfo:
            parse_coordinates({'coordinates': coordinates})
        assert excinfo.value.status_code == 400


class TestParseStringList:

    def test_list(self):
        assert parse_string_list(['a', ' b ', '']) == ['a', 'b']

    def test_comma_string(self):
        assert parse_string_list('garden, tools,,bikes') == ['garden', 'tools', 'bikes']

    def test_none(self):
        assert parse_string_list(None) == []

    def test_rejects_non_strings(self):
        with pytest.raises(AppError):
            parse_string_list([1, 2])


class TestImageDetection:

    def test_png(self):
        exts, mime = detect_image_type(PNG_BYTES)
        assert 'png' in exts
        assert mime == 'image/png'

    def test_jpeg(self):
        exts, _ = detect_image_type(JPEG_BYTES)
        assert exts == {'jpg', 'jpeg'}

    def test_webp_needs_webp_marker(self):
        assert detect_image_type(b'RIFF\x00\x00\x00\x00WAVE' + b'\x00' * 8) == (None, None)
        exts, _ = detect_image_type(b'RIFF\x00\x00\x00\x00WEBP' + b'\x00' * 8)
        assert exts == {'webp'}

    def test_unknown(self):
        assert detect_image_type(b'plain text file content') == (None, None)

    def test_allowed_extensions(self):
        assert allowed_image('photo.JPG')
        assert not allowed_image('script.php')
        assert not allowed_image('noextension')


class TestValidators:

    def test_valid_signup(self):
        assert validate_signup({'name': 'Jo Smith', 'email': 'jo@example.com', 'password': 'longenough'}) == []

    def test_listing_partial_only_checks_sent_fields(self):
        assert validate_listing({'title': 'A good title'}, partial=True) == []
        errors = validate_listing({'title': 'Bad'}, partial=True)
        assert [e['field'] for e in errors] == ['title']

    def test_listing_too_many_tags(self):
        errors = validate_listing({'title': 'A good title'}, [f'tag{i}' for i in range(21)], partial=True)
        assert [e['field'] for e in errors] == ['tags']

    def test_review_rejects_bool_rating(self):
        errors = validate_review({'rating': True, 'comment': 'Lovely person'})
        assert [e['field'] for e in errors] == ['rating']
