"""Input validation rules.

Each ``validate_*`` function returns a list of ``{'field', 'message'}``
dicts (empty when the input is fine). ``raise_for_errors`` turns a
non-empty list into a 400 'Validation Error'.
"""

import re

from commongood.models.listing import LISTING_TYPES, LISTING_STATUSES
from commongood.models.review import MIN_RATING, MAX_RATING
from commongood.models.user import MIN_PASSWORD_LENGTH
from commongood.utils.errors import AppError

# Email validation regex
EMAIL_REGEX = re.compile(r'^[a-zA-Z0-9._%+-]+@[a-zA-Z0-9.-]+\.[a-zA-Z]{2,}$')

LISTING_TITLE_LENGTH = (5, 100)
LISTING_DESCRIPTION_LENGTH = (10, 1000)
REVIEW_COMMENT_LENGTH = (5, 1000)
NAME_LENGTH = (2, 50)
BIO_MAX_LENGTH = 500
LOCATION_MAX_LENGTH = 255
SHORT_TEXT_MAX_LENGTH = 100
MAX_TAGS = 20
MAX_SKILLS = 30


def raise_for_errors(errors):
    if errors:
        raise AppError('Validation Error', 400, errors)


def _error(field, message):
    return {'field': field, 'message': message}


def _check_length(errors, data, field, bounds, label, required=True):
    value = data.get(field)
    if value is None or (isinstance(value, str) and not value.strip()):
        if required:
            errors.append(_error(field, f'{label} is required.'))
        return
    if not isinstance(value, str):
        errors.append(_error(field, f'{label} must be a string.'))
        return
    minimum, maximum = bounds
    if not minimum <= len(value.strip()) <= maximum:
        errors.append(_error(field, f'{label} must be between {minimum} and {maximum} characters.'))


def _check_max_length(errors, data, field, maximum, label):
    value = data.get(field)
    if value is None:
        return
    if not isinstance(value, str):
        errors.append(_error(field, f'{label} must be a string.'))
    elif len(value.strip()) > maximum:
        errors.append(_error(field, f'{label} cannot be more than {maximum} characters.'))


def _check_string_list(errors, field, values, max_items, label):
    if len(values) > max_items:
        errors.append(_error(field, f'{label} can have at most {max_items} items.'))
    elif any(len(value) > 50 for value in values):
        errors.append(_error(field, f'Each item in {label.lower()} must be under 50 characters.'))


def validate_email(errors, email):
    if not isinstance(email, str) or not EMAIL_REGEX.match(email.strip()) or len(email) > 254:
        errors.append(_error('email', 'Please provide a valid email address.'))


def validate_signup(data):
    errors = []
    _check_length(errors, data, 'name', NAME_LENGTH, 'Name')
    validate_email(errors, data.get('email'))
    password = data.get('password')
    if not isinstance(password, str) or len(password) < MIN_PASSWORD_LENGTH:
        errors.append(_error('password', f'Password must be at least {MIN_PASSWORD_LENGTH} characters long.'))
    return errors


def validate_new_password(data):
    errors = []
    current = data.get('current_password')
    if not isinstance(current, str) or not current:
        errors.append(_error('current_password', 'Current password is required.'))
    password = data.get('new_password')
    if not isinstance(password, str) or len(password) < MIN_PASSWORD_LENGTH:
        errors.append(_error('new_password', f'Password must be at least {MIN_PASSWORD_LENGTH} characters long.'))
    return errors


def validate_listing(data, tags=None, partial=False):
    """Validate listing fields; with ``partial`` only the fields present are checked."""
    errors = []
    required = not partial

    if required or 'title' in data:
        _check_length(errors, data, 'title', LISTING_TITLE_LENGTH, 'Title')
    if required or 'description' in data:
        _check_length(errors, data, 'description', LISTING_DESCRIPTION_LENGTH, 'Description')
    if required or 'category' in data:
        _check_length(errors, data, 'category', (1, 50), 'Category')
    if required or 'listing_type' in data:
        if data.get('listing_type') not in LISTING_TYPES:
            errors.append(_error(
                'listing_type',
                f'Listing type must be one of: {", ".join(LISTING_TYPES)}.'
            ))
    if 'status' in data and data.get('status') not in LISTING_STATUSES:
        errors.append(_error('status', f'Status must be one of: {", ".join(LISTING_STATUSES)}.'))

    _check_max_length(errors, data, 'location', LOCATION_MAX_LENGTH, 'Location')
    _check_max_length(errors, data, 'estimated_effort', SHORT_TEXT_MAX_LENGTH, 'Estimated effort')
    _check_max_length(errors, data, 'exchange_preference', SHORT_TEXT_MAX_LENGTH, 'Exchange preference')

    if tags:
        _check_string_list(errors, 'tags', tags, MAX_TAGS, 'Tags')
    return errors


def validate_review(data, partial=False):
    errors = []
    required = not partial

    if required or 'rating' in data:
        rating = data.get('rating')
        if isinstance(rating, bool) or not isinstance(rating, int) \
                or not MIN_RATING <= rating <= MAX_RATING:
            errors.append(_error(
                'rating', f'Rating must be an integer between {MIN_RATING} and {MAX_RATING}.'
            ))
    if required or 'comment' in data:
        _check_length(errors, data, 'comment', REVIEW_COMMENT_LENGTH, 'Comment')
    return errors


def validate_profile(data, skills_offered=None, skills_sought=None):
    errors = []
    if 'name' in data:
        _check_length(errors, data, 'name', NAME_LENGTH, 'Name')
    _check_max_length(errors, data, 'bio', BIO_MAX_LENGTH, 'Bio')
    _check_max_length(errors, data, 'location', LOCATION_MAX_LENGTH, 'Location')
    if skills_offered:
        _check_string_list(errors, 'skills_offered', skills_offered, MAX_SKILLS, 'Skills offered')
    if skills_sought:
        _check_string_list(errors, 'skills_sought', skills_sought, MAX_SKILLS, 'Skills sought')
    return errors
