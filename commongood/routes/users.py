"""User profile routes."""

import logging
from datetime import datetime

from flask import Blueprint, request, g

from commongood import db
from commongood.models import User, Listing
from commongood.models.user import DEFAULT_PROFILE_PICTURE_URL
from commongood.routes.helpers import (
    require_storage, upload_images, delete_images_safe, resolve_coordinates
)
from commongood.services import storage
from commongood.utils.api_features import APIFeatures
from commongood.utils.auth import create_token, token_required
from commongood.utils.errors import AppError
from commongood.utils.request_data import get_request_data, parse_string_list
from commongood.utils.responses import success, no_content
from commongood.utils.uploads import get_images_from_request, PROFILE_PICTURE_MAX_SIZE
from commongood.utils.validators import (
    validate_profile, validate_new_password, raise_for_errors
)

logger = logging.getLogger(__name__)

users_bp = Blueprint('users', __name__)

# Allowed fields for profile update (prevent mass assignment)
PROFILE_ALLOWED_FIELDS = {
    'name', 'bio', 'location', 'skills_offered', 'skills_sought',
    'coordinates', 'latitude', 'longitude'
}


def _get_active_user_or_404(user_id):
    user = db.session.get(User, user_id)
    if not user or not user.is_active:
        raise AppError('No user found with that ID.', 404)
    return user


@users_bp.route('/<int:user_id>', methods=['GET'])
def get_user(user_id):
    """Get a user's public profile."""
    user = _get_active_user_or_404(user_id)
    return success({'user': user.to_dict()})


@users_bp.route('/<int:user_id>/listings', methods=['GET'])
def get_user_listings(user_id):
    """Get a user's listings, any status unless filtered."""
    _get_active_user_or_404(user_id)

    features = APIFeatures(Listing, Listing.query.filter_by(user_id=user_id), request.args) \
        .filter().search().sort().limit_fields().paginate()
    listings = features.execute()
    return success({'listings': listings}, **features.meta(listings))


@users_bp.route('/updateMe', methods=['PATCH'])
@token_required
def update_me():
    """Update the current user's profile, optionally with a new picture."""
    user = g.current_user
    data = get_request_data()

    if 'password' in data or 'password_confirm' in data:
        raise AppError(
            'This route is not for password updates. Please use /updateMyPassword.', 400
        )

    updates = {key: value for key, value in data.items() if key in PROFILE_ALLOWED_FIELDS}

    skills_offered = parse_string_list(updates['skills_offered']) if 'skills_offered' in updates else None
    skills_sought = parse_string_list(updates['skills_sought']) if 'skills_sought' in updates else None
    raise_for_errors(validate_profile(updates, skills_offered, skills_sought))

    images = get_images_from_request('profile_picture', PROFILE_PICTURE_MAX_SIZE)
    require_storage(images)

    if 'name' in updates:
        user.name = updates['name'].strip()
    if 'bio' in updates:
        user.bio = updates['bio']
    if skills_offered is not None:
        user.skills_offered = skills_offered
    if skills_sought is not None:
        user.skills_sought = skills_sought

    location_changed = 'location' in updates and updates['location'] != user.location
    if 'location' in updates:
        user.location = updates['location'] or None

    coordinates = resolve_coordinates(updates, user.location if location_changed else None)
    if coordinates:
        user.latitude, user.longitude = coordinates

    old_public_id = None
    if images:
        photo, = upload_images(
            images, storage.profile_picture_folder(user.id), storage.PROFILE_PICTURE_TRANSFORMATION
        )
        if user.profile_picture_url != DEFAULT_PROFILE_PICTURE_URL:
            old_public_id = user.profile_picture_public_id
        user.profile_picture_url = photo['url']
        user.profile_picture_public_id = photo['public_id']

    db.session.commit()

    if old_public_id:
        delete_images_safe([old_public_id])

    return success({'user': user.to_dict(private=True)})


@users_bp.route('/updateMyPassword', methods=['PATCH'])
@token_required
def update_my_password():
    """Change the password and issue a fresh token."""
    user = g.current_user
    data = get_request_data()

    raise_for_errors(validate_new_password(data))

    if not user.check_password(data['current_password']):
        raise AppError('Your current password is wrong.', 401)

    user.set_password(data['new_password'])
    # Whole seconds, so the token issued below is not older than the change
    user.password_changed_at = datetime.utcnow().replace(microsecond=0)
    db.session.commit()

    logger.info(f'User {user.id} changed password')
    return success({'user': user.to_dict(private=True)}, token=create_token(user))


@users_bp.route('/deleteMe', methods=['DELETE'])
@token_required
def delete_me():
    """Deactivate the current user's account."""
    user = g.current_user
    user.is_active = False
    db.session.commit()

    logger.info(f'User {user.id} deactivated their account')
    return no_content()
