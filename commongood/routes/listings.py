"""Listing routes for skill and item exchanges."""

import logging

from flask import Blueprint, request, g

from commongood import db
from commongood.models import Listing, Conversation, Message, Review
from commongood.models.listing import MAX_LISTING_PHOTOS
from commongood.routes.helpers import (
    require_storage, upload_images, delete_images_safe, resolve_coordinates, get_or_404
)
from commongood.services import storage
from commongood.utils.api_features import APIFeatures
from commongood.utils.auth import token_required
from commongood.utils.errors import AppError
from commongood.utils.request_data import get_request_data, parse_string_list
from commongood.utils.responses import success, no_content
from commongood.utils.uploads import get_images_from_request, LISTING_PHOTO_MAX_SIZE
from commongood.utils.validators import validate_listing, raise_for_errors

logger = logging.getLogger(__name__)

listings_bp = Blueprint('listings', __name__)

LISTING_NOT_FOUND = 'No listing found with that ID.'

# Fields a listing owner may change
LISTING_UPDATE_FIELDS = (
    'title', 'description', 'category', 'tags', 'estimated_effort',
    'exchange_preference', 'status', 'location', 'listing_type'
)


def _get_own_listing(listing_id):
    listing = get_or_404(Listing, listing_id, LISTING_NOT_FOUND)
    if listing.user_id != g.current_user.id:
        raise AppError('You do not have permission to modify this listing.', 403)
    return listing


def _strip(value):
    return value.strip() if isinstance(value, str) else value


@listings_bp.route('', methods=['GET'])
def get_listings():
    """Get listings with filtering, search, radius and pagination.

    Only active listings are returned unless a status filter is given.
    """
    query = Listing.query
    if not any(key == 'status' or key.startswith('status[') for key in request.args):
        query = query.filter(Listing.status == 'active')

    features = APIFeatures(Listing, query, request.args) \
        .filter().search().geospatial().sort().limit_fields().paginate()
    listings = features.execute()
    return success({'listings': listings}, **features.meta(listings))


@listings_bp.route('/mine', methods=['GET'])
@token_required
def get_my_listings():
    """Get the current user's listings, any status."""
    query = Listing.query.filter_by(user_id=g.current_user.id)
    features = APIFeatures(Listing, query, request.args) \
        .filter().search().sort().limit_fields().paginate()
    listings = features.execute()
    return success({'listings': listings}, **features.meta(listings))


@listings_bp.route('/<int:listing_id>', methods=['GET'])
def get_listing(listing_id):
    """Get a single listing by ID."""
    listing = get_or_404(Listing, listing_id, LISTING_NOT_FOUND)
    return success({'listing': listing.to_dict()})


@listings_bp.route('', methods=['POST'])
@token_required
def create_listing():
    """Create a new listing, with up to five photos."""
    user = g.current_user
    data = get_request_data()

    tags = parse_string_list(data.get('tags'))
    raise_for_errors(validate_listing(data, tags))

    images = get_images_from_request('photos', LISTING_PHOTO_MAX_SIZE, MAX_LISTING_PHOTOS)
    require_storage(images)

    location = _strip(data.get('location')) or None
    coordinates = resolve_coordinates(data, location)
    if coordinates is None and user.latitude is not None:
        coordinates = (user.latitude, user.longitude)
    if not location:
        location = user.location

    listing = Listing(
        user_id=user.id,
        listing_type=data['listing_type'],
        title=data['title'].strip(),
        description=data['description'].strip(),
        category=data['category'].strip(),
        tags=tags,
        estimated_effort=_strip(data.get('estimated_effort')) or None,
        exchange_preference=_strip(data.get('exchange_preference')) or None,
        status=data.get('status') or 'active',
        location=location,
    )
    if coordinates:
        listing.latitude, listing.longitude = coordinates

    if images:
        listing.photos = upload_images(
            images, storage.listing_photos_folder(user.id), storage.LISTING_PHOTO_TRANSFORMATION
        )
    else:
        listing.photos = []

    db.session.add(listing)
    db.session.commit()

    logger.info(f'Listing {listing.id} created by user {user.id}')
    return success({'listing': listing.to_dict()}, 201)


@listings_bp.route('/<int:listing_id>', methods=['PATCH'])
@token_required
def update_listing(listing_id):
    """Update a listing (owner only)."""
    listing = _get_own_listing(listing_id)
    data = get_request_data()

    updates = {key: data[key] for key in LISTING_UPDATE_FIELDS if key in data}
    tags = parse_string_list(updates['tags']) if 'tags' in updates else None
    raise_for_errors(validate_listing(updates, tags, partial=True))

    delete_photos = set(parse_string_list(data.get('delete_photos')))
    images = get_images_from_request('photos', LISTING_PHOTO_MAX_SIZE, MAX_LISTING_PHOTOS)

    kept_photos = [p for p in (listing.photos or []) if p.get('public_id') not in delete_photos]
    if len(kept_photos) + len(images) > MAX_LISTING_PHOTOS:
        raise AppError(f'A listing can have at most {MAX_LISTING_PHOTOS} photos.', 400)
    require_storage(images)

    for key in ('title', 'description', 'category', 'estimated_effort',
                'exchange_preference', 'status', 'listing_type'):
        if key in updates:
            setattr(listing, key, _strip(updates[key]))
    if tags is not None:
        listing.tags = tags

    location_changed = 'location' in updates and updates['location'] != listing.location
    if 'location' in updates:
        listing.location = _strip(updates['location']) or None

    coordinates = resolve_coordinates(data, listing.location if location_changed else None)
    if coordinates:
        listing.latitude, listing.longitude = coordinates

    removed = [p['public_id'] for p in (listing.photos or []) if p.get('public_id') in delete_photos]
    if images:
        kept_photos = kept_photos + upload_images(
            images, storage.listing_photos_folder(listing.user_id), storage.LISTING_PHOTO_TRANSFORMATION
        )
    # Reassign so the JSON column is marked dirty
    listing.photos = kept_photos

    db.session.commit()

    delete_images_safe(removed)

    return success({'listing': listing.to_dict()})


def _release_conversations(listing_id):
    """Detach conversations from a deleted listing.

    A pair that already has a general conversation gets the listing thread's
    messages moved into it, so the pair keeps a single general thread.
    """
    for conversation in Conversation.query.filter_by(listing_id=listing_id).all():
        conversation_id = conversation.id
        general = Conversation.find_between(
            conversation.participant_1_id, conversation.participant_2_id
        )
        if general is None:
            conversation.listing_id = None
            continue

        Message.query.filter_by(conversation_id=conversation_id).update(
            {'conversation_id': general.id}, synchronize_session='fetch'
        )
        general.updated_at = max(general.updated_at, conversation.updated_at)
        Conversation.query.filter_by(id=conversation_id).delete(synchronize_session='fetch')
        logger.info(f'Merged conversation {conversation_id} into {general.id}')


@listings_bp.route('/<int:listing_id>', methods=['DELETE'])
@token_required
def delete_listing(listing_id):
    """Delete a listing (owner only). Its conversations and reviews are kept."""
    listing = _get_own_listing(listing_id)
    photo_ids = listing.photo_public_ids

    _release_conversations(listing.id)
    Review.query.filter_by(listing_id=listing.id).update({'listing_id': None})
    db.session.delete(listing)
    db.session.commit()

    delete_images_safe(photo_ids)

    logger.info(f'Listing {listing_id} deleted by user {g.current_user.id}')
    return no_content()
