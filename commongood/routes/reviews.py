"""Review routes for ratings and feedback.

A review is tied to a listing: either the reviewer or the reviewee must own
that listing, and a reviewer can review a given user only once per listing.
Ratings are aggregated onto the reviewee by the Review model hooks.
"""

import logging

from flask import Blueprint, request, g
from sqlalchemy.exc import IntegrityError

from commongood import db
from commongood.models import User, Listing, Review
from commongood.routes.helpers import get_or_404
from commongood.utils.api_features import APIFeatures
from commongood.utils.auth import token_required
from commongood.utils.errors import AppError
from commongood.utils.request_data import get_request_data
from commongood.utils.responses import success, no_content
from commongood.utils.validators import validate_review, raise_for_errors

logger = logging.getLogger(__name__)

reviews_bp = Blueprint('reviews', __name__)

DUPLICATE_REVIEW = 'You have already reviewed this user for this listing.'
REVIEW_NOT_FOUND = 'No review found with that ID.'


def _parse_required_id(data, name):
    value = data.get(name)
    if value in (None, ''):
        raise AppError(f'Please provide {name}.', 400)
    if isinstance(value, bool):
        raise AppError(f'Invalid {name}.', 400)
    try:
        return int(value)
    except (TypeError, ValueError):
        raise AppError(f'Invalid {name}.', 400)


def _get_own_review(review_id):
    review = get_or_404(Review, review_id, REVIEW_NOT_FOUND)
    if review.reviewer_id != g.current_user.id:
        raise AppError('You can only modify your own reviews.', 403)
    return review


def _paginated_reviews(query, **extra):
    features = APIFeatures(Review, query, request.args) \
        .filter().search().sort().limit_fields().paginate()
    reviews = features.execute()
    data = {'reviews': reviews}
    data.update(extra)
    return success(data, **features.meta(reviews))


@reviews_bp.route('', methods=['POST'])
@token_required
def create_review():
    """Review another user about a listing."""
    reviewer = g.current_user
    data = get_request_data()

    listing_id = _parse_required_id(data, 'listing_id')
    reviewee_id = _parse_required_id(data, 'reviewee_id')
    raise_for_errors(validate_review(data))

    listing = get_or_404(Listing, listing_id, 'No listing found with that ID.')
    reviewee = db.session.get(User, reviewee_id)
    if not reviewee or not reviewee.is_active:
        raise AppError('No user found with that ID.', 404)

    if reviewee.id == reviewer.id:
        raise AppError('You cannot review yourself.', 400)

    if listing.user_id not in (reviewer.id, reviewee.id):
        raise AppError('You can only review the other party of one of your listings.', 400)

    existing = Review.query.filter_by(
        listing_id=listing.id, reviewer_id=reviewer.id, reviewee_id=reviewee.id
    ).first()
    if existing:
        raise AppError(DUPLICATE_REVIEW, 400)

    review = Review(
        listing_id=listing.id,
        reviewer_id=reviewer.id,
        reviewee_id=reviewee.id,
        rating=data['rating'],
        comment=data['comment'].strip()
    )
    db.session.add(review)
    try:
        db.session.commit()
    except IntegrityError:
        # Lost a race against an identical review
        db.session.rollback()
        raise AppError(DUPLICATE_REVIEW, 400)

    logger.info(f'Review {review.id} created: user {reviewer.id} -> user {reviewee.id}')
    return success({'review': review.to_dict()}, 201)


@reviews_bp.route('/user/<int:user_id>', methods=['GET'])
def get_user_reviews(user_id):
    """Reviews received by a user, with their rating summary."""
    user = get_or_404(User, user_id, 'No user found with that ID.')

    reviewee = {
        'id': user.id,
        'name': user.name,
        'average_rating': user.average_rating or 0,
        'num_reviews': user.num_reviews or 0,
    }
    return _paginated_reviews(Review.query.filter_by(reviewee_id=user.id), reviewee=reviewee)


@reviews_bp.route('/listing/<int:listing_id>', methods=['GET'])
def get_listing_reviews(listing_id):
    """Reviews left about a listing."""
    listing = get_or_404(Listing, listing_id, 'No listing found with that ID.')

    summary = {'id': listing.id, 'title': listing.title, 'user_id': listing.user_id}
    return _paginated_reviews(Review.query.filter_by(listing_id=listing.id), listing=summary)


@reviews_bp.route('/<int:review_id>', methods=['PATCH'])
@token_required
def update_review(review_id):
    """Update the rating or comment of my review."""
    review = _get_own_review(review_id)
    data = get_request_data()

    updates = {key: data[key] for key in ('rating', 'comment') if key in data}
    raise_for_errors(validate_review(updates, partial=True))

    if 'rating' in updates:
        review.rating = updates['rating']
    if 'comment' in updates:
        review.comment = updates['comment'].strip()
    db.session.commit()

    return success({'review': review.to_dict()})


@reviews_bp.route('/<int:review_id>', methods=['DELETE'])
@token_required
def delete_review(review_id):
    """Delete my review."""
    review = _get_own_review(review_id)
    db.session.delete(review)
    db.session.commit()

    logger.info(f'Review {review_id} deleted by user {g.current_user.id}')
    return no_content()
