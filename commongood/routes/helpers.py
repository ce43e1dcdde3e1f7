"""Shared helper functions for route modules."""

import logging

from commongood import db
from commongood.services import storage
from commongood.services.geolocation import geocode_location
from commongood.utils.errors import AppError
from commongood.utils.request_data import parse_coordinates

logger = logging.getLogger(__name__)


def require_storage(images):
    """Fail with 503 when files were sent but Cloudinary is not configured."""
    if images and not storage.is_storage_configured():
        raise AppError('Image storage is not configured.', 503)


def upload_images(images, folder, transformation):
    """Upload validated images, returning a list of ``{url, public_id}``.

    If one upload fails the ones already stored are removed again.
    """
    uploaded = []
    for file_data in images:
        photo, error = storage.upload_image(file_data, folder, transformation)
        if error:
            if uploaded:
                storage.delete_images([p['public_id'] for p in uploaded])
            raise AppError(f'Image upload failed: {error}', 500)
        uploaded.append(photo)
    return uploaded


def delete_images_safe(public_ids):
    """Delete images from Cloudinary, logging instead of raising on failure."""
    if not public_ids:
        return
    ok, error = storage.delete_images(public_ids)
    if not ok:
        logger.warning(f'Could not delete images {public_ids}: {error}')


def resolve_coordinates(data, location=None):
    """Coordinates sent in the body, else the geocoded ``location``, else None."""
    coordinates = parse_coordinates(data)
    if coordinates:
        return coordinates
    if location:
        return geocode_location(location)
    return None


def get_or_404(model, object_id, message):
    obj = db.session.get(model, object_id)
    if obj is None:
        raise AppError(message, 404)
    return obj
