"""Cloudinary storage service for listing photos and profile pictures.

Folders:
- commongood/user_profiles/<user_id>: profile pictures (250x250 face crop)
- commongood/listing_photos/<user_id>/<timestamp>: listing photos (max 800x600)
"""

import io
import logging
import os
import time
from typing import List, Optional, Tuple

import cloudinary
import cloudinary.api
import cloudinary.uploader

logger = logging.getLogger(__name__)

ALLOWED_FORMATS = ['jpg', 'jpeg', 'png', 'gif', 'webp']

PROFILE_PICTURE_TRANSFORMATION = [{'width': 250, 'height': 250, 'crop': 'fill', 'gravity': 'face'}]
LISTING_PHOTO_TRANSFORMATION = [{'width': 800, 'height': 600, 'crop': 'limit'}]

_configured = False


def configure_cloudinary() -> bool:
    """Configure the Cloudinary SDK from the environment (lazy, once)."""
    global _configured

    if _configured:
        return True

    cloud_name = os.getenv('CLOUDINARY_CLOUD_NAME')
    api_key = os.getenv('CLOUDINARY_API_KEY')
    api_secret = os.getenv('CLOUDINARY_API_SECRET')

    if cloud_name and api_key and api_secret:
        cloudinary.config(
            cloud_name=cloud_name,
            api_key=api_key,
            api_secret=api_secret,
            secure=True
        )
    elif os.getenv('CLOUDINARY_URL'):
        # The SDK reads CLOUDINARY_URL on its own
        cloudinary.reset_config()
    else:
        logger.warning('Cloudinary credentials not configured. Image uploads will not work.')
        return False

    _configured = True
    logger.info('Cloudinary configured successfully')
    return True


def is_storage_configured() -> bool:
    """Check if Cloudinary is properly configured."""
    return configure_cloudinary()


def profile_picture_folder(user_id) -> str:
    return f'commongood/user_profiles/{user_id}'


def listing_photos_folder(user_id) -> str:
    return f'commongood/listing_photos/{user_id}/{int(time.time() * 1000)}'


def upload_image(
    file_data: bytes,
    folder: str,
    transformation: Optional[list] = None
) -> Tuple[Optional[dict], Optional[str]]:
    """Upload an image to Cloudinary.

    Args:
        file_data: Raw image bytes (already validated)
        folder: Destination folder
        transformation: Incoming transformation applied by Cloudinary

    Returns:
        Tuple of (photo, error_message)
        If successful: ({'url': ..., 'public_id': ...}, None)
        If failed: (None, error_message)
    """
    if not configure_cloudinary():
        return None, 'Storage service not configured'

    try:
        logger.info(f'Uploading image to {folder} ({len(file_data)} bytes)')

        result = cloudinary.uploader.upload(
            io.BytesIO(file_data),
            folder=folder,
            resource_type='image',
            allowed_formats=ALLOWED_FORMATS,
            transformation=transformation
        )

        photo = {'url': result['secure_url'], 'public_id': result['public_id']}
        logger.info(f'Image uploaded successfully: {photo["public_id"]}')
        return photo, None

    except Exception as e:
        error_msg = str(e)
        logger.error(f'Upload failed: {error_msg}')
        return None, error_msg


def delete_images(public_ids: List[str]) -> Tuple[bool, Optional[str]]:
    """Delete images from Cloudinary by public_id (batch).

    Returns:
        Tuple of (success, error_message)
    """
    if not public_ids:
        return True, None

    if not configure_cloudinary():
        return False, 'Storage service not configured'

    try:
        logger.info(f'Deleting {len(public_ids)} image(s) from Cloudinary')
        cloudinary.api.delete_resources(list(public_ids))
        return True, None

    except Exception as e:
        error_msg = str(e)
        logger.error(f'Delete failed: {error_msg}')
        return False, error_msg
