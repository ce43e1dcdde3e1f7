"""Validation of uploaded image files.

Checks performed on every file before it reaches Cloudinary:
1. Declared MIME type is an image
2. File extension against the whitelist
3. File size against the per-file limit
4. Magic bytes match an actual image format
5. Extension matches the detected image type
"""

from flask import request

from commongood.utils.errors import AppError

# Allowed file extensions
IMAGE_EXTENSIONS = {'png', 'jpg', 'jpeg', 'gif', 'webp'}

# File size limits
PROFILE_PICTURE_MAX_SIZE = 5 * 1024 * 1024  # 5MB
LISTING_PHOTO_MAX_SIZE = 10 * 1024 * 1024  # 10MB

# Magic bytes for image format detection
# Maps magic byte signatures to (extension_set, mime_type)
IMAGE_SIGNATURES = [
    (b'\x89PNG\r\n\x1a\n', {'png'}, 'image/png'),
    (b'\xff\xd8\xff', {'jpg', 'jpeg'}, 'image/jpeg'),
    (b'GIF87a', {'gif'}, 'image/gif'),
    (b'GIF89a', {'gif'}, 'image/gif'),
    (b'RIFF', {'webp'}, 'image/webp'),  # WebP starts with RIFF....WEBP
]


def detect_image_type(file_data: bytes):
    """Detect image type from magic bytes.

    Returns:
        Tuple of (extension_set, mime_type) or (None, None) if unknown.
    """
    if len(file_data) < 12:
        return None, None

    for signature, exts, mime in IMAGE_SIGNATURES:
        if file_data[:len(signature)] == signature:
            # Extra check for WebP: bytes 8-12 must be 'WEBP'
            if 'webp' in exts and file_data[8:12] != b'WEBP':
                continue
            return exts, mime

    return None, None


def allowed_image(filename):
    """Check if file has an allowed image extension."""
    return '.' in filename and \
           filename.rsplit('.', 1)[1].lower() in IMAGE_EXTENSIONS


def read_image(file, max_size):
    """Validate one uploaded FileStorage and return its bytes."""
    if not file.filename:
        raise AppError('No file selected.', 400)

    if file.mimetype and not file.mimetype.startswith('image/'):
        raise AppError('Not an image! Please upload only images.', 400)

    if not allowed_image(file.filename):
        allowed_types = ', '.join(sorted(IMAGE_EXTENSIONS))
        raise AppError(f'File type not allowed. Allowed: {allowed_types}', 400)

    file_data = file.read()

    if len(file_data) > max_size:
        max_mb = max_size // (1024 * 1024)
        raise AppError(f'File too large. Maximum size: {max_mb}MB', 400)

    # Don't trust the client's content type
    detected_exts, _ = detect_image_type(file_data)
    if detected_exts is None:
        raise AppError('Not an image! Please upload only images.', 400)

    file_ext = file.filename.rsplit('.', 1)[1].lower()
    if file_ext not in detected_exts:
        raise AppError(f'File extension .{file_ext} does not match actual image format', 400)

    return file_data


def get_images_from_request(field, max_size, max_count=1):
    """Read and validate the images posted under ``field``.

    Returns a (possibly empty) list of raw image bytes.
    """
    files = [f for f in request.files.getlist(field) if f and f.filename]
    if len(files) > max_count:
        raise AppError(f'You can upload a maximum of {max_count} images.', 400)
    return [read_image(f, max_size) for f in files]
