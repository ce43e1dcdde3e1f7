"""External services: Cloudinary storage and geocoding."""
