"""Geocoding and distance helpers.

Geocoding goes through the Nominatim search API and is off unless
GEOCODING_ENABLED is set. Callers always get ``None`` on failure; a small
circuit breaker stops hammering the provider while it is down.
"""
import logging
import time
from math import radians, sin, cos, sqrt, atan2

import requests
from flask import current_app

logger = logging.getLogger(__name__)

# Same radius the listing radius search has always used
EARTH_RADIUS_KM = 6378.1

REQUEST_TIMEOUT_SECONDS = 3

# Circuit breaker: after N consecutive failures, pause for a cooldown
_consecutive_failures = 0
_MAX_CONSECUTIVE_FAILURES = 3
_failure_cooldown_until = 0  # timestamp when we can retry
_COOLDOWN_SECONDS = 300      # 5 minutes


def calculate_distance(lat1, lon1, lat2, lon2):
    """Great-circle distance between two points in km (Haversine)."""
    lat1, lon1, lat2, lon2 = map(radians, [lat1, lon1, lat2, lon2])
    dlat = lat2 - lat1
    dlon = lon2 - lon1

    a = sin(dlat / 2) ** 2 + cos(lat1) * cos(lat2) * sin(dlon / 2) ** 2
    c = 2 * atan2(sqrt(a), sqrt(1 - a))

    return EARTH_RADIUS_KM * c


def is_geocoding_enabled() -> bool:
    return bool(current_app.config.get('GEOCODING_ENABLED'))


def _is_circuit_open() -> bool:
    """Check if we should skip geocoding due to too many failures."""
    global _consecutive_failures, _failure_cooldown_until

    if _consecutive_failures >= _MAX_CONSECUTIVE_FAILURES:
        if time.time() < _failure_cooldown_until:
            return True
        _consecutive_failures = 0
        _failure_cooldown_until = 0
        logger.info("Geocoding circuit breaker reset, retrying")
    return False


def _record_success():
    global _consecutive_failures
    _consecutive_failures = 0


def _record_failure():
    global _consecutive_failures, _failure_cooldown_until

    _consecutive_failures += 1
    if _consecutive_failures >= _MAX_CONSECUTIVE_FAILURES:
        _failure_cooldown_until = time.time() + _COOLDOWN_SECONDS
        logger.warning(
            f"Geocoding failed {_consecutive_failures} times in a row. "
            f"Pausing for {_COOLDOWN_SECONDS}s."
        )


def reset_circuit():
    """Forget recorded failures."""
    global _consecutive_failures, _failure_cooldown_until
    _consecutive_failures = 0
    _failure_cooldown_until = 0


def geocode_location(location_string):
    """Resolve a free-text location into ``(latitude, longitude)``.

    Returns None when geocoding is disabled, the provider has no match,
    or the request fails.
    """
    if not location_string or not location_string.strip():
        return None

    if not is_geocoding_enabled():
        logger.debug(f"Geocoding disabled, skipping '{location_string}'")
        return None

    if _is_circuit_open():
        return None

    try:
        response = requests.get(
            current_app.config['GEOCODING_URL'],
            params={'q': location_string.strip(), 'format': 'json', 'limit': 1},
            headers={'User-Agent': current_app.config['GEOCODING_USER_AGENT']},
            timeout=REQUEST_TIMEOUT_SECONDS
        )
        response.raise_for_status()
        results = response.json()
    except requests.Timeout:
        logger.warning(f"Geocoding timeout for '{location_string}'")
        _record_failure()
        return None
    except (requests.RequestException, ValueError) as e:
        logger.warning(f"Geocoding error for '{location_string}': {e}")
        _record_failure()
        return None

    _record_success()

    if not results:
        logger.info(f"No geocoding match for '{location_string}'")
        return None

    try:
        return float(results[0]['lat']), float(results[0]['lon'])
    except (KeyError, TypeError, ValueError) as e:
        logger.warning(f"Unexpected geocoding response for '{location_string}': {e}")
        return None
