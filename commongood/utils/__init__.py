"""Shared utilities for the CommonGood API.

This package contains reusable utilities that are shared across
multiple route files to reduce code duplication.
"""

from commongood.utils.auth import token_required, token_optional
from commongood.utils.errors import AppError

__all__ = [
    'token_required',
    'token_optional',
    'AppError',
]
