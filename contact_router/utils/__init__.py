"""Utility functions: phone normalization and upstream retries."""
from .phone import digits_only, mask_phone, normalize_phone
from .retry import fetch_with_retries

__all__ = [
    # Phone utilities
    'digits_only',
    'mask_phone',
    'normalize_phone',
    # Retry utilities
    'fetch_with_retries',
]
