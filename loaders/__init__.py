"""Loaders module for the equity scenario calculator."""

from .grant_loader import coerce_grant, load_grant, load_grants_from_json
from .profile_loader import ProfileLoader, load_user_profile

__all__ = [
    'ProfileLoader',
    'coerce_grant',
    'load_grant',
    'load_grants_from_json',
    'load_user_profile',
]
