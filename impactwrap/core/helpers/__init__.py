"""
Helper utilities for impact tokens and donor display.
"""

from .token import assign_token, generate_token, is_valid_token
from .name import clean_name, display_name, public_donor_view, resolve_privacy

__all__ = [
    "assign_token",
    "generate_token",
    "is_valid_token",
    "clean_name",
    "display_name",
    "public_donor_view",
    "resolve_privacy",
]
