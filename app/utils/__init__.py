"""Utilities package"""
from .validators import validate_email, normalize_phone, require_fields
from .retry import retry_call
from .transactions import atomic

__all__ = [
    'validate_email',
    'normalize_phone',
    'require_fields',
    'retry_call',
    'atomic',
]
