"""Input sanitization for JSON request bodies."""

import html


def sanitize_string(value):
    """Escape HTML entities in a string so stored text cannot carry markup."""
    if not isinstance(value, str):
        return value
    return html.escape(value, quote=True)


def sanitize_dict(data):
    """Recursively sanitize every string leaf of a decoded JSON body."""
    if isinstance(data, dict):
        return {key: sanitize_dict(value) for key, value in data.items()}
    if isinstance(data, list):
        return [sanitize_dict(item) for item in data]
    return sanitize_string(data)
