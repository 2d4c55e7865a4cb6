"""API blueprints"""
from flask import current_app, request

from app.utils.validators import parse_limit


def request_limit():
    """?limit= bounded by the configured page sizes."""
    return parse_limit(
        request.args.get('limit'),
        current_app.config['ITEMS_PER_PAGE'],
        current_app.config['MAX_ITEMS_PER_PAGE'],
    )


from .me import me_bp  # noqa: E402
from .jobs import jobs_bp  # noqa: E402
from .bids import bids_bp  # noqa: E402
from .claims import claims_bp  # noqa: E402
from .dispatch import dispatch_bp  # noqa: E402
from .chat import chat_bp  # noqa: E402
from .notifications import notifications_bp  # noqa: E402
from .geo import geo_bp  # noqa: E402
from .employees import employees_bp  # noqa: E402
from .ratings import ratings_bp  # noqa: E402

all_blueprints = (
    me_bp,
    jobs_bp,
    bids_bp,
    claims_bp,
    dispatch_bp,
    chat_bp,
    notifications_bp,
    geo_bp,
    employees_bp,
    ratings_bp,
)

__all__ = ['all_blueprints', 'request_limit']
