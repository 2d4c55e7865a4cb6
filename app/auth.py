"""
Identity boundary

Tokens are issued by the external identity provider as HS256 JWTs signed
with JWT_SECRET. This module only verifies them and resolves the caller's
profile row.
"""
import datetime
import logging
from functools import wraps

import jwt
from flask import current_app, request, g

from app.errors import Unauthenticated
from app.models.user import get_user

logger = logging.getLogger(__name__)


def generate_token(uid, expires_in=3600, **claims):
    """Sign a token the way the identity provider does (used by dev tooling and tests)."""
    now = datetime.datetime.now(datetime.timezone.utc)
    payload = {
        'user_id': uid,
        'iat': now,
        'exp': now + datetime.timedelta(seconds=expires_in),
    }
    payload.update(claims)
    return jwt.encode(payload, current_app.config['JWT_SECRET'], algorithm=current_app.config['JWT_ALGORITHM'])


def verify_token(token):
    """Return the decoded claims, or None when the token is missing, expired or forged."""
    if not token:
        return None
    try:
        payload = jwt.decode(
            token,
            current_app.config['JWT_SECRET'],
            algorithms=[current_app.config['JWT_ALGORITHM']],
        )
    except jwt.ExpiredSignatureError:
        logger.info("Rejected expired token")
        return None
    except jwt.InvalidTokenError:
        return None
    if not (payload.get('user_id') or payload.get('sub')):
        return None
    return payload


def _bearer_token():
    header = request.headers.get('Authorization', '')
    if header.startswith('Bearer '):
        return header[len('Bearer '):].strip()
    return None


def current_claims():
    claims = verify_token(_bearer_token())
    if not claims:
        raise Unauthenticated()
    return claims


def require_auth(f):
    """Decorator to require an authenticated caller with a profile.

    The view receives the caller's ``User`` row as ``user``.
    """
    @wraps(f)
    def decorated_function(*args, **kwargs):
        claims = current_claims()
        user = get_user(claims.get('user_id') or claims.get('sub'))
        if user is None:
            raise Unauthenticated('Profile not found. Complete your profile first.')
        g.user = user
        return f(*args, user=user, **kwargs)
    return decorated_function


def require_identity(f):
    """Decorator for endpoints that run before a profile exists.

    The view receives ``user_id`` and the raw token ``claims``.
    """
    @wraps(f)
    def decorated_function(*args, **kwargs):
        claims = current_claims()
        return f(*args, user_id=claims.get('user_id') or claims.get('sub'), claims=claims, **kwargs)
    return decorated_function
