"""Profile endpoints"""
import logging

from flask import Blueprint, jsonify

from app import db
from app.auth import require_identity
from app.errors import PermissionDenied, ValidationError
from app.models import User
from app.models.user import SELF_SERVICE_ROLES, get_user
from app.utils.validators import json_body, normalize_phone, validate_email

logger = logging.getLogger(__name__)

me_bp = Blueprint('me', __name__, url_prefix='/api/me')

HOME_ROUTES = {
    'customer': '/customer',
    'provider': '/provider',
    'employee': '/provider',
    'dispatcher': '/dispatch',
    'admin': '/dispatch',
}


def _profile_response(user):
    return {
        'profile': user.to_dict(include_private=True),
        'home': HOME_ROUTES.get(user.role, '/'),
    }


@me_bp.route('', methods=['GET'])
@require_identity
def get_me(user_id, claims):
    """
    Current profile
    GET /api/me

    A signed-in account without a profile gets 200 with profile null so the
    client can route it to onboarding.
    """
    user = get_user(user_id)
    if user is None:
        return jsonify({'profile': None, 'home': '/onboarding'}), 200
    return jsonify(_profile_response(user)), 200


@me_bp.route('', methods=['PUT'])
@require_identity
def put_me(user_id, claims):
    """
    Create or update the caller's profile
    PUT /api/me
    Body: { "role": "customer", "name": "...", "email": "...", "phone": "...", "business_name": "..." }

    Only customer and provider roles can be self-selected, and only once.
    """
    data = json_body()
    user = get_user(user_id)
    created = user is None

    role = data.get('role')
    if created:
        role = role or 'customer'
        if role not in SELF_SERVICE_ROLES:
            raise PermissionDenied('Role {} cannot be self-assigned'.format(role))
        user = User(id=user_id, role=role)
        db.session.add(user)
    elif role and role != user.role:
        raise PermissionDenied('Role cannot be changed')

    if 'name' in data:
        user.name = (data.get('name') or '').strip() or None
    if 'email' in data or created:
        email = data.get('email') if 'email' in data else claims.get('email')
        if email and not validate_email(email):
            raise ValidationError('Invalid email address', field='email')
        user.email = email or None
    if 'phone' in data or created:
        raw_phone = data.get('phone') if 'phone' in data else claims.get('phone_number')
        phone = normalize_phone(raw_phone)
        if raw_phone and not phone:
            raise ValidationError('Invalid phone number', field='phone')
        user.phone = phone
    if 'business_name' in data:
        if user.role != 'provider':
            raise ValidationError('Only providers have a business name', field='business_name')
        user.business_name = (data.get('business_name') or '').strip() or None

    db.session.commit()
    if created:
        logger.info("Profile created for %s as %s", user_id, user.role)
    return jsonify(_profile_response(user)), 201 if created else 200
