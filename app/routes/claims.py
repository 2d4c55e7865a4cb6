"""Claim link endpoints"""
import logging

from flask import Blueprint, jsonify

from app import claims as claim_protocol
from app import db
from app.auth import require_auth, require_identity
from app.errors import ValidationError
from app.models import User
from app.models.user import get_user
from app.utils.validators import json_body, normalize_phone, parse_bool
from extensions import limiter

logger = logging.getLogger(__name__)

claims_bp = Blueprint('claims', __name__, url_prefix='/api')


@claims_bp.route('/jobs/<job_id>/claim-token', methods=['POST'])
@require_auth
def create_claim_token(user, job_id):
    """
    Issue a claim link for a ghost job
    POST /api/jobs/:id/claim-token
    Body: { "ttl_minutes": 60, "send_sms": true }
    """
    data = json_body()
    token = claim_protocol.create_claim_token(
        job_id,
        user,
        ttl_minutes=data.get('ttl_minutes'),
        send_sms=parse_bool(data.get('send_sms', False)),
    )
    return jsonify(token.to_dict()), 201


@claims_bp.route('/claim', methods=['POST'])
@limiter.limit("10 per minute")
@require_identity
def claim_job(user_id, claims):
    """
    Claim a ghost job with the token from the link
    POST /api/claim
    Body: { "jobId": "...", "token": "..." }

    Accounts without a profile are provisioned as customers.
    """
    data = json_body()
    job_id = data.get('jobId') or data.get('job_id')
    if not job_id:
        raise ValidationError('jobId is required', field='jobId')

    if get_user(user_id) is None:
        db.session.add(User(
            id=user_id,
            role='customer',
            phone=normalize_phone(claims.get('phone_number')),
            email=claims.get('email'),
        ))
        db.session.commit()
        logger.info("Provisioned customer profile for %s while claiming", user_id)

    result = claim_protocol.claim_job(job_id, data.get('token'), user_id)
    return jsonify({'job': result.job.to_dict(), 'warnings': result.warnings}), 200
