"""Rating endpoints"""
from flask import Blueprint, jsonify

from app import ratings
from app.auth import require_auth
from app.routes import request_limit
from app.utils.validators import json_body

ratings_bp = Blueprint('ratings', __name__, url_prefix='/api')


@ratings_bp.route('/jobs/<job_id>/rating', methods=['POST'])
@require_auth
def rate_job(user, job_id):
    """
    Rate the provider of a completed job
    POST /api/jobs/:id/rating
    Body: { "overall": 5, "satisfaction": 5, "eta": 4, "price": 4, "performance": 5, "comment": "..." }
    """
    data = json_body()
    result = ratings.rate_job(job_id, user, data, comment=data.get('comment'))
    return jsonify({
        'rating': result.rating.to_dict(),
        'provider_rating': result.provider.rating_summary(),
        'warnings': result.warnings,
    }), 201


@ratings_bp.route('/jobs/<job_id>/rating', methods=['GET'])
@require_auth
def get_rating(user, job_id):
    rating = ratings.get_job_rating(job_id, user)
    return jsonify({'rating': rating.to_dict() if rating else None}), 200


@ratings_bp.route('/providers/<provider_uid>/ratings', methods=['GET'])
@require_auth
def provider_ratings(user, provider_uid):
    provider, reviews = ratings.list_provider_ratings(provider_uid, limit=request_limit())
    return jsonify({
        'provider_uid': provider.id,
        'summary': provider.rating_summary(),
        'ratings': [rating.to_dict() for rating in reviews],
    }), 200
