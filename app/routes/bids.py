"""Bid endpoints"""
from flask import Blueprint, jsonify, request

from app import bidding
from app.auth import require_auth
from app.utils.validators import json_body

bids_bp = Blueprint('bids', __name__, url_prefix='/api')


@bids_bp.route('/jobs/<job_id>/bids', methods=['GET'])
@require_auth
def list_bids(user, job_id):
    bids = bidding.list_bids(job_id, user)
    return jsonify({'bids': [bid.to_dict() for bid in bids]}), 200


@bids_bp.route('/jobs/<job_id>/bids', methods=['POST'])
@require_auth
def submit_bid(user, job_id):
    """
    Place or update the caller's bid
    POST /api/jobs/:id/bids
    Body: { "amount": 120.0, "eta_minutes": 35, "message": "..." }
    """
    data = json_body()
    result = bidding.submit_bid(
        job_id,
        user,
        amount=data.get('amount'),
        eta_minutes=data.get('eta_minutes'),
        message=data.get('message'),
    )
    return jsonify({'bid': result.bid.to_dict(), 'warnings': result.warnings}), 201 if result.created else 200


@bids_bp.route('/jobs/<job_id>/bids/<bid_id>/accept', methods=['POST'])
@require_auth
def accept_bid(user, job_id, bid_id):
    """
    Accept a bid. Safe to retry: a replay returns the same resolution.
    POST /api/jobs/:id/bids/:bid_id/accept
    """
    resolution = bidding.accept_bid(job_id, bid_id, user)
    return jsonify(resolution.to_dict()), 200


@bids_bp.route('/bids/mine', methods=['GET'])
@require_auth
def my_bids(user):
    bids = bidding.list_provider_bids(user, status=request.args.get('status'))
    return jsonify({'bids': [bid.to_dict() for bid in bids]}), 200
