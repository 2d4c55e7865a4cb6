"""Job endpoints"""
from flask import Blueprint, jsonify, request

from app import job_store, lifecycle, permissions
from app.auth import require_auth
from app.errors import PermissionDenied
from app.routes import request_limit
from app.utils.validators import json_body

jobs_bp = Blueprint('jobs', __name__, url_prefix='/api/jobs')


@jobs_bp.route('', methods=['POST'])
@require_auth
def create_job(user):
    """
    Create a job
    POST /api/jobs
    Body: { "issue_type": "towing", "notes": "...", "pickup_lat": .., "pickup_lng": .., ... }

    Customers open a marketplace job. Staff and providers create an internal
    job (pending dispatch) and may pass customer contact details or customer_uid.
    """
    result = job_store.create_job(json_body(), user)
    return jsonify({'job': result.job.to_dict(), 'warnings': result.warnings}), 201


@jobs_bp.route('', methods=['GET'])
@require_auth
def list_jobs(user):
    """
    Jobs the caller is involved in
    GET /api/jobs?status=bidding&limit=20
    """
    status = request.args.get('status')
    if status:
        status = lifecycle.normalize_status(status)
    jobs = job_store.list_jobs(user, status=status, limit=request_limit())
    return jsonify({'jobs': [job.to_dict() for job in jobs]}), 200


@jobs_bp.route('/available', methods=['GET'])
@require_auth
def available_jobs(user):
    """Open marketplace jobs for providers to bid on"""
    if not permissions.acting_provider_uid(user):
        raise PermissionDenied('Only providers can browse available jobs')
    jobs = job_store.list_available_jobs(limit=request_limit())
    return jsonify({'jobs': [job.to_dict() for job in jobs]}), 200


@jobs_bp.route('/<job_id>', methods=['GET'])
@require_auth
def get_job(user, job_id):
    job = job_store.get_job(job_id, user)
    return jsonify({'job': job.to_dict()}), 200


@jobs_bp.route('/<job_id>', methods=['PATCH'])
@require_auth
def update_job(user, job_id):
    """
    Edit descriptive fields while the job is pre-bid
    PATCH /api/jobs/:id
    """
    result = job_store.update_job(job_id, json_body(), user)
    return jsonify({'job': result.job.to_dict(), 'warnings': result.warnings}), 200


@jobs_bp.route('/<job_id>/status', methods=['PUT'])
@require_auth
def update_status(user, job_id):
    """
    Move a job through its lifecycle
    PUT /api/jobs/:id/status
    Body: { "status": "enroute", "expected_status": "assigned" }
    """
    data = json_body()
    result = lifecycle.transition(job_id, data.get('status'), user, expected_status=data.get('expected_status'))
    return jsonify({
        'job': result.job.to_dict(),
        'previous_status': result.previous_status,
        'warnings': result.warnings,
    }), 200


@jobs_bp.route('/<job_id>/cancel', methods=['POST'])
@require_auth
def cancel_job(user, job_id):
    result = lifecycle.transition(job_id, lifecycle.CANCELED, user)
    return jsonify({
        'job': result.job.to_dict(),
        'previous_status': result.previous_status,
        'rejected_bid_ids': [bid.id for bid in result.rejected_bids],
        'warnings': result.warnings,
    }), 200


@jobs_bp.route('/<job_id>/events', methods=['GET'])
@require_auth
def job_events(user, job_id):
    events = job_store.list_events(job_id, user)
    return jsonify({'events': [event.to_dict() for event in events]}), 200
