"""Dispatch endpoints"""
from flask import Blueprint, jsonify

from app import dispatch
from app.auth import require_auth
from app.utils.validators import json_body, require_fields

dispatch_bp = Blueprint('dispatch', __name__, url_prefix='/api/dispatch')


def _result_response(result):
    return jsonify({
        'job': result.job.to_dict(),
        'previous_status': result.previous_status,
        'warnings': result.warnings,
    }), 200


@dispatch_bp.route('/jobs/<job_id>/provider', methods=['POST'])
@require_auth
def assign_provider(user, job_id):
    """
    Dispatch a job to a provider
    POST /api/dispatch/jobs/:id/provider
    Body: { "provider_uid": "..." }
    """
    data = json_body()
    require_fields(data, 'provider_uid')
    return _result_response(dispatch.assign_provider(job_id, data['provider_uid'], user))


@dispatch_bp.route('/jobs/<job_id>/confirm', methods=['POST'])
@require_auth
def confirm_assignment(user, job_id):
    return _result_response(dispatch.confirm_assignment(job_id, user))


@dispatch_bp.route('/jobs/<job_id>/employee', methods=['POST'])
@require_auth
def assign_employee(user, job_id):
    """
    Hand a job to an employee
    POST /api/dispatch/jobs/:id/employee
    Body: { "employee_uid": "..." }
    """
    data = json_body()
    require_fields(data, 'employee_uid')
    return _result_response(dispatch.assign_employee(job_id, data['employee_uid'], user))
