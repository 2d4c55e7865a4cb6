"""Provider staff endpoints"""
from flask import Blueprint, jsonify, request

from app import employees
from app.auth import require_auth
from app.utils.validators import json_body, parse_bool

employees_bp = Blueprint('employees', __name__, url_prefix='/api/providers')


@employees_bp.route('/<provider_uid>/employees', methods=['GET'])
@require_auth
def list_employees(user, provider_uid):
    """
    Staff of a provider
    GET /api/providers/:uid/employees?include_inactive=true
    """
    staff = employees.list_employees(
        provider_uid, user, include_inactive=parse_bool(request.args.get('include_inactive', False))
    )
    return jsonify({'employees': [employment.to_dict() for employment in staff]}), 200


@employees_bp.route('/<provider_uid>/employees', methods=['POST'])
@require_auth
def add_employee(user, provider_uid):
    """
    Add or reactivate an employee
    POST /api/providers/:uid/employees
    Body: { "user_uid": "...", "role": "tech", "name": "...", "email": "...", "phone": "..." }
    """
    data = json_body()
    employment, created = employees.add_employee(
        provider_uid,
        user,
        data.get('user_uid'),
        role=data.get('role'),
        name=data.get('name'),
        email=data.get('email'),
        phone=data.get('phone'),
    )
    return jsonify({'employee': employment.to_dict()}), 201 if created else 200


@employees_bp.route('/<provider_uid>/employees/<user_uid>', methods=['DELETE'])
@require_auth
def deactivate_employee(user, provider_uid, user_uid):
    employment, released = employees.deactivate_employee(provider_uid, user, user_uid)
    return jsonify({'employee': employment.to_dict(), 'released_job_ids': released}), 200
