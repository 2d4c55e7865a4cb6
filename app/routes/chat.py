"""Chat endpoints"""
from flask import Blueprint, jsonify, request

from app import chat
from app.auth import require_auth
from app.routes import request_limit
from app.utils.validators import json_body

chat_bp = Blueprint('chat', __name__, url_prefix='/api/jobs')


@chat_bp.route('/<job_id>/chat/<thread>', methods=['GET'])
@require_auth
def list_messages(user, job_id, thread):
    """
    Messages in a thread, oldest first
    GET /api/jobs/:id/chat/pre_bid?provider_uid=...&before=<message_id>&limit=50
    """
    messages = chat.list_messages(
        job_id,
        thread,
        user,
        provider_uid=request.args.get('provider_uid'),
        before=request.args.get('before'),
        limit=request_limit(),
    )
    return jsonify({'messages': [m.to_dict() for m in messages]}), 200


@chat_bp.route('/<job_id>/chat/<thread>', methods=['POST'])
@require_auth
def send_message(user, job_id, thread):
    """
    POST /api/jobs/:id/chat/job
    Body: { "body": "...", "provider_uid": "..." }
    """
    data = json_body()
    result = chat.send_message(
        job_id,
        thread,
        user,
        data.get('body'),
        provider_uid=data.get('provider_uid') or request.args.get('provider_uid'),
    )
    return jsonify({'message': result.message.to_dict(), 'warnings': result.warnings}), 201
