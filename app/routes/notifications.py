"""Notification inbox endpoints"""
from flask import Blueprint, jsonify, request

from app import notifications
from app.auth import require_auth
from app.routes import request_limit
from app.utils.validators import parse_bool

notifications_bp = Blueprint('notifications', __name__, url_prefix='/api/notifications')


@notifications_bp.route('', methods=['GET'])
@require_auth
def list_notifications(user):
    """
    Inbox, newest first
    GET /api/notifications?unread_only=true&limit=20
    """
    items = notifications.list_notifications(
        user.id,
        unread_only=parse_bool(request.args.get('unread_only', False)),
        limit=request_limit(),
    )
    return jsonify({
        'notifications': [n.to_dict() for n in items],
        'unread_count': notifications.unread_count(user.id),
    }), 200


@notifications_bp.route('/unread-count', methods=['GET'])
@require_auth
def unread_count(user):
    return jsonify({'unread_count': notifications.unread_count(user.id)}), 200


@notifications_bp.route('/<notification_id>/read', methods=['PUT'])
@require_auth
def mark_read(user, notification_id):
    notification = notifications.mark_read(notification_id, user.id)
    return jsonify({'notification': notification.to_dict()}), 200


@notifications_bp.route('/read-all', methods=['PUT'])
@require_auth
def mark_all_read(user):
    updated = notifications.mark_all_read(user.id)
    return jsonify({'updated': updated}), 200
