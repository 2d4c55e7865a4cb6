"""
Socket.IO real-time fan-out.

Clients authenticate on connect with the same bearer token as the REST API
and are placed in their personal ``user:<uid>`` room. They may join
``job:<id>`` rooms for jobs they can see. Every emit from REST code goes
through ``broadcast`` which never raises.
"""
import logging

from flask import request
from flask_socketio import SocketIO, emit, join_room, leave_room, disconnect

from app import db
from app.auth import verify_token
from app.models import Job
from app.models.user import get_user

logger = logging.getLogger(__name__)

socketio = SocketIO()

# sid -> uid for connected, authenticated clients
_connected = {}


def job_room(job_id):
    return "job:{}".format(job_id)


def user_room(uid):
    return "user:{}".format(uid)


@socketio.on("connect")
def handle_connect(auth=None):
    token = (auth or {}).get("token") or request.args.get("token")
    claims = verify_token(token)
    if not claims:
        logger.info("[socket] Rejected unauthenticated client %s", request.sid)
        return False
    uid = claims.get("user_id") or claims.get("sub")
    _connected[request.sid] = uid
    join_room(user_room(uid))
    logger.debug("[socket] Client %s connected as %s", request.sid, uid)


@socketio.on("disconnect")
def handle_disconnect(*args):
    _connected.pop(request.sid, None)
    logger.debug("[socket] Client disconnected: %s", request.sid)


@socketio.on("job:join")
def handle_job_join(data):
    """Join a job room. data = { job_id: "<id>" }"""
    from app.permissions import can_view_job

    uid = _connected.get(request.sid)
    job_id = (data or {}).get("job_id")
    if not uid or not job_id:
        disconnect()
        return
    user = get_user(uid)
    job = db.session.get(Job, job_id)
    if user is None or job is None or not can_view_job(user, job):
        emit("error", {"error": "Job not available", "job_id": job_id}, room=request.sid)
        return
    join_room(job_room(job_id))
    emit("joined", {"room": job_room(job_id)}, room=request.sid)


@socketio.on("job:leave")
def handle_job_leave(data):
    job_id = (data or {}).get("job_id")
    if job_id:
        leave_room(job_room(job_id))


def broadcast(event, payload, room):
    """Emit to a room. Returns False instead of raising on failure."""
    try:
        socketio.emit(event, payload, room=room)
        return True
    except Exception:
        logger.exception("Socket emit %s to %s failed", event, room)
        return False


def broadcast_job_status(job, previous_status=None):
    payload = {"job_id": job.id, "status": job.status, "previous_status": previous_status}
    return broadcast("job:status", payload, job_room(job.id))


def broadcast_new_bid(bid, owner_uid):
    payload = bid.to_dict()
    sent = broadcast("bid:new", payload, job_room(bid.job_id))
    return broadcast("bid:new", payload, user_room(owner_uid)) and sent


def broadcast_bid_resolved(job, accepted_bid, rejected_bids):
    payload = {
        "job_id": job.id,
        "status": job.status,
        "accepted_bid_id": accepted_bid.id,
        "rejected_bid_ids": [bid.id for bid in rejected_bids],
    }
    return broadcast("bid:resolved", payload, job_room(job.id))


def push_notification(notification):
    return broadcast("notification:new", notification.to_dict(), user_room(notification.user_id))


def broadcast_chat_message(message, recipients):
    payload = message.to_dict()
    ok = True
    for uid in recipients:
        ok = broadcast("chat:message", payload, user_room(uid)) and ok
    return ok
