"""
Pytest configuration and fixtures for the roadside backend tests
"""
import itertools

import pytest

from app import create_app, db
from app.auth import generate_token
from app.models import Bid, Employee, Job, User
from helpers import FakeResponse, distance_matrix

_uids = itertools.count(1)


@pytest.fixture
def app():
    """Application with a fresh in-memory database per test"""
    app = create_app('testing')

    with app.app_context():
        db.create_all()
        yield app
        db.session.remove()
        db.drop_all()


@pytest.fixture
def client(app):
    return app.test_client()


@pytest.fixture(autouse=True)
def socket_events(monkeypatch):
    """Record Socket.IO emits instead of sending them"""
    from app.realtime import socketio

    events = []

    def fake_emit(event, payload, room=None, **kwargs):
        events.append({"event": event, "payload": payload, "room": room})

    monkeypatch.setattr(socketio, "emit", fake_emit)
    return events


@pytest.fixture(autouse=True)
def maps_api(monkeypatch):
    """Canned Google Maps answers; tests may replace ``responses``"""
    state = {"responses": [], "calls": []}

    def fake_get(url, params=None, timeout=None):
        state["calls"].append({"url": url, "params": params})
        if state["responses"]:
            response = state["responses"].pop(0)
            if isinstance(response, Exception):
                raise response
            return response
        return FakeResponse(distance_matrix())

    monkeypatch.setattr("app.geocoding.requests.get", fake_get)
    return state


@pytest.fixture
def sent_sms(app, monkeypatch):
    """Capture every SMS handed to Twilio"""
    messages = []

    class FakeMessages:
        def create(self, body, from_, to):
            messages.append({"body": body, "from": from_, "to": to})

            class Sent:
                sid = "SM{}".format(len(messages))
            return Sent()

    class FakeClient:
        messages = FakeMessages()

    monkeypatch.setattr("app.sms_service._get_twilio", lambda: FakeClient())
    monkeypatch.setitem(app.config, "TWILIO_FROM_NUMBER", "+13055550000")
    return messages


@pytest.fixture
def make_user(app):
    """Factory for profile rows"""
    def _make_user(role='customer', uid=None, **kwargs):
        uid = uid or '{}-{}'.format(role, next(_uids))
        defaults = {
            'id': uid,
            'role': role,
            'name': 'Test {}'.format(role.title()),
            'phone': '+1305555{:04d}'.format(next(_uids) % 10000),
        }
        defaults.update(kwargs)
        user = User(**defaults)
        db.session.add(user)
        db.session.commit()
        return user
    return _make_user


@pytest.fixture
def customer(make_user):
    return make_user('customer')


@pytest.fixture
def provider(make_user):
    return make_user('provider', business_name='Fast Tow')


@pytest.fixture
def other_provider(make_user):
    return make_user('provider', business_name='Quick Fix')


@pytest.fixture
def third_provider(make_user):
    return make_user('provider', business_name='Road Angels')


@pytest.fixture
def dispatcher(make_user):
    return make_user('dispatcher')


@pytest.fixture
def make_employee(make_user):
    def _make_employee(provider, role='tech', active=True):
        user = make_user('employee', provider_uid=provider.id)
        db.session.add(Employee(provider_uid=provider.id, user_uid=user.id, role=role, active=active))
        db.session.commit()
        return user
    return _make_employee


@pytest.fixture
def headers(app):
    """Auth headers for a user, signed like the identity provider signs them"""
    def _headers(user_or_uid, **claims):
        uid = getattr(user_or_uid, 'id', user_or_uid)
        return {
            'Authorization': 'Bearer {}'.format(generate_token(uid, **claims)),
            'Content-Type': 'application/json',
        }
    return _headers


@pytest.fixture
def make_job(app):
    """Insert a job row directly in a given status"""
    def _make_job(created_by, status='open', **kwargs):
        defaults = {
            'created_by_uid': created_by.id,
            'customer_uid': created_by.id if created_by.role == 'customer' else None,
            'origin': 'marketplace' if created_by.role == 'customer' else 'internal',
            'status': status,
            'issue_type': 'towing',
        }
        defaults.update(kwargs)
        if defaults['customer_uid']:
            defaults.setdefault('claim_status', 'claimed')
        job = Job(**defaults)
        db.session.add(job)
        db.session.commit()
        return job
    return _make_job


@pytest.fixture
def make_bid(app):
    def _make_bid(job, provider, amount=100.0, eta_minutes=30, status='submitted'):
        bid = Bid(job_id=job.id, provider_uid=provider.id, amount=amount, eta_minutes=eta_minutes, status=status)
        db.session.add(bid)
        db.session.commit()
        return bid
    return _make_bid
