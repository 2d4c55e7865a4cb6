"""
Dispatch tests: staff assign providers, providers assign employees
"""
import pytest

from app import db, dispatch
from app.errors import InvalidTransition, PermissionDenied, ValidationError
from app.models import Bid, Job, Notification


class TestAssignProvider:
    """Binding a provider to an internal job"""

    def test_staff_dispatches_ghost_job(self, dispatcher, provider, make_job):
        job = make_job(dispatcher, status='pending_dispatch')

        result = dispatch.assign_provider(job.id, provider.id, dispatcher)

        job = db.session.get(Job, job.id)
        assert result.previous_status == 'pending_dispatch'
        assert job.status == 'pending_provider_confirmation'
        assert job.provider_id == provider.id
        assert job.assigned_dispatcher_uid == dispatcher.id
        assert Notification.query.filter_by(user_id=provider.id, type='provider_assigned').count() == 1

    def test_dispatch_rejects_open_bids(self, customer, dispatcher, provider, other_provider, make_job, make_bid):
        job = make_job(customer, status='bidding')
        bid = make_bid(job, other_provider)

        dispatch.assign_provider(job.id, provider.id, dispatcher)

        assert db.session.get(Bid, bid.id).status == 'rejected'
        assert Notification.query.filter_by(user_id=other_provider.id, type='bid_rejected').count() == 1

    def test_reassign_while_awaiting_confirmation(self, dispatcher, provider, other_provider, make_job):
        job = make_job(dispatcher, status='pending_dispatch')
        dispatch.assign_provider(job.id, provider.id, dispatcher)

        dispatch.assign_provider(job.id, other_provider.id, dispatcher)

        job = db.session.get(Job, job.id)
        assert job.provider_id == other_provider.id
        assert job.status == 'pending_provider_confirmation'

    def test_cannot_dispatch_assigned_job(self, customer, dispatcher, provider, other_provider, make_job):
        job = make_job(customer, status='assigned', provider_id=provider.id)

        with pytest.raises(InvalidTransition):
            dispatch.assign_provider(job.id, other_provider.id, dispatcher)

    def test_target_must_be_provider(self, dispatcher, customer, make_job):
        job = make_job(dispatcher, status='pending_dispatch')

        with pytest.raises(ValidationError):
            dispatch.assign_provider(job.id, customer.id, dispatcher)

    def test_customer_cannot_dispatch(self, customer, provider, make_job):
        job = make_job(customer, status='open')

        with pytest.raises(PermissionDenied):
            dispatch.assign_provider(job.id, provider.id, customer)

    def test_provider_dispatcher_employee_can_dispatch(self, provider, make_job, make_employee):
        staff = make_employee(provider, role='dispatcher')
        job = make_job(staff, status='pending_dispatch')

        dispatch.assign_provider(job.id, provider.id, staff)

        assert db.session.get(Job, job.id).provider_id == provider.id

    def test_provider_self_dispatches_own_internal_job(self, provider, make_job):
        job = make_job(provider, status='pending_dispatch')

        dispatch.assign_provider(job.id, provider.id, provider)
        dispatch.confirm_assignment(job.id, provider)

        job = db.session.get(Job, job.id)
        assert job.status == 'assigned'
        assert job.provider_id == provider.id

    def test_provider_cannot_take_marketplace_job(self, customer, provider, other_provider, make_job, make_bid):
        job = make_job(customer, status='bidding')
        competing = make_bid(job, other_provider, amount=90)
        own = make_bid(job, provider, amount=500)

        with pytest.raises(PermissionDenied):
            dispatch.assign_provider(job.id, provider.id, provider)
        with pytest.raises(PermissionDenied):
            dispatch.confirm_assignment(job.id, provider)

        db.session.expire_all()
        job = db.session.get(Job, job.id)
        assert job.status == 'bidding'
        assert job.provider_id is None
        assert db.session.get(Bid, competing.id).status == 'submitted'
        assert db.session.get(Bid, own.id).status == 'submitted'

    def test_provider_dispatcher_cannot_take_marketplace_job(self, customer, provider, make_job, make_employee):
        staff = make_employee(provider, role='dispatcher')
        job = make_job(customer, status='open')

        with pytest.raises(PermissionDenied):
            dispatch.assign_provider(job.id, provider.id, staff)

        assert db.session.get(Job, job.id).provider_id is None

    def test_marketplace_dispatch_over_http_forbidden(self, client, customer, provider, headers, make_job):
        job = make_job(customer, status='open')

        response = client.post('/api/dispatch/jobs/{}/provider'.format(job.id), headers=headers(provider),
                               json={'provider_uid': provider.id})

        assert response.status_code == 403
        assert response.get_json()['code'] == 'permission_denied'


class TestConfirmAssignment:
    """Provider accepts the dispatched job"""

    def test_provider_confirms(self, client, dispatcher, provider, headers, make_job):
        job = make_job(dispatcher, status='pending_dispatch')
        dispatch.assign_provider(job.id, provider.id, dispatcher)

        response = client.post('/api/dispatch/jobs/{}/confirm'.format(job.id), headers=headers(provider))

        assert response.status_code == 200
        assert response.get_json()['job']['status'] == 'assigned'

    def test_confirm_requires_pending_confirmation(self, customer, provider, make_job):
        job = make_job(customer, status='enroute', provider_id=provider.id)

        with pytest.raises(InvalidTransition):
            dispatch.confirm_assignment(job.id, provider)


class TestAssignEmployee:
    """Provider hands the job to a tech"""

    def test_provider_assigns_tech(self, client, customer, provider, headers, make_job, make_employee):
        tech = make_employee(provider)
        job = make_job(customer, status='assigned', provider_id=provider.id)

        response = client.post('/api/dispatch/jobs/{}/employee'.format(job.id), headers=headers(provider),
                               json={'employee_uid': tech.id})

        assert response.status_code == 200
        assert response.get_json()['job']['assigned_employee_uid'] == tech.id
        assert Notification.query.filter_by(user_id=tech.id).count() == 1

    def test_employee_of_other_provider_rejected(self, customer, provider, other_provider, make_job, make_employee):
        outsider = make_employee(other_provider)
        job = make_job(customer, status='assigned', provider_id=provider.id)

        with pytest.raises(ValidationError):
            dispatch.assign_employee(job.id, outsider.id, provider)

    def test_inactive_employee_rejected(self, customer, provider, make_job, make_employee):
        former = make_employee(provider, active=False)
        job = make_job(customer, status='assigned', provider_id=provider.id)

        with pytest.raises(ValidationError):
            dispatch.assign_employee(job.id, former.id, provider)

    def test_missing_employee_uid(self, client, customer, provider, headers, make_job):
        job = make_job(customer, status='assigned', provider_id=provider.id)

        response = client.post('/api/dispatch/jobs/{}/employee'.format(job.id), headers=headers(provider), json={})

        assert response.status_code == 400
