"""
Job store tests: creation, editing and reads over the API
"""
import requests

from app import db
from app.models import Job, JobEvent


class TestJobCreation:
    """Creating jobs"""

    def test_customer_creates_open_marketplace_job(self, client, customer, headers):
        response = client.post('/api/jobs', headers=headers(customer), json={
            'issue_type': 'battery',
            'notes': 'Car will not start',
            'pickup_address_text': '100 Main St, Miami FL',
        })

        assert response.status_code == 201
        job = response.get_json()['job']
        assert job['status'] == 'open'
        assert job['origin'] == 'marketplace'
        assert job['customer_uid'] == customer.id
        assert job['claim_status'] == 'claimed'
        assert job['provider_id'] is None
        assert JobEvent.query.filter_by(job_id=job['id'], action='created').count() == 1

    def test_staff_creates_ghost_job(self, client, dispatcher, headers):
        response = client.post('/api/jobs', headers=headers(dispatcher), json={
            'issue_type': 'tire',
            'customer_name': 'Pat Driver',
            'customer_phone': '(305) 555-1234',
        })

        assert response.status_code == 201
        job = response.get_json()['job']
        assert job['status'] == 'pending_dispatch'
        assert job['origin'] == 'internal'
        assert job['customer_uid'] is None
        assert job['claim_status'] == 'unclaimed'
        assert job['customer_phone'] == '+13055551234'

    def test_issue_type_required(self, client, customer, headers):
        response = client.post('/api/jobs', headers=headers(customer), json={'notes': 'help'})

        assert response.status_code == 400
        assert response.get_json()['code'] == 'validation_error'

    def test_unknown_issue_type_rejected(self, client, customer, headers):
        response = client.post('/api/jobs', headers=headers(customer), json={'issue_type': 'spaceship'})

        assert response.status_code == 400

    def test_status_cannot_be_set_on_create(self, client, customer, headers):
        response = client.post('/api/jobs', headers=headers(customer), json={
            'issue_type': 'towing',
            'status': 'completed',
        })

        assert response.status_code == 400
        assert 'status' in response.get_json()['fields']

    def test_mileage_computed_for_tows(self, client, customer, headers, maps_api):
        response = client.post('/api/jobs', headers=headers(customer), json={
            'issue_type': 'towing',
            'pickup_lat': 25.76, 'pickup_lng': -80.19,
            'dropoff_lat': 25.79, 'dropoff_lng': -80.13,
        })

        assert response.status_code == 201
        body = response.get_json()
        assert body['job']['distance_meters'] == 16093
        assert body['job']['duration_seconds'] == 1260
        assert body['warnings'] == []
        assert 'distancematrix' in maps_api['calls'][0]['url']

    def test_mileage_failure_degrades_to_warning(self, client, customer, headers, maps_api):
        maps_api['responses'] = [requests.ConnectionError('no route to host')] * 3

        response = client.post('/api/jobs', headers=headers(customer), json={
            'issue_type': 'towing',
            'pickup_lat': 25.76, 'pickup_lng': -80.19,
            'dropoff_lat': 25.79, 'dropoff_lng': -80.13,
        })

        assert response.status_code == 201
        body = response.get_json()
        assert body['job']['distance_meters'] is None
        assert body['warnings'][0]['service'] == 'routing'
        assert len(maps_api['calls']) == 3

    def test_requires_authentication(self, client):
        response = client.post('/api/jobs', json={'issue_type': 'towing'})

        assert response.status_code == 401
        assert response.get_json()['code'] == 'unauthenticated'


class TestJobUpdate:
    """Editing descriptive fields"""

    def test_owner_edits_open_job(self, client, customer, headers, make_job):
        job = make_job(customer, status='open')
        before = job.updated_at

        response = client.patch('/api/jobs/{}'.format(job.id), headers=headers(customer), json={
            'notes': 'Flat rear tire',
            'priority': 'urgent',
        })

        assert response.status_code == 200
        body = response.get_json()['job']
        assert body['notes'] == 'Flat rear tire'
        assert body['priority'] == 'urgent'
        updated = db.session.get(Job, job.id)
        assert updated.updated_at >= before
        event = JobEvent.query.filter_by(job_id=job.id, action='updated').one()
        assert event.new_values['notes'] == 'Flat rear tire'

    def test_edit_rejected_once_bidding(self, client, customer, headers, make_job):
        job = make_job(customer, status='bidding')

        response = client.patch('/api/jobs/{}'.format(job.id), headers=headers(customer), json={'notes': 'x'})

        assert response.status_code == 403
        assert response.get_json()['code'] == 'permission_denied'

    def test_status_field_rejected(self, client, customer, headers, make_job):
        job = make_job(customer, status='open')

        response = client.patch('/api/jobs/{}'.format(job.id), headers=headers(customer), json={'status': 'assigned'})

        assert response.status_code == 400
        assert db.session.get(Job, job.id).status == 'open'

    def test_provider_cannot_edit(self, client, customer, provider, headers, make_job):
        job = make_job(customer, status='open')

        response = client.patch('/api/jobs/{}'.format(job.id), headers=headers(provider), json={'notes': 'mine now'})

        assert response.status_code == 403


class TestJobReads:
    """Get, list and audit trail"""

    def test_get_missing_job(self, client, customer, headers):
        response = client.get('/api/jobs/does-not-exist', headers=headers(customer))

        assert response.status_code == 404
        assert response.get_json()['code'] == 'not_found'

    def test_other_customer_cannot_see_job(self, client, customer, make_user, headers, make_job):
        job = make_job(customer, status='assigned')
        stranger = make_user('customer')

        response = client.get('/api/jobs/{}'.format(job.id), headers=headers(stranger))

        assert response.status_code == 404

    def test_provider_sees_open_marketplace_job(self, client, customer, provider, headers, make_job):
        job = make_job(customer, status='open')

        response = client.get('/api/jobs/{}'.format(job.id), headers=headers(provider))

        assert response.status_code == 200

    def test_available_jobs_for_providers(self, client, customer, provider, other_provider, headers, make_job):
        open_job = make_job(customer, status='open')
        bidding_job = make_job(customer, status='bidding')
        make_job(customer, status='assigned', provider_id=other_provider.id)

        response = client.get('/api/jobs/available', headers=headers(provider))

        assert response.status_code == 200
        ids = {job['id'] for job in response.get_json()['jobs']}
        assert ids == {open_job.id, bidding_job.id}

    def test_customers_cannot_browse_available(self, client, customer, headers):
        response = client.get('/api/jobs/available', headers=headers(customer))

        assert response.status_code == 403

    def test_list_filters_by_alias(self, client, customer, provider, headers, make_job):
        enroute = make_job(customer, status='enroute', provider_id=provider.id)
        make_job(customer, status='open')

        response = client.get('/api/jobs?status=en-route', headers=headers(customer))

        assert [job['id'] for job in response.get_json()['jobs']] == [enroute.id]

    def test_events_in_order(self, client, customer, provider, headers, make_job):
        job = make_job(customer, status='assigned', provider_id=provider.id)
        client.put('/api/jobs/{}/status'.format(job.id), headers=headers(provider), json={'status': 'enroute'})
        client.put('/api/jobs/{}/status'.format(job.id), headers=headers(provider), json={'status': 'on_site'})

        response = client.get('/api/jobs/{}/events'.format(job.id), headers=headers(customer))

        statuses = [event['new_values']['status'] for event in response.get_json()['events']]
        assert statuses == ['enroute', 'on_site']


class TestStatusEndpoints:
    """Status changes over HTTP"""

    def test_invalid_transition_is_409(self, client, customer, provider, headers, make_job):
        job = make_job(customer, status='completed', provider_id=provider.id)

        response = client.put('/api/jobs/{}/status'.format(job.id), headers=headers(provider), json={'status': 'enroute'})

        assert response.status_code == 409
        body = response.get_json()
        assert body['code'] == 'invalid_transition'
        assert body['current'] == 'completed'
        assert body['requested'] == 'enroute'

    def test_customer_cancels(self, client, customer, headers, make_job):
        job = make_job(customer, status='open')

        response = client.post('/api/jobs/{}/cancel'.format(job.id), headers=headers(customer))

        assert response.status_code == 200
        assert response.get_json()['job']['status'] == 'canceled'
