"""
Provider staff tests: adding, reactivating and deactivating employees
"""
import pytest

from app import db, dispatch, employees, lifecycle
from app.errors import NotFound, PermissionDenied, ValidationError
from app.models import Employee, Job, User


class TestAddEmployee:
    """Binding accounts to a provider"""

    def test_provider_adds_new_tech(self, provider):
        employment, created = employees.add_employee(
            provider.id, provider, 'tech-uid-1', role='tech',
            name='Sam Rivera', email='Sam@Example.com', phone='(305) 555-0101',
        )

        assert created
        assert employment.active
        user = db.session.get(User, 'tech-uid-1')
        assert user.role == 'employee'
        assert user.provider_uid == provider.id
        assert user.email == 'sam@example.com'
        assert user.phone == '+13055550101'

    def test_new_tech_can_work_jobs(self, customer, provider, make_job):
        employees.add_employee(provider.id, provider, 'tech-uid-2')
        tech = db.session.get(User, 'tech-uid-2')
        job = make_job(customer, status='assigned', provider_id=provider.id)

        dispatch.assign_employee(job.id, tech.id, provider)
        lifecycle.transition(job.id, 'enroute', tech)

        job = db.session.get(Job, job.id)
        assert job.assigned_employee_uid == tech.id
        assert job.status == 'enroute'

    def test_provider_dispatcher_adds_staff_over_http(self, client, provider, headers, make_employee):
        staff = make_employee(provider, role='dispatcher')

        response = client.post('/api/providers/{}/employees'.format(provider.id), headers=headers(staff),
                               json={'user_uid': 'tech-uid-3', 'role': 'tech', 'name': 'Lee'})
        listed = client.get('/api/providers/{}/employees'.format(provider.id), headers=headers(staff))

        assert response.status_code == 201
        assert response.get_json()['employee']['user_uid'] == 'tech-uid-3'
        assert {e['user_uid'] for e in listed.get_json()['employees']} == {staff.id, 'tech-uid-3'}

    def test_reactivation_keeps_single_row(self, provider, make_employee):
        former = make_employee(provider, active=False)

        employment, created = employees.add_employee(provider.id, provider, former.id, role='dispatcher')

        assert not created
        assert employment.active
        assert employment.role == 'dispatcher'
        assert Employee.query.filter_by(provider_uid=provider.id, user_uid=former.id).count() == 1

    def test_customer_account_rejected(self, provider, customer):
        with pytest.raises(ValidationError):
            employees.add_employee(provider.id, provider, customer.id)

        assert db.session.get(User, customer.id).role == 'customer'

    def test_employee_of_other_provider_rejected(self, provider, other_provider, make_employee):
        busy = make_employee(other_provider)

        with pytest.raises(ValidationError):
            employees.add_employee(provider.id, provider, busy.id)

    def test_unknown_role_rejected(self, provider):
        with pytest.raises(ValidationError):
            employees.add_employee(provider.id, provider, 'tech-uid-4', role='owner')

    def test_only_provider_side_manages_staff(self, provider, other_provider, customer, make_employee):
        tech = make_employee(provider, role='tech')

        with pytest.raises(PermissionDenied):
            employees.add_employee(provider.id, customer, 'tech-uid-5')
        with pytest.raises(PermissionDenied):
            employees.add_employee(provider.id, other_provider, 'tech-uid-5')
        with pytest.raises(PermissionDenied):
            employees.add_employee(provider.id, tech, 'tech-uid-5')

    def test_unknown_provider(self, dispatcher):
        with pytest.raises(NotFound):
            employees.add_employee('no-such-provider', dispatcher, 'tech-uid-6')


class TestDeactivateEmployee:
    """Taking staff off a provider"""

    def test_deactivation_releases_open_jobs(self, customer, provider, make_job, make_employee):
        tech = make_employee(provider)
        active_job = make_job(customer, status='enroute', provider_id=provider.id, assigned_employee_uid=tech.id)
        done_job = make_job(customer, status='completed', provider_id=provider.id, assigned_employee_uid=tech.id)

        employment, released = employees.deactivate_employee(provider.id, provider, tech.id)

        assert not employment.active
        assert released == [active_job.id]
        assert db.session.get(Job, active_job.id).assigned_employee_uid is None
        assert db.session.get(Job, done_job.id).assigned_employee_uid == tech.id

    def test_deactivated_tech_cannot_advance(self, customer, provider, make_job, make_employee):
        tech = make_employee(provider)
        job = make_job(customer, status='assigned', provider_id=provider.id)
        employees.deactivate_employee(provider.id, provider, tech.id)

        with pytest.raises(PermissionDenied):
            lifecycle.transition(job.id, 'enroute', tech)

    def test_deactivate_over_http(self, client, provider, headers, make_employee):
        tech = make_employee(provider)

        response = client.delete('/api/providers/{}/employees/{}'.format(provider.id, tech.id),
                                 headers=headers(provider))

        assert response.status_code == 200
        assert response.get_json()['employee']['active'] is False

    def test_unknown_employee(self, provider):
        with pytest.raises(NotFound):
            employees.deactivate_employee(provider.id, provider, 'nobody')

    def test_cannot_deactivate_self(self, provider, make_employee):
        staff = make_employee(provider, role='dispatcher')

        with pytest.raises(ValidationError):
            employees.deactivate_employee(provider.id, staff, staff.id)
