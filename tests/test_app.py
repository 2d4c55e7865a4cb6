"""
Application wiring tests: health, headers, auth boundary and profiles
"""
from app import db
from app.models import User


class TestAppWiring:

    def test_health_needs_no_auth(self, client):
        response = client.get('/api/health')

        assert response.status_code == 200
        assert response.get_json()['status'] == 'healthy'

    def test_security_headers(self, client):
        response = client.get('/api/health')

        assert response.headers['X-Content-Type-Options'] == 'nosniff'
        assert response.headers['X-Frame-Options'] == 'DENY'

    def test_request_id_echoed(self, client):
        response = client.get('/api/health', headers={'X-Request-ID': 'trace-123'})

        assert response.headers['X-Request-ID'] == 'trace-123'

    def test_request_id_generated(self, client):
        response = client.get('/api/health')

        assert response.headers['X-Request-ID']

    def test_json_input_escaped(self, client, customer, headers):
        response = client.post('/api/jobs', headers=headers(customer), json={
            'issue_type': 'other',
            'notes': '<script>alert(1)</script>',
        })

        assert response.get_json()['job']['notes'] == '&lt;script&gt;alert(1)&lt;/script&gt;'


class TestAuthBoundary:

    def test_bad_token(self, client):
        response = client.get('/api/jobs', headers={'Authorization': 'Bearer not-a-jwt'})

        assert response.status_code == 401

    def test_expired_token(self, client, customer, app):
        from app.auth import generate_token

        token = generate_token(customer.id, expires_in=-10)
        response = client.get('/api/jobs', headers={'Authorization': 'Bearer {}'.format(token)})

        assert response.status_code == 401

    def test_token_without_profile(self, client, headers):
        response = client.get('/api/jobs', headers=headers('nobody-yet'))

        assert response.status_code == 401
        assert response.get_json()['code'] == 'unauthenticated'


class TestProfile:

    def test_me_without_profile_routes_to_onboarding(self, client, headers):
        response = client.get('/api/me', headers=headers('fresh-user'))

        assert response.status_code == 200
        assert response.get_json() == {'profile': None, 'home': '/onboarding'}

    def test_create_provider_profile(self, client, headers):
        response = client.put('/api/me', headers=headers('new-provider'), json={
            'role': 'provider',
            'name': 'Dana',
            'business_name': 'Dana Towing',
            'phone': '305 555 0101',
        })

        assert response.status_code == 201
        body = response.get_json()
        assert body['home'] == '/provider'
        assert body['profile']['phone'] == '+13055550101'
        assert db.session.get(User, 'new-provider').business_name == 'Dana Towing'

    def test_staff_roles_not_self_service(self, client, headers):
        response = client.put('/api/me', headers=headers('sneaky'), json={'role': 'admin'})

        assert response.status_code == 403
        assert db.session.get(User, 'sneaky') is None

    def test_role_cannot_change(self, client, customer, headers):
        response = client.put('/api/me', headers=headers(customer), json={'role': 'provider'})

        assert response.status_code == 403

    def test_update_name(self, client, customer, headers):
        response = client.put('/api/me', headers=headers(customer), json={'name': 'Jordan'})

        assert response.status_code == 200
        assert response.get_json()['profile']['name'] == 'Jordan'
