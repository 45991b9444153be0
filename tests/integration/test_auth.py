"""
Integration tests for authentication and authorization.
"""

from app.models import UserProfile


class TestRegistration:
    """Customer registration flow."""

    def test_register_new_customer(self, client, session):
        response = client.post('/account/register', data={
            'email': 'New.Customer@Example.com',
            'full_name': 'New Customer',
            'password': 'securepass123',
            'password_confirm': 'securepass123',
            'marketing_opt_in': 'on',
        }, follow_redirects=False)

        assert response.status_code == 302

        user = session.query(UserProfile).filter_by(email='new.customer@example.com').first()
        assert user is not None
        assert user.role == 'customer'
        assert user.marketing_opt_in is True
        assert user.check_password('securepass123')

        with client.session_transaction() as sess:
            assert sess['user_id'] == user.id

    def test_register_with_existing_email_fails(self, client, customer):
        response = client.post('/account/register', data={
            'email': customer.email.upper(),
            'full_name': 'Duplicate',
            'password': 'password123',
            'password_confirm': 'password123',
        })

        assert response.status_code == 400
        assert b'already exists' in response.data

    def test_register_with_mismatched_passwords_fails(self, client, session):
        response = client.post('/account/register', data={
            'email': 'someone@example.com',
            'full_name': 'Someone',
            'password': 'password123',
            'password_confirm': 'different123',
        })

        assert response.status_code == 400
        assert session.query(UserProfile).filter_by(email='someone@example.com').first() is None

    def test_short_password_rejected(self, client):
        response = client.post('/account/register', data={
            'email': 'short@example.com',
            'full_name': 'Short',
            'password': 'abc',
            'password_confirm': 'abc',
        })
        assert response.status_code == 400


class TestLogin:

    def test_customer_login_goes_home(self, client, customer):
        response = client.post('/account/login', data={
            'email': customer.email,
            'password': 'password123',
        }, follow_redirects=False)

        assert response.status_code == 302
        assert response.location.endswith('/')
        assert '/admin' not in response.location

    def test_admin_login_goes_to_dashboard(self, client, admin_user):
        response = client.post('/account/login', data={
            'email': admin_user.email,
            'password': 'password123',
        }, follow_redirects=False)

        assert response.status_code == 302
        assert '/admin/' in response.location

    def test_invalid_password(self, client, customer):
        response = client.post('/account/login', data={
            'email': customer.email,
            'password': 'wrongpassword',
        })

        assert response.status_code == 401
        assert b'Incorrect email or password' in response.data

    def test_missing_fields(self, client):
        response = client.post('/account/login', data={'email': ''})
        assert response.status_code == 400

    def test_inactive_account_cannot_sign_in(self, client, session, customer):
        customer.active = False
        session.commit()

        response = client.post('/account/login', data={
            'email': customer.email,
            'password': 'password123',
        })
        assert response.status_code == 401

    def test_login_keeps_cart(self, client, customer):
        with client.session_transaction() as sess:
            sess['cart'] = {'items': [{'id': '1-abc', 'quantity': 1}]}

        client.post('/account/login', data={'email': customer.email, 'password': 'password123'})

        with client.session_transaction() as sess:
            assert sess['user_id'] == customer.id
            assert sess['cart']['items'][0]['id'] == '1-abc'

    def test_external_next_is_ignored(self, client, customer):
        response = client.post('/account/login?next=https://evil.example.com/', data={
            'email': customer.email,
            'password': 'password123',
        })
        assert response.status_code == 302
        assert 'evil.example.com' not in response.location


class TestSessionManagement:

    def test_logout_clears_session(self, customer_client):
        response = customer_client.post('/account/logout', follow_redirects=False)
        assert response.status_code == 302

        with customer_client.session_transaction() as sess:
            assert 'user_id' not in sess

    def test_order_history_requires_login(self, client):
        response = client.get('/account/orders', follow_redirects=False)
        assert response.status_code == 302
        assert '/account/login' in response.location

    def test_order_history_for_customer(self, customer_client):
        response = customer_client.get('/account/orders')
        assert response.status_code == 200
