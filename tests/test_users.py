"""
Tests for user profile endpoints.
"""

import io

from commongood import db
from commongood.models import User
from commongood.models.user import DEFAULT_PROFILE_PICTURE_URL

from conftest import PNG_BYTES, _create_listing, _get_token


class TestGetUser:
    """Tests for GET /api/v1/users/<id>"""

    def test_get_public_profile(self, client, test_user):
        response = client.get(f'/api/v1/users/{test_user["id"]}')

        assert response.status_code == 200
        user = response.json['data']['user']
        assert user['name'] == test_user['name']
        assert 'email' not in user
        assert user['profile_picture_url'] == DEFAULT_PROFILE_PICTURE_URL

    def test_get_missing_user(self, client, db_session):
        response = client.get('/api/v1/users/99999')

        assert response.status_code == 404

    def test_get_deactivated_user(self, client, test_user):
        user = db.session.get(User, test_user['id'])
        user.is_active = False
        db.session.commit()

        response = client.get(f'/api/v1/users/{test_user["id"]}')

        assert response.status_code == 404

    def test_get_user_listings(self, client, test_user, second_user):
        _create_listing(test_user['id'])
        _create_listing(test_user['id'], status='completed')
        _create_listing(second_user['id'])

        response = client.get(f'/api/v1/users/{test_user["id"]}/listings')

        assert response.status_code == 200
        assert response.json['total'] == 2
        assert all(l['user_id'] == test_user['id'] for l in response.json['data']['listings'])

    def test_get_user_listings_filtered_by_status(self, client, test_user):
        _create_listing(test_user['id'])
        _create_listing(test_user['id'], status='completed')

        response = client.get(f'/api/v1/users/{test_user["id"]}/listings?status=completed')

        assert response.json['total'] == 1
        assert response.json['data']['listings'][0]['status'] == 'completed'


class TestUpdateMe:
    """Tests for PATCH /api/v1/users/updateMe"""

    def test_update_profile_fields(self, client, auth_headers):
        response = client.patch('/api/v1/users/updateMe', headers=auth_headers, json={
            'name': 'New Name',
            'bio': 'I fix bikes.',
            'skills_offered': ['bike repair', 'baking'],
            'skills_sought': 'guitar lessons, tutoring',
            'coordinates': [-122.6765, 45.5231],
        })

        assert response.status_code == 200
        user = response.json['data']['user']
        assert user['name'] == 'New Name'
        assert user['bio'] == 'I fix bikes.'
        assert user['skills_offered'] == ['bike repair', 'baking']
        assert user['skills_sought'] == ['guitar lessons', 'tutoring']
        assert user['coordinates'] == {'type': 'Point', 'coordinates': [-122.6765, 45.5231]}

    def test_update_ignores_unknown_fields(self, client, auth_headers, test_user):
        response = client.patch('/api/v1/users/updateMe', headers=auth_headers, json={
            'email': 'hacker@example.com',
            'average_rating': 5,
        })

        assert response.status_code == 200
        assert response.json['data']['user']['email'] == test_user['email']
        assert response.json['data']['user']['average_rating'] == 0

    def test_update_rejects_password(self, client, auth_headers):
        response = client.patch('/api/v1/users/updateMe', headers=auth_headers, json={
            'password': 'newpassword123'
        })

        assert response.status_code == 400
        assert '/updateMyPassword' in response.json['message']

    def test_update_bio_too_long(self, client, auth_headers):
        response = client.patch('/api/v1/users/updateMe', headers=auth_headers, json={
            'bio': 'x' * 501
        })

        assert response.status_code == 400
        assert response.json['details'][0]['field'] == 'bio'

    def test_update_invalid_coordinates(self, client, auth_headers):
        response = client.patch('/api/v1/users/updateMe', headers=auth_headers, json={
            'coordinates': [200, 45]
        })

        assert response.status_code == 400

    def test_update_location_is_geocoded(self, client, auth_headers, monkeypatch):
        from commongood.routes import helpers
        monkeypatch.setattr(helpers, 'geocode_location', lambda text: (45.5, -122.6))

        response = client.patch('/api/v1/users/updateMe', headers=auth_headers, json={
            'location': 'Portland, OR'
        })

        assert response.status_code == 200
        assert response.json['data']['user']['coordinates']['coordinates'] == [-122.6, 45.5]

    def test_upload_profile_picture(self, client, auth_headers, fake_storage):
        response = client.patch(
            '/api/v1/users/updateMe',
            headers=auth_headers,
            data={'bio': 'Has a picture', 'profile_picture': (io.BytesIO(PNG_BYTES), 'me.png', 'image/png')},
            content_type='multipart/form-data'
        )

        assert response.status_code == 200
        user = response.json['data']['user']
        assert user['bio'] == 'Has a picture'
        assert user['profile_picture_url'].startswith('https://res.cloudinary.com/test/')
        assert fake_storage['uploads'][0]['folder'] == f'commongood/user_profiles/{user["id"]}'
        # Default picture is never deleted
        assert fake_storage['deleted'] == []

    def test_replacing_picture_deletes_previous(self, client, auth_headers, fake_storage):
        for name in ('first.png', 'second.png'):
            response = client.patch(
                '/api/v1/users/updateMe',
                headers=auth_headers,
                data={'profile_picture': (io.BytesIO(PNG_BYTES), name, 'image/png')},
                content_type='multipart/form-data'
            )
            assert response.status_code == 200

        user_id = response.json['data']['user']['id']
        assert fake_storage['deleted'] == [f'commongood/user_profiles/{user_id}/img1']

    def test_upload_without_storage_configured(self, client, auth_headers, monkeypatch):
        from commongood.services import storage
        monkeypatch.setattr(storage, 'is_storage_configured', lambda: False)

        response = client.patch(
            '/api/v1/users/updateMe',
            headers=auth_headers,
            data={'profile_picture': (io.BytesIO(PNG_BYTES), 'me.png', 'image/png')},
            content_type='multipart/form-data'
        )

        assert response.status_code == 503
        assert response.json['message'] == 'Image storage is not configured.'

    def test_requires_auth(self, client, db_session):
        response = client.patch('/api/v1/users/updateMe', json={'bio': 'x'})

        assert response.status_code == 401


class TestUpdatePassword:
    """Tests for PATCH /api/v1/users/updateMyPassword"""

    def test_change_password(self, client, auth_headers, test_user):
        response = client.patch('/api/v1/users/updateMyPassword', headers=auth_headers, json={
            'current_password': test_user['password'],
            'new_password': 'brandnewpassword'
        })

        assert response.status_code == 200
        new_token = response.json['token']

        me = client.get('/api/v1/auth/me', headers={'Authorization': f'Bearer {new_token}'})
        assert me.status_code == 200

        login = client.post('/api/v1/auth/login', json={
            'email': test_user['email'], 'password': 'brandnewpassword'
        })
        assert login.status_code == 200

    def test_wrong_current_password(self, client, auth_headers):
        response = client.patch('/api/v1/users/updateMyPassword', headers=auth_headers, json={
            'current_password': 'notmypassword',
            'new_password': 'brandnewpassword'
        })

        assert response.status_code == 401

    def test_new_password_too_short(self, client, auth_headers, test_user):
        response = client.patch('/api/v1/users/updateMyPassword', headers=auth_headers, json={
            'current_password': test_user['password'],
            'new_password': 'short'
        })

        assert response.status_code == 400

    def test_non_string_current_password(self, client, auth_headers):
        response = client.patch('/api/v1/users/updateMyPassword', headers=auth_headers, json={
            'current_password': 12345678,
            'new_password': 'newpassword1'
        })

        assert response.status_code == 400
        assert response.json['message'] == 'Validation Error'
        assert [d['field'] for d in response.json['details']] == ['current_password']


class TestDeleteMe:
    """Tests for DELETE /api/v1/users/deleteMe"""

    def test_deactivate_account(self, client, auth_headers, test_user):
        response = client.delete('/api/v1/users/deleteMe', headers=auth_headers)

        assert response.status_code == 204
        assert response.data == b''

        # Token no longer works and the profile is hidden
        me = client.get('/api/v1/auth/me', headers=auth_headers)
        assert me.status_code == 401
        assert client.get(f'/api/v1/users/{test_user["id"]}').status_code == 404

    def test_deactivated_user_cannot_login(self, client, auth_headers, test_user):
        client.delete('/api/v1/users/deleteMe', headers=auth_headers)

        response = client.post('/api/v1/auth/login', json={
            'email': test_user['email'], 'password': test_user['password']
        })
        assert response.status_code == 403

    def test_login_helper_still_works_for_others(self, client, second_user):
        assert _get_token(client, second_user['email'], second_user['password'])
