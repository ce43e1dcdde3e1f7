"""
Backend Health Test Suite
=========================
Smoke tests: the server boots, answers health checks, and renders errors
in the JSON envelope.

Run with:
    pytest tests/test_backend_health.py -v
"""

# ============================================================
#  HEALTH & SMOKE TESTS
# ============================================================

class TestHealthEndpoints:
    """Verify the server boots and responds."""

    def test_root_health(self, client):
        resp = client.get('/health')
        assert resp.status_code == 200
        data = resp.get_json()
        assert data['status'] == 'ok'

    def test_api_health(self, client):
        resp = client.get('/api/health')
        assert resp.status_code == 200
        assert resp.get_json()['status'] == 'ok'

    def test_welcome(self, client):
        resp = client.get('/api/v1')
        assert resp.status_code == 200
        data = resp.get_json()
        assert data['status'] == 'success'
        assert data['message'] == 'Welcome to the CommonGood API!'
        assert data['data']['version']


# ============================================================
#  ERROR ENVELOPE TESTS
# ============================================================

class TestErrorHandling:
    """Errors always come back as JSON."""

    def test_unknown_api_route(self, client):
        resp = client.get('/api/v1/does-not-exist')
        assert resp.status_code == 404
        data = resp.get_json()
        assert data['status'] == 'fail'
        assert data['message'] == "Can't find /api/v1/does-not-exist on this server!"

    def test_non_integer_id(self, client):
        resp = client.get('/api/v1/listings/not-a-number')
        assert resp.status_code == 404

    def test_method_not_allowed(self, client):
        resp = client.put('/api/v1/auth/login', json={})
        assert resp.status_code == 405
        assert resp.get_json()['status'] == 'fail'

    def test_unexpected_error_is_hidden(self, app, client, db_session, monkeypatch):
        def boom():
            raise RuntimeError('secret internals')
        monkeypatch.setitem(app.view_functions, 'health', boom)

        resp = client.get('/api/health')
        assert resp.status_code == 500
        data = resp.get_json()
        assert data['status'] == 'error'
        assert data['message'] == 'Something went very wrong!'
