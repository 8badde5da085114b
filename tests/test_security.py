"""Security tests.

Tests:
- Security headers are present on responses
- JSON error bodies (no HTML error pages)
- CSRF: enforced on dashboard APIs, exempt for the Lenco webhook
- Rate limiting configuration
"""

import json

from conftest import sign


class TestSecurityHeaders:
    """Verify security headers are present on responses."""

    def test_x_content_type_options(self, app, client):
        response = client.get("/api/credits")
        assert response.headers.get("X-Content-Type-Options") == "nosniff"

    def test_x_frame_options(self, app, client):
        response = client.get("/api/credits")
        assert response.headers.get("X-Frame-Options") == "DENY"

    def test_referrer_policy(self, app, client):
        response = client.get("/api/credits")
        assert response.headers.get("Referrer-Policy") == "strict-origin-when-cross-origin"

    def test_ledger_responses_not_cached(self, app, client):
        response = client.get("/api/credits")
        assert response.headers.get("Cache-Control") == "no-store"

    def test_no_hsts_in_debug(self, app, client):
        """HSTS should NOT be set in debug/test mode."""
        response = client.get("/api/credits")
        assert response.headers.get("Strict-Transport-Security") is None

    def test_headers_on_error_pages(self, app, client):
        """Security headers should be present even on 404 pages."""
        response = client.get("/nonexistent-page")
        assert response.headers.get("X-Content-Type-Options") == "nosniff"
        assert response.headers.get("X-Frame-Options") == "DENY"


class TestErrorResponses:
    """Errors come back as JSON."""

    def test_404_is_json(self, client):
        response = client.get("/nonexistent-page")
        assert response.status_code == 404
        assert response.get_json() == {"error": "Not found"}

    def test_405_is_json(self, client):
        response = client.get("/api/webhooks/lenco")
        assert response.status_code == 405
        assert response.get_json() == {"error": "Method not allowed"}


class TestCsrf:
    """CSRF protection with WTF_CSRF_ENABLED switched on."""

    def test_dashboard_post_requires_csrf_token(self, app, client, seed_data, login,
                                                monkeypatch):
        monkeypatch.setitem(app.config, "WTF_CSRF_ENABLED", True)
        login("v123")

        response = client.post("/api/subscription/checkout", json={
            "plan_id": "premium_monthly", "provider": "mtn", "phone": "0961234567",
        })
        assert response.status_code == 400

    def test_webhook_is_csrf_exempt(self, app, client, seed_data, monkeypatch):
        monkeypatch.setitem(app.config, "WTF_CSRF_ENABLED", True)

        body = json.dumps({"type": "transfer"}).encode()
        response = client.post(
            "/api/webhooks/lenco",
            data=body,
            content_type="application/json",
            headers={"X-Lenco-Signature": sign(body)},
        )
        assert response.status_code == 200


class TestRateLimiting:
    """Verify rate limiting is configured (though disabled in tests via RATELIMIT_ENABLED=False)."""

    def test_rate_limiter_initialized(self, app):
        assert app.config.get("RATELIMIT_ENABLED") is False
        assert "limiter" in app.extensions
