import pytest
from fastapi.testclient import TestClient

from app.main import app
from app.security_middleware import RouteDecision, classify_route


@pytest.mark.parametrize("path", ["/dashboard", "/settings/hours", "/profile", "/appointments", "/clients", "/reports"])
def test_protected_pages_need_both_cookies(path):
    assert classify_route(path, False, False) is RouteDecision.REDIRECT_LOGIN
    assert classify_route(path, True, False) is RouteDecision.REDIRECT_LOGIN
    assert classify_route(path, False, True) is RouteDecision.REDIRECT_LOGIN
    assert classify_route(path, True, True) is RouteDecision.PASS


@pytest.mark.parametrize("path", ["/login", "/register"])
def test_auth_pages_redirect_signed_in_users(path):
    assert classify_route(path, True, True) is RouteDecision.REDIRECT_DASHBOARD
    assert classify_route(path, True, False) is RouteDecision.PASS


@pytest.mark.parametrize("path", ["/", "/about", "/contact", "/design-system", "/api/health"])
def test_public_pages_pass(path):
    assert classify_route(path, False, False) is RouteDecision.PASS


@pytest.mark.parametrize("path", ["/api/business/profile", "/_next/static/app.js", "/favicon.ico", "/dashboard/logo.png"])
def test_skipped_paths(path):
    assert classify_route(path, False, False) is RouteDecision.PASS


def test_similar_prefix_is_not_protected():
    assert classify_route("/dashboards-demo", False, False) is RouteDecision.PASS


class TestMiddleware:
    @pytest.fixture
    def raw_client(self):
        return TestClient(app, follow_redirects=False)

    def test_redirects_to_login_with_return_url(self, raw_client):
        response = raw_client.get("/dashboard")
        assert response.status_code == 307
        assert response.headers["location"] == "/login?returnUrl=%2Fdashboard"

    def test_redirects_signed_in_user_to_dashboard(self, raw_client):
        raw_client.cookies.set("sb-access-token", "a")
        raw_client.cookies.set("sb-refresh-token", "r")
        response = raw_client.get("/login")
        assert response.status_code == 307
        assert response.headers["location"] == "/dashboard"

    def test_security_headers(self, raw_client):
        response = raw_client.get("/")
        assert response.headers["X-Content-Type-Options"] == "nosniff"
        assert response.headers["X-Frame-Options"] == "DENY"
