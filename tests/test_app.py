"""Tests for app-level routes: page redirects, health and the page shell."""

import pytest
from sqlalchemy.orm import sessionmaker

from pintag.page_guard import page_redirect


class TestPageRedirect:

    @pytest.mark.parametrize("path", ["/", "/tag", "/tag/123", "/tagging", "/gallery", "/gallery-old", "/gallery/albums/x"])
    def test_protected_pages_need_a_token(self, path):
        assert page_redirect(path, has_token=False).startswith("/login?from=")
        assert page_redirect(path, has_token=True) is None

    def test_from_is_quoted(self):
        assert page_redirect("/tag/a b", has_token=False) == "/login?from=/tag/a%20b"

    def test_login_redirects_signed_in_users_home(self):
        assert page_redirect("/login", has_token=True) == "/"
        assert page_redirect("/login", has_token=False) is None

    @pytest.mark.parametrize("path", ["/api/v1/images", "/health", "/static/app.js", "/_next/chunk", "/favicon.ico"])
    def test_passthrough(self, path):
        assert page_redirect(path, has_token=False) is None

    def test_public_pages(self):
        assert page_redirect("/register", has_token=False) is None


class TestPageMiddleware:

    def test_signed_out_redirect(self, client):
        response = client.get("/gallery", follow_redirects=False)
        assert response.status_code == 307
        assert response.headers["location"] == "/login?from=/gallery"

    def test_signed_in_visitor_leaves_login(self, client):
        from pintag.settings import settings

        client.cookies.set(settings.auth_cookie_name, "anything")
        response = client.get("/login", follow_redirects=False)
        assert response.status_code == 307
        assert response.headers["location"] == "/"

    def test_login_page_served(self, client):
        response = client.get("/login", follow_redirects=False)
        assert response.status_code == 200
        assert "text/html" in response.headers["content-type"]

    def test_unknown_api_route_is_404(self, client):
        assert client.get("/api/v1/nothing-here").status_code == 404


class TestHealth:

    def test_healthy(self, client, engine, monkeypatch):
        monkeypatch.setattr("pintag.api.SessionLocal", sessionmaker(bind=engine))
        response = client.get("/health")
        assert response.status_code == 200
        assert response.json() == {"status": "healthy"}

    def test_database_down(self, client, monkeypatch):
        class BrokenSession:
            def execute(self, *args, **kwargs):
                raise RuntimeError("connection refused")

            def close(self):
                pass

        monkeypatch.setattr("pintag.api.SessionLocal", BrokenSession)
        response = client.get("/health")
        assert response.status_code == 503
