import pytest

from app.config import Settings


def test_health_reports_database(client):
    response = client.get("/health")
    assert response.status_code == 200
    body = response.json()
    assert body["status"] == "healthy"
    assert body["database"] == {"ok": True, "error": None}


def test_security_headers_are_added(client):
    response = client.get("/", headers={"X-Request-ID": "req-42"})
    assert response.headers["X-Content-Type-Options"] == "nosniff"
    assert response.headers["X-Frame-Options"] == "DENY"
    assert response.headers["X-Request-ID"] == "req-42"


def test_metrics_endpoint_exposes_request_counts(client):
    client.post("/api/auth/sign-out")
    response = client.get("/metrics")
    assert response.status_code == 200
    assert "eduspark_http_requests_total" in response.text


def test_cors_origins_from_comma_separated_env():
    s = Settings(CORS_ORIGINS="http://a.test, http://b.test")
    assert s.CORS_ORIGINS == ["http://a.test", "http://b.test"]


def test_production_rejects_default_secret():
    s = Settings(ENVIRONMENT="production", EMAIL_BACKEND="smtp")
    with pytest.raises(ValueError):
        s.validate_security_settings()


def test_production_rejects_memory_email_backend():
    s = Settings(ENVIRONMENT="production", SECRET_KEY="x" * 64, EMAIL_BACKEND="memory")
    with pytest.raises(ValueError):
        s.validate_security_settings()


def test_development_allows_defaults():
    Settings(ENVIRONMENT="development").validate_security_settings()


def test_sqlite_fallback_database_url():
    assert Settings(DATABASE_URL="").get_database_url().startswith("sqlite:///")
