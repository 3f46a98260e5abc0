from datetime import datetime, timedelta, timezone

import pytest
from fastapi.testclient import TestClient
from jose import jwt

from easy_ops.core.config import settings
from easy_ops.core.database import get_db
from easy_ops.core.security import SecurityUtils, SignatureScheme
from easy_ops.models import Profile

JWT_SECRET = "test-jwt-secret"


@pytest.fixture
def auth_client(db, monkeypatch):
    from easy_ops.main import app

    monkeypatch.setattr(settings, "AUTH_JWT_SECRET", JWT_SECRET)
    monkeypatch.setattr(settings, "AUTH_JWT_AUDIENCE", "authenticated")

    def _get_db():
        yield db

    app.dependency_overrides[get_db] = _get_db
    try:
        yield TestClient(app)
    finally:
        app.dependency_overrides.clear()


def token(sub="user-1", role=None, expires_in=3600, secret=JWT_SECRET):
    claims = {
        "sub": sub,
        "aud": "authenticated",
        "exp": datetime.now(timezone.utc) + timedelta(seconds=expires_in),
    }
    if role:
        claims["app_metadata"] = {"role": role}
    return jwt.encode(claims, secret, algorithm="HS256")


def bearer(value):
    return {"Authorization": f"Bearer {value}"}


class TestAuthentication:

    def test_missing_token(self, auth_client):
        assert auth_client.get("/api/v1/locations").status_code == 401

    @pytest.mark.parametrize("bad", [
        token(expires_in=-60),
        token(secret="other-secret"),
        "not-a-token",
    ])
    def test_rejected_tokens(self, auth_client, bad):
        assert auth_client.get("/api/v1/locations", headers=bearer(bad)).status_code == 401

    def test_valid_token(self, auth_client):
        assert auth_client.get("/api/v1/locations", headers=bearer(token())).status_code == 200

    def test_role_claim_grants_manager_routes(self, auth_client):
        staff = auth_client.post("/api/v1/locations", json={"name": "Cellar"}, headers=bearer(token()))
        manager = auth_client.post(
            "/api/v1/locations", json={"name": "Cellar"}, headers=bearer(token(role="manager"))
        )

        assert staff.status_code == 403
        assert manager.status_code == 201

    def test_profile_role_overrides_claim(self, auth_client, db):
        db.add(Profile(id="user-2", full_name="Kim", role="staff"))
        db.commit()

        response = auth_client.post(
            "/api/v1/locations", json={"name": "Attic"}, headers=bearer(token(sub="user-2", role="admin"))
        )

        assert response.status_code == 403


class TestWebhookSignatures:

    def test_known_vector(self):
        # HMAC-SHA256("key", "The quick brown fox jumps over the lazy dog"), base64
        signature = SecurityUtils.compute_webhook_signature("key", "The quick brown fox jumps over the lazy dog")
        assert signature == "97yD9DBThCSxMpjmqm+xQ+9NWaFJRhdZl0edvC0aPNg="

    def test_verify_ignores_surrounding_whitespace(self):
        signature = SecurityUtils.compute_webhook_signature("secret", "body")
        assert SecurityUtils.verify_webhook_signature("secret", "body", f" {signature}\n")
        assert not SecurityUtils.verify_webhook_signature("secret", "body2", signature)

    @pytest.mark.parametrize("scheme,kwargs,expected", [
        (SignatureScheme.BODY, {}, "{}"),
        (SignatureScheme.URL_BODY, {"url": "https://x.test/hook"}, "https://x.test/hook{}"),
        (SignatureScheme.TIMESTAMP_BODY, {"timestamp": "1700000000"}, "1700000000{}"),
    ])
    def test_string_to_sign(self, scheme, kwargs, expected):
        assert SecurityUtils.string_to_sign(scheme, "{}", **kwargs) == expected

    def test_url_scheme_needs_url(self):
        with pytest.raises(ValueError):
            SecurityUtils.string_to_sign(SignatureScheme.URL_BODY, "{}")

    def test_generated_barcode_numbers_are_ten_digits(self):
        number = SecurityUtils.generate_barcode_number()
        assert len(number) == 10 and number.isdigit()
