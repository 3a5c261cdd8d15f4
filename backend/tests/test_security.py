import base64
import json
from datetime import timedelta
from types import SimpleNamespace

from jose import jwt

from app.config import settings
from app.core.security import (
    TokenType,
    create_token,
    generate_csrf_token,
    generate_email_verification_token,
    generate_password_reset_token,
    generate_tokens,
    hash_password,
    sanitize_input,
    validate_csrf_token,
    validate_email,
    validate_password,
    validate_username,
    verify_password,
    verify_token,
)


def _user(**overrides):
    data = {"id": 3, "email": "kid@example.com", "role": "child"}
    data.update(overrides)
    return SimpleNamespace(**data)


def test_sanitize_input_strips_markup_and_control_characters():
    assert sanitize_input("  <b>Alex</b>\x00\x07 ") == "bAlex/b"
    assert sanitize_input(None) == ""
    assert sanitize_input(42) == "42"
    assert len(sanitize_input("x" * 5000)) == 1000


def test_validate_email():
    assert validate_email("parent@example.com")
    assert not validate_email("parent@example")
    assert not validate_email("two words@example.com")
    assert not validate_email("")


def test_validate_username_reports_every_rule():
    result = validate_username("a!")
    assert not result.is_valid
    assert result.errors == [
        "Username must be at least 3 characters long",
        "Username can only contain letters, numbers, and underscores",
    ]
    assert validate_username("alex_learner").is_valid
    assert not validate_username("x" * 21).is_valid


def test_validate_password_reports_every_rule():
    result = validate_password("abc")
    assert not result.is_valid
    assert result.errors == [
        "Password must be at least 8 characters long",
        "Password must contain at least one uppercase letter",
        "Password must contain at least one number",
        "Password must contain at least one special character",
    ]
    assert validate_password("Password123!").is_valid


def test_password_hash_round_trip():
    hashed = hash_password("Password123!")
    assert hashed != "Password123!"
    assert verify_password("Password123!", hashed)
    assert not verify_password("Password123?", hashed)


def test_verify_password_rejects_malformed_hash():
    assert verify_password("Password123!", "not-a-bcrypt-hash") is False


def test_token_round_trip_keeps_subject_and_type():
    token = generate_password_reset_token("kid@example.com")
    claims = verify_token(token)
    assert claims is not None
    assert claims.subject == "kid@example.com"
    assert claims.type is TokenType.PASSWORD_RESET
    assert claims.expires_at - claims.issued_at == timedelta(minutes=settings.PASSWORD_RESET_TOKEN_EXPIRE_MINUTES)


def test_tokens_for_same_subject_are_distinct():
    assert generate_email_verification_token("a@example.com") != generate_email_verification_token("a@example.com")


def test_expired_token_is_rejected():
    token = generate_email_verification_token("kid@example.com", expires_delta=timedelta(seconds=-5))
    assert verify_token(token) is None


def test_token_signed_with_another_key_is_rejected():
    forged = jwt.encode(
        {"sub": "kid@example.com", "typ": "password-reset", "iat": 1, "exp": 9999999999},
        "someone-elses-key",
        algorithm="HS256",
    )
    assert verify_token(forged) is None


def test_tampered_payload_is_rejected():
    header, payload, signature = generate_email_verification_token("kid@example.com").split(".")
    claims = json.loads(base64.urlsafe_b64decode(payload + "=" * (-len(payload) % 4)))
    claims["sub"] = "attacker@example.com"
    forged_payload = base64.urlsafe_b64encode(json.dumps(claims).encode()).rstrip(b"=").decode()
    assert verify_token(f"{header}.{forged_payload}.{signature}") is None


def test_expected_type_must_match():
    token = generate_email_verification_token("kid@example.com")
    assert verify_token(token, TokenType.PASSWORD_RESET) is None
    assert verify_token(token, TokenType.EMAIL_VERIFICATION) is not None


def test_unknown_type_is_rejected():
    token = jwt.encode(
        {"sub": "kid@example.com", "typ": "admin"},
        settings.SECRET_KEY,
        algorithm=settings.ALGORITHM,
    )
    assert verify_token(token) is None


def test_garbage_input_returns_none():
    assert verify_token("") is None
    assert verify_token("not.a.token") is None


def test_generate_tokens_issues_access_and_refresh():
    tokens = generate_tokens(_user())
    access = verify_token(tokens.access_token, TokenType.ACCESS)
    refresh = verify_token(tokens.refresh_token, TokenType.REFRESH)
    assert access.user_id == 3
    assert access.role == "child"
    assert access.expires_at - access.issued_at == timedelta(minutes=15)
    assert refresh.expires_at - refresh.issued_at == timedelta(days=1)
    assert verify_token(tokens.access_token, TokenType.REFRESH) is None


def test_remember_me_extends_refresh_token():
    tokens = generate_tokens(_user(), remember_me=True)
    refresh = verify_token(tokens.refresh_token, TokenType.REFRESH)
    assert refresh.expires_at - refresh.issued_at == timedelta(days=7)


def test_csrf_token_is_not_an_auth_token():
    token = generate_csrf_token()
    assert validate_csrf_token(token)
    assert verify_token(token) is None
    assert generate_csrf_token() != token


def test_auth_token_is_not_a_csrf_token():
    token = create_token("kid@example.com", TokenType.ACCESS, timedelta(minutes=1))
    assert not validate_csrf_token(token)
    assert not validate_csrf_token("garbage")
