import pytest
from jose import jwt

from app.core.exceptions import AuthErrorKind
from app.core.tokens import TokenCodec, TokenKind, TokenSettings


@pytest.mark.parametrize("kind", list(TokenKind))
def test_round_trip_preserves_subject_and_kind(codec, kind):
    result = codec.parse(codec.issue(42, kind, 60))

    assert result.ok
    assert result.claims.subject == 42
    assert result.claims.kind is kind
    assert result.claims.expires_at == result.claims.issued_at + 60


def test_expires_exactly_at_exp(codec, clock):
    token = codec.issue(7, TokenKind.ACCESS, 60)

    clock.advance(59)
    assert codec.parse(token).ok

    clock.advance(1)
    result = codec.parse(token)
    assert not result.ok
    assert result.error.kind is AuthErrorKind.EXPIRED


def test_mint_reports_expiry_and_defaults_ttl_per_kind(codec, clock, token_settings):
    access = codec.mint(1, TokenKind.ACCESS)
    refresh = codec.mint(1, TokenKind.REFRESH)
    reset = codec.mint(1, TokenKind.RESET_PASSWORD)

    assert access.expires_at.timestamp() == clock.now + token_settings.access_ttl
    assert refresh.expires_at.timestamp() == clock.now + token_settings.refresh_ttl
    assert reset.expires_at.timestamp() == clock.now + token_settings.reset_password_ttl


def test_tokens_issued_in_same_second_differ(codec):
    assert codec.issue(1, TokenKind.REFRESH) != codec.issue(1, TokenKind.REFRESH)


def test_foreign_secret_is_bad_signature(codec, clock):
    forger = TokenCodec(TokenSettings(secret="someone-else"), clock=clock)

    result = codec.parse(forger.issue(1, TokenKind.ACCESS))

    assert result.error.kind is AuthErrorKind.BAD_SIGNATURE


def test_signature_is_checked_before_expiry(codec, clock):
    forger = TokenCodec(TokenSettings(secret="someone-else"), clock=clock)
    token = forger.issue(1, TokenKind.ACCESS, 10)
    clock.advance(3600)

    assert codec.parse(token).error.kind is AuthErrorKind.BAD_SIGNATURE


@pytest.mark.parametrize("token", ["", "not-a-jwt", "a.b.c"])
def test_undecodable_input_is_malformed(codec, token):
    assert codec.parse(token).error.kind is AuthErrorKind.MALFORMED


@pytest.mark.parametrize(
    "claims",
    [
        {"sub": 1, "type": "ACCESS"},
        {"sub": "abc", "type": "ACCESS"},
        {"sub": "1", "type": "SESSION"},
        {"type": "ACCESS"},
        {"sub": "1"},
    ],
)
def test_signed_token_with_bad_claims_is_malformed(codec, clock, token_settings, claims):
    payload = dict(claims, iat=clock.now, exp=clock.now + 60)
    token = jwt.encode(payload, token_settings.secret, algorithm="HS256")

    assert codec.parse(token).error.kind is AuthErrorKind.MALFORMED


def test_parse_is_kind_agnostic_and_expect_narrows(codec):
    result = codec.parse(codec.issue(3, TokenKind.REFRESH))

    assert result.ok
    assert result.expect(TokenKind.REFRESH).ok
    assert result.expect(TokenKind.ACCESS).error.kind is AuthErrorKind.WRONG_KIND


def test_expect_keeps_original_failure(codec):
    result = codec.parse("garbage").expect(TokenKind.ACCESS)

    assert result.error.kind is AuthErrorKind.MALFORMED


def test_signed_token_with_non_integer_iat_is_malformed(codec, clock, token_settings):
    payload = {"sub": "1", "type": "ACCESS", "iat": "yesterday", "exp": clock.now + 60}
    token = jwt.encode(payload, token_settings.secret, algorithm="HS256")

    assert codec.parse(token).error.kind is AuthErrorKind.MALFORMED
