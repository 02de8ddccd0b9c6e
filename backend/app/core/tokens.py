"""Signed token codec - creates and parses expiring JWTs"""

from __future__ import annotations

import secrets
import time
from dataclasses import dataclass
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Callable, Dict, Optional

from jose import JWTError, jwt
from jose.exceptions import JWTClaimsError

from app.core.exceptions import AuthErrorKind, AuthFailure

Clock = Callable[[], int]


def epoch_now() -> int:
    """Current time as whole epoch seconds"""
    return int(time.time())


class TokenKind(str, Enum):
    """Token purpose, carried in the ``type`` claim"""
    ACCESS = "ACCESS"
    REFRESH = "REFRESH"
    RESET_PASSWORD = "RESET_PASSWORD"


@dataclass(frozen=True)
class TokenSettings:
    """Signing key and lifetimes (seconds) injected into the codec"""
    secret: str
    algorithm: str = "HS256"
    access_ttl: int = 30 * 60
    refresh_ttl: int = 30 * 86400
    reset_password_ttl: int = 10 * 60

    @classmethod
    def from_settings(cls, settings: Any) -> "TokenSettings":
        return cls(
            secret=settings.JWT_SECRET,
            algorithm=settings.JWT_ALGORITHM,
            access_ttl=settings.JWT_ACCESS_EXPIRATION_MINUTES * 60,
            refresh_ttl=settings.JWT_REFRESH_EXPIRATION_DAYS * 86400,
            reset_password_ttl=settings.JWT_RESET_PASSWORD_EXPIRATION_MINUTES * 60,
        )


@dataclass(frozen=True)
class TokenClaims:
    subject: int
    kind: TokenKind
    issued_at: int
    expires_at: int
    token_id: Optional[str] = None


@dataclass(frozen=True)
class IssuedToken:
    """An encoded token together with its expiry"""
    token: str
    kind: TokenKind
    expires_at: datetime


@dataclass(frozen=True)
class TokenResult:
    """Outcome of parsing a token: claims on success, a failure otherwise."""
    claims: Optional[TokenClaims] = None
    error: Optional[AuthFailure] = None

    @classmethod
    def success(cls, claims: TokenClaims) -> "TokenResult":
        return cls(claims=claims)

    @classmethod
    def failure(cls, kind: AuthErrorKind, detail: str = "") -> "TokenResult":
        return cls(error=AuthFailure(kind, detail))

    @property
    def ok(self) -> bool:
        return self.error is None

    def expect(self, kind: TokenKind) -> "TokenResult":
        """Narrow a successful result to one token kind."""
        if self.ok and self.claims.kind is not kind:
            return TokenResult.failure(
                AuthErrorKind.WRONG_KIND,
                f"expected {kind.value}, got {self.claims.kind.value}",
            )
        return self


def _as_int(value: Any) -> Optional[int]:
    if isinstance(value, bool) or not isinstance(value, int):
        return None
    return value


class TokenCodec:
    """
    Encode and verify HMAC-signed tokens.

    The codec never looks at the ``type`` claim beyond decoding it; callers
    decide which kinds they accept.
    """

    def __init__(self, config: TokenSettings, clock: Clock = epoch_now) -> None:
        self.config = config
        self._clock = clock

    def now(self) -> int:
        return self._clock()

    def ttl_for(self, kind: TokenKind) -> int:
        if kind is TokenKind.ACCESS:
            return self.config.access_ttl
        if kind is TokenKind.REFRESH:
            return self.config.refresh_ttl
        return self.config.reset_password_ttl

    def mint(self, subject: int, kind: TokenKind, ttl: Optional[int] = None) -> IssuedToken:
        """
        Create a signed token for ``subject``.

        Args:
            subject: Principal id
            kind: Token purpose
            ttl: Lifetime in seconds, defaults to the configured one for ``kind``

        Returns:
            IssuedToken: Encoded token and its expiry
        """
        issued_at = self.now()
        expires_at = issued_at + (self.ttl_for(kind) if ttl is None else ttl)
        payload = {
            "sub": str(subject),
            "type": kind.value,
            "iat": issued_at,
            "exp": expires_at,
            "jti": secrets.token_urlsafe(16),
        }
        token = jwt.encode(payload, self.config.secret, algorithm=self.config.algorithm)
        return IssuedToken(
            token=token,
            kind=kind,
            expires_at=datetime.fromtimestamp(expires_at, tz=timezone.utc),
        )

    def issue(self, subject: int, kind: TokenKind, ttl: Optional[int] = None) -> str:
        return self.mint(subject, kind, ttl).token

    def parse(self, token: str) -> TokenResult:
        """
        Verify signature and expiry of ``token``.

        Returns:
            TokenResult: claims, or a MALFORMED / BAD_SIGNATURE / EXPIRED failure
        """
        if not token:
            return TokenResult.failure(AuthErrorKind.MALFORMED, "empty token")

        try:
            jwt.get_unverified_claims(token)
        except JWTError as exc:
            return TokenResult.failure(AuthErrorKind.MALFORMED, str(exc))

        try:
            payload = jwt.decode(
                token,
                self.config.secret,
                algorithms=[self.config.algorithm],
                options={"verify_exp": False},
            )
        except JWTClaimsError as exc:
            return TokenResult.failure(AuthErrorKind.MALFORMED, str(exc))
        except JWTError as exc:
            return TokenResult.failure(AuthErrorKind.BAD_SIGNATURE, str(exc))

        claims = self._claims_from(payload)
        if claims is None:
            return TokenResult.failure(AuthErrorKind.MALFORMED, "missing or invalid claims")

        # exp == now counts as expired
        if claims.expires_at <= self.now():
            return TokenResult.failure(AuthErrorKind.EXPIRED, f"expired at {claims.expires_at}")

        return TokenResult.success(claims)

    @staticmethod
    def _claims_from(payload: Dict[str, Any]) -> Optional[TokenClaims]:
        try:
            subject = int(payload["sub"])
            kind = TokenKind(payload["type"])
        except (KeyError, TypeError, ValueError):
            return None

        issued_at = _as_int(payload.get("iat"))
        expires_at = _as_int(payload.get("exp"))
        if issued_at is None or expires_at is None:
            return None

        return TokenClaims(
            subject=subject,
            kind=kind,
            issued_at=issued_at,
            expires_at=expires_at,
            token_id=payload.get("jti"),
        )
