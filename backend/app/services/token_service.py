"""Access/refresh token issuance, rotation and revocation service."""

from __future__ import annotations

import logging
from dataclasses import dataclass

from sqlalchemy.orm import Session

from app.config import settings
from app.core.exceptions import AuthErrorKind, InvalidTokenError
from app.core.tokens import IssuedToken, TokenCodec, TokenKind, TokenResult, TokenSettings
from app.services.revocation_ledger import RevocationLedger

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class AuthTokens:
    subject_id: int
    access: IssuedToken
    refresh: IssuedToken


class TokenService:
    """
    Orchestrates the codec and the revocation ledger.

    Access and reset-password tokens are stateless; only refresh tokens are
    recorded in the ledger, and only they can be revoked.
    """

    def __init__(self, codec: TokenCodec, ledger: RevocationLedger) -> None:
        self.codec = codec
        self.ledger = ledger

    def issue_auth_pair(self, db: Session, subject_id: int) -> AuthTokens:
        access = self.codec.mint(subject_id, TokenKind.ACCESS)
        refresh = self.codec.mint(subject_id, TokenKind.REFRESH)
        self.ledger.record(db, refresh.token, subject_id, refresh.expires_at)
        logger.info("Issued token pair for user %s", subject_id)
        return AuthTokens(subject_id=subject_id, access=access, refresh=refresh)

    def issue_access_only(self, subject_id: int) -> IssuedToken:
        return self.codec.mint(subject_id, TokenKind.ACCESS)

    def issue_reset_token(self, subject_id: int) -> IssuedToken:
        # Not recorded: replayable until it expires. The password change
        # handler revokes every refresh session instead.
        return self.codec.mint(subject_id, TokenKind.RESET_PASSWORD)

    def verify_access(self, token: str) -> TokenResult:
        return self.codec.parse(token).expect(TokenKind.ACCESS)

    def verify_reset_token(self, token: str) -> TokenResult:
        return self.codec.parse(token).expect(TokenKind.RESET_PASSWORD)

    def verify_refresh(self, db: Session, token: str) -> TokenResult:
        """Parse a refresh token and confirm the ledger still holds it live."""
        result = self.codec.parse(token).expect(TokenKind.REFRESH)
        if not result.ok:
            return result
        if not self.ledger.is_live(db, token, result.claims.subject):
            return TokenResult.failure(AuthErrorKind.REVOKED, "refresh token not live")
        return result

    def refresh(self, db: Session, refresh_token: str) -> AuthTokens:
        """
        Rotate a refresh token: the old one is revoked and a new pair issued.

        Raises:
            InvalidTokenError: If the token is not a live refresh token, or a
                concurrent call rotated it first
        """
        result = self.verify_refresh(db, refresh_token)
        if not result.ok:
            raise InvalidTokenError(result.error)

        subject_id = result.claims.subject
        access = self.codec.mint(subject_id, TokenKind.ACCESS)
        refresh = self.codec.mint(subject_id, TokenKind.REFRESH)
        self.ledger.rotate(db, refresh_token, subject_id, refresh.token, refresh.expires_at)
        logger.info("Rotated refresh token for user %s", subject_id)
        return AuthTokens(subject_id=subject_id, access=access, refresh=refresh)

    def revoke_session(self, db: Session, refresh_token: str) -> None:
        """
        Revoke one refresh token (logout).

        Raises:
            InvalidTokenError: If the token is not a valid refresh token
            ResourceNotFoundError: If it was never recorded or is already revoked
        """
        result = self.codec.parse(refresh_token).expect(TokenKind.REFRESH)
        if not result.ok:
            raise InvalidTokenError(result.error)
        self.ledger.revoke(db, refresh_token, result.claims.subject)

    def revoke_all_sessions(self, db: Session, subject_id: int) -> int:
        return self.ledger.revoke_all(db, subject_id)


token_service = TokenService(
    TokenCodec(TokenSettings.from_settings(settings)),
    RevocationLedger(),
)


def get_token_service() -> TokenService:
    """Dependency returning the process-wide token service"""
    return token_service
